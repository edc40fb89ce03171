# Import every model so Base.metadata knows all tables

from .base import Base
from .user import User, MemberLevel
from .balance import AccountBalance, BalanceBook
from .ledger import LedgerEntry, TransactionType
from .order import Order, OrderStatus, ItemType, PaymentType
from .membership import MembershipPlan
from .agent import (
    AgentLevel,
    AgentProfile,
    AgentLevelChangeLog,
    AgentMonthlyRecord,
    SettlementRecord,
    AgentStatus,
    LevelChangeType,
    RecordStatus,
    PaymentMethod,
)
