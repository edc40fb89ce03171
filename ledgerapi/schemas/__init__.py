from .ledger import BalanceResponse, LedgerEntrySchema, LedgerTransactionResult
from .order import OrderSchema
from .agent import AgentProfileSchema, AgentLevelSchema
from .user import User
