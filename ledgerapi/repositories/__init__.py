# Repository layer - Data access with Pydantic responses

from .base import BaseRepository
from .user_repository import UserRepository
from .balance_repository import BalanceRepository
from .ledger_repository import LedgerRepository
from .order_repository import OrderRepository
from .membership_plan_repository import MembershipPlanRepository
from .agent_level_repository import AgentLevelRepository
from .agent_profile_repository import AgentProfileRepository
from .agent_record_repository import AgentRecordRepository
from .level_log_repository import LevelLogRepository
from .settlement_repository import SettlementRepository
