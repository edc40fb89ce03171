from dependency_injector import containers, providers

from ledgerapi.config import Settings
from ledgerapi.database.session import get_db
from ledgerapi.services.agent_level_service import AgentLevelService
from ledgerapi.services.agent_profile_service import AgentProfileService
from ledgerapi.services.agent_record_service import AgentRecordService
from ledgerapi.services.agent_settlement_service import AgentSettlementService
from ledgerapi.services.coin_service import CoinService
from ledgerapi.services.commission_service import CommissionService
from ledgerapi.services.membership_service import MembershipService
from ledgerapi.services.order_service import OrderService
from ledgerapi.services.referral_service import ReferralService


class ConfigModule(containers.DeclarativeContainer):
    """Application configuration."""

    config = providers.Singleton(Settings)


class RepositoryModule(containers.DeclarativeContainer):
    """Database repositories."""

    get_db = providers.Resource(get_db)


class ServiceModule(containers.DeclarativeContainer):
    """Service layer dependencies."""

    config = providers.DependenciesContainer()
    repositories = providers.DependenciesContainer()

    coin_service = providers.Factory(CoinService, db=repositories.get_db)
    membership_service = providers.Factory(
        MembershipService, db=repositories.get_db, coin_service=coin_service
    )
    agent_record_service = providers.Factory(AgentRecordService, db=repositories.get_db)
    agent_level_service = providers.Factory(AgentLevelService, db=repositories.get_db)
    agent_profile_service = providers.Factory(
        AgentProfileService,
        db=repositories.get_db,
        settings=config.config,
        record_service=agent_record_service,
    )
    commission_service = providers.Factory(
        CommissionService,
        db=repositories.get_db,
        settings=config.config,
        coin_service=coin_service,
        agent_profile_service=agent_profile_service,
        record_service=agent_record_service,
    )
    order_service = providers.Factory(
        OrderService,
        db=repositories.get_db,
        settings=config.config,
        coin_service=coin_service,
        membership_service=membership_service,
        commission_service=commission_service,
    )
    referral_service = providers.Factory(
        ReferralService,
        db=repositories.get_db,
        settings=config.config,
        coin_service=coin_service,
        agent_profile_service=agent_profile_service,
    )
    agent_settlement_service = providers.Factory(
        AgentSettlementService, db=repositories.get_db, coin_service=coin_service
    )


class Container(containers.DeclarativeContainer):
    """Application container."""

    wiring_config = containers.WiringConfiguration(
        modules=[
            "ledgerapi.routers.ledger_router",
            "ledgerapi.routers.order_router",
            "ledgerapi.routers.membership_router",
            "ledgerapi.routers.agent_router",
            "ledgerapi.routers.referral_router",
        ],
    )

    config = providers.Container(ConfigModule)
    repositories = providers.Container(RepositoryModule)
    services = providers.Container(
        ServiceModule, config=config, repositories=repositories
    )
