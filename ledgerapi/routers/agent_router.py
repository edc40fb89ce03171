"""
대리상 API 라우터

대리상용:
- POST /agents/apply, GET /agents/me, GET /agents/me/team, GET /agents/me/income
- PUT /agents/me/sub-agent-rate, PUT /agents/me/payment
- GET /agents/me/records, GET /agents/me/level-logs

관리자용:
- 신청 심사: /agents/admin/{user_id}/approve | reject | disable | enable
- 등급: /agents/admin/levels (조회/생성/수정/기본값 초기화), PUT /agents/admin/{user_id}/level
- 실적/정산: /agents/admin/records, /agents/admin/records/{id}/settle, /agents/admin/settlements
"""

import logging
from typing import List, Optional

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Path, Query

from ledgerapi.containers import Container
from ledgerapi.core.auth_middleware import get_current_user, require_admin
from ledgerapi.schemas.agent import (
    AgentApplyRequest,
    AgentIncome,
    AgentLevelCreate,
    AgentLevelSchema,
    AgentLevelUpdate,
    AgentProfileSchema,
    LevelChangeLogSchema,
    LevelChangeRequest,
    MonthlyRecordSchema,
    PaymentInfoRequest,
    SettlementRecordSchema,
    SettlementRequest,
    SubAgentRateRequest,
    TeamInfo,
)
from ledgerapi.schemas.user import User as UserSchema
from ledgerapi.services.agent_level_service import AgentLevelService
from ledgerapi.services.agent_profile_service import AgentProfileService
from ledgerapi.services.agent_record_service import AgentRecordService
from ledgerapi.services.agent_settlement_service import AgentSettlementService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/agents", tags=["agents"])


@router.post("/apply", response_model=AgentProfileSchema)
@inject
async def apply_for_agent(
    request: AgentApplyRequest,
    current_user: UserSchema = Depends(get_current_user),
    agent_service: AgentProfileService = Depends(Provide[Container.services.agent_profile_service]),
) -> AgentProfileSchema:
    return agent_service.apply_for_agent(current_user.id, request.real_name, request.contact)


@router.get("/me", response_model=AgentProfileSchema)
@inject
async def get_my_profile(
    current_user: UserSchema = Depends(get_current_user),
    agent_service: AgentProfileService = Depends(Provide[Container.services.agent_profile_service]),
) -> AgentProfileSchema:
    return agent_service.get_profile(current_user.id)


@router.get("/me/team", response_model=TeamInfo)
@inject
async def get_my_team(
    current_user: UserSchema = Depends(get_current_user),
    agent_service: AgentProfileService = Depends(Provide[Container.services.agent_profile_service]),
) -> TeamInfo:
    return agent_service.get_team(current_user.id)


@router.get("/me/income", response_model=AgentIncome)
@inject
async def get_my_income(
    current_user: UserSchema = Depends(get_current_user),
    agent_service: AgentProfileService = Depends(Provide[Container.services.agent_profile_service]),
) -> AgentIncome:
    return agent_service.get_income(current_user.id)


@router.put("/me/sub-agent-rate", response_model=AgentProfileSchema)
@inject
async def set_sub_agent_rate(
    request: SubAgentRateRequest,
    current_user: UserSchema = Depends(get_current_user),
    agent_service: AgentProfileService = Depends(Provide[Container.services.agent_profile_service]),
) -> AgentProfileSchema:
    """하위 대리상 통과 비율 설정 - 0 이상, 본인 비율 미만 (아니면 INVALID_RATE)"""
    return agent_service.set_sub_agent_rate(current_user.id, request.sub_agent_rate)


@router.put("/me/payment", response_model=AgentProfileSchema)
@inject
async def update_payment_info(
    request: PaymentInfoRequest,
    current_user: UserSchema = Depends(get_current_user),
    agent_service: AgentProfileService = Depends(Provide[Container.services.agent_profile_service]),
) -> AgentProfileSchema:
    return agent_service.update_payment_info(
        current_user.id, request.payment_method, request.payment_account
    )


@router.get("/me/records", response_model=List[MonthlyRecordSchema])
@inject
async def get_my_records(
    limit: int = Query(12, ge=1, le=100),
    current_user: UserSchema = Depends(get_current_user),
    record_service: AgentRecordService = Depends(Provide[Container.services.agent_record_service]),
) -> List[MonthlyRecordSchema]:
    return record_service.list_records(user_id=current_user.id, limit=limit)


@router.get("/me/level-logs", response_model=List[LevelChangeLogSchema])
@inject
async def get_my_level_logs(
    current_user: UserSchema = Depends(get_current_user),
    agent_service: AgentProfileService = Depends(Provide[Container.services.agent_profile_service]),
) -> List[LevelChangeLogSchema]:
    return agent_service.get_level_logs(current_user.id)


# ---------------------------------------------------------------------------
# 관리자 - 프로필 심사
# ---------------------------------------------------------------------------


@router.get("/admin/profiles", response_model=List[AgentProfileSchema])
@inject
async def admin_list_profiles(
    status: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    admin_id: int = Depends(require_admin),
    agent_service: AgentProfileService = Depends(Provide[Container.services.agent_profile_service]),
) -> List[AgentProfileSchema]:
    return agent_service.list_profiles(status, limit, offset)


@router.post("/admin/{user_id}/approve", response_model=AgentProfileSchema)
@inject
async def admin_approve_agent(
    user_id: int = Path(..., gt=0),
    admin_id: int = Depends(require_admin),
    agent_service: AgentProfileService = Depends(Provide[Container.services.agent_profile_service]),
) -> AgentProfileSchema:
    return agent_service.approve_agent(user_id, admin_id)


@router.post("/admin/{user_id}/reject", response_model=AgentProfileSchema)
@inject
async def admin_reject_agent(
    user_id: int = Path(..., gt=0),
    admin_id: int = Depends(require_admin),
    agent_service: AgentProfileService = Depends(Provide[Container.services.agent_profile_service]),
) -> AgentProfileSchema:
    return agent_service.reject_agent(user_id, admin_id)


@router.post("/admin/{user_id}/disable", response_model=AgentProfileSchema)
@inject
async def admin_disable_agent(
    user_id: int = Path(..., gt=0),
    admin_id: int = Depends(require_admin),
    agent_service: AgentProfileService = Depends(Provide[Container.services.agent_profile_service]),
) -> AgentProfileSchema:
    return agent_service.disable_agent(user_id, admin_id)


@router.post("/admin/{user_id}/enable", response_model=AgentProfileSchema)
@inject
async def admin_enable_agent(
    user_id: int = Path(..., gt=0),
    admin_id: int = Depends(require_admin),
    agent_service: AgentProfileService = Depends(Provide[Container.services.agent_profile_service]),
) -> AgentProfileSchema:
    return agent_service.enable_agent(user_id, admin_id)


@router.put("/admin/{user_id}/level", response_model=AgentProfileSchema)
@inject
async def admin_change_level(
    request: LevelChangeRequest,
    user_id: int = Path(..., gt=0),
    admin_id: int = Depends(require_admin),
    agent_service: AgentProfileService = Depends(Provide[Container.services.agent_profile_service]),
) -> AgentProfileSchema:
    return agent_service.change_level(
        user_id,
        request.level_id,
        admin_id=admin_id,
        commission_rate=request.commission_rate,
        reason=request.reason,
    )


# ---------------------------------------------------------------------------
# 관리자 - 등급 사다리
# ---------------------------------------------------------------------------


@router.get("/admin/levels", response_model=List[AgentLevelSchema])
@inject
async def admin_list_levels(
    admin_id: int = Depends(require_admin),
    level_service: AgentLevelService = Depends(Provide[Container.services.agent_level_service]),
) -> List[AgentLevelSchema]:
    return level_service.list_levels()


@router.post("/admin/levels", response_model=AgentLevelSchema)
@inject
async def admin_create_level(
    request: AgentLevelCreate,
    admin_id: int = Depends(require_admin),
    level_service: AgentLevelService = Depends(Provide[Container.services.agent_level_service]),
) -> AgentLevelSchema:
    return level_service.create_level(request)


@router.put("/admin/levels/{level_id}", response_model=AgentLevelSchema)
@inject
async def admin_update_level(
    request: AgentLevelUpdate,
    level_id: int = Path(..., gt=0),
    admin_id: int = Depends(require_admin),
    level_service: AgentLevelService = Depends(Provide[Container.services.agent_level_service]),
) -> AgentLevelSchema:
    return level_service.update_level(level_id, request)


@router.post("/admin/levels/initialize", response_model=List[AgentLevelSchema])
@inject
async def admin_initialize_levels(
    admin_id: int = Depends(require_admin),
    level_service: AgentLevelService = Depends(Provide[Container.services.agent_level_service]),
) -> List[AgentLevelSchema]:
    return level_service.initialize_default_levels()


# ---------------------------------------------------------------------------
# 관리자 - 실적 / 정산
# ---------------------------------------------------------------------------


@router.get("/admin/records", response_model=List[MonthlyRecordSchema])
@inject
async def admin_list_records(
    month: Optional[str] = Query(None, pattern=r"^\d{4}-\d{2}$"),
    user_id: Optional[int] = Query(None),
    status: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    admin_id: int = Depends(require_admin),
    record_service: AgentRecordService = Depends(Provide[Container.services.agent_record_service]),
) -> List[MonthlyRecordSchema]:
    return record_service.list_records(user_id, month, status, limit, offset)


@router.post("/admin/records/{record_id}/settle", response_model=MonthlyRecordSchema)
@inject
async def admin_settle_record(
    record_id: int = Path(..., gt=0),
    note: Optional[str] = Query(None),
    admin_id: int = Depends(require_admin),
    record_service: AgentRecordService = Depends(Provide[Container.services.agent_record_service]),
) -> MonthlyRecordSchema:
    return record_service.settle_record(record_id, note)


@router.post("/admin/settlements", response_model=SettlementRecordSchema)
@inject
async def admin_settle_agent(
    request: SettlementRequest,
    admin_id: int = Depends(require_admin),
    settlement_service: AgentSettlementService = Depends(
        Provide[Container.services.agent_settlement_service]
    ),
) -> SettlementRecordSchema:
    """수수료 지급 - commission 장부 차감 + 지급 기록"""
    return settlement_service.settle(
        request.user_id,
        request.amount,
        admin_id=admin_id,
        transaction_ref=request.transaction_ref,
        note=request.note,
    )


@router.get("/admin/settlements", response_model=List[SettlementRecordSchema])
@inject
async def admin_list_settlements(
    user_id: Optional[int] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    admin_id: int = Depends(require_admin),
    settlement_service: AgentSettlementService = Depends(
        Provide[Container.services.agent_settlement_service]
    ),
) -> List[SettlementRecordSchema]:
    return settlement_service.list_settlements(user_id, limit, offset)
