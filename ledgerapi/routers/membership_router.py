import logging
from typing import List

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends

from ledgerapi.containers import Container
from ledgerapi.core.auth_middleware import get_current_user
from ledgerapi.schemas.membership import (
    ExchangeRequest,
    ExchangeResult,
    MembershipPlanSchema,
    MembershipStatus,
)
from ledgerapi.schemas.user import User as UserSchema
from ledgerapi.services.membership_service import MembershipService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/membership", tags=["membership"])


@router.get("/plans", response_model=List[MembershipPlanSchema])
@inject
async def list_plans(
    membership_service: MembershipService = Depends(
        Provide[Container.services.membership_service]
    ),
) -> List[MembershipPlanSchema]:
    return membership_service.list_plans()


@router.get("/status", response_model=MembershipStatus)
@inject
async def get_my_membership(
    current_user: UserSchema = Depends(get_current_user),
    membership_service: MembershipService = Depends(
        Provide[Container.services.membership_service]
    ),
) -> MembershipStatus:
    return membership_service.get_status(current_user.id)


@router.post("/exchange", response_model=ExchangeResult)
@inject
async def exchange_coins(
    request: ExchangeRequest,
    current_user: UserSchema = Depends(get_current_user),
    membership_service: MembershipService = Depends(
        Provide[Container.services.membership_service]
    ),
) -> ExchangeResult:
    """코인으로 멤버십 교환 - 코인 부족 시 400 INSUFFICIENT_BALANCE"""
    return membership_service.exchange_coins_for_membership(current_user.id, request.plan_id)
