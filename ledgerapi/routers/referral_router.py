import logging

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ledgerapi.containers import Container
from ledgerapi.core.auth_middleware import get_current_user
from ledgerapi.schemas.user import ReferralStats, User as UserSchema
from ledgerapi.services.referral_service import ReferralService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/referrals", tags=["referrals"])


class BindReferralRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=12)


class BindReferralResponse(BaseModel):
    linked: bool


@router.post("/bind", response_model=BindReferralResponse)
@inject
async def bind_referral(
    request: BindReferralRequest,
    current_user: UserSchema = Depends(get_current_user),
    referral_service: ReferralService = Depends(Provide[Container.services.referral_service]),
) -> BindReferralResponse:
    """가입 직후 초대 코드 연결 (한 번만 가능)"""
    linked = referral_service.process_referral(current_user.id, request.code)
    return BindReferralResponse(linked=linked)


@router.get("/stats", response_model=ReferralStats)
@inject
async def get_my_referral_stats(
    current_user: UserSchema = Depends(get_current_user),
    referral_service: ReferralService = Depends(Provide[Container.services.referral_service]),
) -> ReferralStats:
    return referral_service.get_referral_stats(current_user.id)
