"""
주문 API 라우터

사용자용:
- POST /orders/coin: 코인 충전 주문 생성
- POST /orders/membership: 멤버십 주문 생성
- GET /orders/my: 내 주문 목록
- GET /orders/{order_id}: 내 주문 조회
- POST /orders/{order_id}/proof: 결제 증빙 제출 (pending -> paid)

관리자용:
- GET /orders/admin: 주문 목록 (상태 필터)
- POST /orders/admin/{order_id}/approve: 승인 (적립/활성화 + 수수료 분배)
- POST /orders/admin/{order_id}/reject: 반려 (주문 삭제)
"""

import logging
from typing import Optional

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Path, Query

from ledgerapi.containers import Container
from ledgerapi.core.auth_middleware import get_current_user, require_admin
from ledgerapi.schemas.order import (
    ApproveOrderResponse,
    CreateCoinOrderRequest,
    CreateMembershipOrderRequest,
    OrderListResponse,
    OrderSchema,
    RejectOrderRequest,
    RejectOrderResponse,
    SubmitProofRequest,
)
from ledgerapi.schemas.user import User as UserSchema
from ledgerapi.services.order_service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("/coin", response_model=OrderSchema)
@inject
async def create_coin_order(
    request: CreateCoinOrderRequest,
    current_user: UserSchema = Depends(get_current_user),
    order_service: OrderService = Depends(Provide[Container.services.order_service]),
) -> OrderSchema:
    """코인 충전 주문 생성 - 같은 패키지의 pending 주문이 있으면 409"""
    return order_service.create_coin_order(
        current_user.id,
        request.package_id,
        payment_type=request.payment_type,
        agent_id=request.agent_id,
        expected_price=request.price,
    )


@router.post("/membership", response_model=OrderSchema)
@inject
async def create_membership_order(
    request: CreateMembershipOrderRequest,
    current_user: UserSchema = Depends(get_current_user),
    order_service: OrderService = Depends(Provide[Container.services.order_service]),
) -> OrderSchema:
    return order_service.create_membership_order(
        current_user.id,
        request.plan_id,
        payment_type=request.payment_type,
        agent_id=request.agent_id,
    )


@router.get("/my", response_model=OrderListResponse)
@inject
async def list_my_orders(
    status: Optional[str] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: UserSchema = Depends(get_current_user),
    order_service: OrderService = Depends(Provide[Container.services.order_service]),
) -> OrderListResponse:
    return order_service.list_orders(current_user.id, status, limit, offset)


@router.get("/{order_id}", response_model=OrderSchema)
@inject
async def get_my_order(
    order_id: int = Path(..., gt=0),
    current_user: UserSchema = Depends(get_current_user),
    order_service: OrderService = Depends(Provide[Container.services.order_service]),
) -> OrderSchema:
    return order_service.get_order(order_id, user_id=current_user.id)


@router.post("/{order_id}/proof", response_model=OrderSchema)
@inject
async def submit_payment_proof(
    request: SubmitProofRequest,
    order_id: int = Path(..., gt=0),
    current_user: UserSchema = Depends(get_current_user),
    order_service: OrderService = Depends(Provide[Container.services.order_service]),
) -> OrderSchema:
    return order_service.submit_proof(
        order_id, current_user.id, request.screenshot, request.transaction_note
    )


# ---------------------------------------------------------------------------
# 관리자
# ---------------------------------------------------------------------------


@router.get("/admin/list", response_model=OrderListResponse)
@inject
async def admin_list_orders(
    status: Optional[str] = Query(None),
    user_id: Optional[int] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    admin_id: int = Depends(require_admin),
    order_service: OrderService = Depends(Provide[Container.services.order_service]),
) -> OrderListResponse:
    return order_service.list_orders(user_id, status, limit, offset)


@router.post("/admin/{order_id}/approve", response_model=ApproveOrderResponse)
@inject
async def admin_approve_order(
    order_id: int = Path(..., gt=0),
    admin_id: int = Depends(require_admin),
    order_service: OrderService = Depends(Provide[Container.services.order_service]),
) -> ApproveOrderResponse:
    """
    주문 승인

    HTTP Status:
        200: 승인 및 적립 완료
        404: ORDER_NOT_FOUND
        409: ORDER_ALREADY_PROCESSED (이미 승인/반려됨)
    """
    return order_service.approve_order(order_id, admin_id)


@router.post("/admin/{order_id}/reject", response_model=RejectOrderResponse)
@inject
async def admin_reject_order(
    request: RejectOrderRequest,
    order_id: int = Path(..., gt=0),
    admin_id: int = Depends(require_admin),
    order_service: OrderService = Depends(Provide[Container.services.order_service]),
) -> RejectOrderResponse:
    return order_service.reject_order(order_id, admin_id, request.reason)
