"""
코인/수수료 잔액 API 라우터

사용자용 엔드포인트:
- GET /coins/balance: 내 잔액 (book=coins|commission)
- GET /coins/ledger: 내 원장 (최신순, 페이징)
- GET /coins/integrity/my: 내 잔액-원장 대사

관리자용 엔드포인트:
- POST /coins/admin/adjust: 잔액 조정
- POST /coins/admin/batch-adjust: 일괄 조정 (전부 또는 전무)
- GET /coins/admin/balance/{user_id}: 사용자 잔액
- GET /coins/admin/ledger/{user_id}: 사용자 원장
- GET /coins/admin/integrity/{user_id}: 사용자 대사
- GET /coins/admin/integrity: 전체 대사
"""

import logging
from typing import Optional

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Path, Query

from ledgerapi.containers import Container
from ledgerapi.core.auth_middleware import get_current_user, require_admin
from ledgerapi.models.balance import BalanceBook
from ledgerapi.schemas.ledger import (
    AdjustRequest,
    BalanceResponse,
    BatchAdjustRequest,
    BatchAdjustResult,
    IntegrityCheckResponse,
    LedgerPageResponse,
    LedgerTransactionResult,
)
from ledgerapi.schemas.user import User as UserSchema
from ledgerapi.services.coin_service import CoinService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/coins", tags=["coins"])


@router.get("/balance", response_model=BalanceResponse)
@inject
async def get_my_balance(
    book: BalanceBook = Query(BalanceBook.COINS, description="장부"),
    current_user: UserSchema = Depends(get_current_user),
    coin_service: CoinService = Depends(Provide[Container.services.coin_service]),
) -> BalanceResponse:
    """내 잔액 조회"""
    return coin_service.get_balance(current_user.id, book.value)


@router.get("/ledger", response_model=LedgerPageResponse)
@inject
async def get_my_ledger(
    book: BalanceBook = Query(BalanceBook.COINS),
    type: Optional[str] = Query(None, description="거래 유형 필터"),
    limit: int = Query(50, ge=1, le=100, description="페이지 크기"),
    offset: int = Query(0, ge=0, description="오프셋"),
    current_user: UserSchema = Depends(get_current_user),
    coin_service: CoinService = Depends(Provide[Container.services.coin_service]),
) -> LedgerPageResponse:
    """내 원장 조회 - 최신순"""
    return coin_service.get_ledger(current_user.id, book.value, limit, offset, type)


@router.get("/integrity/my", response_model=IntegrityCheckResponse)
@inject
async def verify_my_integrity(
    book: BalanceBook = Query(BalanceBook.COINS),
    current_user: UserSchema = Depends(get_current_user),
    coin_service: CoinService = Depends(Provide[Container.services.coin_service]),
) -> IntegrityCheckResponse:
    return coin_service.verify_integrity(current_user.id, book.value)


# ---------------------------------------------------------------------------
# 관리자
# ---------------------------------------------------------------------------


@router.post("/admin/adjust", response_model=LedgerTransactionResult)
@inject
async def admin_adjust(
    request: AdjustRequest,
    admin_id: int = Depends(require_admin),
    coin_service: CoinService = Depends(Provide[Container.services.coin_service]),
) -> LedgerTransactionResult:
    """
    관리자 잔액 조정

    amount 양수는 추가, 음수는 차감. 차감 후 잔액이 음수가 되면 INSUFFICIENT_BALANCE.
    """
    return coin_service.adjust(request.user_id, request.amount, admin_id, request.note)


@router.post("/admin/batch-adjust", response_model=BatchAdjustResult)
@inject
async def admin_batch_adjust(
    request: BatchAdjustRequest,
    admin_id: int = Depends(require_admin),
    coin_service: CoinService = Depends(Provide[Container.services.coin_service]),
) -> BatchAdjustResult:
    """일괄 조정 - 한 명이라도 실패하면 전체 롤백"""
    return coin_service.batch_adjust(request.user_ids, request.amount, admin_id, request.note)


@router.get("/admin/balance/{user_id}", response_model=BalanceResponse)
@inject
async def admin_get_balance(
    user_id: int = Path(..., gt=0),
    book: BalanceBook = Query(BalanceBook.COINS),
    admin_id: int = Depends(require_admin),
    coin_service: CoinService = Depends(Provide[Container.services.coin_service]),
) -> BalanceResponse:
    return coin_service.get_balance(user_id, book.value)


@router.get("/admin/ledger/{user_id}", response_model=LedgerPageResponse)
@inject
async def admin_get_ledger(
    user_id: int = Path(..., gt=0),
    book: BalanceBook = Query(BalanceBook.COINS),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    admin_id: int = Depends(require_admin),
    coin_service: CoinService = Depends(Provide[Container.services.coin_service]),
) -> LedgerPageResponse:
    return coin_service.get_ledger(user_id, book.value, limit, offset)


@router.get("/admin/integrity/{user_id}", response_model=IntegrityCheckResponse)
@inject
async def admin_verify_integrity(
    user_id: int = Path(..., gt=0),
    book: BalanceBook = Query(BalanceBook.COINS),
    admin_id: int = Depends(require_admin),
    coin_service: CoinService = Depends(Provide[Container.services.coin_service]),
) -> IntegrityCheckResponse:
    return coin_service.verify_integrity(user_id, book.value)


@router.get("/admin/integrity", response_model=IntegrityCheckResponse)
@inject
async def admin_verify_global_integrity(
    book: BalanceBook = Query(BalanceBook.COINS),
    admin_id: int = Depends(require_admin),
    coin_service: CoinService = Depends(Provide[Container.services.coin_service]),
) -> IntegrityCheckResponse:
    return coin_service.verify_global_integrity(book.value)
