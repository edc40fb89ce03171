from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, Field


class BalanceResponse(BaseModel):
    """잔액 조회 응답"""

    user_id: int = Field(..., description="계정 ID")
    book: str = Field("coins", description="장부 (coins | commission)")
    balance: int = Field(..., description="현재 잔액")
    total_earned: int = Field(0, description="누적 적립")
    total_spent: int = Field(0, description="누적 차감")
    updated_at: Optional[datetime] = Field(None, description="마지막 변경 시각")

    class Config:
        from_attributes = True


class LedgerEntrySchema(BaseModel):
    """원장 항목"""

    id: int = Field(..., description="원장 항목 ID")
    user_id: int = Field(..., description="계정 ID")
    book: str = Field(..., description="장부")
    type: str = Field(..., description="거래 유형")
    amount: int = Field(..., description="부호 있는 변동량")
    balance_after: int = Field(..., description="거래 후 잔액")
    description: str = Field("", description="설명")
    metadata: Dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("extra", "metadata"),
        description="구조화된 부가 정보",
    )
    created_at: Optional[datetime] = Field(None, description="생성 시간")

    class Config:
        from_attributes = True


class LedgerTransactionResult(BaseModel):
    """잔액 변경 결과 - 원장 항목과 새 잔액"""

    entry: LedgerEntrySchema
    new_balance: int


class BatchAdjustResult(BaseModel):
    affected_count: int
    entries: List[LedgerEntrySchema]


class LedgerPageResponse(BaseModel):
    """원장 조회 응답 (페이징)"""

    balance: int = Field(..., description="현재 잔액")
    entries: List[LedgerEntrySchema] = Field(..., description="원장 항목 목록")
    total_count: int = Field(..., description="전체 항목 수")
    has_next: bool = Field(..., description="다음 페이지 존재 여부")


class CreditRequest(BaseModel):
    user_id: int = Field(..., gt=0)
    amount: int = Field(..., description="적립/차감할 양 (양수)")
    type: str = Field(..., description="거래 유형")
    description: Optional[str] = Field(None, max_length=255)
    metadata: Optional[Dict[str, Any]] = None


class AdjustRequest(BaseModel):
    """관리자 잔액 조정 요청"""

    user_id: int = Field(..., gt=0, description="사용자 ID")
    amount: int = Field(..., description="조정할 코인 (양수: 추가, 음수: 차감)")
    note: str = Field(..., min_length=1, max_length=255, description="조정 사유")


class BatchAdjustRequest(BaseModel):
    user_ids: List[int] = Field(..., description="대상 사용자 ID 목록")
    amount: int = Field(..., description="조정할 코인 (양수: 추가, 음수: 차감)")
    note: str = Field(..., min_length=1, max_length=255)


class IntegrityCheckResponse(BaseModel):
    """잔액-원장 정합성 검증 응답"""

    status: str = Field(..., description="검증 상태 (OK, MISMATCH)")
    user_id: Optional[int] = Field(None, description="사용자 ID (단일 계정 검증 시)")
    book: Optional[str] = None
    stored_balance: Optional[int] = Field(None, description="잔액 저장소 값")
    ledger_sum: Optional[int] = Field(None, description="원장 변동량 합계")
    last_balance_after: Optional[int] = Field(None, description="최신 원장 항목의 balance_after")
    entry_count: Optional[int] = None
    account_count: Optional[int] = None
    verified_at: str = Field(..., description="검증 시간")
