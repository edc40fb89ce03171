from datetime import datetime, timezone
from typing import Iterable, List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from ledgerapi.models.order import Order, OrderStatus
from ledgerapi.repositories.base import BaseRepository
from ledgerapi.schemas.order import OrderSchema


class OrderRepository(BaseRepository[Order, OrderSchema]):
    def __init__(self, db: Session):
        super().__init__(Order, OrderSchema, db)

    def find_fresh(self, order_id: int) -> Optional[OrderSchema]:
        instance = (
            self.db.query(self.model_class)
            .populate_existing()
            .filter(self.model_class.id == order_id)
            .first()
        )
        return self._to_schema(instance)

    def has_pending_order(self, user_id: int, item_type: str, item_id: str) -> bool:
        return self.exists(
            {
                "user_id": user_id,
                "item_type": item_type,
                "item_id": item_id,
                "status": OrderStatus.PENDING.value,
            }
        )

    def transition(
        self,
        order_id: int,
        from_statuses: Iterable[str],
        to_status: str,
        **values,
    ) -> int:
        """
        조건부 상태 전이 - 현재 상태가 from_statuses 중 하나일 때만 변경

        Returns:
            int: 변경된 행 수 (0 이면 다른 요청이 먼저 처리함)
        """
        values = {
            **values,
            "status": to_status,
            "updated_at": datetime.now(timezone.utc),
        }
        return (
            self.db.query(self.model_class)
            .filter(
                self.model_class.id == order_id,
                self.model_class.status.in_(list(from_statuses)),
            )
            .update(values, synchronize_session=False)
        )

    def delete_if_status(self, order_id: int, statuses: Iterable[str]) -> int:
        """조건부 삭제 - 반려된 주문은 행 자체를 지운다"""
        return (
            self.db.query(self.model_class)
            .filter(
                self.model_class.id == order_id,
                self.model_class.status.in_(list(statuses)),
            )
            .delete(synchronize_session=False)
        )

    def list_orders(
        self,
        user_id: Optional[int] = None,
        status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[OrderSchema]:
        query = self._filtered(user_id, status)
        orders = query.order_by(desc(self.model_class.id)).offset(offset).limit(limit).all()
        return self._to_schemas(orders)

    def count_orders(self, user_id: Optional[int] = None, status: Optional[str] = None) -> int:
        return self._filtered(user_id, status).count()

    def _filtered(self, user_id: Optional[int], status: Optional[str]):
        query = self.db.query(self.model_class)
        if user_id is not None:
            query = query.filter(self.model_class.user_id == user_id)
        if status:
            query = query.filter(self.model_class.status == status)
        return query
