from typing import List, Optional

from sqlalchemy.orm import Session

from ledgerapi.models.membership import MembershipPlan
from ledgerapi.repositories.base import BaseRepository
from ledgerapi.schemas.membership import MembershipPlanSchema


class MembershipPlanRepository(BaseRepository[MembershipPlan, MembershipPlanSchema]):
    def __init__(self, db: Session):
        super().__init__(MembershipPlan, MembershipPlanSchema, db)

    def get_enabled(self, plan_id: int) -> Optional[MembershipPlanSchema]:
        instance = (
            self.db.query(self.model_class)
            .filter(
                self.model_class.id == plan_id,
                self.model_class.enabled.is_(True),
            )
            .first()
        )
        return self._to_schema(instance)

    def list_enabled(self) -> List[MembershipPlanSchema]:
        return self.find_all(filters={"enabled": True}, order_by="price")
