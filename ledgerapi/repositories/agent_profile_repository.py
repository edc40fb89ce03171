from typing import List, Optional

from sqlalchemy import asc
from sqlalchemy.orm import Session

from ledgerapi.models.agent import AgentProfile
from ledgerapi.repositories.base import BaseRepository
from ledgerapi.schemas.agent import AgentProfileSchema


class AgentProfileRepository(BaseRepository[AgentProfile, AgentProfileSchema]):
    """대리상 프로필 - 기본키가 user_id 이므로 id 기반 베이스 메서드 대신 전용 메서드 사용"""

    def __init__(self, db: Session):
        super().__init__(AgentProfile, AgentProfileSchema, db)

    def get(self, user_id: int) -> Optional[AgentProfileSchema]:
        instance = (
            self.db.query(self.model_class)
            .populate_existing()
            .filter(self.model_class.user_id == user_id)
            .first()
        )
        return self._to_schema(instance)

    def get_by_code(self, agent_code: str) -> Optional[AgentProfileSchema]:
        instance = (
            self.db.query(self.model_class)
            .filter(self.model_class.agent_code == agent_code)
            .first()
        )
        return self._to_schema(instance)

    def code_exists(self, agent_code: str) -> bool:
        return self.exists({"agent_code": agent_code})

    def update_profile(self, user_id: int, **values) -> int:
        return (
            self.db.query(self.model_class)
            .filter(self.model_class.user_id == user_id)
            .update(values, synchronize_session=False)
        )

    def transition(self, user_id: int, from_statuses: List[str], **values) -> int:
        """상태 조건부 갱신 - 심사/비활성화의 중복 처리를 막는다"""
        return (
            self.db.query(self.model_class)
            .filter(
                self.model_class.user_id == user_id,
                self.model_class.status.in_(from_statuses),
            )
            .update(values, synchronize_session=False)
        )

    def list_profiles(
        self, status: Optional[str] = None, limit: int = 50, offset: int = 0
    ) -> List[AgentProfileSchema]:
        query = self.db.query(self.model_class)
        if status:
            query = query.filter(self.model_class.status == status)
        profiles = (
            query.order_by(asc(self.model_class.user_id)).offset(offset).limit(limit).all()
        )
        return self._to_schemas(profiles)

    def list_children(self, parent_agent_id: int) -> List[AgentProfileSchema]:
        profiles = (
            self.db.query(self.model_class)
            .filter(self.model_class.parent_agent_id == parent_agent_id)
            .order_by(asc(self.model_class.user_id))
            .all()
        )
        return self._to_schemas(profiles)
