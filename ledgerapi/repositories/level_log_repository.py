from typing import List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from ledgerapi.models.agent import AgentLevelChangeLog
from ledgerapi.repositories.base import BaseRepository
from ledgerapi.schemas.agent import LevelChangeLogSchema


class LevelLogRepository(BaseRepository[AgentLevelChangeLog, LevelChangeLogSchema]):
    """등급 변경 로그 - 추가 전용"""

    def __init__(self, db: Session):
        super().__init__(AgentLevelChangeLog, LevelChangeLogSchema, db)

    def append(
        self,
        user_id: int,
        new_level_id: int,
        new_level_name: str,
        change_type: str,
        previous_level_id: Optional[int] = None,
        previous_level_name: Optional[str] = None,
        changed_by: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> LevelChangeLogSchema:
        return self.create(
            user_id=user_id,
            previous_level_id=previous_level_id,
            previous_level_name=previous_level_name,
            new_level_id=new_level_id,
            new_level_name=new_level_name,
            change_type=change_type,
            changed_by=changed_by,
            reason=reason,
        )

    def list_for_user(self, user_id: int, limit: int = 50) -> List[LevelChangeLogSchema]:
        logs = (
            self.db.query(self.model_class)
            .filter(self.model_class.user_id == user_id)
            .order_by(desc(self.model_class.id))
            .limit(limit)
            .all()
        )
        return self._to_schemas(logs)
