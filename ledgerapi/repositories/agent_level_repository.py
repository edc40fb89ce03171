from typing import List, Optional

from sqlalchemy import asc
from sqlalchemy.orm import Session

from ledgerapi.models.agent import AgentLevel
from ledgerapi.repositories.base import BaseRepository
from ledgerapi.schemas.agent import AgentLevelSchema


class AgentLevelRepository(BaseRepository[AgentLevel, AgentLevelSchema]):
    def __init__(self, db: Session):
        super().__init__(AgentLevel, AgentLevelSchema, db)

    def list_levels(self, enabled_only: bool = False) -> List[AgentLevelSchema]:
        """sort_order 오름차순 (같으면 id 순)"""
        query = self.db.query(self.model_class)
        if enabled_only:
            query = query.filter(self.model_class.enabled.is_(True))
        levels = query.order_by(
            asc(self.model_class.sort_order), asc(self.model_class.id)
        ).all()
        return self._to_schemas(levels)

    def lowest_enabled(self) -> Optional[AgentLevelSchema]:
        levels = self.list_levels(enabled_only=True)
        return levels[0] if levels else None
