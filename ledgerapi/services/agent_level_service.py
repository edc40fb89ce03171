import logging
from typing import List

from sqlalchemy.orm import Session

from ledgerapi.core.exceptions import LevelNotFoundError
from ledgerapi.database.session import unit_of_work
from ledgerapi.repositories.agent_level_repository import AgentLevelRepository
from ledgerapi.schemas.agent import AgentLevelCreate, AgentLevelSchema, AgentLevelUpdate

logger = logging.getLogger(__name__)

# sales_requirement 는 분 단위 월 실적
DEFAULT_LEVELS = [
    {"name": "新人", "sort_order": 0, "recruit_requirement": 0, "sales_requirement": 0, "commission_rate": 1000},
    {"name": "一级", "sort_order": 1, "recruit_requirement": 5, "sales_requirement": 150000, "commission_rate": 1100},
    {"name": "二级", "sort_order": 2, "recruit_requirement": 8, "sales_requirement": 300000, "commission_rate": 1200},
    {"name": "三级", "sort_order": 3, "recruit_requirement": 0, "sales_requirement": 2000000, "commission_rate": 1300},
    {"name": "大咖一极", "sort_order": 4, "recruit_requirement": 0, "sales_requirement": 8000000, "commission_rate": 1300, "has_bonus": True, "bonus_rate": 1000},
    {"name": "大咖二极", "sort_order": 5, "recruit_requirement": 0, "sales_requirement": 15000000, "commission_rate": 1400, "has_bonus": True, "bonus_rate": 1500},
    {"name": "至尊大咖", "sort_order": 6, "recruit_requirement": 0, "sales_requirement": 30000000, "commission_rate": 1500, "has_bonus": True, "bonus_rate": 3000},
]


class AgentLevelService:
    """대리상 등급 사다리 관리 - 등급은 추가/비활성화만 하고 삭제하지 않는다"""

    def __init__(self, db: Session):
        self.db = db
        self.level_repo = AgentLevelRepository(db)

    def list_levels(self, enabled_only: bool = False) -> List[AgentLevelSchema]:
        return self.level_repo.list_levels(enabled_only=enabled_only)

    def get_level(self, level_id: int) -> AgentLevelSchema:
        level = self.level_repo.get_by_id(level_id)
        if not level:
            raise LevelNotFoundError(details={"level_id": level_id})
        return level

    def create_level(self, request: AgentLevelCreate) -> AgentLevelSchema:
        with unit_of_work(self.db):
            level = self.level_repo.create(**request.model_dump())
        logger.info(f"Created agent level {level.name} (sort_order={level.sort_order})")
        return level

    def update_level(self, level_id: int, request: AgentLevelUpdate) -> AgentLevelSchema:
        values = request.model_dump(exclude_unset=True, exclude_none=True)
        with unit_of_work(self.db):
            level = self.level_repo.update(level_id, **values)
            if not level:
                raise LevelNotFoundError(details={"level_id": level_id})
        logger.info(f"Updated agent level {level_id}: {values}")
        return level

    def initialize_default_levels(self) -> List[AgentLevelSchema]:
        """등급이 하나도 없을 때만 기본 사다리를 만든다"""
        existing = self.level_repo.list_levels()
        if existing:
            return existing

        with unit_of_work(self.db):
            created = [self.level_repo.create(**level) for level in DEFAULT_LEVELS]
        logger.info(f"Initialized {len(created)} default agent levels")
        return created
