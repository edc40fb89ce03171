import pytest

from ledgerapi.core.exceptions import LevelNotFoundError
from ledgerapi.schemas.agent import AgentLevelCreate, AgentLevelUpdate
from ledgerapi.services.agent_level_service import DEFAULT_LEVELS, AgentLevelService


class TestAgentLevels:
    """등급 사다리 관리"""

    def test_initialize_defaults_once(self, db):
        service = AgentLevelService(db)

        created = service.initialize_default_levels()
        again = service.initialize_default_levels()

        assert len(created) == len(DEFAULT_LEVELS)
        assert [lv.id for lv in again] == [lv.id for lv in created]
        assert [lv.sort_order for lv in created] == sorted(lv.sort_order for lv in created)

    def test_create_and_update(self, db):
        service = AgentLevelService(db)
        level = service.create_level(
            AgentLevelCreate(name="测试", sort_order=9, sales_requirement=100, commission_rate=900)
        )

        updated = service.update_level(level.id, AgentLevelUpdate(enabled=False))

        assert updated.enabled is False
        assert updated.commission_rate == 900
        assert service.list_levels(enabled_only=True) == []

    def test_missing_level(self, db):
        service = AgentLevelService(db)

        with pytest.raises(LevelNotFoundError):
            service.get_level(404)
        with pytest.raises(LevelNotFoundError):
            service.update_level(404, AgentLevelUpdate(name="x"))
