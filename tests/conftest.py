import os

# 애플리케이션 모듈 import 전에 설정해야 한다
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ADMIN_TOKEN", "test-admin-token")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ledgerapi.models import AgentLevel, AgentProfile, Base, MembershipPlan, User


@pytest.fixture
def engine():
    """인메모리 SQLite - 모든 세션이 같은 연결을 공유"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    Session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    """사용자 생성 헬퍼 - 생성된 user id 반환"""

    def _make(nickname="user", referred_by=None, referral_code=None):
        user = User(nickname=nickname, referred_by=referred_by, referral_code=referral_code)
        db.add(user)
        db.commit()
        return user.id

    return _make


@pytest.fixture
def levels(db):
    """기본 3단계 사다리: 新人(1000bp) / 一级(1100bp) / 二级(1200bp)"""
    rows = [
        AgentLevel(name="新人", sort_order=0, recruit_requirement=0, sales_requirement=0, commission_rate=1000),
        AgentLevel(name="一级", sort_order=1, recruit_requirement=5, sales_requirement=150000, commission_rate=1100),
        AgentLevel(name="二级", sort_order=2, recruit_requirement=8, sales_requirement=300000, commission_rate=1200),
    ]
    db.add_all(rows)
    db.commit()
    return rows


@pytest.fixture
def make_agent(db, levels):
    """활성 대리상 프로필 생성 헬퍼"""

    def _make(
        user_id,
        commission_rate=1000,
        sub_agent_rate=0,
        parent_agent_id=None,
        status="active",
        level_id=None,
        payment_method=None,
        payment_account=None,
    ):
        profile = AgentProfile(
            user_id=user_id,
            level_id=level_id or levels[0].id,
            agent_code=f"A{user_id:07d}",
            status=status,
            real_name=f"agent-{user_id}",
            contact="138000000",
            commission_rate=commission_rate,
            sub_agent_rate=sub_agent_rate,
            parent_agent_id=parent_agent_id,
            payment_method=payment_method,
            payment_account=payment_account,
        )
        db.add(profile)
        db.commit()
        return user_id

    return _make


@pytest.fixture
def vip_plan(db):
    plan = MembershipPlan(
        name="VIP月卡", member_level="vip", duration_days=30, price=1500, coin_price=150, enabled=True
    )
    db.add(plan)
    db.commit()
    return plan
