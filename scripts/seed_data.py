"""
기본 데이터 시드 스크립트
대리상 등급 사다리와 멤버십 상품을 초기 데이터로 설정
"""

import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ledgerapi.database.connection import SessionLocal
from ledgerapi.models.membership import MembershipPlan
from ledgerapi.services.agent_level_service import AgentLevelService

# (이름, 등급, 기간(일), 가격(분), 코인 가격)
DEFAULT_PLANS = [
    ("VIP月卡", "vip", 30, 1500, 150),
    ("VIP季卡", "vip", 90, 3800, 380),
    ("VIP半年卡", "vip", 180, 6800, 680),
    ("VIP年卡", "vip", 365, 9800, 980),
    ("SVIP月卡", "svip", 30, 2500, 250),
    ("SVIP季卡", "svip", 90, 6500, 650),
    ("SVIP半年卡", "svip", 180, 11800, 1180),
    ("SVIP年卡", "svip", 365, 16800, 1680),
]


def seed_agent_levels():
    """기본 등급 사다리 시드 (이미 있으면 건너뜀)"""
    db = SessionLocal()
    try:
        levels = AgentLevelService(db).initialize_default_levels()
        print(f"✅ 대리상 등급: {len(levels)}개")
        for level in levels:
            print(f"   {level.sort_order:2d}. {level.name} ({level.commission_rate}bp)")
    finally:
        db.close()


def seed_membership_plans():
    """멤버십 상품 시드 (이미 있으면 건너뜀)"""
    db = SessionLocal()
    try:
        if db.query(MembershipPlan).count() > 0:
            print("ℹ️  멤버십 상품이 이미 존재합니다")
            return

        for name, level, days, price, coin_price in DEFAULT_PLANS:
            db.add(
                MembershipPlan(
                    name=name,
                    member_level=level,
                    duration_days=days,
                    price=price,
                    coin_price=coin_price,
                    enabled=True,
                )
            )
        db.commit()
        print(f"✅ 멤버십 상품 시드 완료: {len(DEFAULT_PLANS)}개")

    except Exception as e:
        db.rollback()
        print(f"❌ 멤버십 상품 시드 실패: {str(e)}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed_agent_levels()
    seed_membership_plans()
