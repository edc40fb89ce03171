from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session

from ledgerapi.database.connection import SessionLocal


def get_db():
    db = SessionLocal()
    try:
        yield db
    except Exception:
        if db.in_transaction():
            db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def get_db_context():
    """컨텍스트 매니저를 사용한 데이터베이스 세션 관리"""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def unit_of_work(db: Session, commit: bool = True) -> Iterator[Session]:
    """원장 변경 작업 하나를 하나의 트랜잭션으로 묶는다.

    commit=True 이면 이 블록이 트랜잭션의 주인이다: 성공 시 commit,
    실패 시 rollback. commit=False 이면 바깥 작업(예: 주문 승인)의
    트랜잭션에 참여하므로 flush 만 하고, 예외는 그대로 올려 보내
    바깥에서 전체를 rollback 하게 한다.
    """
    try:
        yield db
        if commit:
            db.commit()
        else:
            db.flush()
    except Exception:
        if commit:
            db.rollback()
        raise
