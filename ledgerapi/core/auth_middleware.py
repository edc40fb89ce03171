"""
요청 주체 식별

토큰 발급/검증은 상위 게이트웨이 몫이다. 여기서는 게이트웨이가 넣어주는
헤더만 읽는다.
- X-User-Id: 인증된 사용자 ID
- X-Admin-Token / X-Admin-Id: 관리자 호출 (ADMIN_TOKEN 과 일치해야 함)
"""

import secrets
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from ledgerapi.config import settings
from ledgerapi.core.exceptions import AuthenticationError, AuthorizationError
from ledgerapi.database.session import get_db
from ledgerapi.repositories.user_repository import UserRepository
from ledgerapi.schemas.user import User as UserSchema


def get_current_user(
    x_user_id: Optional[int] = Header(None),
    db: Session = Depends(get_db),
) -> UserSchema:
    """필수 사용자 인증"""
    if not x_user_id:
        raise AuthenticationError("Authentication required")

    user = UserRepository(db).get_by_id(x_user_id)
    if not user:
        raise AuthenticationError("Unknown user", details={"user_id": x_user_id})
    return user


def require_admin(
    x_admin_token: Optional[str] = Header(None),
    x_admin_id: Optional[int] = Header(None),
) -> int:
    """관리자 권한 확인 - 관리자 ID 반환"""
    if not settings.ADMIN_TOKEN or not x_admin_token:
        raise AuthorizationError("Admin privileges required")
    if not secrets.compare_digest(x_admin_token, settings.ADMIN_TOKEN):
        raise AuthorizationError("Admin privileges required")
    return x_admin_id or 0
