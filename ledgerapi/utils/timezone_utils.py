"""
타임존 유틸리티

월별 실적 집계는 운영 타임존(settings.TIMEZONE) 기준 달력 월로 나눈다.
"""

from datetime import datetime, timezone
from typing import Optional

import pytz

from ledgerapi.config import settings


def get_business_tz(tz_name: Optional[str] = None):
    return pytz.timezone(tz_name or settings.TIMEZONE)


def get_business_now(tz_name: Optional[str] = None) -> datetime:
    """운영 타임존 기준 현재 시각"""
    return datetime.now(timezone.utc).astimezone(get_business_tz(tz_name))


def to_business_tz(dt: datetime, tz_name: Optional[str] = None) -> datetime:
    if dt.tzinfo is None:
        # naive datetime은 UTC로 가정
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(get_business_tz(tz_name))


def month_key(dt: datetime, tz_name: Optional[str] = None) -> str:
    """YYYY-MM"""
    return to_business_tz(dt, tz_name).strftime("%Y-%m")


def get_current_month(tz_name: Optional[str] = None) -> str:
    return month_key(datetime.now(timezone.utc), tz_name)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
