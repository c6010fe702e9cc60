"""Timezone-aware datetime utilities for consistent UTC handling

이 모듈은 프로젝트 전역에서 일관된 UTC 기준 시간 처리를 위한 헬퍼 함수를 제공합니다.

사용 원칙:
1. datetime.now() 사용 금지 → utc_now() 사용
2. DB 저장 시 ISO format with 'Z' → to_iso() / utc_now_iso() 사용
3. DB 에서 읽은 값 → parse_iso_to_utc() / parse_optional_iso() 사용

Examples:
    >>> from infra.utils.datetime_utils import utc_now, to_iso
    >>> to_iso(datetime(2025, 10, 26, 2, 0, tzinfo=timezone.utc))
    '2025-10-26T02:00:00Z'
"""

from datetime import datetime, timezone, timedelta
from typing import Optional, Union


def utc_now() -> datetime:
    """Get current UTC time (timezone-aware)

    Note:
        항상 UTC timezone이 포함된 aware datetime을 반환합니다.
    """
    return datetime.now(timezone.utc)


def to_iso(dt: datetime) -> str:
    """Format datetime as ISO string with 'Z' suffix

    Example:
        >>> to_iso(datetime(2025, 10, 26, 11, 0, tzinfo=timezone(timedelta(hours=9))))
        '2025-10-26T02:00:00Z'
    """
    return ensure_utc(dt).isoformat().replace('+00:00', 'Z')


def utc_now_iso() -> str:
    """Get current UTC time as ISO format string with 'Z' suffix"""
    return to_iso(utc_now())


def ensure_utc(dt: datetime) -> datetime:
    """Ensure datetime has UTC timezone

    Note:
        - naive datetime → UTC로 가정하고 tzinfo 추가
        - aware datetime → UTC로 변환
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_iso_to_utc(iso_str: str) -> datetime:
    """Parse ISO format string to UTC datetime

    Example:
        >>> parse_iso_to_utc('2025-10-26T11:00:00+09:00').hour
        2

    Note:
        timezone 없는 문자열은 UTC로 가정합니다.
    """
    dt = datetime.fromisoformat(iso_str.replace('Z', '+00:00'))
    return ensure_utc(dt)


def parse_optional_iso(iso_str: Optional[str]) -> Optional[datetime]:
    """None 이나 빈 문자열은 None 으로, 그 외에는 UTC datetime 으로 변환"""
    if not iso_str:
        return None
    return parse_iso_to_utc(iso_str)


def expires_in_to_datetime(expires_in: Optional[Union[int, float, str]]) -> Optional[datetime]:
    """OAuth 토큰 응답의 expires_in(초)을 만료 시각으로 변환

    Example:
        >>> expires_in_to_datetime(None) is None
        True
    """
    if expires_in in (None, ""):
        return None
    return utc_now() + timedelta(seconds=int(expires_in))


def time_until_expiry(expires_at: Union[str, datetime]) -> timedelta:
    """Calculate time remaining until expiry (negative if already expired)"""
    if isinstance(expires_at, str):
        expiry_dt = parse_iso_to_utc(expires_at)
    else:
        expiry_dt = ensure_utc(expires_at)

    return expiry_dt - utc_now()


def hours_since(moment: Union[str, datetime], now: Optional[datetime] = None) -> float:
    """Hours elapsed since the given moment"""
    if isinstance(moment, str):
        moment = parse_iso_to_utc(moment)
    now = now or utc_now()
    return (now - ensure_utc(moment)).total_seconds() / 3600
