"""Unit tests for datetime_utils module

이 테스트는 datetime_utils의 모든 함수가 올바르게 동작하는지 검증합니다.
"""

import pytest
from datetime import datetime, timezone, timedelta
from infra.utils.datetime_utils import (
    utc_now,
    utc_now_iso,
    ensure_utc,
    parse_iso_to_utc,
    parse_optional_iso,
    to_iso,
    expires_in_to_datetime,
    hours_since,
    time_until_expiry,
)


class TestUtcNow:
    """utc_now() 함수 테스트"""

    def test_returns_datetime(self):
        """datetime 객체 반환 확인"""
        result = utc_now()
        assert isinstance(result, datetime)

    def test_has_utc_timezone(self):
        """UTC timezone 포함 확인"""
        result = utc_now()
        assert result.tzinfo == timezone.utc

    def test_is_aware(self):
        """aware datetime 확인"""
        result = utc_now()
        assert result.tzinfo is not None


class TestUtcNowIso:
    """utc_now_iso() 함수 테스트"""

    def test_returns_string(self):
        """문자열 반환 확인"""
        result = utc_now_iso()
        assert isinstance(result, str)

    def test_ends_with_z(self):
        """'Z' suffix 확인"""
        result = utc_now_iso()
        assert result.endswith('Z')

    def test_contains_t_separator(self):
        """ISO 8601 형식 확인"""
        result = utc_now_iso()
        assert 'T' in result

    def test_parseable(self):
        """생성된 문자열이 파싱 가능한지 확인"""
        iso_str = utc_now_iso()
        parsed = parse_iso_to_utc(iso_str)
        assert parsed.tzinfo == timezone.utc


class TestEnsureUtc:
    """ensure_utc() 함수 테스트"""

    def test_converts_naive_to_utc(self):
        """naive datetime을 UTC aware로 변환"""
        naive = datetime(2025, 10, 26, 10, 0, 0)
        result = ensure_utc(naive)
        assert result.tzinfo == timezone.utc
        assert result.hour == 10

    def test_converts_other_timezone_to_utc(self):
        """다른 timezone을 UTC로 변환"""
        kst = timezone(timedelta(hours=9))
        kst_dt = datetime(2025, 10, 26, 11, 0, 0, tzinfo=kst)
        result = ensure_utc(kst_dt)
        assert result.tzinfo == timezone.utc
        assert result.hour == 2  # 11:00 KST = 02:00 UTC

    def test_preserves_utc_datetime(self):
        """이미 UTC인 경우 그대로 반환"""
        utc_dt = datetime(2025, 10, 26, 2, 0, 0, tzinfo=timezone.utc)
        result = ensure_utc(utc_dt)
        assert result == utc_dt


class TestParseIsoToUtc:
    """parse_iso_to_utc() 함수 테스트"""

    def test_parses_iso_with_z_suffix(self):
        """'Z' suffix ISO 문자열 파싱"""
        iso_str = "2025-10-26T02:00:00Z"
        result = parse_iso_to_utc(iso_str)
        assert result.tzinfo == timezone.utc
        assert result.year == 2025
        assert result.month == 10
        assert result.day == 26
        assert result.hour == 2

    def test_parses_iso_with_offset(self):
        """timezone offset ISO 문자열 파싱"""
        iso_str = "2025-10-26T11:00:00+09:00"
        result = parse_iso_to_utc(iso_str)
        assert result.tzinfo == timezone.utc
        assert result.hour == 2  # 11:00 +09:00 = 02:00 UTC

    def test_parses_iso_without_timezone(self):
        """timezone 없는 ISO 문자열 파싱 (UTC로 가정)"""
        iso_str = "2025-10-26T02:00:00"
        result = parse_iso_to_utc(iso_str)
        assert result.tzinfo == timezone.utc
        assert result.hour == 2


class TestToIso:
    """to_iso() 함수 테스트"""

    def test_utc_datetime(self):
        """UTC datetime은 'Z' suffix로 출력"""
        dt = datetime(2025, 10, 26, 2, 0, 0, tzinfo=timezone.utc)
        assert to_iso(dt) == "2025-10-26T02:00:00Z"

    def test_converts_offset_to_utc(self):
        """다른 timezone은 UTC로 변환 후 출력"""
        kst = timezone(timedelta(hours=9))
        dt = datetime(2025, 10, 26, 11, 0, 0, tzinfo=kst)
        assert to_iso(dt) == "2025-10-26T02:00:00Z"

    def test_roundtrip_with_parse(self):
        """저장 형식을 다시 읽으면 같은 시각"""
        dt = datetime(2025, 10, 26, 2, 30, 15, 123456, tzinfo=timezone.utc)
        assert parse_iso_to_utc(to_iso(dt)) == dt


class TestParseOptionalIso:
    """parse_optional_iso() 함수 테스트"""

    def test_none(self):
        """None은 None"""
        assert parse_optional_iso(None) is None

    def test_empty_string(self):
        """빈 문자열은 None"""
        assert parse_optional_iso("") is None

    def test_value(self):
        """값이 있으면 UTC datetime"""
        result = parse_optional_iso("2025-10-26T02:00:00Z")
        assert result == datetime(2025, 10, 26, 2, 0, 0, tzinfo=timezone.utc)


class TestExpiresInToDatetime:
    """expires_in_to_datetime() 함수 테스트"""

    def test_none_means_no_expiry(self):
        """expires_in 이 없으면 만료 없음"""
        assert expires_in_to_datetime(None) is None
        assert expires_in_to_datetime("") is None

    def test_seconds_from_now(self):
        """현재 시각 + expires_in 초"""
        before = utc_now()
        result = expires_in_to_datetime(3600)
        assert timedelta(seconds=3599) <= result - before <= timedelta(seconds=3601)

    def test_string_value(self):
        """문자열 숫자도 허용"""
        result = expires_in_to_datetime("120")
        assert 100 < time_until_expiry(result).total_seconds() <= 120


class TestHoursSince:
    """hours_since() 함수 테스트"""

    def test_fixed_now(self):
        """기준 시각을 지정한 경우"""
        now = datetime(2025, 10, 26, 12, 0, 0, tzinfo=timezone.utc)
        moment = datetime(2025, 10, 26, 9, 0, 0, tzinfo=timezone.utc)
        assert hours_since(moment, now=now) == 3.0

    def test_iso_string(self):
        """ISO 문자열 입력"""
        now = datetime(2025, 10, 26, 12, 0, 0, tzinfo=timezone.utc)
        assert hours_since("2025-10-26T10:30:00Z", now=now) == 1.5

    def test_naive_moment_assumed_utc(self):
        """naive datetime은 UTC로 가정"""
        now = datetime(2025, 10, 26, 12, 0, 0, tzinfo=timezone.utc)
        assert hours_since(datetime(2025, 10, 26, 6, 0, 0), now=now) == 6.0


class TestTimeUntilExpiry:
    """time_until_expiry() 함수 테스트"""

    def test_future_time_positive_delta(self):
        """미래 시각은 양수 delta"""
        future = utc_now() + timedelta(hours=2)
        remaining = time_until_expiry(future)
        assert remaining.total_seconds() > 7000  # ~2 hours = 7200s

    def test_past_time_negative_delta(self):
        """과거 시각은 음수 delta"""
        past = utc_now() - timedelta(hours=1)
        remaining = time_until_expiry(past)
        assert remaining.total_seconds() < 0

    def test_iso_string(self):
        """ISO 문자열로 계산"""
        future = utc_now() + timedelta(minutes=30)
        iso_str = future.isoformat().replace('+00:00', 'Z')
        remaining = time_until_expiry(iso_str)
        assert remaining.total_seconds() > 1700  # ~30 minutes = 1800s


class TestIntegration:
    """통합 테스트 - 실제 사용 시나리오"""

    def test_token_expiry_scenario(self):
        """토큰 만료 시나리오"""
        # 토큰 발급 (1시간 후 만료)
        expires_at = expires_in_to_datetime(3600)

        # DB 저장 시뮬레이션
        stored_iso = to_iso(expires_at)

        # 30분 갱신 창보다 멀리 남아 있음
        assert time_until_expiry(stored_iso) > timedelta(minutes=30)

        past_iso = to_iso(expires_at - timedelta(hours=2))
        assert time_until_expiry(past_iso) < timedelta(0)

    def test_backoff_window_scenario(self):
        """마지막 갱신 실패 후 경과 시간 계산"""
        last_error_at = to_iso(utc_now() - timedelta(hours=4))
        elapsed = hours_since(last_error_at)
        assert 3.9 < elapsed < 4.1


def test_datetime_utils_import():
    """모듈 import 테스트"""
    from infra.utils import datetime_utils
    assert hasattr(datetime_utils, 'utc_now')
    assert hasattr(datetime_utils, 'utc_now_iso')
    assert hasattr(datetime_utils, 'ensure_utc')
