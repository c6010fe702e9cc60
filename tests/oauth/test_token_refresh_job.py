"""TokenRefreshJob 테스트"""

from datetime import timedelta

import pytest

from infra.core import DatabaseError, get_config
from infra.utils.datetime_utils import utc_now
from modules.oauth.schedules import TokenRefreshJob


@pytest.fixture
def job(service, repository, auth_logger):
    return TokenRefreshJob(service=service, repository=repository, config=get_config(), auth_logger=auth_logger)


def _hours_ago(hours):
    return utc_now() - timedelta(hours=hours)


class TestSelection:
    """갱신 대상 선별"""

    @pytest.mark.asyncio
    async def test_refreshes_expiring_token(self, job, make_connection, stub_provider):
        make_connection(expires_in_minutes=10)

        stats = await job.run()

        assert stats.refreshed == 1
        assert stats.errors == 0
        assert stub_provider.refresh_calls == [("stored-refresh", "org-1")]

    @pytest.mark.asyncio
    async def test_skips_token_far_from_expiry(self, job, make_connection, stub_provider):
        make_connection(expires_in_minutes=120)

        stats = await job.run()

        assert stats.skipped == 1
        assert stats.refreshed == 0
        assert stub_provider.refresh_calls == []

    @pytest.mark.asyncio
    async def test_already_expired_token_is_refreshed(self, job, make_connection):
        make_connection(expires_in_minutes=-30)
        assert (await job.run()).refreshed == 1

    @pytest.mark.asyncio
    async def test_unknown_expiry_is_refreshed(self, job, make_connection):
        make_connection(expires_in_minutes=None)
        assert (await job.run()).refreshed == 1

    @pytest.mark.asyncio
    async def test_skips_inactive(self, job, make_connection, stub_provider):
        make_connection(is_active=False)

        stats = await job.run()

        assert stats.skipped == 1
        assert stub_provider.refresh_calls == []

    @pytest.mark.asyncio
    async def test_skips_missing_refresh_token(self, job, make_connection, stub_provider):
        make_connection(refresh_token=None)

        stats = await job.run()

        assert stats.skipped == 1
        assert stats.errors == 0
        assert stub_provider.refresh_calls == []

    @pytest.mark.asyncio
    async def test_empty_sweep(self, job):
        stats = await job.run()
        assert stats.model_dump() == {"refreshed": 0, "errors": 0, "skipped": 0, "deactivated": 0}


class TestBackoff:
    """연속 실패 백오프"""

    @pytest.mark.asyncio
    async def test_five_failures_within_three_hours(self, job, make_connection, stub_provider):
        make_connection(consecutive_refresh_failures=5, last_refresh_error_at=_hours_ago(1))

        stats = await job.run()

        assert stats.skipped == 1
        assert stub_provider.refresh_calls == []

    @pytest.mark.asyncio
    async def test_five_failures_after_three_hours(self, job, make_connection, stub_provider):
        make_connection(consecutive_refresh_failures=5, last_refresh_error_at=_hours_ago(4))

        stats = await job.run()

        assert stats.refreshed == 1

    @pytest.mark.asyncio
    async def test_ten_failures_within_six_hours(self, job, make_connection, stub_provider):
        make_connection(consecutive_refresh_failures=10, last_refresh_error_at=_hours_ago(4))

        stats = await job.run()

        assert stats.skipped == 1
        assert stub_provider.refresh_calls == []

    @pytest.mark.asyncio
    async def test_few_failures_no_backoff(self, job, make_connection):
        make_connection(consecutive_refresh_failures=4, last_refresh_error_at=_hours_ago(0.1))
        assert (await job.run()).refreshed == 1

    @pytest.mark.asyncio
    async def test_success_resets_counter(self, job, make_connection, repository):
        make_connection(consecutive_refresh_failures=7, last_refresh_error_at=_hours_ago(7))

        await job.run()

        assert repository.get_connection("org-1", "stub").consecutive_refresh_failures == 0

    @pytest.mark.asyncio
    async def test_reset_written_with_tokens(self, job, make_connection, repository, monkeypatch):
        """새 토큰과 실패 횟수 초기화는 한 번의 쓰기"""
        make_connection(consecutive_refresh_failures=7, last_refresh_error_at=_hours_ago(7))
        writes = []
        original_update = repository.update_connection

        def recording_update(organization_id, provider, fields):
            writes.append(dict(fields))
            return original_update(organization_id, provider, fields)

        monkeypatch.setattr(repository, "update_connection", recording_update)

        stats = await job.run()

        assert stats.refreshed == 1
        assert len(writes) == 1
        assert writes[0]["consecutive_refresh_failures"] == 0
        assert "access_token" in writes[0]
        assert "last_refreshed_at" in writes[0]

    @pytest.mark.asyncio
    async def test_failed_write_leaves_no_partial_refresh(
        self, job, make_connection, repository, cipher, monkeypatch
    ):
        """토큰 저장이 실패하면 토큰도 실패 횟수도 그대로"""
        make_connection(consecutive_refresh_failures=7, last_refresh_error_at=_hours_ago(7))
        original_update = repository.update_connection

        def failing_token_write(organization_id, provider, fields):
            if "access_token" in fields:
                raise DatabaseError("disk I/O error", operation="update")
            return original_update(organization_id, provider, fields)

        monkeypatch.setattr(repository, "update_connection", failing_token_write)

        stats = await job.run()

        connection = repository.get_connection("org-1", "stub")
        assert stats.refreshed == 0
        assert stats.errors == 1
        assert cipher.decrypt(connection.access_token) == "stored-access"
        assert connection.last_refreshed_at is None
        assert connection.consecutive_refresh_failures == 8


class TestFailureHandling:
    """실패 분류별 처리"""

    @pytest.mark.asyncio
    async def test_transient_failure_keeps_counter(self, job, make_connection, repository, stub_provider, make_provider_error):
        make_connection(consecutive_refresh_failures=2)
        stub_provider.refresh_error = make_provider_error(code="network_error", message="connection reset")

        stats = await job.run()

        connection = repository.get_connection("org-1", "stub")
        assert stats.errors == 1
        assert stats.deactivated == 0
        assert connection.is_active
        assert connection.consecutive_refresh_failures == 2
        assert connection.last_refresh_error == "connection reset"
        assert connection.last_refresh_error_at is not None

    @pytest.mark.asyncio
    async def test_transient_by_message(self, job, make_connection, repository, stub_provider):
        make_connection()
        stub_provider.refresh_error = RuntimeError("connect ETIMEDOUT 142.250.1.1:443")

        await job.run()

        assert repository.get_connection("org-1", "stub").consecutive_refresh_failures == 0

    @pytest.mark.asyncio
    async def test_permanent_failure_deactivates(self, job, make_connection, repository, stub_provider, make_provider_error):
        make_connection(consecutive_refresh_failures=1)
        stub_provider.refresh_error = make_provider_error(
            code="invalid_grant", status=400, message="Token has been expired or revoked."
        )

        stats = await job.run()

        connection = repository.get_connection("org-1", "stub")
        assert stats.deactivated == 1
        assert connection.is_active is False
        assert connection.requires_reconnection is True
        assert connection.refresh_error == "Token has been expired or revoked."
        assert connection.refresh_error_at is not None
        assert connection.consecutive_refresh_failures == 2

    @pytest.mark.asyncio
    async def test_unclassified_failure_counts(self, job, make_connection, repository, stub_provider, make_provider_error):
        make_connection(consecutive_refresh_failures=3)
        stub_provider.refresh_error = make_provider_error(status=429, message="rate limited")

        stats = await job.run()

        connection = repository.get_connection("org-1", "stub")
        assert stats.errors == 1
        assert connection.is_active
        assert connection.consecutive_refresh_failures == 4
        assert connection.last_refresh_error == "rate limited"

    @pytest.mark.asyncio
    async def test_failure_limit_deactivates(self, job, make_connection, repository, stub_provider, make_provider_error):
        make_connection(consecutive_refresh_failures=14, last_refresh_error_at=_hours_ago(7))
        stub_provider.refresh_error = make_provider_error(message="something odd")

        stats = await job.run()

        connection = repository.get_connection("org-1", "stub")
        assert stats.deactivated == 1
        assert connection.is_active is False
        assert connection.requires_reconnection is False
        assert connection.consecutive_refresh_failures == 15
        assert connection.refresh_error == "15 consecutive refresh failures: something odd"

    @pytest.mark.asyncio
    async def test_fifteen_sweeps_from_zero(self, job, make_connection, repository, stub_provider, make_provider_error):
        """0회부터 15번 연속 실패하면 15번째에 비활성화"""
        make_connection(consecutive_refresh_failures=0)
        stub_provider.refresh_error = make_provider_error(message="something odd")

        for attempt in range(1, 16):
            stats = await job.run()
            connection = repository.get_connection("org-1", "stub")

            assert stats.skipped == 0
            assert connection.consecutive_refresh_failures == attempt
            if attempt < 15:
                assert connection.is_active, f"{attempt}번째 실패 후 비활성화됨"
                assert stats.deactivated == 0
                # 다음 스윕이 백오프 구간을 벗어나도록 마지막 실패 시각을 과거로 이동
                repository.update_connection("org-1", "stub", {"last_refresh_error_at": _hours_ago(7)})

        assert stats.deactivated == 1
        assert connection.is_active is False
        assert connection.requires_reconnection is False
        assert connection.refresh_error == "15 consecutive refresh failures: something odd"
        assert len(stub_provider.refresh_calls) == 15

    @pytest.mark.asyncio
    async def test_failure_isolated_per_connection(self, job, make_connection, repository, stub_provider, make_provider_error):
        """한 조직의 실패가 다른 조직 갱신을 막지 않음"""
        make_connection(organization_id="org-bad")
        make_connection(organization_id="org-good")
        original_refresh = stub_provider.refresh

        async def selective_refresh(refresh_token, organization_id):
            if organization_id == "org-bad":
                raise make_provider_error(code="invalid_grant")
            return await original_refresh(refresh_token, organization_id)

        stub_provider.refresh = selective_refresh

        stats = await job.run()

        assert stats.refreshed == 1
        assert stats.deactivated == 1
        assert repository.get_connection("org-good", "stub").last_refreshed_at is not None
        assert repository.get_connection("org-bad", "stub").is_active is False

    @pytest.mark.asyncio
    async def test_listing_failure_continues_with_next_provider(
        self, job, make_connection, repository, monkeypatch
    ):
        make_connection(provider="stubchat")
        original_list = repository.list_connections

        def flaky_list(provider):
            if provider == "stub":
                raise RuntimeError("database is locked")
            return original_list(provider)

        monkeypatch.setattr(repository, "list_connections", flaky_list)

        stats = await job.run()

        assert stats.errors == 1
        assert stats.refreshed == 1

    @pytest.mark.asyncio
    async def test_decryption_failure_counts_as_unclassified(self, job, make_connection, repository):
        make_connection(consecutive_refresh_failures=0)
        repository.update_connection("org-1", "stub", {"refresh_token": "not-a-valid-token"})

        stats = await job.run()

        assert stats.errors == 1
        assert repository.get_connection("org-1", "stub").consecutive_refresh_failures == 1
