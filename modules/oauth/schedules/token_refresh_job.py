"""
만료 임박 토큰 정기 갱신

모든 OAuth 2.0 프로바이더 × 조직 연결을 돌며 만료가 가까운 토큰을 미리 갱신합니다.
실패는 일시/영구/미분류로 나누어 처리하고, 한 연결의 실패가 다른 연결 처리를 막지 않습니다.
"""

from datetime import timedelta
from typing import Any, Dict, Optional

from infra.core import Config, error_message, get_config, get_logger
from infra.core.auth_logger import AuthLogger, get_auth_logger
from infra.utils.datetime_utils import hours_since, time_until_expiry, utc_now

from ..connection_repository import ConnectionRepository
from ..oauth_schema import CloudConnection, RefreshFailureKind, RefreshSweepStats
from ..oauth_service import UnifiedOAuthService
from ..refresh_classifier import RefreshErrorClassifier

logger = get_logger(__name__)

# (실패 횟수 이상, 마지막 실패 후 대기 시간) - 큰 횟수부터 검사
BACKOFF_RULES = ((10, 6.0), (5, 3.0))


class TokenRefreshJob:
    """토큰 갱신 스윕"""

    def __init__(
        self,
        service: Optional[UnifiedOAuthService] = None,
        repository: Optional[ConnectionRepository] = None,
        config: Optional[Config] = None,
        auth_logger: Optional[AuthLogger] = None,
    ):
        self.service = service or UnifiedOAuthService()
        self.repository = repository or self.service.repository
        self.config = config or get_config()
        self.auth_logger = auth_logger or get_auth_logger()

        self.refresh_window = timedelta(minutes=self.config.token_refresh_window_minutes)
        self.max_failures = self.config.max_refresh_failures

    def _skip_reason(self, connection: CloudConnection) -> Optional[str]:
        """갱신하지 않을 이유, 갱신 대상이면 None"""
        if not connection.is_active:
            return "inactive"

        if connection.token_expires_at and time_until_expiry(connection.token_expires_at) > self.refresh_window:
            return "not_expiring"

        if not connection.refresh_token:
            logger.warning(
                f"⚠️ 리프레시 토큰 없음: provider={connection.provider}, org={connection.organization_id}"
            )
            return "no_refresh_token"

        failures = connection.consecutive_refresh_failures
        if failures and connection.last_refresh_error_at:
            elapsed = hours_since(connection.last_refresh_error_at)
            for threshold, wait_hours in BACKOFF_RULES:
                if failures >= threshold:
                    if elapsed < wait_hours:
                        logger.warning(
                            f"⏳ 백오프 중: provider={connection.provider}, org={connection.organization_id}, "
                            f"실패 {failures}회, 마지막 실패 후 {elapsed:.1f}시간"
                        )
                        return "backoff"
                    break

        return None

    async def run(self) -> RefreshSweepStats:
        """
        갱신 스윕 1회 실행

        Returns:
            RefreshSweepStats: 갱신/실패/건너뜀/비활성화 건수
        """
        stats = RefreshSweepStats()
        logger.info("🔄 토큰 갱신 작업 시작")

        for provider in self.service.registry.oauth_provider_names():
            try:
                connections = self.repository.list_connections(provider)
            except Exception as e:
                stats.errors += 1
                logger.error(f"❌ {provider} 연결 목록 조회 실패: {str(e)}", exc_info=True)
                continue

            for connection in connections:
                reason = self._skip_reason(connection)
                if reason:
                    stats.skipped += 1
                    continue

                try:
                    await self._refresh_one(connection, stats)
                except Exception as e:
                    # 실패 기록 자체가 실패한 경우
                    stats.errors += 1
                    logger.error(
                        f"❌ 갱신 결과 기록 실패: provider={provider}, "
                        f"org={connection.organization_id} - {str(e)}",
                        exc_info=True,
                    )

        logger.info(
            f"✅ 토큰 갱신 작업 완료: 갱신 {stats.refreshed}, 실패 {stats.errors}, "
            f"건너뜀 {stats.skipped}, 비활성화 {stats.deactivated}"
        )
        self.auth_logger.log_sweep_summary("token_refresh", **stats.model_dump())
        return stats

    async def _refresh_one(self, connection: CloudConnection, stats: RefreshSweepStats) -> None:
        organization_id, provider = connection.organization_id, connection.provider

        try:
            await self.service.refresh_connection(
                organization_id, provider, trigger="scheduled", reset_failures=True
            )
        except Exception as e:
            stats.errors += 1
            self._record_failure(connection, e, stats)
            return

        stats.refreshed += 1

    def _record_failure(self, connection: CloudConnection, error: Exception, stats: RefreshSweepStats) -> None:
        """실패 분류에 따라 연결 상태 기록"""
        organization_id, provider = connection.organization_id, connection.provider
        message = error_message(error)
        kind = RefreshErrorClassifier.classify(error)
        now = utc_now()

        if kind == RefreshFailureKind.TRANSIENT:
            logger.warning(
                f"⚠️ 일시적 오류, 실패 횟수 유지: provider={provider}, org={organization_id} - {message}"
            )
            self.repository.update_connection(
                organization_id, provider, {"last_refresh_error": message, "last_refresh_error_at": now}
            )
            return

        failures = connection.consecutive_refresh_failures + 1
        fields: Dict[str, Any]

        if kind == RefreshFailureKind.PERMANENT:
            logger.error(f"🚫 영구 인증 오류, 비활성화: provider={provider}, org={organization_id} - {message}")
            fields = {
                "is_active": False,
                "requires_reconnection": True,
                "refresh_error": message,
                "refresh_error_at": now,
                "consecutive_refresh_failures": failures,
            }
        elif failures >= self.max_failures:
            logger.error(
                f"🚫 연속 {failures}회 실패, 비활성화: provider={provider}, org={organization_id}"
            )
            fields = {
                "is_active": False,
                "requires_reconnection": False,
                "refresh_error": f"{failures} consecutive refresh failures: {message}",
                "refresh_error_at": now,
                "consecutive_refresh_failures": failures,
            }
        else:
            logger.warning(
                f"⚠️ 갱신 실패 ({failures}/{self.max_failures}): provider={provider}, "
                f"org={organization_id} - {message}"
            )
            fields = {
                "last_refresh_error": message,
                "last_refresh_error_at": now,
                "consecutive_refresh_failures": failures,
            }

        self.repository.update_connection(organization_id, provider, fields)

        if fields.get("is_active") is False:
            stats.deactivated += 1
            self.auth_logger.log_connection_status_change(
                organization_id, provider, "active", "inactive", reason=f"{kind.value}: {message}"
            )
