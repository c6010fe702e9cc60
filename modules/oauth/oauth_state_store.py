"""OAuth state 저장소 - 단일 사용, 1시간 만료 CSRF 토큰"""

from datetime import timedelta
from typing import Callable, Optional

from infra.core import (
    DatabaseManager,
    StateExpiredError,
    StateNotFoundError,
    generate_state_token,
    get_config,
    get_database_manager,
    get_logger,
)
from infra.utils.datetime_utils import parse_iso_to_utc, to_iso, utc_now
from infra.utils.retry import linear_backoff, retry_until_found

from .oauth_schema import CleanupResult, OAuthStateRecord

logger = get_logger(__name__)

STATES_TABLE = "oauth_states"


def _row_to_record(row) -> OAuthStateRecord:
    data = dict(row)
    data["created_at"] = parse_iso_to_utc(data["created_at"])
    data["expires_at"] = parse_iso_to_utc(data["expires_at"])
    return OAuthStateRecord(**data)


class OAuthStateStore:
    """oauth_states 테이블 기반 state 저장소"""

    def __init__(
        self,
        db: Optional[DatabaseManager] = None,
        ttl_minutes: Optional[int] = None,
        lookup_retries: Optional[int] = None,
        backoff: Optional[Callable[[int], float]] = None,
    ):
        """
        Args:
            db: 데이터베이스 매니저
            ttl_minutes: state 유효 시간 (기본 60분)
            lookup_retries: consume 시 state 가 없을 때 추가 재조회 횟수 (기본 3회)
            backoff: 재조회 대기 함수 (기본 0.5초 × 재시도 번호)
        """
        config = get_config()
        self.db = db or get_database_manager()
        self.ttl = timedelta(
            minutes=ttl_minutes if ttl_minutes is not None else config.oauth_state_ttl_minutes
        )
        self.lookup_retries = (
            lookup_retries if lookup_retries is not None else config.state_lookup_attempts
        )
        self.backoff = backoff or linear_backoff(config.state_lookup_base_delay)

    def create(self, provider: str, organization_id: str, user_id: str, redirect_url: str) -> str:
        """
        새 state 생성 및 저장

        Returns:
            64자리 hex state 문자열
        """
        state = generate_state_token()
        now = utc_now()

        self.db.insert(
            STATES_TABLE,
            {
                "state": state,
                "provider": provider,
                "organization_id": organization_id,
                "user_id": user_id,
                "redirect_url": redirect_url,
                "created_at": to_iso(now),
                "expires_at": to_iso(now + self.ttl),
            },
        )

        logger.debug(f"state 생성: provider={provider}, org={organization_id}, state={state[:8]}...")
        return state

    def peek(self, state: str) -> Optional[OAuthStateRecord]:
        """state 를 소비하지 않고 조회"""
        row = self.db.fetch_one(f"SELECT * FROM {STATES_TABLE} WHERE state = ?", (state,))
        return _row_to_record(row) if row else None

    async def _fetch(self, state: str) -> Optional[OAuthStateRecord]:
        return self.peek(state)

    async def consume(self, state: str) -> OAuthStateRecord:
        """
        state 를 검증하고 삭제한 뒤 레코드를 반환

        저장소 반영 지연을 고려해 없으면 0.5s/1.0s/1.5s 간격으로 재조회합니다.

        Raises:
            StateNotFoundError: 끝내 없거나 동시 소비에서 진 경우
            StateExpiredError: 만료된 state (레코드는 삭제됨)
        """
        result = await retry_until_found(
            lambda: self._fetch(state),
            max_retries=self.lookup_retries,
            backoff=self.backoff,
            description="OAuth state",
        )

        if not result.found:
            logger.warning(f"⚠️ state 를 찾을 수 없음 ({result.attempts}회 조회): {state[:8]}...")
            raise StateNotFoundError()

        record = result.value
        if record.is_expired():
            self.delete(state)
            logger.warning(
                f"⚠️ 만료된 state: provider={record.provider}, org={record.organization_id}"
            )
            raise StateExpiredError()

        # 삭제한 쪽만 소비에 성공
        if self.delete(state) == 0:
            logger.warning(f"⚠️ state 가 이미 소비됨: {state[:8]}...")
            raise StateNotFoundError()

        return record

    def delete(self, state: str) -> int:
        """state 삭제, 삭제된 행 수 반환"""
        return self.db.delete(STATES_TABLE, "state = ?", (state,))

    def sweep_expired(self) -> CleanupResult:
        """
        만료된 state 일괄 삭제

        레코드별 실패는 기록만 하고 계속 진행합니다.
        """
        now = utc_now()
        result = CleanupResult()

        rows = self.db.fetch_all(f"SELECT state, expires_at FROM {STATES_TABLE}")
        for row in rows:
            try:
                if parse_iso_to_utc(row["expires_at"]) >= now:
                    continue
                result.deleted += self.delete(row["state"])
            except Exception as e:
                result.errors += 1
                logger.error(f"❌ state 삭제 실패: {row['state'][:8]}... - {str(e)}")

        logger.info(f"만료 state 정리: 삭제 {result.deleted}건, 실패 {result.errors}건")
        return result
