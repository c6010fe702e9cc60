"""만료 OAuth state 정기 정리"""

from typing import Optional

from infra.core import get_logger
from infra.core.auth_logger import AuthLogger, get_auth_logger

from ..oauth_schema import CleanupResult
from ..oauth_state_store import OAuthStateStore

logger = get_logger(__name__)


class StateCleanupJob:
    """만료된 state 삭제 스윕"""

    def __init__(
        self,
        state_store: Optional[OAuthStateStore] = None,
        auth_logger: Optional[AuthLogger] = None,
    ):
        self.state_store = state_store or OAuthStateStore()
        self.auth_logger = auth_logger or get_auth_logger()

    async def run(self) -> CleanupResult:
        logger.info("🧹 만료 state 정리 시작")
        result = self.state_store.sweep_expired()
        self.auth_logger.log_sweep_summary("state_cleanup", **result.model_dump())
        return result
