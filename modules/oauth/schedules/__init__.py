"""OAuth 정기 작업"""

from .state_cleanup_job import StateCleanupJob
from .token_refresh_job import TokenRefreshJob

__all__ = ["StateCleanupJob", "TokenRefreshJob"]
