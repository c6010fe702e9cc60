"""OAuth 유지보수 스케줄러 (토큰 갱신 1시간, state 정리 24시간)"""

from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from infra.core import Config, get_config, get_logger

from .oauth_schema import CleanupResult, RefreshSweepStats
from .schedules import StateCleanupJob, TokenRefreshJob

logger = get_logger(__name__)


class OAuthMaintenanceScheduler:
    """토큰 갱신/state 정리 작업 스케줄러"""

    REFRESH_JOB_ID = "token_refresh"
    CLEANUP_JOB_ID = "state_cleanup"

    def __init__(
        self,
        refresh_job: Optional[TokenRefreshJob] = None,
        cleanup_job: Optional[StateCleanupJob] = None,
        config: Optional[Config] = None,
    ):
        self.config = config or get_config()
        self.refresh_job = refresh_job or TokenRefreshJob()
        self.cleanup_job = cleanup_job or StateCleanupJob()
        self.scheduler = AsyncIOScheduler()

        self.refresh_interval = self.config.token_refresh_interval_hours
        self.cleanup_interval = self.config.state_cleanup_interval_hours

        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self, run_immediately: bool = False):
        """
        스케줄러 시작

        Args:
            run_immediately: True면 등록 전에 두 작업을 한 번씩 실행
        """
        if self._running:
            logger.warning("스케줄러가 이미 실행 중입니다")
            return

        logger.info("OAuth 유지보수 스케줄러 시작")
        self._running = True

        if run_immediately:
            await self.run_refresh_now()
            await self.run_cleanup_now()

        self.scheduler.add_job(
            self.run_refresh_now,
            IntervalTrigger(hours=self.refresh_interval),
            id=self.REFRESH_JOB_ID,
            name="OAuth 토큰 갱신",
            max_instances=1,
            replace_existing=True,
        )

        self.scheduler.add_job(
            self.run_cleanup_now,
            IntervalTrigger(hours=self.cleanup_interval),
            id=self.CLEANUP_JOB_ID,
            name="만료 OAuth state 정리",
            max_instances=1,
            replace_existing=True,
        )

        self.scheduler.start()
        logger.info(
            f"스케줄러 시작 완료 - "
            f"토큰 갱신: {self.refresh_interval}시간, "
            f"state 정리: {self.cleanup_interval}시간"
        )

    async def stop(self):
        """스케줄러 중지"""
        if not self._running:
            return

        logger.info("OAuth 유지보수 스케줄러 중지 중...")
        self._running = False
        self.scheduler.shutdown(wait=False)
        logger.info("OAuth 유지보수 스케줄러 중지 완료")

    async def run_refresh_now(self) -> Optional[RefreshSweepStats]:
        """토큰 갱신 작업 실행 (작업 전체 실패는 기록만 함)"""
        try:
            return await self.refresh_job.run()
        except Exception as e:
            logger.error(f"토큰 갱신 작업 실패: {str(e)}", exc_info=True)
            return None

    async def run_cleanup_now(self) -> Optional[CleanupResult]:
        """state 정리 작업 실행 (작업 전체 실패는 기록만 함)"""
        try:
            return await self.cleanup_job.run()
        except Exception as e:
            logger.error(f"state 정리 작업 실패: {str(e)}", exc_info=True)
            return None
