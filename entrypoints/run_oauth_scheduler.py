#!/usr/bin/env python3
"""OAuth Maintenance Scheduler

Runs the hourly token refresh and daily state cleanup jobs,
or a single sweep with --once.
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from infra.core import get_oauth_http_client
from infra.core.env_validator import EnvValidator
from infra.core.logger import get_logger, update_all_loggers_level
from modules.oauth import LegacyTokenMigration, OAuthMaintenanceScheduler, StateCleanupJob, TokenRefreshJob

logger = get_logger(__name__)


async def run_once(job: str, organization_id: Optional[str] = None, dry_run: bool = False) -> int:
    """단일 작업 실행 후 종료 코드 반환"""
    try:
        if job == "refresh":
            stats = await TokenRefreshJob().run()
            print(stats.model_dump_json())
            return 0 if stats.errors == 0 else 1

        if job == "cleanup":
            result = await StateCleanupJob().run()
            print(result.model_dump_json())
            return 0 if result.errors == 0 else 1

        result = LegacyTokenMigration().run(organization_id=organization_id, dry_run=dry_run)
        print(result.model_dump_json())
        return 0 if result.errors == 0 else 1
    finally:
        await get_oauth_http_client().close()


async def run_forever(run_immediately: bool) -> None:
    """스케줄러를 시작하고 중단될 때까지 대기"""
    scheduler = OAuthMaintenanceScheduler()
    await scheduler.start(run_immediately=run_immediately)
    try:
        await asyncio.Event().wait()
    finally:
        await scheduler.stop()
        await get_oauth_http_client().close()


def main():
    """Main entry point for the OAuth maintenance scheduler"""
    parser = argparse.ArgumentParser(description="CloudLink OAuth maintenance scheduler")
    parser.add_argument(
        "--once",
        choices=["refresh", "cleanup", "migrate"],
        help="Run a single job and exit",
    )
    parser.add_argument("--org", help="Organization id (migrate only)")
    parser.add_argument("--dry-run", action="store_true", help="Count legacy tokens without rewriting (migrate only)")
    parser.add_argument("--run-immediately", action="store_true", help="Run both jobs once before scheduling")
    parser.add_argument("--log-level", help="Override LOG_LEVEL")
    parser.add_argument("--check-env", action="store_true", help="Print environment report and exit")

    args = parser.parse_args()

    if args.log_level:
        update_all_loggers_level(args.log_level)

    if args.check_env:
        validator = EnvValidator()
        success, _ = validator.validate()
        validator.print_report()
        sys.exit(0 if success else 1)

    if args.once:
        logger.info(f"🚀 Running single job: {args.once}")
        sys.exit(asyncio.run(run_once(args.once, args.org, args.dry_run)))

    logger.info("🚀 Starting OAuth maintenance scheduler")
    logger.info(f"📁 Project root: {PROJECT_ROOT}")
    try:
        asyncio.run(run_forever(args.run_immediately))
    except KeyboardInterrupt:
        logger.info("Scheduler stopped by user")


if __name__ == "__main__":
    main()
