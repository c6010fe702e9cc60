"""
OAuth 감사 로그 모듈
연결/갱신/해제 등 OAuth 이벤트만 별도 파일(logs/auth/oauth.log)에 기록하는 로거
"""

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


class AuthLogger:
    """OAuth 이벤트 전용 로거"""

    def __init__(self, log_dir: Optional[str] = None,
                 enable_file_logging: Optional[bool] = None,
                 max_bytes: int = 10 * 1024 * 1024,  # 10MB
                 backup_count: int = 5):
        if log_dir is None:
            log_dir = os.path.join(os.getenv("LOG_DIR", "logs"), "auth")
        if enable_file_logging is None:
            enable_file_logging = os.getenv("ENABLE_FILE_LOGGING", "true").lower() == "true"

        self.log_dir = Path(log_dir)

        self.logger = logging.getLogger("oauth_audit")
        self.logger.setLevel(logging.INFO)
        self.logger.propagate = False
        self.logger.handlers.clear()

        formatter = logging.Formatter(
            '%(asctime)s | %(levelname)-8s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        if enable_file_logging:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                self.get_log_path(),
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding='utf-8'
            )
            file_handler.setLevel(logging.INFO)
            file_handler.setFormatter(formatter)
            self.logger.addHandler(file_handler)
        else:
            self.logger.addHandler(logging.NullHandler())

    @staticmethod
    def _subject(organization_id: str, provider: str) -> str:
        return f"org={organization_id} | provider={provider}"

    def log_oauth_event(self, event_type: str, organization_id: str, provider: str,
                        success: bool = True, details: Optional[str] = None):
        """OAuth 흐름 이벤트 로그 (INITIATE, CALLBACK, REVOKE 등)"""
        status = "SUCCESS" if success else "FAILED"
        msg = f"OAUTH_EVENT | {event_type} | {status} | {self._subject(organization_id, provider)}"
        if details:
            msg += f" | {details}"

        if success:
            self.logger.info(msg)
        else:
            self.logger.error(msg)

    def log_token_refresh(self, organization_id: str, provider: str, success: bool,
                          trigger: str = "scheduled", error: Optional[str] = None):
        """토큰 갱신 이벤트 로그"""
        status = "SUCCESS" if success else "FAILED"
        msg = f"TOKEN_REFRESH | {self._subject(organization_id, provider)} | {status} | trigger={trigger}"
        if error:
            msg += f" | error={error}"

        if success:
            self.logger.info(msg)
        else:
            self.logger.warning(msg)

    def log_connection_status_change(self, organization_id: str, provider: str,
                                     old_status: str, new_status: str,
                                     reason: Optional[str] = None):
        """연결 상태 변경 로그"""
        msg = (f"CONNECTION_STATUS_CHANGE | {self._subject(organization_id, provider)} | "
               f"{old_status} -> {new_status}")
        if reason:
            msg += f" | reason={reason}"

        self.logger.warning(msg)

    def log_sweep_summary(self, job_name: str, **counts: int):
        """스케줄 작업 요약 로그"""
        summary = " | ".join(f"{key}={value}" for key, value in counts.items())
        self.logger.info(f"SWEEP_SUMMARY | {job_name} | {summary}")

    def get_log_path(self) -> Path:
        """현재 로그 파일 경로 반환"""
        return self.log_dir / "oauth.log"


_auth_logger: Optional[AuthLogger] = None


def get_auth_logger() -> AuthLogger:
    """OAuth 감사 로거 싱글톤 인스턴스 반환"""
    global _auth_logger
    if _auth_logger is None:
        _auth_logger = AuthLogger()
    return _auth_logger
