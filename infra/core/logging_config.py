"""
통합 로깅 설정 시스템

애플리케이션 전체의 로깅을 일관되게 관리하는 설정 모듈입니다.
콘솔은 colorlog 컬러 출력, 파일은 패키지별 RotatingFileHandler 로 기록합니다.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from enum import Enum
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

import colorlog


class LogLevel(Enum):
    """로그 레벨 정의"""
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL


class LogFormat(Enum):
    """로그 출력 형식"""
    SIMPLE = "simple"
    DETAILED = "detailed"
    JSON = "json"
    COLORED = "colored"


class StructuredFormatter(logging.Formatter):
    """구조화된 JSON 로그 포매터"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if hasattr(record, "extra_data"):
            log_data["context"] = record.extra_data

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False)


class LoggingConfig:
    """통합 로깅 설정 클래스"""

    FORMATS = {
        LogFormat.SIMPLE: "%(levelname)s - %(name)s - %(message)s",
        LogFormat.DETAILED: "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s",
        LogFormat.COLORED: "%(log_color)s%(levelname)-8s%(reset)s %(blue)s%(name)s%(reset)s - %(message)s",
    }

    LOG_COLORS = {
        'DEBUG': 'cyan',
        'INFO': 'green',
        'WARNING': 'yellow',
        'ERROR': 'red',
        'CRITICAL': 'red,bg_white',
    }

    def __init__(
        self,
        level: str = "INFO",
        format_type: LogFormat = LogFormat.DETAILED,
        log_dir: Optional[Path] = None,
        enable_file_logging: bool = True,
        enable_console_logging: bool = True,
        max_bytes: int = 10 * 1024 * 1024,  # 10MB
        backup_count: int = 5
    ):
        """
        로깅 설정 초기화

        Args:
            level: 로그 레벨
            format_type: 로그 형식
            log_dir: 로그 파일 저장 디렉토리
            enable_file_logging: 파일 로깅 활성화 여부
            enable_console_logging: 콘솔 로깅 활성화 여부
            max_bytes: 로그 파일 최대 크기
            backup_count: 백업 파일 개수
        """
        self.level = self._parse_level(level)
        self.format_type = format_type
        self.log_dir = log_dir or Path("logs")
        self.enable_file_logging = enable_file_logging
        self.enable_console_logging = enable_console_logging
        self.max_bytes = max_bytes
        self.backup_count = backup_count

        if self.enable_file_logging:
            self.log_dir.mkdir(parents=True, exist_ok=True)

        self._configured_loggers = set()

    def _parse_level(self, level: str) -> int:
        """문자열 로그 레벨을 정수로 변환"""
        try:
            return LogLevel[level.upper()].value
        except KeyError:
            print(f"⚠️  알 수 없는 로그 레벨: {level}. INFO로 설정합니다.", file=sys.stderr)
            return LogLevel.INFO.value

    def _get_log_file_path(self, logger_name: str) -> Path:
        """
        로거 이름을 기반으로 로그 파일 경로 생성 (패키지별로 하나의 파일)

        Examples:
            infra.core.token_cipher -> logs/infra/core.log
            modules.oauth.oauth_service -> logs/modules/oauth.log
            modules.oauth.schedules.token_refresh_job -> logs/modules/oauth.log
            __main__ -> logs/__main__.log
        """
        parts = logger_name.split('.')

        if len(parts) >= 2 and parts[0] in ('infra', 'modules'):
            package_dir = self.log_dir / parts[0]
            package_dir.mkdir(parents=True, exist_ok=True)
            return package_dir / f"{parts[1]}.log"

        return self.log_dir / f"{logger_name.replace('.', '_')}.log"

    def get_formatter(self, format_type: Optional[LogFormat] = None) -> logging.Formatter:
        """로그 포매터 생성"""
        format_type = format_type or self.format_type

        if format_type == LogFormat.JSON:
            return StructuredFormatter()
        if format_type == LogFormat.COLORED:
            return colorlog.ColoredFormatter(
                self.FORMATS[LogFormat.COLORED],
                log_colors=self.LOG_COLORS
            )
        format_string = self.FORMATS.get(format_type, self.FORMATS[LogFormat.DETAILED])
        return logging.Formatter(format_string)

    def _build_console_handler(self, level: int, format_type: Optional[LogFormat]) -> logging.Handler:
        """TTY 이고 NO_COLOR 가 없을 때만 컬러 포맷을 사용하는 콘솔 핸들러"""
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(level)
        if sys.stderr.isatty() and not os.getenv('NO_COLOR'):
            handler.setFormatter(self.get_formatter(LogFormat.COLORED))
        else:
            handler.setFormatter(self.get_formatter(format_type))
        return handler

    def _build_file_handler(self, log_file: Path, level: int, format_type: Optional[LogFormat]) -> logging.Handler:
        handler = RotatingFileHandler(
            log_file,
            maxBytes=self.max_bytes,
            backupCount=self.backup_count,
            encoding='utf-8'
        )
        handler.setLevel(level)
        handler.setFormatter(self.get_formatter(format_type))
        return handler

    def configure_logger(
        self,
        logger_name: str,
        level: Optional[str] = None,
        format_type: Optional[LogFormat] = None,
        propagate: bool = True
    ) -> logging.Logger:
        """
        특정 로거 설정

        패키지 로그 파일 핸들러만 붙이고, 콘솔 출력은 루트 로거로 전파합니다.

        Args:
            logger_name: 로거 이름
            level: 로그 레벨 (None이면 기본값 사용)
            format_type: 로그 형식 (None이면 기본값 사용)
            propagate: 상위 로거로 전파 여부

        Returns:
            설정된 로거
        """
        logger = logging.getLogger(logger_name)

        if logger_name in self._configured_loggers:
            return logger

        log_level = self._parse_level(level) if level else self.level
        logger.setLevel(log_level)
        logger.propagate = propagate
        logger.handlers.clear()

        if self.enable_file_logging:
            log_file = self._get_log_file_path(logger_name)
            logger.addHandler(self._build_file_handler(log_file, log_level, format_type))

        self._configured_loggers.add(logger_name)
        return logger

    def configure_root_logger(self) -> None:
        """루트 로거 설정"""
        root_logger = logging.getLogger()
        root_logger.setLevel(self.level)
        root_logger.handlers.clear()

        if self.enable_console_logging:
            root_logger.addHandler(self._build_console_handler(self.level, LogFormat.DETAILED))

        if self.enable_file_logging:
            root_logger.addHandler(
                self._build_file_handler(self.log_dir / "app.log", self.level, None)
            )

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        """환경변수에서 로깅 설정 생성"""
        level = os.getenv("LOG_LEVEL", "INFO")
        log_format = os.getenv("LOG_FORMAT", "detailed")
        log_dir = os.getenv("LOG_DIR", "logs")
        enable_file = os.getenv("ENABLE_FILE_LOGGING", "true").lower() == "true"
        enable_console = os.getenv("ENABLE_CONSOLE_LOGGING", "true").lower() == "true"

        try:
            format_type = LogFormat[log_format.upper()]
        except KeyError:
            format_type = LogFormat.DETAILED

        return cls(
            level=level,
            format_type=format_type,
            log_dir=Path(log_dir),
            enable_file_logging=enable_file,
            enable_console_logging=enable_console
        )


_logging_config: Optional[LoggingConfig] = None


def setup_logging(
    level: str = "INFO",
    format_type: LogFormat = LogFormat.DETAILED,
    log_dir: Optional[Path] = None,
    enable_file_logging: bool = True,
) -> LoggingConfig:
    """
    전역 로깅 설정 초기화 (엔트리포인트에서 호출)

    Returns:
        LoggingConfig: 로깅 설정 인스턴스
    """
    global _logging_config

    _logging_config = LoggingConfig(
        level=level,
        format_type=format_type,
        log_dir=log_dir,
        enable_file_logging=enable_file_logging,
    )
    _logging_config.configure_root_logger()

    return _logging_config


def get_logging_config() -> LoggingConfig:
    """현재 로깅 설정 반환"""
    global _logging_config

    if _logging_config is None:
        _logging_config = LoggingConfig.from_env()
        _logging_config.configure_root_logger()

    return _logging_config


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    설정된 로거 반환

    Args:
        name: 로거 이름
        level: 로그 레벨 (선택적)

    Returns:
        logging.Logger: 설정된 로거
    """
    return get_logging_config().configure_logger(name, level=level)
