"""
CloudLink 프로젝트의 로거 진입점

모듈에서는 `from infra.core.logger import get_logger` 로 로거를 얻습니다.
"""

import logging
from typing import Optional

from .logging_config import get_logging_config, get_logger as get_configured_logger


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    CloudLink 프로젝트용 로거를 반환합니다.

    Args:
        name: 로거 이름 (일반적으로 모듈명)
        level: 로그 레벨 (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        설정된 로거 인스턴스
    """
    return get_configured_logger(name, level)


def update_all_loggers_level(level: str) -> None:
    """
    루트 로거와 이미 만들어진 프로젝트 로거의 레벨을 한 번에 변경

    Args:
        level: 새로운 로그 레벨
    """
    config = get_logging_config()
    log_level = config._parse_level(level)
    config.level = log_level

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers:
        handler.setLevel(log_level)

    for name in list(logging.Logger.manager.loggerDict):
        if not name.startswith(("infra", "modules", "entrypoints")):
            continue
        logger = logging.getLogger(name)
        logger.setLevel(log_level)
        for handler in logger.handlers:
            handler.setLevel(log_level)
