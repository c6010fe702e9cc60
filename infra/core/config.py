"""
CloudLink 프로젝트의 설정 관리 시스템

환경 변수(.env)를 안전하게 로드하고 관리하는 설정 클래스를 제공합니다.
레이지 싱글톤 패턴으로 구현되어 어디서든 동일한 설정 객체를 참조할 수 있습니다.
"""

import os
import sys
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional

from dotenv import load_dotenv

from .env_validator import EnvValidator
from .exceptions import ConfigurationError
from .logging_config import get_logger


logger = get_logger(__name__)

MIN_ENCRYPTION_KEY_LENGTH = 32


class Config:
    """애플리케이션 설정을 관리하는 클래스"""

    def __init__(self):
        """설정 초기화 및 환경 변수 로드"""
        self._load_environment()
        self._validate_environment()

    def _load_environment(self) -> None:
        """환경 변수 파일(.env)을 로드"""
        project_root = Path(__file__).parent.parent.parent
        env_file = project_root / ".env"

        if env_file.exists():
            load_dotenv(env_file)
            logger.debug(f"✅ .env 파일 로드 완료: {env_file}")
        else:
            logger.debug(f".env 파일 없음, 프로세스 환경변수만 사용: {env_file}")

    def _validate_environment(self) -> None:
        """환경변수 검증 (누락된 권장 항목은 경고만)"""
        validator = EnvValidator()
        success, result = validator.validate()

        if not success:
            logger.error("❌ 환경변수 검증 실패")
            validator.print_report(sys.stderr)

            if result.get("required_missing"):
                raise ConfigurationError(
                    f"필수 설정값이 누락되었습니다: {', '.join(result['required_missing'])}",
                    details={"missing_settings": result["required_missing"]},
                )
        elif result.get("recommended_missing"):
            logger.warning(
                f"⚠️ 권장 환경변수 누락 (일부 기능 제한): {', '.join(result['recommended_missing'])}"
            )

    # 데이터베이스 설정
    @property
    def database_path(self) -> str:
        """SQLite 데이터베이스 파일 경로"""
        path = os.getenv("DATABASE_PATH", "./data/cloudlink.db")
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        return path

    # 로깅 설정
    @property
    def log_level(self) -> str:
        """로그 레벨"""
        return os.getenv("LOG_LEVEL", "INFO").upper()

    @property
    def environment(self) -> str:
        """실행 환경 (development, test, production)"""
        return os.getenv("ENVIRONMENT", "development").lower()

    # 암호화 설정
    @property
    def encryption_key(self) -> str:
        """
        토큰 암호화 비밀값

        첫 사용 시점에 읽으며, 없거나 너무 짧으면 ConfigurationError 를 발생시킵니다.
        """
        key = os.getenv("ENCRYPTION_KEY")
        if not key:
            raise ConfigurationError(
                "ENCRYPTION_KEY가 설정되지 않았습니다", config_key="ENCRYPTION_KEY"
            )
        if len(key) < MIN_ENCRYPTION_KEY_LENGTH:
            raise ConfigurationError(
                f"ENCRYPTION_KEY는 최소 {MIN_ENCRYPTION_KEY_LENGTH}자 이상이어야 합니다",
                config_key="ENCRYPTION_KEY",
            )
        return key

    # OAuth 설정
    @property
    def oauth_callback_url(self) -> str:
        """프로바이더에 등록된 고정 백엔드 콜백 URL"""
        return os.getenv("OAUTH_CALLBACK_URL", "http://localhost:8080/oauth/callback")

    @property
    def oauth_default_return_url(self) -> str:
        """returnUrl 이 없을 때 사용자를 돌려보낼 프론트엔드 URL"""
        return os.getenv(
            "OAUTH_DEFAULT_RETURN_URL", "http://localhost:3000/integrations"
        )

    @property
    def oauth_state_ttl_minutes(self) -> int:
        """OAuth state 유효 시간(분)"""
        return int(os.getenv("OAUTH_STATE_TTL_MINUTES", "60"))

    @property
    def state_lookup_attempts(self) -> int:
        """콜백에서 state 를 다시 조회하는 최대 횟수"""
        return int(os.getenv("OAUTH_STATE_LOOKUP_ATTEMPTS", "3"))

    @property
    def state_lookup_base_delay(self) -> float:
        """state 재조회 기본 지연(초), n번째 재시도는 n배"""
        return float(os.getenv("OAUTH_STATE_LOOKUP_DELAY", "0.5"))

    # 토큰 갱신 설정
    @property
    def token_refresh_window_minutes(self) -> int:
        """만료까지 남은 시간이 이 값 이하일 때만 갱신"""
        return int(os.getenv("TOKEN_REFRESH_WINDOW_MINUTES", "30"))

    @property
    def token_refresh_interval_hours(self) -> int:
        """토큰 갱신 작업 주기(시간)"""
        return int(os.getenv("TOKEN_REFRESH_INTERVAL_HOURS", "1"))

    @property
    def state_cleanup_interval_hours(self) -> int:
        """만료 state 정리 작업 주기(시간)"""
        return int(os.getenv("STATE_CLEANUP_INTERVAL_HOURS", "24"))

    @property
    def max_refresh_failures(self) -> int:
        """연속 갱신 실패 허용 한도"""
        return int(os.getenv("MAX_REFRESH_FAILURES", "15"))

    # 타임아웃 설정
    @property
    def http_timeout(self) -> int:
        """HTTP 요청 타임아웃(초)"""
        return int(os.getenv("HTTP_TIMEOUT", "30"))

    def get_provider_credentials(self, provider: str) -> Dict[str, Optional[str]]:
        """
        환경변수에 설정된 프로바이더 클라이언트 자격증명

        Args:
            provider: 프로바이더 이름 (예: google)

        Returns:
            {"client_id": ..., "client_secret": ...}
        """
        prefix = provider.upper()
        return {
            "client_id": os.getenv(f"{prefix}_CLIENT_ID"),
            "client_secret": os.getenv(f"{prefix}_CLIENT_SECRET"),
        }

    def get_setting(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """임의의 환경 변수 값을 가져오기"""
        return os.getenv(key, default)

    def is_encryption_configured(self) -> bool:
        """암호화 키가 사용 가능한 상태인지 확인"""
        key = os.getenv("ENCRYPTION_KEY")
        return bool(key) and len(key) >= MIN_ENCRYPTION_KEY_LENGTH

    def to_dict(self) -> dict:
        """설정을 딕셔너리로 반환 (민감한 정보 제외)"""
        return {
            "database_path": self.database_path,
            "log_level": self.log_level,
            "environment": self.environment,
            "oauth_callback_url": self.oauth_callback_url,
            "oauth_default_return_url": self.oauth_default_return_url,
            "oauth_state_ttl_minutes": self.oauth_state_ttl_minutes,
            "token_refresh_window_minutes": self.token_refresh_window_minutes,
            "token_refresh_interval_hours": self.token_refresh_interval_hours,
            "state_cleanup_interval_hours": self.state_cleanup_interval_hours,
            "max_refresh_failures": self.max_refresh_failures,
            "http_timeout": self.http_timeout,
            "encryption_configured": self.is_encryption_configured(),
        }


@lru_cache(maxsize=1)
def get_config() -> Config:
    """
    설정 인스턴스를 반환하는 레이지 싱글톤 함수

    Returns:
        Config: 설정 인스턴스
    """
    return Config()
