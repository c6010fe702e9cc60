"""
환경변수 검증 시스템

환경변수를 체계적으로 검증하고 누락된 설정을 명확히 보고합니다.
ENCRYPTION_KEY 는 첫 사용 시점에 다시 검사되므로 여기서는 권장 항목으로만 다룹니다.
"""

import os
import sys
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from dotenv import load_dotenv


class EnvVarCategory(Enum):
    """환경변수 카테고리"""
    REQUIRED = "required"  # 필수 (애플리케이션 실행 불가)
    RECOMMENDED = "recommended"  # 권장 (기능 제한)
    OPTIONAL = "optional"  # 선택적


def _positive_int(value: str) -> bool:
    return value.isdigit() and int(value) > 0


def _is_url(value: str) -> bool:
    return value.startswith("http://") or value.startswith("https://")


class EnvVarDefinition:
    """환경변수 정의"""

    def __init__(
        self,
        name: str,
        category: EnvVarCategory,
        description: str,
        default: Optional[str] = None,
        validator: Optional[Callable[[str], bool]] = None,
        example: Optional[str] = None
    ):
        self.name = name
        self.category = category
        self.description = description
        self.default = default
        self.validator = validator
        self.example = example


class EnvValidator:
    """환경변수 검증 클래스"""

    ENV_DEFINITIONS = [
        # 필수 환경변수
        EnvVarDefinition(
            "DATABASE_PATH",
            EnvVarCategory.REQUIRED,
            "SQLite 데이터베이스 파일 경로",
            default="./data/cloudlink.db",
            example="./data/cloudlink.db"
        ),

        # 권장 환경변수
        EnvVarDefinition(
            "ENCRYPTION_KEY",
            EnvVarCategory.RECOMMENDED,
            "토큰 암호화 비밀값 (32자 이상)",
            validator=lambda x: len(x) >= 32,
            example="change-me-to-a-long-random-secret-value"
        ),
        EnvVarDefinition(
            "OAUTH_CALLBACK_URL",
            EnvVarCategory.RECOMMENDED,
            "프로바이더에 등록된 백엔드 OAuth 콜백 URL",
            default="http://localhost:8080/oauth/callback",
            validator=_is_url,
            example="https://api.example.com/oauth/callback"
        ),

        # 선택적 환경변수
        EnvVarDefinition(
            "OAUTH_DEFAULT_RETURN_URL",
            EnvVarCategory.OPTIONAL,
            "returnUrl 이 없을 때 사용할 프론트엔드 기본 리다이렉트 URL",
            default="http://localhost:3000/integrations",
            validator=_is_url,
            example="https://app.example.com/integrations"
        ),
        EnvVarDefinition(
            "LOG_LEVEL",
            EnvVarCategory.OPTIONAL,
            "로깅 레벨 (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
            default="INFO",
            validator=lambda x: x.upper() in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            example="INFO"
        ),
        EnvVarDefinition(
            "ENVIRONMENT",
            EnvVarCategory.OPTIONAL,
            "실행 환경 (development, test, staging, production)",
            default="development",
            validator=lambda x: x.lower() in ["development", "test", "staging", "production"],
            example="development"
        ),
        EnvVarDefinition(
            "HTTP_TIMEOUT",
            EnvVarCategory.OPTIONAL,
            "프로바이더 HTTP 요청 타임아웃 (초)",
            default="30",
            validator=_positive_int,
            example="30"
        ),
        EnvVarDefinition(
            "OAUTH_STATE_TTL_MINUTES",
            EnvVarCategory.OPTIONAL,
            "OAuth state 유효 시간 (분)",
            default="60",
            validator=_positive_int,
            example="60"
        ),
        EnvVarDefinition(
            "TOKEN_REFRESH_WINDOW_MINUTES",
            EnvVarCategory.OPTIONAL,
            "만료 몇 분 전부터 토큰을 갱신할지",
            default="30",
            validator=_positive_int,
            example="30"
        ),
        EnvVarDefinition(
            "TOKEN_REFRESH_INTERVAL_HOURS",
            EnvVarCategory.OPTIONAL,
            "토큰 갱신 작업 주기 (시간)",
            default="1",
            validator=_positive_int,
            example="1"
        ),
        EnvVarDefinition(
            "STATE_CLEANUP_INTERVAL_HOURS",
            EnvVarCategory.OPTIONAL,
            "만료 state 정리 작업 주기 (시간)",
            default="24",
            validator=_positive_int,
            example="24"
        ),
        EnvVarDefinition(
            "MAX_REFRESH_FAILURES",
            EnvVarCategory.OPTIONAL,
            "연결을 비활성화하기 전 허용하는 연속 갱신 실패 횟수",
            default="15",
            validator=_positive_int,
            example="15"
        ),
    ]

    def __init__(self):
        """환경변수 검증기 초기화"""
        self.errors: List[str] = []
        self.warnings: List[str] = []
        self.info: List[str] = []
        self._load_env_file()

    def _load_env_file(self) -> None:
        """환경변수 파일 로드"""
        project_root = Path(__file__).parent.parent.parent
        env_file = project_root / ".env"

        if env_file.exists():
            load_dotenv(env_file)
            self.info.append(f"✅ .env 파일 로드 완료: {env_file}")
        else:
            self.warnings.append(f"⚠️  .env 파일을 찾을 수 없습니다: {env_file}")

    def validate(self) -> Tuple[bool, Dict[str, List[str]]]:
        """
        환경변수 검증 수행

        Returns:
            Tuple[bool, Dict]: (성공 여부, 검증 결과 딕셔너리)
        """
        required_missing = []
        recommended_missing = []
        validation_errors = []

        for env_def in self.ENV_DEFINITIONS:
            value = os.getenv(env_def.name, env_def.default)

            if not value:
                if env_def.category == EnvVarCategory.REQUIRED:
                    required_missing.append(env_def)
                elif env_def.category == EnvVarCategory.RECOMMENDED:
                    recommended_missing.append(env_def)
                continue

            if env_def.validator and not env_def.validator(value):
                validation_errors.append(f"❌ {env_def.name}: 유효하지 않은 값")

        if required_missing:
            self.errors.append("\n🚨 필수 환경변수 누락:")
            for env_def in required_missing:
                self.errors.append(f"  • {env_def.name}")
                self.errors.append(f"    설명: {env_def.description}")
                if env_def.example:
                    self.errors.append(f"    예시: {env_def.name}={env_def.example}")

        if recommended_missing:
            self.warnings.append("\n⚠️  권장 환경변수 누락 (일부 기능 제한):")
            for env_def in recommended_missing:
                self.warnings.append(f"  • {env_def.name}")
                self.warnings.append(f"    설명: {env_def.description}")

        if validation_errors:
            self.errors.extend(validation_errors)

        success = len(self.errors) == 0

        total_vars = len(self.ENV_DEFINITIONS)
        configured_vars = sum(
            1 for env_def in self.ENV_DEFINITIONS
            if os.getenv(env_def.name, env_def.default)
        )
        self.info.append(f"\n📊 환경변수 설정 상태: {configured_vars}/{total_vars}")

        return success, {
            "errors": self.errors,
            "warnings": self.warnings,
            "info": self.info,
            "required_missing": [e.name for e in required_missing],
            "recommended_missing": [e.name for e in recommended_missing]
        }

    def print_report(self, file=sys.stdout):
        """검증 결과를 출력"""
        print("\n" + "=" * 60, file=file)
        print("🔍 환경변수 검증 보고서", file=file)
        print("=" * 60, file=file)

        for msg in self.info:
            print(msg, file=file)

        if self.warnings:
            print("\n⚠️  경고:", file=file)
            for msg in self.warnings:
                print(msg, file=file)

        if self.errors:
            print("\n❌ 오류:", file=file)
            for msg in self.errors:
                print(msg, file=file)

        print("\n" + "=" * 60, file=file)
        if not self.errors:
            print("✅ 환경변수 검증 성공!", file=file)
        else:
            print("❌ 환경변수 검증 실패! 위의 오류를 해결해주세요.", file=file)
        print("=" * 60 + "\n", file=file)
