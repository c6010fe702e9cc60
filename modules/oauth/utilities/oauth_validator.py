"""OAuth 요청 파라미터 검증 유틸리티"""

import re
from typing import Optional
from urllib.parse import urlparse

from infra.core import ValidationError
from infra.core.logger import get_logger

_STATE_PATTERN = re.compile(r"^[0-9a-f]{64}$")
_PROVIDER_PATTERN = re.compile(r"^[a-z][a-z0-9_-]{1,31}$")


class OAuthValidator:
    """OAuth 진입점 파라미터 검증"""

    def __init__(self):
        self.logger = get_logger(__name__)

    def validate_provider_name(self, provider: str) -> str:
        """
        프로바이더 이름을 검증하고 정리합니다.

        Args:
            provider: 원본 프로바이더 이름

        Returns:
            소문자로 정리된 이름

        Raises:
            ValidationError: 비었거나 허용되지 않는 문자가 포함된 경우
        """
        if not provider or not isinstance(provider, str):
            raise ValidationError("프로바이더 이름이 필요합니다", field="provider")

        sanitized = provider.strip().lower()
        if not _PROVIDER_PATTERN.match(sanitized):
            raise ValidationError(
                f"잘못된 프로바이더 이름: {provider}", field="provider", value=provider
            )
        return sanitized

    def validate_identifier(self, value: str, field: str) -> str:
        """
        조직/사용자 ID 검증

        Raises:
            ValidationError: 비어 있는 경우
        """
        if not value or not isinstance(value, str) or not value.strip():
            raise ValidationError(f"{field} 가 비어 있습니다", field=field)
        return value.strip()

    def validate_state_token(self, state: str) -> bool:
        """
        CSRF state 형식 검증 (64자리 소문자 hex)

        Args:
            state: 상태 토큰

        Returns:
            유효성 여부
        """
        if not state or not isinstance(state, str):
            return False
        return bool(_STATE_PATTERN.match(state))

    def validate_authorization_code(self, code: Optional[str]) -> str:
        """
        인가 코드 존재 여부 검증

        Raises:
            ValidationError: 코드가 없는 경우
        """
        if not code or not isinstance(code, str) or not code.strip():
            raise ValidationError("인가 코드가 없습니다", field="code")
        return code.strip()

    def validate_return_url(self, url: str) -> str:
        """
        인증 후 돌아갈 URL 검증 (http/https 절대 URL 만 허용)

        Raises:
            ValidationError: 형식이 잘못된 경우
        """
        parsed = urlparse(url or "")
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValidationError(
                f"잘못된 리다이렉트 URL: {url}", field="return_url", value=url
            )

        self.logger.debug(f"리다이렉트 URL 검증 완료: {parsed.scheme}://{parsed.netloc}{parsed.path}")
        return url
