"""
토큰 갱신 실패 분류

ProviderError 의 provider_code / status_code 를 먼저 보고,
구조화된 정보가 없으면 오류 메시지 문자열로 판단합니다.
"""

from typing import Optional

from infra.core import ProviderError

from .oauth_schema import RefreshFailureKind

PERMANENT_ERROR_CODES = {
    "invalid_grant",
    "invalid_client",
    "unauthorized_client",
    "token_revoked",
    "invalid_access_token",
    "account_inactive",
}

TRANSIENT_ERROR_CODES = {"temporarily_unavailable", "server_error"}

TRANSIENT_STATUS_CODES = {500, 502, 503, 504}

PERMANENT_MESSAGE_MARKERS = (
    "invalid_grant",
    "invalid_client",
    "unauthorized_client",
    "token_revoked",
    "token has been expired or revoked",
    "refresh token is invalid or revoked",
    "usage limit",
    "usage_limit",
)

TRANSIENT_MESSAGE_MARKERS = (
    "timeout",
    "timed out",
    "etimedout",
    "enotfound",
    "econnreset",
    "connection reset",
    "econnrefused",
    "socket hang up",
    "network",
    "500",
    "502",
    "503",
    "504",
    "internal server error",
    "bad gateway",
    "service unavailable",
    "gateway timeout",
)


class RefreshErrorClassifier:
    """갱신 실패를 일시/영구/미분류로 구분"""

    @staticmethod
    def classify_code(provider_code: Optional[str], status_code: Optional[int]) -> Optional[RefreshFailureKind]:
        """구조화된 오류 정보로 분류, 판단할 수 없으면 None"""
        if provider_code in PERMANENT_ERROR_CODES:
            return RefreshFailureKind.PERMANENT
        if provider_code in TRANSIENT_ERROR_CODES:
            return RefreshFailureKind.TRANSIENT
        if status_code in TRANSIENT_STATUS_CODES:
            return RefreshFailureKind.TRANSIENT
        return None

    @staticmethod
    def classify_message(message: str) -> RefreshFailureKind:
        """오류 메시지 문자열로 분류"""
        lowered = (message or "").lower()
        if any(marker in lowered for marker in PERMANENT_MESSAGE_MARKERS):
            return RefreshFailureKind.PERMANENT
        if any(marker in lowered for marker in TRANSIENT_MESSAGE_MARKERS):
            return RefreshFailureKind.TRANSIENT
        return RefreshFailureKind.UNCLASSIFIED

    @classmethod
    def classify(cls, error: BaseException) -> RefreshFailureKind:
        """
        갱신 중 발생한 예외 분류

        Args:
            error: refresh_connection 에서 발생한 예외

        Returns:
            RefreshFailureKind
        """
        if isinstance(error, ProviderError):
            if error.is_network_error:
                return RefreshFailureKind.TRANSIENT
            kind = cls.classify_code(error.provider_code, error.status_code)
            if kind is not None:
                return kind
            return cls.classify_message(error.message)

        return cls.classify_message(str(error))
