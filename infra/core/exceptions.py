"""
CloudLink 프로젝트의 표준 예외 클래스 정의

프로젝트 전반에서 사용할 구조화된 예외 계층을 제공합니다.
모든 사용자 정의 예외는 CloudLinkError를 상속받습니다.
"""

from typing import Optional, Dict, Any


class CloudLinkError(Exception):
    """CloudLink 프로젝트의 최상위 예외 클래스"""

    # 호출자에게 그대로 보여줘도 되는 오류인지 여부
    is_client_error = False

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """예외 정보를 딕셔너리로 반환"""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }


class DatabaseError(CloudLinkError):
    """데이터베이스 관련 오류"""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        table: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.get("details") or {}
        if operation:
            details["operation"] = operation
        if table:
            details["table"] = table

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", "DB_ERROR"),
            details=details,
        )


class ConfigurationError(CloudLinkError):
    """설정 관련 오류"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.get("details") or {}
        if config_key:
            details["config_key"] = config_key

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", "CONFIG_ERROR"),
            details=details,
        )


class ValidationError(CloudLinkError):
    """데이터 검증 오류"""

    is_client_error = True

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs
    ):
        details = kwargs.get("details") or {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", "VALIDATION_ERROR"),
            details=details,
        )


class ProviderNotFoundError(ValidationError):
    """레지스트리에 등록되지 않은 프로바이더"""

    def __init__(self, provider: str, **kwargs):
        super().__init__(
            message=f"알 수 없는 프로바이더입니다: {provider}",
            field="provider",
            value=provider,
            error_code=kwargs.get("error_code", "PROVIDER_NOT_FOUND"),
        )
        self.provider = provider


class UnsupportedProviderError(ValidationError):
    """OAuth 2.0을 지원하지 않는 프로바이더"""

    def __init__(self, provider: str, **kwargs):
        super().__init__(
            message=f"OAuth를 지원하지 않는 프로바이더입니다: {provider}",
            field="provider",
            value=provider,
            error_code=kwargs.get("error_code", "PROVIDER_NOT_OAUTH"),
        )
        self.provider = provider


class OAuthStateError(CloudLinkError):
    """OAuth state 관련 오류"""

    is_client_error = True

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", "OAUTH_STATE_ERROR"),
            details=kwargs.get("details"),
        )


class StateNotFoundError(OAuthStateError):
    """존재하지 않거나 이미 사용된 state"""

    def __init__(self, message: str = "유효하지 않거나 이미 사용된 OAuth state입니다", **kwargs):
        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", "STATE_NOT_FOUND"),
            details=kwargs.get("details"),
        )


class StateExpiredError(OAuthStateError):
    """만료된 state"""

    def __init__(self, message: str = "OAuth state가 만료되었습니다", **kwargs):
        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", "STATE_EXPIRED"),
            details=kwargs.get("details"),
        )


class OAuthCallbackError(CloudLinkError):
    """
    state 소비 이후 콜백 처리 실패

    state 는 이미 삭제되었으므로 오류 리다이렉트에 필요한
    복귀 URL 과 프로바이더를 함께 전달합니다. 원인은 __cause__ 로 연결됩니다.
    """

    def __init__(self, message: str, provider: str, redirect_url: str, **kwargs):
        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", "OAUTH_CALLBACK_FAILED"),
            details={"provider": provider},
        )
        self.provider = provider
        self.redirect_url = redirect_url


class DecryptionError(CloudLinkError):
    """토큰 복호화 실패 (형식 오류 또는 변조)"""

    def __init__(self, message: str = "토큰 복호화에 실패했습니다", **kwargs):
        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", "DECRYPTION_ERROR"),
            details=kwargs.get("details"),
        )


class BusinessLogicError(CloudLinkError):
    """비즈니스 로직 관련 오류"""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.get("details") or {}
        if operation:
            details["operation"] = operation

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", "BUSINESS_LOGIC_ERROR"),
            details=details,
        )


class ConnectionNotFoundError(BusinessLogicError):
    """조직/프로바이더 조합의 연결이 없음"""

    is_client_error = True

    def __init__(self, organization_id: str, provider: str, **kwargs):
        super().__init__(
            message=f"{provider} 연결을 찾을 수 없습니다",
            operation=kwargs.get("operation"),
            error_code=kwargs.get("error_code", "CONNECTION_NOT_FOUND"),
            details={"organization_id": organization_id, "provider": provider},
        )


class NoRefreshTokenError(BusinessLogicError):
    """저장된 리프레시 토큰이 없음"""

    is_client_error = True

    def __init__(self, organization_id: str, provider: str, **kwargs):
        super().__init__(
            message=f"{provider} 연결에 리프레시 토큰이 없습니다. 다시 연결해 주세요",
            operation=kwargs.get("operation", "refresh"),
            error_code=kwargs.get("error_code", "NO_REFRESH_TOKEN"),
            details={"organization_id": organization_id, "provider": provider},
        )


class APIConnectionError(CloudLinkError):
    """외부 API 연결 오류"""

    def __init__(
        self,
        message: str,
        api_endpoint: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs
    ):
        details = kwargs.get("details") or {}
        if api_endpoint:
            details["api_endpoint"] = api_endpoint
        if status_code:
            details["status_code"] = status_code

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", "API_CONNECTION_ERROR"),
            details=details,
        )
        self.status_code = status_code


class ProviderError(APIConnectionError):
    """
    외부 OAuth 프로바이더 호출 실패

    provider_code 에는 프로바이더가 돌려준 기계 판독용 코드
    (invalid_grant, token_revoked 등) 또는 network_error / timeout 이 들어갑니다.
    """

    NETWORK_CODES = frozenset({"network_error", "timeout"})

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        provider_code: Optional[str] = None,
        status_code: Optional[int] = None,
        api_endpoint: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.get("details") or {}
        if provider:
            details["provider"] = provider
        if provider_code:
            details["provider_code"] = provider_code

        super().__init__(
            message=message,
            api_endpoint=api_endpoint,
            status_code=status_code,
            error_code=kwargs.get("error_code", "PROVIDER_ERROR"),
            details=details,
        )
        self.provider = provider
        self.provider_code = provider_code

    @property
    def is_network_error(self) -> bool:
        """네트워크 계층 실패 여부"""
        return self.provider_code in self.NETWORK_CODES


def error_message(error: BaseException) -> str:
    """저장/표시용 오류 메시지 (CloudLinkError 는 error_code 접두어 없이)"""
    if isinstance(error, CloudLinkError):
        return error.message
    return str(error)
