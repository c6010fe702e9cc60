"""
OAuth 진입점 함수

외부 HTTP 계층(클라이언트 API, 백엔드 콜백 라우트)이 호출하는 함수들입니다.
인증/권한 확인은 호출자 책임이며, 여기서는 파라미터 검증과
오류를 사용자용 결과(리다이렉트 URL 또는 success/message)로 바꾸는 일만 합니다.
"""

from typing import Any, Dict, Optional

from infra.core import (
    CloudLinkError,
    ConfigurationError,
    ConnectionNotFoundError,
    NoRefreshTokenError,
    OAuthCallbackError,
    ProviderError,
    StateExpiredError,
    StateNotFoundError,
    ValidationError,
    get_logger,
)
from infra.utils.datetime_utils import to_iso

from .oauth_schema import RefreshFailureKind
from .oauth_service import UnifiedOAuthService, get_oauth_service
from .refresh_classifier import RefreshErrorClassifier
from .utilities.oauth_url_parser import build_error_redirect
from .utilities.oauth_validator import OAuthValidator

logger = get_logger(__name__)

_validator = OAuthValidator()


def callback_error_param(error: BaseException) -> str:
    """콜백 실패 예외를 oauth_error 값으로 변환"""
    if isinstance(error, StateExpiredError):
        return "session_expired"
    if isinstance(error, StateNotFoundError):
        return "invalid_state"

    cause = error.__cause__ if isinstance(error, OAuthCallbackError) else error
    if isinstance(cause, ConfigurationError):
        return "configuration_error"
    if isinstance(cause, ProviderError) and cause.provider_code == "redirect_uri_mismatch":
        return "redirect_uri_mismatch"
    if isinstance(cause, ProviderError) and cause.provider_code == "invalid_grant":
        return "invalid_code"
    return "callback_failed"


async def initiate_oauth(
    provider: str,
    organization_id: str,
    user_id: str,
    return_url: Optional[str] = None,
    service: Optional[UnifiedOAuthService] = None,
) -> Dict[str, Any]:
    """
    OAuth 흐름 시작

    Returns:
        {"auth_url": ..., "state": ...}

    Raises:
        ValidationError: 잘못된 파라미터 또는 프로바이더
        ConfigurationError: 자격증명/암호화 키 미설정
    """
    provider = _validator.validate_provider_name(provider)
    organization_id = _validator.validate_identifier(organization_id, "organization_id")
    user_id = _validator.validate_identifier(user_id, "user_id")
    if return_url:
        _validator.validate_return_url(return_url)

    service = service or get_oauth_service()
    result = await service.initiate_oauth(provider, organization_id, user_id, return_url)
    return result.model_dump()


async def handle_oauth_callback(
    code: Optional[str],
    state: Optional[str],
    error: Optional[str] = None,
    service: Optional[UnifiedOAuthService] = None,
) -> Dict[str, Any]:
    """
    프로바이더 콜백 처리

    실패도 예외 대신 oauth_error 가 붙은 리다이렉트 URL 로 돌려줍니다.

    Args:
        code: 인가 코드
        state: state 파라미터
        error: 프로바이더가 전달한 오류 (사용자 거부 등)

    Returns:
        {"success": bool, "redirect_url": str}
    """
    service = service or get_oauth_service()

    if error:
        logger.warning(f"⚠️ 프로바이더가 오류를 반환: {error}")
        return {"success": False, "redirect_url": service.build_error_redirect(state, error)}

    if not state:
        logger.warning(f"⚠️ 콜백 파라미터 누락: code={bool(code)}, state=False")
        return {"success": False, "redirect_url": service.build_error_redirect(None, "missing_parameters")}

    if not _validator.validate_state_token(state):
        # 형식이 틀린 state 는 저장소 조회 없이 거부
        logger.warning("⚠️ 잘못된 형식의 state")
        return {"success": False, "redirect_url": service.build_error_redirect(None, "invalid_state")}

    try:
        code = _validator.validate_authorization_code(code)
    except ValidationError:
        logger.warning("⚠️ 콜백 파라미터 누락: code=False, state=True")
        return {
            "success": False,
            "redirect_url": service.build_error_redirect(state, "missing_parameters"),
        }

    try:
        result = await service.handle_callback(code, state)
        return {"success": True, "redirect_url": result.redirect_url, "provider": result.provider}

    except OAuthCallbackError as e:
        return {
            "success": False,
            "redirect_url": build_error_redirect(e.redirect_url, callback_error_param(e), e.provider),
        }
    except CloudLinkError as e:
        logger.warning(f"⚠️ OAuth 콜백 거부: {e.error_code} - {e.message}")
        return {
            "success": False,
            "redirect_url": service.build_error_redirect(state, callback_error_param(e)),
        }


def _failure(message: str, error: CloudLinkError) -> Dict[str, Any]:
    return {"success": False, "message": message, "error_code": error.error_code}


async def refresh_oauth_token(
    organization_id: str,
    provider: str,
    service: Optional[UnifiedOAuthService] = None,
) -> Dict[str, Any]:
    """
    수동 토큰 갱신

    Returns:
        {"success": True, "token_expires_at": ...} 또는 {"success": False, "message": ...}
    """
    service = service or get_oauth_service()

    try:
        provider = _validator.validate_provider_name(provider)
        organization_id = _validator.validate_identifier(organization_id, "organization_id")
        connection = await service.refresh_connection(organization_id, provider)

    except ValidationError as e:
        return _failure(e.message, e)
    except ConnectionNotFoundError as e:
        return _failure("OAuth 연결을 찾을 수 없습니다. 다시 연결해 주세요", e)
    except NoRefreshTokenError as e:
        return _failure("리프레시 토큰이 없습니다. 다시 연결해 주세요", e)
    except ProviderError as e:
        if RefreshErrorClassifier.classify(e) == RefreshFailureKind.PERMANENT:
            return _failure("리프레시 토큰이 만료되었거나 폐기되었습니다. 다시 연결해 주세요", e)
        return _failure(f"토큰 갱신 실패: {e.message}", e)
    except CloudLinkError as e:
        logger.error(f"❌ 토큰 갱신 실패: provider={provider}, org={organization_id} - {e.message}")
        return _failure(f"토큰 갱신 실패: {e.message}", e)

    expires_at = connection.token_expires_at if connection else None
    return {"success": True, "token_expires_at": to_iso(expires_at) if expires_at else None}


async def revoke_oauth_connection(
    organization_id: str,
    provider: str,
    service: Optional[UnifiedOAuthService] = None,
) -> Dict[str, Any]:
    """
    연결 해제

    Returns:
        {"success": True, "remote_revoked": bool} 또는 {"success": False, "message": ...}
    """
    service = service or get_oauth_service()

    try:
        provider = _validator.validate_provider_name(provider)
        organization_id = _validator.validate_identifier(organization_id, "organization_id")
        remote_revoked = await service.revoke_connection(organization_id, provider)

    except ValidationError as e:
        return _failure(e.message, e)
    except ConnectionNotFoundError as e:
        return _failure("OAuth 연결을 찾을 수 없습니다", e)
    except CloudLinkError as e:
        logger.error(f"❌ 연결 해제 실패: provider={provider}, org={organization_id} - {e.message}")
        return _failure(f"연결 해제 실패: {e.message}", e)

    return {"success": True, "remote_revoked": remote_revoked}


async def update_oauth_account_info(
    organization_id: str,
    provider: str,
    service: Optional[UnifiedOAuthService] = None,
) -> Dict[str, Any]:
    """
    연결 계정 정보 재조회

    Returns:
        {"success": True, "account_info": {...}} 또는 {"success": False, "message": ...}
    """
    service = service or get_oauth_service()

    try:
        provider = _validator.validate_provider_name(provider)
        organization_id = _validator.validate_identifier(organization_id, "organization_id")
        account = await service.update_account_info(organization_id, provider)

    except ConnectionNotFoundError as e:
        return _failure("OAuth 연결을 찾을 수 없습니다", e)
    except CloudLinkError as e:
        return _failure(f"계정 정보 조회 실패: {e.message}", e)

    return {"success": True, "account_info": account.model_dump()}


def list_oauth_providers(service: Optional[UnifiedOAuthService] = None) -> Dict[str, Any]:
    """등록된 프로바이더 목록"""
    service = service or get_oauth_service()
    return {
        "providers": [summary.model_dump(mode="json") for summary in service.list_available_providers()]
    }
