"""OAuth 리다이렉트 URL 조립 유틸리티"""

from typing import Dict
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

# 결과 표시용으로 붙이는 파라미터 (이전 흐름의 값은 제거 후 다시 붙임)
OAUTH_RESULT_PARAMS = ("oauth_success", "oauth_error", "provider")


def _with_result_params(url: str, params: Dict[str, str]) -> str:
    parsed = urlparse(url)
    query = [
        (key, value)
        for key, value in parse_qsl(parsed.query, keep_blank_values=True)
        if key not in OAUTH_RESULT_PARAMS
    ]
    query.extend(params.items())
    return urlunparse(parsed._replace(query=urlencode(query)))


def build_success_redirect(redirect_url: str, provider: str) -> str:
    """
    성공 리다이렉트 URL 생성

    Args:
        redirect_url: state 에 저장된 복귀 URL
        provider: 프로바이더 이름

    Returns:
        oauth_success=true&provider=<name> 이 붙은 URL
    """
    return _with_result_params(redirect_url, {"oauth_success": "true", "provider": provider})


def build_error_redirect(redirect_url: str, error: str, provider: str = "") -> str:
    """
    실패 리다이렉트 URL 생성

    Returns:
        oauth_error=<message> (및 provider) 가 붙은 URL
    """
    params = {"oauth_error": error}
    if provider:
        params["provider"] = provider
    return _with_result_params(redirect_url, params)

