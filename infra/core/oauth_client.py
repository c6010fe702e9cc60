"""
CloudLink 프로젝트의 프로바이더 HTTP 클라이언트

OAuth 프로바이더(Google, Box, Dropbox, Slack) 호출에 쓰는 비동기 HTTP 클라이언트입니다.
모든 네트워크/HTTP 오류는 경계에서 ProviderError 로 변환되어
호출자는 provider_code / status_code 로 실패를 구분할 수 있습니다.
"""

import asyncio
import json
from functools import lru_cache
from typing import Any, Dict, Optional

import aiohttp

from .config import get_config
from .exceptions import ProviderError
from .logger import get_logger

logger = get_logger(__name__)


def extract_error_code(body: Any) -> Optional[str]:
    """
    응답 본문에서 기계 판독용 오류 코드를 추출

    - {"error": "invalid_grant"}  (RFC 6749)
    - {"error": {".tag": "invalid_access_token"}}  (Dropbox)
    - {"ok": false, "error": "token_revoked"}  (Slack)
    """
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if isinstance(error, str):
        return error
    if isinstance(error, dict):
        tag = error.get(".tag")
        if isinstance(tag, str):
            return tag
    return None


def extract_error_message(body: Any, default: str) -> str:
    """응답 본문에서 사람이 읽을 수 있는 오류 설명을 추출"""
    if isinstance(body, dict):
        for key in ("error_description", "error_summary", "message"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
        code = extract_error_code(body)
        if code:
            return code
    elif isinstance(body, str) and body:
        return body[:200]
    return default


class OAuthHttpClient:
    """OAuth 프로바이더 호출용 aiohttp 클라이언트"""

    def __init__(self, timeout: Optional[int] = None):
        """
        Args:
            timeout: 요청 전체 타임아웃(초), None이면 설정값 사용
        """
        self._timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """HTTP 세션을 반환 (레이지 초기화)"""
        if self._session is None or self._session.closed:
            total = self._timeout or get_config().http_timeout
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=total),
                headers={
                    "User-Agent": "CloudLink/1.0",
                    "Accept": "application/json",
                },
            )
        return self._session

    async def request(
        self,
        method: str,
        url: str,
        provider: str,
        *,
        data: Optional[Dict[str, Any]] = None,
        json_body: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        auth: Optional[aiohttp.BasicAuth] = None,
    ) -> Any:
        """
        프로바이더 API 를 호출하고 응답 본문을 반환

        Args:
            method: HTTP 메서드
            url: 요청 URL
            provider: 오류 보고용 프로바이더 이름
            data: form-urlencoded 본문
            json_body: JSON 본문
            params: 쿼리 파라미터
            headers: 추가 헤더
            auth: HTTP Basic 인증

        Returns:
            JSON 응답이면 dict/list, 아니면 문자열 (빈 응답은 {})

        Raises:
            ProviderError: 2xx 가 아닌 응답, 네트워크 오류, 타임아웃
        """
        session = await self._get_session()

        try:
            async with session.request(
                method,
                url,
                data=data,
                json=json_body,
                params=params,
                headers=headers,
                auth=auth,
            ) as response:
                text = await response.text()
                body = self._parse_body(text)

                if response.status >= 400:
                    code = extract_error_code(body)
                    message = extract_error_message(body, f"HTTP {response.status}")
                    logger.warning(
                        f"⚠️ {provider} API 오류: {method} {url} -> {response.status} ({code or message})"
                    )
                    raise ProviderError(
                        f"{provider} 요청 실패: {message}",
                        provider=provider,
                        provider_code=code,
                        status_code=response.status,
                        api_endpoint=url,
                    )

                return body

        except asyncio.TimeoutError as e:
            raise ProviderError(
                f"{provider} 요청 시간 초과",
                provider=provider,
                provider_code="timeout",
                api_endpoint=url,
            ) from e
        except aiohttp.ClientError as e:
            raise ProviderError(
                f"{provider} 요청 중 네트워크 오류: {str(e)}",
                provider=provider,
                provider_code="network_error",
                api_endpoint=url,
            ) from e

    @staticmethod
    def _parse_body(text: str) -> Any:
        """JSON 이면 파싱, 아니면 원문 (일부 프로바이더는 content-type 을 정확히 주지 않음)"""
        if not text:
            return {}
        try:
            return json.loads(text)
        except ValueError:
            return text

    async def post_form(self, url: str, provider: str, data: Dict[str, Any], **kwargs) -> Any:
        """application/x-www-form-urlencoded POST"""
        return await self.request("POST", url, provider, data=data, **kwargs)

    async def post_json(self, url: str, provider: str, json_body: Any = None, **kwargs) -> Any:
        """JSON POST"""
        return await self.request("POST", url, provider, json_body=json_body, **kwargs)

    async def get_json(self, url: str, provider: str, **kwargs) -> Any:
        """GET"""
        return await self.request("GET", url, provider, **kwargs)

    async def close(self) -> None:
        """HTTP 세션 종료"""
        if self._session and not self._session.closed:
            await self._session.close()
            logger.debug("프로바이더 HTTP 세션 종료")
        self._session = None


@lru_cache(maxsize=1)
def get_oauth_http_client() -> OAuthHttpClient:
    """
    프로바이더 HTTP 클라이언트 싱글톤 반환

    Returns:
        OAuthHttpClient: HTTP 클라이언트 인스턴스
    """
    return OAuthHttpClient()
