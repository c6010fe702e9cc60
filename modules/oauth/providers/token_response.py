"""표준 OAuth 2.0 토큰 응답 파싱"""

from typing import Any, Dict, List, Optional

from infra.core import ProviderError
from infra.utils.datetime_utils import expires_in_to_datetime

from ..oauth_schema import AccountInfo, TokenSet


def parse_token_response(
    provider: str,
    data: Any,
    fallback_scopes: List[str],
    scope_separator: str = " ",
    account_info: Optional[AccountInfo] = None,
) -> TokenSet:
    """
    토큰 엔드포인트 응답을 TokenSet 으로 변환

    Raises:
        ProviderError: 응답에 access_token 이 없는 경우
    """
    if not isinstance(data, dict) or not data.get("access_token"):
        raise ProviderError(
            f"{provider} 토큰 응답에 access_token 이 없습니다",
            provider=provider,
            provider_code="invalid_token_response",
        )

    scope = data.get("scope")
    scopes = [s for s in scope.split(scope_separator) if s] if isinstance(scope, str) else []

    return TokenSet(
        access_token=data["access_token"],
        refresh_token=data.get("refresh_token"),
        expires_at=expires_in_to_datetime(data.get("expires_in")),
        scopes=scopes or list(fallback_scopes),
        account_info=account_info or AccountInfo(),
    )


def client_form(client_id: str, client_secret: str, **fields: str) -> Dict[str, str]:
    """client_id/client_secret 을 포함한 form 본문"""
    return {"client_id": client_id, "client_secret": client_secret, **fields}


def bearer(access_token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {access_token}"}
