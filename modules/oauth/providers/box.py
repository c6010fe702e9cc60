"""Box OAuth 2.0 프로바이더"""

from typing import List

from infra.core import ProviderError, get_logger

from ..oauth_schema import AccountInfo, TokenSet
from ..provider_registry import OAuthProvider
from .token_response import bearer, client_form, parse_token_response

logger = get_logger(__name__)

# Box 는 한 번에 하나의 스코프만 허용하며 root_readwrite 가 읽기 권한을 포함
BOX_SCOPE = "root_readwrite"


class BoxProvider(OAuthProvider):
    """Box OAuth 2.0 (리프레시 토큰은 갱신마다 교체됨)"""

    name = "box"
    display_name = "Box"

    authorization_endpoint = "https://account.box.com/api/oauth2/authorize"
    token_endpoint = "https://api.box.com/oauth2/token"
    revoke_endpoint = "https://api.box.com/oauth2/revoke"
    userinfo_endpoint = "https://api.box.com/2.0/users/me"

    @property
    def required_scopes(self) -> List[str]:
        return [BOX_SCOPE]

    def scope_param(self, scopes: List[str]) -> str:
        if scopes != [BOX_SCOPE]:
            logger.warning(f"⚠️ Box 는 단일 스코프만 지원합니다. {scopes} 대신 {BOX_SCOPE} 사용")
        return BOX_SCOPE

    async def _account_info_or_empty(self, access_token: str) -> AccountInfo:
        try:
            return await self.fetch_account_info(access_token)
        except ProviderError as e:
            logger.warning(f"⚠️ Box 사용자 정보 조회 실패: {e.message}")
            return AccountInfo()

    async def exchange_code(self, code: str, redirect_uri: str, organization_id: str) -> TokenSet:
        credentials = await self.get_credentials(organization_id)
        data = await self.http.post_form(
            self.token_endpoint,
            self.name,
            client_form(
                credentials.client_id,
                credentials.client_secret,
                code=code,
                redirect_uri=redirect_uri,
                grant_type="authorization_code",
            ),
        )

        tokens = parse_token_response(self.name, data, self.required_scopes)
        tokens.scopes = self.required_scopes
        tokens.account_info = await self._account_info_or_empty(tokens.access_token)
        return tokens

    async def refresh(self, refresh_token: str, organization_id: str) -> TokenSet:
        credentials = await self.get_credentials(organization_id)
        data = await self.http.post_form(
            self.token_endpoint,
            self.name,
            client_form(
                credentials.client_id,
                credentials.client_secret,
                refresh_token=refresh_token,
                grant_type="refresh_token",
            ),
        )

        tokens = parse_token_response(self.name, data, self.required_scopes)
        tokens.scopes = self.required_scopes
        tokens.account_info = await self._account_info_or_empty(tokens.access_token)
        return tokens

    async def revoke(self, access_token: str, organization_id: str) -> None:
        credentials = await self.get_credentials(organization_id)
        await self.http.post_form(
            self.revoke_endpoint,
            self.name,
            client_form(credentials.client_id, credentials.client_secret, token=access_token),
        )

    async def fetch_account_info(self, access_token: str) -> AccountInfo:
        data = await self.http.get_json(
            self.userinfo_endpoint, self.name, headers=bearer(access_token)
        )
        return AccountInfo(
            id=str(data["id"]) if data.get("id") else None,
            email=data.get("login") or None,
            name=data.get("name") or None,
        )
