"""Dropbox OAuth 2.0 프로바이더"""

from typing import Dict

from infra.core import ProviderError, get_logger

from ..oauth_schema import AccountInfo, TokenSet
from ..provider_registry import OAuthProvider
from .token_response import bearer, client_form, parse_token_response

logger = get_logger(__name__)


class DropboxProvider(OAuthProvider):
    """Dropbox OAuth 2.0 (단기 액세스 토큰 + 오프라인 리프레시 토큰)"""

    name = "dropbox"
    display_name = "Dropbox"
    multi_connection = True

    authorization_endpoint = "https://www.dropbox.com/oauth2/authorize"
    token_endpoint = "https://api.dropbox.com/oauth2/token"
    revoke_endpoint = "https://api.dropboxapi.com/2/auth/token/revoke"
    account_endpoint = "https://api.dropboxapi.com/2/users/get_current_account"

    def extra_authorization_params(self) -> Dict[str, str]:
        return {"token_access_type": "offline"}

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
        try:
            tokens.account_info = await self.fetch_account_info(tokens.access_token)
        except ProviderError as e:
            logger.warning(f"⚠️ Dropbox 계정 정보 조회 실패: {e.message}")
            tokens.account_info = AccountInfo(id=data.get("account_id"))
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
        return parse_token_response(self.name, data, self.required_scopes)

    async def revoke(self, access_token: str, organization_id: str) -> None:
        await self.http.request(
            "POST", self.revoke_endpoint, self.name, headers=bearer(access_token)
        )

    async def fetch_account_info(self, access_token: str) -> AccountInfo:
        data = await self.http.request(
            "POST", self.account_endpoint, self.name, headers=bearer(access_token)
        )
        name = data.get("name") or {}
        return AccountInfo(
            id=data.get("account_id") or None,
            email=data.get("email") or None,
            name=name.get("display_name") or name.get("given_name") or None,
        )
