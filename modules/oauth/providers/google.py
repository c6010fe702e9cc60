"""Google Drive OAuth 2.0 프로바이더"""

from typing import Dict

from infra.core import ProviderError, get_logger

from ..oauth_schema import AccountInfo, TokenSet
from ..provider_registry import OAuthProvider
from .token_response import bearer, client_form, parse_token_response

logger = get_logger(__name__)


class GoogleProvider(OAuthProvider):
    """Google OAuth 2.0 (오프라인 액세스로 리프레시 토큰 발급)"""

    name = "google"
    display_name = "Google Drive"

    authorization_endpoint = "https://accounts.google.com/o/oauth2/v2/auth"
    token_endpoint = "https://oauth2.googleapis.com/token"
    revoke_endpoint = "https://oauth2.googleapis.com/revoke"
    userinfo_endpoint = "https://www.googleapis.com/oauth2/v2/userinfo"

    def extra_authorization_params(self) -> Dict[str, str]:
        # prompt=consent 가 없으면 재연결 시 refresh_token 이 오지 않음
        return {"access_type": "offline", "prompt": "consent"}

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
        tokens.account_info = await self.fetch_account_info(tokens.access_token)
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
        try:
            tokens.account_info = await self.fetch_account_info(tokens.access_token)
        except ProviderError as e:
            # 갱신 자체는 성공했으므로 계정 정보만 비워 둠
            logger.warning(f"⚠️ Google 계정 정보 조회 실패 (갱신은 성공): {e.message}")
        return tokens

    async def revoke(self, access_token: str, organization_id: str) -> None:
        await self.http.post_form(
            self.revoke_endpoint, self.name, {}, params={"token": access_token}
        )

    async def fetch_account_info(self, access_token: str) -> AccountInfo:
        data = await self.http.get_json(
            self.userinfo_endpoint, self.name, headers=bearer(access_token)
        )
        return AccountInfo(
            id=data.get("id") or None,
            email=data.get("email") or None,
            name=data.get("name") or None,
        )
