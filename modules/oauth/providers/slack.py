"""
Slack OAuth v2 프로바이더

Slack 토큰은 만료되지 않고 리프레시 토큰도 없습니다.
HTTP 200 에 {"ok": false, "error": ...} 로 실패를 알리므로 별도로 검사합니다.
"""

from typing import Any, List, Optional

from infra.core import ProviderError, get_logger

from ..oauth_schema import AccountInfo, TokenSet
from ..provider_registry import OAuthProvider
from .token_response import bearer, client_form

logger = get_logger(__name__)


class SlackProvider(OAuthProvider):
    """Slack OAuth v2 (봇 토큰 우선)"""

    name = "slack"
    display_name = "Slack"
    multi_connection = True

    authorization_endpoint = "https://slack.com/oauth/v2/authorize"
    token_endpoint = "https://slack.com/api/oauth.v2.access"
    revoke_endpoint = "https://slack.com/api/auth.revoke"
    auth_test_endpoint = "https://slack.com/api/auth.test"

    def scope_param(self, scopes: List[str]) -> str:
        return ",".join(scopes)

    def _ensure_ok(self, data: Any, endpoint: str) -> dict:
        if not isinstance(data, dict) or not data.get("ok"):
            code = data.get("error") if isinstance(data, dict) else None
            raise ProviderError(
                f"Slack API 오류: {code or 'unknown_error'}",
                provider=self.name,
                provider_code=code,
                api_endpoint=endpoint,
            )
        return data

    async def exchange_code(self, code: str, redirect_uri: str, organization_id: str) -> TokenSet:
        credentials = await self.get_credentials(organization_id)
        data = self._ensure_ok(
            await self.http.post_form(
                self.token_endpoint,
                self.name,
                client_form(
                    credentials.client_id,
                    credentials.client_secret,
                    code=code,
                    redirect_uri=redirect_uri,
                ),
            ),
            self.token_endpoint,
        )

        bot_token: Optional[str] = (data.get("bot") or {}).get("bot_access_token") or data.get("access_token")
        authed_user = data.get("authed_user") or {}
        access_token = bot_token or authed_user.get("access_token")
        if not access_token:
            raise ProviderError(
                "Slack 토큰 응답에 봇/사용자 토큰이 없습니다",
                provider=self.name,
                provider_code="invalid_token_response",
            )

        team = data.get("team") or {}
        account_info = AccountInfo(
            id=team.get("id") or None,
            email=authed_user.get("id") or None,
            name=team.get("name") or None,
        )
        if not account_info.id or not account_info.name:
            tested = await self.fetch_account_info(access_token)
            account_info = AccountInfo(
                id=account_info.id or tested.id,
                email=account_info.email or tested.email,
                name=account_info.name or tested.name,
            )

        scope = data.get("scope")
        scopes = [s for s in scope.split(",") if s] if isinstance(scope, str) else []

        logger.debug(f"Slack 토큰 교환 완료: token_type={'bot' if bot_token else 'user'}")
        return TokenSet(
            access_token=access_token,
            scopes=scopes or self.required_scopes,
            account_info=account_info,
        )

    async def refresh(self, refresh_token: str, organization_id: str) -> TokenSet:
        """Slack 토큰은 만료되지 않으므로 유효성만 확인하고 그대로 돌려줌"""
        account_info = await self.fetch_account_info(refresh_token)
        return TokenSet(
            access_token=refresh_token,
            scopes=self.required_scopes,
            account_info=account_info,
        )

    async def revoke(self, access_token: str, organization_id: str) -> None:
        self._ensure_ok(
            await self.http.post_form(
                self.revoke_endpoint, self.name, {}, headers=bearer(access_token)
            ),
            self.revoke_endpoint,
        )

    async def fetch_account_info(self, access_token: str) -> AccountInfo:
        data = self._ensure_ok(
            await self.http.post_form(
                self.auth_test_endpoint, self.name, {}, headers=bearer(access_token)
            ),
            self.auth_test_endpoint,
        )
        return AccountInfo(
            id=data.get("team_id") or data.get("user_id") or None,
            email=data.get("user") or None,
            name=data.get("team") or data.get("url") or None,
        )
