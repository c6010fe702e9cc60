"""
통합 OAuth 서비스

모든 OAuth 2.0 프로바이더에 대해 같은 흐름을 제공합니다.

    initiate_oauth  → state 생성 + 인가 URL
    handle_callback → state 소비 + 코드 교환 + 토큰 암호화 저장
    refresh_connection / revoke_connection → 연결 유지보수

토큰은 항상 TokenCipher 로 암호화한 뒤 저장하고,
읽을 때는 레거시 형식까지 처리하는 decrypt_stored 를 사용합니다.
"""

import uuid
from functools import lru_cache
from typing import Any, Dict, List, Optional

from infra.core import (
    Config,
    ConnectionNotFoundError,
    NoRefreshTokenError,
    OAuthCallbackError,
    TokenCipher,
    error_message,
    get_config,
    get_logger,
    get_token_cipher,
)
from infra.core.auth_logger import AuthLogger, get_auth_logger
from infra.utils.datetime_utils import utc_now

from .connection_repository import ConnectionRepository
from .oauth_schema import (
    AccountInfo,
    AuthorizationParams,
    CallbackResult,
    CloudConnection,
    ConnectionType,
    InitiateResult,
    OAuthStateRecord,
    ProviderConnection,
    ProviderCredentials,
    ProviderSummary,
    TokenSet,
)
from .oauth_state_store import OAuthStateStore
from .provider_registry import OAuthProvider, ProviderRegistry, get_provider_registry
from .utilities.oauth_url_parser import build_error_redirect, build_success_redirect

logger = get_logger(__name__)


class UnifiedOAuthService:
    """프로바이더 공통 OAuth 흐름"""

    def __init__(
        self,
        registry: Optional[ProviderRegistry] = None,
        state_store: Optional[OAuthStateStore] = None,
        repository: Optional[ConnectionRepository] = None,
        cipher: Optional[TokenCipher] = None,
        config: Optional[Config] = None,
        auth_logger: Optional[AuthLogger] = None,
    ):
        self.registry = registry or get_provider_registry()
        self.state_store = state_store or OAuthStateStore()
        self.repository = repository or ConnectionRepository()
        self.cipher = cipher or get_token_cipher()
        self.config = config or get_config()
        self.auth_logger = auth_logger or get_auth_logger()

    def _callback_uri(self, credentials: ProviderCredentials) -> str:
        """
        백엔드 콜백 URI

        initiate 와 callback 이 같은 값을 써야 프로바이더의 redirect_uri 검사를 통과합니다.
        클라이언트의 복귀 URL 은 여기에 쓰지 않습니다.
        """
        return credentials.redirect_uri or self.config.oauth_callback_url

    def _encrypt_optional(self, value: Optional[str]) -> Optional[str]:
        return self.cipher.encrypt(value) if value else None

    def _require_connection(self, organization_id: str, provider: str) -> CloudConnection:
        connection = self.repository.get_connection(organization_id, provider)
        if connection is None:
            raise ConnectionNotFoundError(organization_id, provider)
        return connection

    # ------------------------------------------------------------------
    # 연결 흐름
    # ------------------------------------------------------------------
    async def initiate_oauth(
        self,
        provider: str,
        organization_id: str,
        user_id: str,
        return_url: Optional[str] = None,
    ) -> InitiateResult:
        """
        OAuth 흐름 시작

        Args:
            provider: 프로바이더 이름
            organization_id: 조직 ID
            user_id: 연결을 시작한 사용자 ID
            return_url: 완료 후 돌아갈 프론트엔드 URL (없으면 기본값)

        Returns:
            InitiateResult: 인가 URL 과 state

        Raises:
            ProviderNotFoundError / UnsupportedProviderError: 잘못된 프로바이더
            ConfigurationError: 클라이언트 자격증명이 없는 경우
        """
        oauth_provider = self.registry.require_oauth_provider(provider)
        credentials = await oauth_provider.get_credentials(organization_id)

        redirect_url = return_url or self.config.oauth_default_return_url
        state = self.state_store.create(provider, organization_id, user_id, redirect_url)

        # 조직 설정에 scope 가 있으면 기본 스코프 대신 사용
        scopes = credentials.scope.split() if credentials.scope else oauth_provider.required_scopes
        auth_url = oauth_provider.build_authorization_url(
            AuthorizationParams(
                client_id=credentials.client_id,
                redirect_uri=self._callback_uri(credentials),
                state=state,
                scopes=scopes,
            )
        )

        logger.info(
            f"🔐 OAuth 시작: provider={provider}, org={organization_id}, "
            f"credentials={credentials.source}"
        )
        self.auth_logger.log_oauth_event("INITIATE", organization_id, provider, details=f"user={user_id}")

        return InitiateResult(auth_url=auth_url, state=state)

    async def handle_callback(self, code: str, state: str) -> CallbackResult:
        """
        프로바이더 콜백 처리

        Args:
            code: 인가 코드
            state: initiate_oauth 가 발급한 state

        Returns:
            CallbackResult: 성공 리다이렉트 URL 과 계정 정보

        Raises:
            StateNotFoundError / StateExpiredError: state 검증 실패
            OAuthCallbackError: state 소비 이후 실패 (원인은 __cause__)
        """
        record = await self.state_store.consume(state)

        try:
            oauth_provider = self.registry.require_oauth_provider(record.provider)
            credentials = await oauth_provider.get_credentials(record.organization_id)

            tokens = await oauth_provider.exchange_code(
                code, self._callback_uri(credentials), record.organization_id
            )
            self._store_connection(record, oauth_provider, tokens)

        except Exception as e:
            logger.error(
                f"❌ OAuth 콜백 실패: provider={record.provider}, "
                f"org={record.organization_id} - {str(e)}"
            )
            self.auth_logger.log_oauth_event(
                "CALLBACK", record.organization_id, record.provider, success=False, details=error_message(e)
            )
            raise OAuthCallbackError(
                error_message(e), provider=record.provider, redirect_url=record.redirect_url
            ) from e

        logger.info(
            f"✅ OAuth 연결 완료: provider={record.provider}, org={record.organization_id}, "
            f"account={tokens.account_info.email or tokens.account_info.id}"
        )
        self.auth_logger.log_oauth_event(
            "CALLBACK",
            record.organization_id,
            record.provider,
            details=f"account={tokens.account_info.email or tokens.account_info.id}",
        )

        return CallbackResult(
            redirect_url=build_success_redirect(record.redirect_url, record.provider),
            provider=record.provider,
            organization_id=record.organization_id,
            account_info=tokens.account_info,
        )

    def _store_connection(
        self, record: OAuthStateRecord, oauth_provider: OAuthProvider, tokens: TokenSet
    ) -> None:
        """암호화한 토큰으로 연결 저장 (재연결이면 실패 기록 초기화)"""
        now = utc_now()
        encrypted_access = self.cipher.encrypt(tokens.access_token)
        encrypted_refresh = self._encrypt_optional(tokens.refresh_token)
        account = tokens.account_info

        fields: Dict[str, Any] = {
            "account_id": account.id,
            "account_email": account.email,
            "account_name": account.name,
            "access_token": encrypted_access,
            "refresh_token": encrypted_refresh,
            "token_expires_at": tokens.expires_at,
            "scopes": tokens.scopes,
            "is_active": True,
            "connected_at": now,
            "connected_by": record.user_id,
            "last_refreshed_at": None,
            "consecutive_refresh_failures": 0,
            "last_refresh_error": None,
            "last_refresh_error_at": None,
            "refresh_error": None,
            "refresh_error_at": None,
            "requires_reconnection": False,
            "disconnected_at": None,
        }

        if oauth_provider.multi_connection:
            connection_id = uuid.uuid4().hex
            self.repository.add_provider_connection(
                ProviderConnection(
                    id=connection_id,
                    organization_id=record.organization_id,
                    provider=record.provider,
                    connection_type=ConnectionType.ORGANIZATION,
                    user_id=record.user_id,
                    account_id=account.id,
                    account_email=account.email,
                    account_name=account.name,
                    access_token=encrypted_access,
                    refresh_token=encrypted_refresh,
                    token_expires_at=tokens.expires_at,
                    scopes=tokens.scopes,
                    connected_by=record.user_id,
                    connected_at=now,
                )
            )
            fields["connection_id"] = connection_id

        self.repository.upsert_connection(record.organization_id, record.provider, fields)

    def build_error_redirect(self, state: Optional[str], error: str) -> str:
        """
        콜백 실패 시 돌아갈 URL

        state 가 아직 남아 있으면 저장된 복귀 URL 을, 아니면 기본 URL 을 사용합니다.
        """
        record = self.state_store.peek(state) if state else None
        if record:
            return build_error_redirect(record.redirect_url, error, record.provider)
        return build_error_redirect(self.config.oauth_default_return_url, error)

    # ------------------------------------------------------------------
    # 유지보수
    # ------------------------------------------------------------------
    async def refresh_connection(
        self,
        organization_id: str,
        provider: str,
        trigger: str = "manual",
        reset_failures: bool = False,
    ) -> CloudConnection:
        """
        저장된 리프레시 토큰으로 액세스 토큰 갱신

        프로바이더가 새 리프레시 토큰을 주지 않으면 기존 암호문을 유지합니다.
        reset_failures 가 True 면 연속 실패 횟수 초기화도 토큰과 같은 쓰기에 포함합니다.

        Returns:
            CloudConnection: 갱신된 연결

        Raises:
            ConnectionNotFoundError: 연결 없음
            NoRefreshTokenError: 리프레시 토큰 없음
            ProviderError: 프로바이더 갱신 실패
        """
        oauth_provider = self.registry.require_oauth_provider(provider)
        connection = self._require_connection(organization_id, provider)
        if not connection.refresh_token:
            raise NoRefreshTokenError(organization_id, provider)

        try:
            refresh_token = self.cipher.decrypt_stored(connection.refresh_token)
            tokens = await oauth_provider.refresh(refresh_token, organization_id)
        except Exception as e:
            self.auth_logger.log_token_refresh(
                organization_id, provider, success=False, trigger=trigger, error=error_message(e)
            )
            raise

        now = utc_now()
        fields: Dict[str, Any] = {
            "access_token": self.cipher.encrypt(tokens.access_token),
            "token_expires_at": tokens.expires_at,
            "last_refreshed_at": now,
        }
        if tokens.refresh_token:
            fields["refresh_token"] = self.cipher.encrypt(tokens.refresh_token)

        integration_fields = dict(fields)
        if reset_failures:
            integration_fields["consecutive_refresh_failures"] = 0

        self.repository.update_connection(organization_id, provider, integration_fields)
        if oauth_provider.multi_connection and connection.connection_id:
            self.repository.update_provider_connection(connection.connection_id, fields)

        logger.info(
            f"🔄 토큰 갱신 완료: provider={provider}, org={organization_id}, "
            f"expires_at={tokens.expires_at}"
        )
        self.auth_logger.log_token_refresh(organization_id, provider, success=True, trigger=trigger)

        return self.repository.get_connection(organization_id, provider)

    async def revoke_connection(self, organization_id: str, provider: str) -> bool:
        """
        연결 해제

        프로바이더 측 토큰 폐기는 최선 시도이며, 실패해도 로컬 비활성화는 진행합니다.

        Returns:
            프로바이더 측 폐기 성공 여부

        Raises:
            ConnectionNotFoundError: 연결 없음
        """
        oauth_provider = self.registry.require_oauth_provider(provider)
        connection = self._require_connection(organization_id, provider)

        remote_revoked = False
        if connection.access_token:
            try:
                access_token = self.cipher.decrypt_stored(connection.access_token)
                await oauth_provider.revoke(access_token, organization_id)
                remote_revoked = True
            except Exception as e:
                logger.warning(
                    f"⚠️ 프로바이더 토큰 폐기 실패 (로컬 해제는 진행): "
                    f"provider={provider}, org={organization_id} - {str(e)}"
                )

        self.repository.update_connection(
            organization_id, provider, {"is_active": False, "disconnected_at": utc_now()}
        )
        if connection.connection_id:
            self.repository.update_provider_connection(connection.connection_id, {"is_active": False})

        logger.info(f"🔌 연결 해제: provider={provider}, org={organization_id}, remote={remote_revoked}")
        self.auth_logger.log_connection_status_change(
            organization_id,
            provider,
            "active" if connection.is_active else "inactive",
            "disconnected",
            reason="revoked by user",
        )
        return remote_revoked

    async def update_account_info(self, organization_id: str, provider: str) -> AccountInfo:
        """
        프로바이더에서 계정 정보를 다시 조회해 저장

        Raises:
            ConnectionNotFoundError: 연결 없음
            DecryptionError: 저장된 토큰 복호화 실패
            ProviderError: 조회 실패
        """
        oauth_provider = self.registry.require_oauth_provider(provider)
        connection = self._require_connection(organization_id, provider)
        if not connection.access_token:
            raise ConnectionNotFoundError(organization_id, provider, operation="update_account_info")

        access_token = self.cipher.decrypt_stored(connection.access_token)
        account = await oauth_provider.fetch_account_info(access_token)

        fields = {
            key: value
            for key, value in (
                ("account_id", account.id),
                ("account_email", account.email),
                ("account_name", account.name),
            )
            if value
        }
        if fields:
            self.repository.update_connection(organization_id, provider, fields)

        logger.info(f"계정 정보 갱신: provider={provider}, org={organization_id}, fields={sorted(fields)}")
        return account

    def list_available_providers(self) -> List[ProviderSummary]:
        """등록된 프로바이더 요약 목록"""
        return [provider.summary() for provider in self.registry.list_providers()]


@lru_cache(maxsize=1)
def get_oauth_service() -> UnifiedOAuthService:
    """
    통합 OAuth 서비스 싱글톤 반환

    Returns:
        UnifiedOAuthService: 서비스 인스턴스
    """
    return UnifiedOAuthService()
