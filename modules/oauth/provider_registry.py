"""
OAuth 프로바이더 인터페이스와 레지스트리

프로바이더는 이름으로 등록되며 한 번 등록된 뒤에는 바뀌지 않습니다.
"""

from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Dict, List, Optional
from urllib.parse import urlencode

from infra.core import (
    OAuthHttpClient,
    ProviderNotFoundError,
    UnsupportedProviderError,
    ValidationError,
    get_logger,
    get_oauth_http_client,
)

from .credential_resolver import ProviderCredentialResolver
from .feature_access import FeatureAccessService
from .oauth_schema import (
    AccountInfo,
    AuthorizationParams,
    ProviderCredentials,
    ProviderKind,
    ProviderSummary,
    TokenSet,
)

logger = get_logger(__name__)


class OAuthProvider(ABC):
    """프로바이더별 OAuth 동작을 구현하는 기반 클래스"""

    name: str = ""
    display_name: str = ""
    kind: ProviderKind = ProviderKind.OAUTH2

    authorization_endpoint: str = ""
    token_endpoint: str = ""
    revoke_endpoint: str = ""

    # True면 콜백마다 provider_connections 에 연결 문서를 추가
    multi_connection: bool = False

    def __init__(
        self,
        http_client: Optional[OAuthHttpClient] = None,
        credential_resolver: Optional[ProviderCredentialResolver] = None,
    ):
        self._http = http_client
        self._credentials = credential_resolver

    @property
    def http(self) -> OAuthHttpClient:
        if self._http is None:
            self._http = get_oauth_http_client()
        return self._http

    @property
    def credential_resolver(self) -> ProviderCredentialResolver:
        if self._credentials is None:
            self._credentials = ProviderCredentialResolver()
        return self._credentials

    @property
    def required_scopes(self) -> List[str]:
        """인가 요청 시 사용할 스코프"""
        return FeatureAccessService.get_all_required_scopes_for_provider(self.name)

    async def get_credentials(self, organization_id: Optional[str]) -> ProviderCredentials:
        """조직 또는 환경변수 자격증명"""
        return self.credential_resolver.resolve(self.name, organization_id)

    def scope_param(self, scopes: List[str]) -> str:
        """scope 쿼리 파라미터 값 (기본은 공백 구분)"""
        return " ".join(scopes)

    def extra_authorization_params(self) -> Dict[str, str]:
        """프로바이더별 추가 인가 파라미터"""
        return {}

    def build_authorization_url(self, params: AuthorizationParams) -> str:
        """
        인가 URL 생성

        Args:
            params: client_id, redirect_uri, state, scopes

        Returns:
            사용자가 이동할 프로바이더 인가 URL
        """
        query = {
            "client_id": params.client_id,
            "redirect_uri": params.redirect_uri,
            "response_type": "code",
            "state": params.state,
        }
        scopes = params.scopes or self.required_scopes
        if scopes:
            query["scope"] = self.scope_param(scopes)
        query.update(self.extra_authorization_params())

        return f"{self.authorization_endpoint}?{urlencode(query)}"

    @abstractmethod
    async def exchange_code(self, code: str, redirect_uri: str, organization_id: str) -> TokenSet:
        """인가 코드를 토큰으로 교환"""

    @abstractmethod
    async def refresh(self, refresh_token: str, organization_id: str) -> TokenSet:
        """리프레시 토큰으로 새 액세스 토큰 발급"""

    @abstractmethod
    async def revoke(self, access_token: str, organization_id: str) -> None:
        """프로바이더 측 토큰 폐기"""

    @abstractmethod
    async def fetch_account_info(self, access_token: str) -> AccountInfo:
        """계정 식별 정보 조회"""

    def summary(self) -> ProviderSummary:
        return ProviderSummary(
            name=self.name,
            display_name=self.display_name,
            kind=self.kind,
            scopes=self.required_scopes if self.kind == ProviderKind.OAUTH2 else [],
        )


class ProviderRegistry:
    """이름 → 프로바이더 조회 테이블"""

    def __init__(self):
        self._providers: Dict[str, OAuthProvider] = {}

    def register(self, provider: OAuthProvider) -> None:
        """
        프로바이더 등록

        Raises:
            ValidationError: 이름이 비었거나 이미 등록된 경우
        """
        if not provider.name:
            raise ValidationError("프로바이더 이름이 비어 있습니다", field="name")
        if provider.name in self._providers:
            raise ValidationError(
                f"이미 등록된 프로바이더입니다: {provider.name}",
                field="name",
                value=provider.name,
                error_code="PROVIDER_ALREADY_REGISTERED",
            )

        self._providers[provider.name] = provider
        logger.debug(f"프로바이더 등록: {provider.name} ({provider.kind.value})")

    def get_provider(self, name: str) -> Optional[OAuthProvider]:
        """이름으로 조회, 없으면 None"""
        return self._providers.get(name)

    def has_provider(self, name: str) -> bool:
        return name in self._providers

    def require_oauth_provider(self, name: str) -> OAuthProvider:
        """
        OAuth 2.0 프로바이더 조회

        Raises:
            ProviderNotFoundError: 등록되지 않은 이름
            UnsupportedProviderError: OAuth 2.0 이 아닌 프로바이더
        """
        provider = self._providers.get(name)
        if provider is None:
            raise ProviderNotFoundError(name)
        if provider.kind != ProviderKind.OAUTH2:
            raise UnsupportedProviderError(name)
        return provider

    def list_providers(self) -> List[OAuthProvider]:
        """등록 순서대로 전체 프로바이더"""
        return list(self._providers.values())

    def oauth_provider_names(self) -> List[str]:
        """OAuth 2.0 프로바이더 이름 목록"""
        return [p.name for p in self._providers.values() if p.kind == ProviderKind.OAUTH2]


def build_default_registry(
    http_client: Optional[OAuthHttpClient] = None,
    credential_resolver: Optional[ProviderCredentialResolver] = None,
) -> ProviderRegistry:
    """내장 프로바이더(google, box, dropbox, slack)를 등록한 레지스트리"""
    from .providers import BoxProvider, DropboxProvider, GoogleProvider, SlackProvider

    registry = ProviderRegistry()
    for provider_cls in (GoogleProvider, BoxProvider, DropboxProvider, SlackProvider):
        registry.register(provider_cls(http_client, credential_resolver))

    logger.info(f"✅ 프로바이더 레지스트리 초기화: {', '.join(registry.oauth_provider_names())}")
    return registry


@lru_cache(maxsize=1)
def get_provider_registry() -> ProviderRegistry:
    """
    프로세스 전역 프로바이더 레지스트리 (최초 호출 시 한 번 생성)

    Returns:
        ProviderRegistry: 레지스트리 인스턴스
    """
    return build_default_registry()
