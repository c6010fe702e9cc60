"""
OAuth 모듈 - 클라우드 프로바이더 연결과 토큰 갱신

프로바이더 레지스트리, state 저장소, 통합 OAuth 서비스와
토큰 갱신/state 정리 정기 작업을 제공합니다.
"""

from .connection_repository import ConnectionRepository
from .credential_resolver import ProviderCredentialResolver
from .feature_access import FeatureAccessService
from .legacy_token_migration import LegacyTokenMigration
from .oauth_functions import (
    handle_oauth_callback,
    initiate_oauth,
    list_oauth_providers,
    refresh_oauth_token,
    revoke_oauth_connection,
    update_oauth_account_info,
)
from .oauth_scheduler import OAuthMaintenanceScheduler
from .oauth_schema import (
    AccountInfo,
    CallbackResult,
    CleanupResult,
    CloudConnection,
    InitiateResult,
    MigrationResult,
    ProviderConnection,
    ProviderKind,
    RefreshFailureKind,
    RefreshSweepStats,
    TokenSet,
)
from .oauth_service import UnifiedOAuthService, get_oauth_service
from .oauth_state_store import OAuthStateStore
from .provider_registry import (
    OAuthProvider,
    ProviderRegistry,
    build_default_registry,
    get_provider_registry,
)
from .refresh_classifier import RefreshErrorClassifier
from .schedules import StateCleanupJob, TokenRefreshJob

__all__ = [
    # 메인 컴포넌트
    "UnifiedOAuthService",
    "get_oauth_service",
    "OAuthStateStore",
    "ConnectionRepository",
    "ProviderCredentialResolver",
    "FeatureAccessService",
    "OAuthProvider",
    "ProviderRegistry",
    "build_default_registry",
    "get_provider_registry",
    # 정기 작업
    "TokenRefreshJob",
    "StateCleanupJob",
    "OAuthMaintenanceScheduler",
    "RefreshErrorClassifier",
    "LegacyTokenMigration",
    # 진입점 함수
    "initiate_oauth",
    "handle_oauth_callback",
    "refresh_oauth_token",
    "revoke_oauth_connection",
    "update_oauth_account_info",
    "list_oauth_providers",
    # 스키마
    "AccountInfo",
    "TokenSet",
    "CloudConnection",
    "ProviderConnection",
    "ProviderKind",
    "RefreshFailureKind",
    "InitiateResult",
    "CallbackResult",
    "RefreshSweepStats",
    "CleanupResult",
    "MigrationResult",
]
