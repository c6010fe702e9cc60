"""
OAuth Pydantic 모델
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from infra.utils.datetime_utils import utc_now


class ProviderKind(str, Enum):
    """프로바이더 인증 방식"""

    OAUTH2 = "oauth2"
    API_KEY = "api_key"


class RefreshFailureKind(str, Enum):
    """토큰 갱신 실패 분류"""

    TRANSIENT = "transient"  # 네트워크/서버 일시 오류, 패널티 없음
    PERMANENT = "permanent"  # 리프레시 토큰 자체가 무효, 즉시 비활성화
    UNCLASSIFIED = "unclassified"  # 원인 불명, 실패 횟수 누적


class ConnectionType(str, Enum):
    """다중 연결 문서의 소유 범위"""

    USER = "user"
    ORGANIZATION = "organization"


class AccountInfo(BaseModel):
    """프로바이더 계정 식별 정보"""

    id: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None


class TokenSet(BaseModel):
    """코드 교환/갱신 결과 (평문, 메모리에서만 사용)"""

    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None
    scopes: List[str] = Field(default_factory=list)
    account_info: AccountInfo = Field(default_factory=AccountInfo)


class ProviderCredentials(BaseModel):
    """OAuth 클라이언트 자격증명"""

    client_id: str
    client_secret: str
    redirect_uri: Optional[str] = None
    scope: Optional[str] = None
    source: str = "environment"  # environment | organization


class AuthorizationParams(BaseModel):
    """인가 URL 생성 입력"""

    client_id: str
    redirect_uri: str
    state: str
    scopes: List[str] = Field(default_factory=list)


class OAuthStateRecord(BaseModel):
    """저장된 OAuth state"""

    state: str
    provider: str
    organization_id: str
    user_id: str
    redirect_url: str
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """만료 여부"""
        return (now or utc_now()) > self.expires_at


class CloudConnection(BaseModel):
    """(organization_id, provider) 연결 레코드, 토큰 필드는 암호문"""

    organization_id: str
    provider: str
    account_id: Optional[str] = None
    account_email: Optional[str] = None
    account_name: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_expires_at: Optional[datetime] = None
    scopes: List[str] = Field(default_factory=list)
    is_active: bool = True
    connected_at: Optional[datetime] = None
    connected_by: Optional[str] = None
    last_refreshed_at: Optional[datetime] = None
    consecutive_refresh_failures: int = 0
    last_refresh_error: Optional[str] = None
    last_refresh_error_at: Optional[datetime] = None
    refresh_error: Optional[str] = None
    refresh_error_at: Optional[datetime] = None
    requires_reconnection: bool = False
    disconnected_at: Optional[datetime] = None
    connection_id: Optional[str] = None
    updated_at: Optional[datetime] = None


class ProviderConnection(BaseModel):
    """다중 연결 프로바이더(Slack, Dropbox)의 개별 연결 문서"""

    id: str
    organization_id: str
    provider: str
    connection_type: ConnectionType = ConnectionType.ORGANIZATION
    user_id: Optional[str] = None
    account_id: Optional[str] = None
    account_email: Optional[str] = None
    account_name: Optional[str] = None
    access_token: str
    refresh_token: Optional[str] = None
    token_expires_at: Optional[datetime] = None
    scopes: List[str] = Field(default_factory=list)
    connected_by: Optional[str] = None
    is_active: bool = True
    connected_at: datetime
    last_refreshed_at: Optional[datetime] = None


class InitiateResult(BaseModel):
    """OAuth 시작 결과"""

    auth_url: str
    state: str


class CallbackResult(BaseModel):
    """OAuth 콜백 처리 결과"""

    success: bool = True
    redirect_url: str
    provider: str
    organization_id: str
    account_info: AccountInfo = Field(default_factory=AccountInfo)


class ProviderSummary(BaseModel):
    """목록 조회용 프로바이더 요약"""

    name: str
    display_name: str
    kind: ProviderKind
    scopes: List[str] = Field(default_factory=list)


class RefreshSweepStats(BaseModel):
    """토큰 갱신 작업 집계"""

    refreshed: int = 0
    errors: int = 0
    skipped: int = 0
    deactivated: int = 0


class CleanupResult(BaseModel):
    """만료 state 정리 결과"""

    deleted: int = 0
    errors: int = 0


class MigrationResult(BaseModel):
    """레거시 토큰 재암호화 결과"""

    scanned: int = 0
    migrated: int = 0
    errors: int = 0
