"""
CloudLink 인프라 코어

설정, 로깅, 예외, 데이터베이스, 토큰 암호화, 프로바이더 HTTP 클라이언트를 제공합니다.

주요 컴포넌트:
- get_config: 환경변수 기반 설정
- get_database_manager: SQLite 연결 관리
- get_token_cipher: OAuth 토큰 암호화
- get_oauth_http_client: 프로바이더 API 호출용 aiohttp 클라이언트
"""

from .config import Config, get_config
from .database import DatabaseManager, get_database_manager
from .exceptions import (
    APIConnectionError,
    BusinessLogicError,
    CloudLinkError,
    ConfigurationError,
    ConnectionNotFoundError,
    DatabaseError,
    DecryptionError,
    NoRefreshTokenError,
    OAuthCallbackError,
    OAuthStateError,
    ProviderError,
    ProviderNotFoundError,
    StateExpiredError,
    StateNotFoundError,
    UnsupportedProviderError,
    ValidationError,
    error_message,
)
from .logger import get_logger
from .oauth_client import OAuthHttpClient, get_oauth_http_client
from .token_cipher import TokenCipher, generate_state_token, get_token_cipher

__all__ = [
    # Configuration
    "Config",
    "get_config",
    # Database
    "DatabaseManager",
    "get_database_manager",
    # Logging
    "get_logger",
    # Exceptions
    "CloudLinkError",
    "DatabaseError",
    "ConfigurationError",
    "ValidationError",
    "ProviderNotFoundError",
    "UnsupportedProviderError",
    "OAuthStateError",
    "StateNotFoundError",
    "StateExpiredError",
    "OAuthCallbackError",
    "DecryptionError",
    "BusinessLogicError",
    "ConnectionNotFoundError",
    "NoRefreshTokenError",
    "APIConnectionError",
    "ProviderError",
    "error_message",
    # Crypto
    "TokenCipher",
    "get_token_cipher",
    "generate_state_token",
    # HTTP
    "OAuthHttpClient",
    "get_oauth_http_client",
]
