"""공용 테스트 픽스처

임시 SQLite DB, 테스트용 암호화 키, 외부 호출 없는 스텁 프로바이더를 제공합니다.
"""

import hashlib
import os
import secrets
from datetime import timedelta
from urllib.parse import urlparse

# 로거/설정이 처음 만들어지기 전에 테스트 환경을 고정
os.environ["ENABLE_FILE_LOGGING"] = "false"
os.environ["ENVIRONMENT"] = "test"
os.environ.setdefault("ENCRYPTION_KEY", "test-encryption-key-0123456789abcdef")

import pytest
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from infra.core import DatabaseManager, ProviderError, TokenCipher, get_config
from infra.core.auth_logger import AuthLogger
from infra.utils.datetime_utils import utc_now
from modules.oauth.connection_repository import ConnectionRepository
from modules.oauth.oauth_schema import AccountInfo, ProviderCredentials, TokenSet
from modules.oauth.oauth_service import UnifiedOAuthService
from modules.oauth.oauth_state_store import OAuthStateStore
from modules.oauth.provider_registry import OAuthProvider, ProviderRegistry

TEST_SECRET = "unit-test-secret-value-0123456789abcdef"


class StubProvider(OAuthProvider):
    """호출을 기록하고 미리 정한 결과를 돌려주는 프로바이더"""

    name = "stub"
    display_name = "Stub Drive"
    authorization_endpoint = "https://auth.stub.example/authorize"
    token_endpoint = "https://auth.stub.example/token"

    def __init__(self):
        super().__init__()
        self.exchange_calls = []
        self.refresh_calls = []
        self.revoke_calls = []
        self.exchange_error = None
        self.refresh_error = None
        self.revoke_error = None
        self.refresh_returns_new_refresh_token = False
        self.account = AccountInfo(id="acct-1", email="owner@example.com", name="Owner")

    @property
    def required_scopes(self):
        return ["files.read", "files.write"]

    async def get_credentials(self, organization_id):
        return ProviderCredentials(client_id="stub-client", client_secret="stub-secret")

    async def exchange_code(self, code, redirect_uri, organization_id):
        self.exchange_calls.append((code, redirect_uri, organization_id))
        if self.exchange_error:
            raise self.exchange_error
        return TokenSet(
            access_token=f"access-{code}",
            refresh_token=f"refresh-{code}",
            expires_at=utc_now() + timedelta(hours=1),
            scopes=self.required_scopes,
            account_info=self.account,
        )

    async def refresh(self, refresh_token, organization_id):
        self.refresh_calls.append((refresh_token, organization_id))
        if self.refresh_error:
            raise self.refresh_error
        return TokenSet(
            access_token=f"access-from-{refresh_token}",
            refresh_token="rotated-refresh" if self.refresh_returns_new_refresh_token else None,
            expires_at=utc_now() + timedelta(hours=1),
        )

    async def revoke(self, access_token, organization_id):
        self.revoke_calls.append((access_token, organization_id))
        if self.revoke_error:
            raise self.revoke_error

    async def fetch_account_info(self, access_token):
        return self.account


class FakeHttp:
    """URL 경로별로 미리 정한 응답을 돌려주고 호출을 기록하는 OAuthHttpClient 대체"""

    def __init__(self, responses):
        self.responses = responses
        self.calls = []

    async def request(self, method, url, provider, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        response = self.responses[urlparse(url).path]
        if isinstance(response, Exception):
            raise response
        return response

    async def post_form(self, url, provider, data, **kwargs):
        return await self.request("POST", url, provider, data=data, **kwargs)

    async def get_json(self, url, provider, **kwargs):
        return await self.request("GET", url, provider, **kwargs)

    def call_to(self, path):
        return next(call for call in self.calls if urlparse(call["url"]).path == path)


class FakeResolver:
    def resolve(self, provider, organization_id=None):
        return ProviderCredentials(client_id=f"{provider}-id", client_secret=f"{provider}-secret")


class MultiStubProvider(StubProvider):
    """여러 연결을 가지는 프로바이더 (워크스페이스형)"""

    name = "stubchat"
    display_name = "Stub Chat"
    multi_connection = True


@pytest.fixture
def db(tmp_path):
    manager = DatabaseManager(str(tmp_path / "cloudlink_test.db"))
    yield manager
    manager.close()


@pytest.fixture
def cipher():
    return TokenCipher(TEST_SECRET)


@pytest.fixture
def legacy_blob():
    """레거시 iv:authTag:ciphertext 형식 암호문 생성기"""

    def _make(plaintext: str, secret: str = TEST_SECRET) -> str:
        key = hashlib.sha256(secret.encode("utf-8")).digest()
        iv = secrets.token_bytes(16)
        sealed = AESGCM(key).encrypt(iv, plaintext.encode("utf-8"), None)
        return f"{iv.hex()}:{sealed[-16:].hex()}:{sealed[:-16].hex()}"

    return _make


@pytest.fixture
def state_store(db):
    return OAuthStateStore(db=db, ttl_minutes=60, lookup_retries=3, backoff=lambda attempt: 0)


@pytest.fixture
def repository(db):
    return ConnectionRepository(db)


@pytest.fixture
def auth_logger(tmp_path):
    return AuthLogger(log_dir=str(tmp_path / "auth"), enable_file_logging=False)


@pytest.fixture
def stub_provider():
    return StubProvider()


@pytest.fixture
def multi_provider():
    return MultiStubProvider()


@pytest.fixture
def registry(stub_provider, multi_provider):
    registry = ProviderRegistry()
    registry.register(stub_provider)
    registry.register(multi_provider)
    return registry


@pytest.fixture
def service(registry, state_store, repository, cipher, auth_logger):
    return UnifiedOAuthService(
        registry=registry,
        state_store=state_store,
        repository=repository,
        cipher=cipher,
        config=get_config(),
        auth_logger=auth_logger,
    )


@pytest.fixture
def make_connection(repository, cipher):
    """암호화된 토큰으로 연결 레코드 생성"""

    def _make(
        organization_id="org-1",
        provider="stub",
        access_token="stored-access",
        refresh_token="stored-refresh",
        expires_in_minutes=10,
        **fields,
    ):
        data = {
            "access_token": cipher.encrypt(access_token) if access_token else None,
            "refresh_token": cipher.encrypt(refresh_token) if refresh_token else None,
            "token_expires_at": (
                utc_now() + timedelta(minutes=expires_in_minutes)
                if expires_in_minutes is not None
                else None
            ),
            "is_active": True,
            "connected_at": utc_now(),
            "connected_by": "user-1",
            "scopes": ["files.read"],
        }
        data.update(fields)
        repository.upsert_connection(organization_id, provider, data)
        return repository.get_connection(organization_id, provider)

    return _make


def provider_error(code=None, status=None, message="provider failure"):
    return ProviderError(message, provider="stub", provider_code=code, status_code=status)


@pytest.fixture
def make_provider_error():
    return provider_error
