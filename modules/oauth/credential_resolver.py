"""
프로바이더 OAuth 클라이언트 자격증명 조회

1순위: 조직별 integration_settings (client_secret 은 암호문으로 저장)
2순위: 환경변수 <PROVIDER>_CLIENT_ID / <PROVIDER>_CLIENT_SECRET
"""

from typing import List, Optional, Tuple

from infra.core import (
    ConfigurationError,
    DatabaseManager,
    DecryptionError,
    TokenCipher,
    get_config,
    get_database_manager,
    get_logger,
    get_token_cipher,
)
from infra.utils.datetime_utils import utc_now_iso

from .oauth_schema import ProviderCredentials

logger = get_logger(__name__)

SETTINGS_TABLE = "integration_settings"


class ProviderCredentialResolver:
    """조직 설정 → 환경변수 순서로 자격증명을 찾는 리졸버"""

    def __init__(self, db: Optional[DatabaseManager] = None, cipher: Optional[TokenCipher] = None):
        self._db = db
        self._cipher = cipher

    @property
    def db(self) -> DatabaseManager:
        if self._db is None:
            self._db = get_database_manager()
        return self._db

    @property
    def cipher(self) -> TokenCipher:
        if self._cipher is None:
            self._cipher = get_token_cipher()
        return self._cipher

    def _from_settings(self, provider: str, organization_id: str) -> Optional[ProviderCredentials]:
        row = self.db.fetch_one(
            f"SELECT * FROM {SETTINGS_TABLE} WHERE organization_id = ? AND provider = ?",
            (organization_id, provider),
        )
        if not row or not row["is_configured"] or not row["client_id"] or not row["client_secret"]:
            return None

        try:
            client_secret = self.cipher.decrypt_stored(row["client_secret"])
        except DecryptionError as e:
            raise ConfigurationError(
                f"{provider} 클라이언트 시크릿을 복호화할 수 없습니다. 통합 설정을 다시 저장해 주세요",
                config_key=f"{provider}.client_secret",
            ) from e

        return ProviderCredentials(
            client_id=row["client_id"],
            client_secret=client_secret,
            redirect_uri=row["redirect_uri"],
            scope=row["scope"],
            source="organization",
        )

    def resolve(self, provider: str, organization_id: Optional[str] = None) -> ProviderCredentials:
        """
        자격증명 조회

        Raises:
            ConfigurationError: 어디에도 설정되어 있지 않은 경우
        """
        if organization_id:
            credentials = self._from_settings(provider, organization_id)
            if credentials:
                logger.debug(f"조직 자격증명 사용: provider={provider}, org={organization_id}")
                return credentials

        env = get_config().get_provider_credentials(provider)
        if env["client_id"] and env["client_secret"]:
            return ProviderCredentials(
                client_id=env["client_id"],
                client_secret=env["client_secret"],
                source="environment",
            )

        raise ConfigurationError(
            f"{provider} OAuth 자격증명이 설정되지 않았습니다. 통합 설정 또는 "
            f"{provider.upper()}_CLIENT_ID / {provider.upper()}_CLIENT_SECRET 을 확인하세요",
            config_key=f"{provider.upper()}_CLIENT_ID",
        )

    def save_settings(
        self,
        organization_id: str,
        provider: str,
        client_id: str,
        client_secret: str,
        scope: Optional[str] = None,
        redirect_uri: Optional[str] = None,
    ) -> None:
        """조직별 자격증명 저장 (시크릿은 암호화)"""
        data = {
            "client_id": client_id,
            "client_secret": self.cipher.encrypt(client_secret),
            "scope": scope,
            "redirect_uri": redirect_uri,
            "is_configured": 1,
            "updated_at": utc_now_iso(),
        }

        with self.db.transaction():
            updated = self.db.update(
                SETTINGS_TABLE, data, "organization_id = ? AND provider = ?",
                (organization_id, provider),
            )
            if not updated:
                self.db.insert(
                    SETTINGS_TABLE,
                    {"organization_id": organization_id, "provider": provider, **data},
                )

        logger.info(f"✅ 통합 설정 저장: provider={provider}, org={organization_id}")

    def list_stored_secrets(self, organization_id: Optional[str] = None) -> List[Tuple[str, str, str]]:
        """저장된 (조직, 프로바이더, 암호화된 시크릿) 목록"""
        query = f"SELECT organization_id, provider, client_secret FROM {SETTINGS_TABLE} WHERE client_secret IS NOT NULL"
        params: tuple = ()
        if organization_id:
            query += " AND organization_id = ?"
            params = (organization_id,)

        rows = self.db.fetch_all(query, params)
        return [(row["organization_id"], row["provider"], row["client_secret"]) for row in rows]

    def replace_stored_secret(self, organization_id: str, provider: str, encrypted_secret: str) -> int:
        """이미 암호화된 시크릿으로 교체 (재암호화용)"""
        return self.db.update(
            SETTINGS_TABLE,
            {"client_secret": encrypted_secret, "updated_at": utc_now_iso()},
            "organization_id = ? AND provider = ?",
            (organization_id, provider),
        )
