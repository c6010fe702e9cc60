"""
레거시 토큰 재암호화

iv:authTag:ciphertext (hex) 형식으로 남아 있는 토큰과 조직별 클라이언트 시크릿을
현재 방식으로 다시 암호화합니다.
읽기 경로는 계속 레거시 형식을 지원하므로 이 작업은 언제 실행해도 안전합니다.
"""

from typing import Dict, Optional

from infra.core import TokenCipher, get_logger, get_token_cipher

from .connection_repository import ConnectionRepository
from .credential_resolver import ProviderCredentialResolver
from .oauth_schema import MigrationResult

logger = get_logger(__name__)

TOKEN_FIELDS = ("access_token", "refresh_token")


class LegacyTokenMigration:
    """저장된 레거시 형식 토큰을 현재 형식으로 변환"""

    def __init__(
        self,
        repository: Optional[ConnectionRepository] = None,
        cipher: Optional[TokenCipher] = None,
        credential_resolver: Optional[ProviderCredentialResolver] = None,
    ):
        self.repository = repository or ConnectionRepository()
        self.cipher = cipher or get_token_cipher()
        self.credential_resolver = credential_resolver or ProviderCredentialResolver(
            db=self.repository.db, cipher=self.cipher
        )

    def _reencrypt(self, values: Dict[str, Optional[str]]) -> Dict[str, str]:
        """레거시 형식 필드만 골라 재암호화"""
        return {
            field: self.cipher.encrypt(self.cipher.decrypt_legacy(value))
            for field, value in values.items()
            if value and TokenCipher.is_legacy_format(value)
        }

    def run(self, organization_id: Optional[str] = None, dry_run: bool = False) -> MigrationResult:
        """
        재암호화 실행

        Args:
            organization_id: 특정 조직만 처리 (None이면 전체)
            dry_run: True면 대상만 집계하고 저장하지 않음

        Returns:
            MigrationResult: 검사/변환/실패 건수
        """
        result = MigrationResult()
        logger.info(f"🔑 레거시 토큰 마이그레이션 시작: org={organization_id or 'ALL'}, dry_run={dry_run}")

        for connection in self.repository.list_all_connections():
            if organization_id and connection.organization_id != organization_id:
                continue
            result.scanned += 1
            try:
                fields = self._reencrypt({f: getattr(connection, f) for f in TOKEN_FIELDS})
                if not fields:
                    continue
                if not dry_run:
                    self.repository.update_connection(connection.organization_id, connection.provider, fields)
                result.migrated += 1
                logger.info(
                    f"재암호화: provider={connection.provider}, org={connection.organization_id}, "
                    f"fields={sorted(fields)}"
                )
            except Exception as e:
                result.errors += 1
                logger.error(
                    f"❌ 재암호화 실패: provider={connection.provider}, "
                    f"org={connection.organization_id} - {str(e)}"
                )

        for document in self.repository.list_provider_connections(organization_id=organization_id):
            result.scanned += 1
            try:
                fields = self._reencrypt({f: getattr(document, f) for f in TOKEN_FIELDS})
                if not fields:
                    continue
                if not dry_run:
                    self.repository.update_provider_connection(document.id, fields)
                result.migrated += 1
            except Exception as e:
                result.errors += 1
                logger.error(f"❌ 연결 문서 재암호화 실패: id={document.id} - {str(e)}")

        for settings_org, provider, secret in self.credential_resolver.list_stored_secrets(organization_id):
            result.scanned += 1
            try:
                fields = self._reencrypt({"client_secret": secret})
                if not fields:
                    continue
                if not dry_run:
                    self.credential_resolver.replace_stored_secret(settings_org, provider, fields["client_secret"])
                result.migrated += 1
                logger.info(f"클라이언트 시크릿 재암호화: provider={provider}, org={settings_org}")
            except Exception as e:
                result.errors += 1
                logger.error(f"❌ 시크릿 재암호화 실패: provider={provider}, org={settings_org} - {str(e)}")

        logger.info(
            f"✅ 레거시 토큰 마이그레이션 완료: 검사 {result.scanned}, "
            f"변환 {result.migrated}, 실패 {result.errors}"
        )
        return result
