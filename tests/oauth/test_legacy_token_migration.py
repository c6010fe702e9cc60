"""LegacyTokenMigration 테스트"""

from infra.core import TokenCipher
from infra.utils.datetime_utils import utc_now
from modules.oauth.credential_resolver import SETTINGS_TABLE, ProviderCredentialResolver
from modules.oauth.legacy_token_migration import LegacyTokenMigration
from modules.oauth.oauth_schema import ProviderConnection


def _store_legacy(repository, legacy_blob, organization_id="org-1", provider="stub"):
    repository.update_connection(
        organization_id,
        provider,
        {"access_token": legacy_blob("legacy-access"), "refresh_token": legacy_blob("legacy-refresh")},
    )


class TestLegacyTokenMigration:
    """레거시 토큰 재암호화"""

    def test_reencrypts_legacy_tokens(self, repository, cipher, make_connection, legacy_blob):
        make_connection()
        _store_legacy(repository, legacy_blob)

        result = LegacyTokenMigration(repository, cipher).run()

        connection = repository.get_connection("org-1", "stub")
        assert result.migrated == 1
        assert result.errors == 0
        assert not TokenCipher.is_legacy_format(connection.access_token)
        assert cipher.decrypt(connection.access_token) == "legacy-access"
        assert cipher.decrypt(connection.refresh_token) == "legacy-refresh"

    def test_current_format_untouched(self, repository, cipher, make_connection):
        before = make_connection()

        result = LegacyTokenMigration(repository, cipher).run()

        assert result.scanned == 1
        assert result.migrated == 0
        assert repository.get_connection("org-1", "stub").access_token == before.access_token

    def test_dry_run(self, repository, cipher, make_connection, legacy_blob):
        make_connection()
        _store_legacy(repository, legacy_blob)

        result = LegacyTokenMigration(repository, cipher).run(dry_run=True)

        assert result.migrated == 1
        assert TokenCipher.is_legacy_format(repository.get_connection("org-1", "stub").access_token)

    def test_organization_filter(self, repository, cipher, make_connection, legacy_blob):
        for org in ("org-1", "org-2"):
            make_connection(organization_id=org)
            _store_legacy(repository, legacy_blob, organization_id=org)

        result = LegacyTokenMigration(repository, cipher).run(organization_id="org-2")

        assert result.scanned == 1
        assert TokenCipher.is_legacy_format(repository.get_connection("org-1", "stub").access_token)
        assert not TokenCipher.is_legacy_format(repository.get_connection("org-2", "stub").access_token)

    def test_undecryptable_record_counted(self, repository, cipher, make_connection, legacy_blob):
        make_connection(organization_id="org-bad")
        repository.update_connection(
            "org-bad", "stub",
            {"access_token": legacy_blob("x", secret="some-other-secret-value-0123456789ab")},
        )
        make_connection(organization_id="org-good")
        _store_legacy(repository, legacy_blob, organization_id="org-good")

        result = LegacyTokenMigration(repository, cipher).run()

        assert result.errors == 1
        assert result.migrated == 1

    def test_provider_connection_documents(self, repository, cipher, legacy_blob):
        repository.add_provider_connection(
            ProviderConnection(
                id="doc-1",
                organization_id="org-1",
                provider="stubchat",
                access_token=legacy_blob("doc-access"),
                connected_at=utc_now(),
            )
        )

        result = LegacyTokenMigration(repository, cipher).run()

        document = repository.get_provider_connection("doc-1")
        assert result.migrated == 1
        assert cipher.decrypt(document.access_token) == "doc-access"


class TestClientSecretMigration:
    """조직별 클라이언트 시크릿 재암호화"""

    def _store_legacy_secret(self, db, legacy_blob, organization_id="org-1"):
        db.insert(
            SETTINGS_TABLE,
            {
                "organization_id": organization_id,
                "provider": "google",
                "client_id": "org-client",
                "client_secret": legacy_blob("org-client-secret"),
                "is_configured": 1,
            },
        )

    def _secret(self, db, organization_id="org-1"):
        row = db.fetch_one(
            f"SELECT client_secret FROM {SETTINGS_TABLE} WHERE organization_id = ? AND provider = ?",
            (organization_id, "google"),
        )
        return row["client_secret"]

    def test_reencrypts_legacy_secret(self, db, repository, cipher, legacy_blob):
        self._store_legacy_secret(db, legacy_blob)

        result = LegacyTokenMigration(repository, cipher).run()

        stored = self._secret(db)
        assert result.scanned == 1
        assert result.migrated == 1
        assert not TokenCipher.is_legacy_format(stored)
        assert cipher.decrypt(stored) == "org-client-secret"
        resolver = ProviderCredentialResolver(db=db, cipher=cipher)
        assert resolver.resolve("google", "org-1").client_secret == "org-client-secret"

    def test_dry_run_keeps_legacy_secret(self, db, repository, cipher, legacy_blob):
        self._store_legacy_secret(db, legacy_blob)

        result = LegacyTokenMigration(repository, cipher).run(dry_run=True)

        assert result.migrated == 1
        assert TokenCipher.is_legacy_format(self._secret(db))

    def test_current_secret_and_org_filter(self, db, repository, cipher, legacy_blob):
        ProviderCredentialResolver(db=db, cipher=cipher).save_settings("org-1", "google", "id", "secret")
        self._store_legacy_secret(db, legacy_blob, organization_id="org-2")

        result = LegacyTokenMigration(repository, cipher).run(organization_id="org-1")

        assert result.scanned == 1
        assert result.migrated == 0
        assert TokenCipher.is_legacy_format(self._secret(db, "org-2"))
