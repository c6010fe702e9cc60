"""ProviderCredentialResolver 테스트"""

import pytest

from infra.core import ConfigurationError
from modules.oauth.credential_resolver import SETTINGS_TABLE, ProviderCredentialResolver


@pytest.fixture
def resolver(db, cipher):
    return ProviderCredentialResolver(db=db, cipher=cipher)


class TestResolve:
    """자격증명 조회 우선순위"""

    def test_organization_settings_first(self, resolver, monkeypatch):
        monkeypatch.setenv("GOOGLE_CLIENT_ID", "env-id")
        monkeypatch.setenv("GOOGLE_CLIENT_SECRET", "env-secret")
        resolver.save_settings("org-1", "google", "org-id", "org-secret", redirect_uri="https://org.example.com/cb")

        credentials = resolver.resolve("google", "org-1")

        assert credentials.client_id == "org-id"
        assert credentials.client_secret == "org-secret"
        assert credentials.redirect_uri == "https://org.example.com/cb"
        assert credentials.source == "organization"

    def test_environment_fallback(self, resolver, monkeypatch):
        monkeypatch.setenv("BOX_CLIENT_ID", "env-id")
        monkeypatch.setenv("BOX_CLIENT_SECRET", "env-secret")

        credentials = resolver.resolve("box", "org-without-settings")

        assert credentials.client_id == "env-id"
        assert credentials.source == "environment"

    def test_not_configured(self, resolver, monkeypatch):
        monkeypatch.delenv("DROPBOX_CLIENT_ID", raising=False)
        monkeypatch.delenv("DROPBOX_CLIENT_SECRET", raising=False)

        with pytest.raises(ConfigurationError):
            resolver.resolve("dropbox", "org-1")

    def test_unconfigured_row_ignored(self, resolver, db, monkeypatch):
        monkeypatch.setenv("SLACK_CLIENT_ID", "env-id")
        monkeypatch.setenv("SLACK_CLIENT_SECRET", "env-secret")
        db.insert(SETTINGS_TABLE, {"organization_id": "org-1", "provider": "slack", "client_id": "x", "is_configured": 0})

        assert resolver.resolve("slack", "org-1").source == "environment"

    def test_undecryptable_secret(self, resolver, db):
        db.insert(
            SETTINGS_TABLE,
            {
                "organization_id": "org-1",
                "provider": "google",
                "client_id": "org-id",
                "client_secret": "plaintext-secret",
                "is_configured": 1,
            },
        )
        with pytest.raises(ConfigurationError):
            resolver.resolve("google", "org-1")


class TestSaveSettings:
    """조직 설정 저장"""

    def test_secret_encrypted_at_rest(self, resolver, db, cipher):
        resolver.save_settings("org-1", "google", "org-id", "org-secret")

        row = db.fetch_one(f"SELECT * FROM {SETTINGS_TABLE} WHERE organization_id = ?", ("org-1",))
        assert row["client_secret"] != "org-secret"
        assert cipher.decrypt(row["client_secret"]) == "org-secret"

    def test_save_twice_updates(self, resolver, db):
        resolver.save_settings("org-1", "google", "first-id", "first-secret")
        resolver.save_settings("org-1", "google", "second-id", "second-secret")

        rows = db.fetch_all(f"SELECT * FROM {SETTINGS_TABLE}")
        assert len(rows) == 1
        assert resolver.resolve("google", "org-1").client_id == "second-id"
