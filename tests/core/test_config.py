"""Config / EnvValidator 테스트"""

import pytest

from infra.core import Config, ConfigurationError, get_config
from infra.core.env_validator import EnvValidator


class TestConfigDefaults:
    """환경변수가 없을 때 기본값"""

    def test_refresh_defaults(self, monkeypatch):
        """갱신 작업 기본값"""
        for key in (
            "TOKEN_REFRESH_WINDOW_MINUTES",
            "TOKEN_REFRESH_INTERVAL_HOURS",
            "STATE_CLEANUP_INTERVAL_HOURS",
            "MAX_REFRESH_FAILURES",
            "OAUTH_STATE_TTL_MINUTES",
        ):
            monkeypatch.delenv(key, raising=False)

        config = Config()
        assert config.token_refresh_window_minutes == 30
        assert config.token_refresh_interval_hours == 1
        assert config.state_cleanup_interval_hours == 24
        assert config.max_refresh_failures == 15
        assert config.oauth_state_ttl_minutes == 60

    def test_overrides(self, monkeypatch):
        """환경변수로 덮어쓰기"""
        monkeypatch.setenv("MAX_REFRESH_FAILURES", "3")
        monkeypatch.setenv("OAUTH_CALLBACK_URL", "https://api.example.com/oauth/callback")
        config = Config()
        assert config.max_refresh_failures == 3
        assert config.oauth_callback_url == "https://api.example.com/oauth/callback"

    def test_provider_credentials(self, monkeypatch):
        """프로바이더 접두사로 자격증명 조회"""
        monkeypatch.setenv("GOOGLE_CLIENT_ID", "gid")
        monkeypatch.setenv("GOOGLE_CLIENT_SECRET", "gsecret")
        creds = Config().get_provider_credentials("google")
        assert creds == {"client_id": "gid", "client_secret": "gsecret"}


class TestEncryptionKey:
    """암호화 비밀값은 사용 시점에 검사"""

    def test_missing(self, monkeypatch):
        monkeypatch.delenv("ENCRYPTION_KEY", raising=False)
        config = Config()
        assert config.is_encryption_configured() is False
        with pytest.raises(ConfigurationError):
            config.encryption_key

    def test_too_short(self, monkeypatch):
        monkeypatch.setenv("ENCRYPTION_KEY", "x" * 31)
        with pytest.raises(ConfigurationError):
            Config().encryption_key

    def test_valid(self, monkeypatch):
        monkeypatch.setenv("ENCRYPTION_KEY", "x" * 32)
        config = Config()
        assert config.encryption_key == "x" * 32
        assert config.is_encryption_configured() is True

    def test_to_dict_hides_secret(self, monkeypatch, tmp_path):
        """to_dict 에는 비밀값이 없음"""
        monkeypatch.setenv("ENCRYPTION_KEY", "y" * 40)
        monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "db" / "cloudlink.db"))
        data = Config().to_dict()
        assert "encryption_key" not in data
        assert "y" * 40 not in data.values()
        assert data["encryption_configured"] is True


class TestEnvValidator:
    """EnvValidator 테스트"""

    def test_invalid_value_reported(self, monkeypatch):
        """검증 함수를 통과하지 못한 값"""
        monkeypatch.setenv("MAX_REFRESH_FAILURES", "zero")
        success, result = EnvValidator().validate()
        assert success is False
        assert any("MAX_REFRESH_FAILURES" in error for error in result["errors"])

    def test_missing_key_is_recommended_only(self, monkeypatch):
        """ENCRYPTION_KEY 누락은 경고"""
        monkeypatch.delenv("ENCRYPTION_KEY", raising=False)
        success, result = EnvValidator().validate()
        assert success is True
        assert "ENCRYPTION_KEY" in result["recommended_missing"]


def test_get_config_singleton():
    """get_config 는 같은 인스턴스"""
    assert get_config() is get_config()
