"""Settings validation tests."""

import pytest
from pydantic import ValidationError

from tournament_ledger.config import Settings

STRONG_KEY = "ledger-test-signing-key-zyxwvutsrq-mnbvcxz"


def make_settings(**overrides):
    values = {"owner_identity": "0xowner", "jwt_secret_key": STRONG_KEY}
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestSettings:
    def test_defaults(self):
        settings = make_settings()
        assert settings.lock_backend == "local"
        assert settings.app_port == 4000

    def test_short_jwt_key_rejected(self):
        with pytest.raises(ValidationError):
            make_settings(jwt_secret_key="short")

    @pytest.mark.parametrize("weak", ["password", "admin", "qwerty"])
    def test_weak_jwt_key_rejected(self, weak):
        with pytest.raises(ValidationError):
            make_settings(jwt_secret_key=f"{weak}-padding-padding-padding-padding")

    def test_empty_owner_rejected(self):
        with pytest.raises(ValidationError):
            make_settings(owner_identity="")

    def test_redis_lock_needs_url(self):
        with pytest.raises(ValidationError):
            make_settings(lock_backend="redis", redis_url=None)

        settings = make_settings(lock_backend="redis", redis_url="redis://localhost:6379/0")
        assert settings.lock_backend == "redis"

    def test_production_rejects_debug(self):
        with pytest.raises(ValidationError):
            make_settings(app_env="production", app_debug=True)

    def test_production_rejects_cors_wildcard(self):
        with pytest.raises(ValidationError):
            make_settings(app_env="production", app_debug=False, cors_origins="*")
