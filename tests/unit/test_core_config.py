"""Unit tests for configuration.

Tests cover:
- Settings defaults and environment loading (pydantic-settings)
- Duration parsing (seconds and ISO-8601)
- Validation of out-of-range values
- Conversion to SessionManagerConfig
- SessionManagerConfig validation
"""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from sessionlayer.application.session_config import SessionManagerConfig
from sessionlayer.core.config import Settings, get_settings
from sessionlayer.core.enums import Environment
from sessionlayer.domain.enums import FingerprintMode, MergePolicy, SaveStrategy


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.mark.unit
class TestSettings:
    """Settings loading and validation."""

    def test_defaults(self):
        settings = Settings()

        assert settings.storage_type == "memory"
        assert settings.session_key_prefix == "session:"
        assert settings.default_ttl == timedelta(minutes=15)
        assert settings.absolute_timeout == timedelta(hours=8)
        assert settings.ttl_refresh_threshold == 0.5
        assert settings.fingerprint_mode is FingerprintMode.SOFT
        assert settings.save_strategy is SaveStrategy.END_OF_REQUEST
        assert settings.merge_policy is MergePolicy.REJECT
        assert settings.pool_size == 10
        assert settings.connection_timeout == timedelta(seconds=2)
        assert settings.command_timeout == timedelta(seconds=1)
        assert settings.scan_batch_size == 1000

    def test_loads_from_environment(self, monkeypatch):
        monkeypatch.setenv("STORAGE_TYPE", "redis")
        monkeypatch.setenv("REDIS_URL", "redis://cache:6379/2")
        monkeypatch.setenv("DEFAULT_TTL", "1800")
        monkeypatch.setenv("ABSOLUTE_TIMEOUT", "PT12H")
        monkeypatch.setenv("FINGERPRINT_MODE", "strict")
        monkeypatch.setenv("MERGE_POLICY", "reapply_delta")
        monkeypatch.setenv("ENVIRONMENT", "production")

        settings = Settings()

        assert settings.storage_type == "redis"
        assert settings.redis_url == "redis://cache:6379/2"
        assert settings.default_ttl == timedelta(minutes=30)
        assert settings.absolute_timeout == timedelta(hours=12)
        assert settings.fingerprint_mode is FingerprintMode.STRICT
        assert settings.merge_policy is MergePolicy.REAPPLY_DELTA
        assert settings.is_production is True

    def test_environment_helpers(self):
        assert Settings(environment=Environment.DEVELOPMENT).is_development is True
        assert Settings(environment=Environment.CI).is_testing is True
        assert Settings(environment=Environment.TESTING).is_production is False

    def test_unknown_storage_type_rejected(self):
        with pytest.raises(ValidationError):
            Settings(storage_type="memcached")

    @pytest.mark.parametrize("threshold", [-0.1, 1.5])
    def test_threshold_out_of_range(self, threshold):
        with pytest.raises(ValidationError):
            Settings(ttl_refresh_threshold=threshold)

    @pytest.mark.parametrize("field", ["pool_size", "pool_retry_attempts", "scan_batch_size"])
    def test_counts_must_be_positive(self, field):
        with pytest.raises(ValidationError):
            Settings(**{field: 0})

    def test_session_id_entropy_floor(self):
        with pytest.raises(ValidationError):
            Settings(session_id_bytes=8)

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_to_manager_config(self):
        settings = Settings(
            default_ttl=timedelta(minutes=5),
            absolute_timeout=None,
            fingerprint_mode=FingerprintMode.OFF,
            ipv4_prefix_length=16,
            rotate_on_privilege_change=False,
        )

        config = settings.to_manager_config()

        assert config.default_ttl == timedelta(minutes=5)
        assert config.absolute_timeout is None
        assert config.fingerprint_mode is FingerprintMode.OFF
        assert config.ipv4_prefix_length == 16
        assert config.rotate_on_privilege_change is False


@pytest.mark.unit
class TestSessionManagerConfig:
    """Policy dataclass validation."""

    def test_defaults(self):
        config = SessionManagerConfig()

        assert config.default_ttl_seconds == 900
        assert config.max_conflict_retries == 1
        assert config.session_id_bytes == 32

    @pytest.mark.parametrize(
        "overrides",
        [
            {"default_ttl": timedelta(0)},
            {"absolute_timeout": timedelta(0)},
            {"ttl_refresh_threshold": 2.0},
            {"max_conflict_retries": -1},
            {"scan_batch_size": 0},
            {"session_id_bytes": 15},
            {"ipv4_prefix_length": 40},
            {"ipv6_prefix_length": 129},
        ],
    )
    def test_invalid_values_raise(self, overrides):
        with pytest.raises(ValueError):
            SessionManagerConfig(**overrides)

    def test_is_frozen(self):
        config = SessionManagerConfig()

        with pytest.raises(AttributeError):
            config.default_ttl = timedelta(minutes=1)  # type: ignore[misc]
