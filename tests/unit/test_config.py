"""Unit tests for configuration models."""

import pytest
from pydantic import ValidationError

from auth_dispatch_sdk.config import (
    ClientCredentials,
    DispatcherConfig,
    TelemetryConfig,
    TransportConfig,
)
from auth_dispatch_sdk.errors import InvalidConfigError

PREFIX = "AUTH_DISPATCH_"


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for key in (
        "CLIENT_ID",
        "CLIENT_SECRET",
        "BASE_URL",
        "TIMEOUT",
        "CONNECT_TIMEOUT",
        "TRANSFORM_KEYS",
        "NETWORK_POLL_INTERVAL",
        "PROPAGATE_ERRORS",
        "DEBUG_COOKIE",
        "TELEMETRY_ENABLED",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(f"{PREFIX}{key}", raising=False)
    return monkeypatch


class TestClientCredentials:
    def test_payload(self, client_credentials: ClientCredentials) -> None:
        assert client_credentials.as_payload() == {
            "client_id": "client-id",
            "client_secret": "client-secret",
        }

    def test_secret_hidden(self, client_credentials: ClientCredentials) -> None:
        assert "client-secret" not in repr(client_credentials)

    def test_from_env(self, clean_env) -> None:
        clean_env.setenv(f"{PREFIX}CLIENT_ID", "env-id")
        clean_env.setenv(f"{PREFIX}CLIENT_SECRET", "env-secret")

        credentials = ClientCredentials.from_env()

        assert credentials.client_id == "env-id"
        assert credentials.client_secret.get_secret_value() == "env-secret"

    def test_from_env_missing(self, clean_env) -> None:
        clean_env.setenv(f"{PREFIX}CLIENT_ID", "env-id")

        with pytest.raises(InvalidConfigError) as exc_info:
            ClientCredentials.from_env()

        assert exc_info.value.details == {"field": "client_secret"}

    def test_empty_client_id_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ClientCredentials(client_id="", client_secret="s")


class TestTelemetryConfig:
    def test_defaults(self) -> None:
        config = TelemetryConfig()

        assert config.enabled is True
        assert config.service_name == "auth-dispatch-sdk"
        assert config.log_level == "INFO"

    def test_log_level_normalized(self) -> None:
        assert TelemetryConfig(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self) -> None:
        with pytest.raises(ValidationError):
            TelemetryConfig(log_level="VERBOSE")


class TestTransportConfig:
    def test_defaults(self) -> None:
        config = TransportConfig(base_url="https://api.example.com")

        assert config.timeout == 20.0
        assert config.connect_timeout == 10.0
        assert config.transform_keys is True
        assert config.base_url_str == "https://api.example.com/"

    def test_base_url_single_trailing_slash(self) -> None:
        config = TransportConfig(base_url="https://api.example.com/v2/")

        assert config.base_url_str == "https://api.example.com/v2/"

    def test_resolved_headers(self) -> None:
        config = TransportConfig(
            base_url="https://api.example.com",
            accept="application/json",
            default_headers={"X-App": "tests", "Accept": "text/plain"},
        )

        assert config.resolved_headers() == {"X-App": "tests", "Accept": "application/json"}

    def test_invalid_url(self) -> None:
        with pytest.raises(ValidationError):
            TransportConfig(base_url="not a url")

    @pytest.mark.parametrize("timeout", [0, -1, 301])
    def test_invalid_timeout(self, timeout) -> None:
        with pytest.raises(ValidationError):
            TransportConfig(base_url="https://api.example.com", timeout=timeout)

    def test_with_overrides(self) -> None:
        config = TransportConfig(base_url="https://api.example.com")

        updated = config.with_overrides(timeout=5.0)

        assert updated.timeout == 5.0
        assert config.timeout == 20.0
        assert updated.base_url == config.base_url

    def test_frozen(self) -> None:
        config = TransportConfig(base_url="https://api.example.com")

        with pytest.raises(ValidationError):
            config.timeout = 1.0

    def test_from_env(self, clean_env) -> None:
        clean_env.setenv(f"{PREFIX}BASE_URL", "https://env.example.com")
        clean_env.setenv(f"{PREFIX}TIMEOUT", "7.5")
        clean_env.setenv(f"{PREFIX}TRANSFORM_KEYS", "false")

        config = TransportConfig.from_env()

        assert config.base_url_str == "https://env.example.com/"
        assert config.timeout == 7.5
        assert config.transform_keys is False

    def test_from_env_custom_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MYAPP_BASE_URL", "https://custom.example.com")

        assert TransportConfig.from_env("MYAPP_").base_url_str == "https://custom.example.com/"

    def test_from_env_missing_base_url(self, clean_env) -> None:
        with pytest.raises(InvalidConfigError):
            TransportConfig.from_env()

    def test_from_env_bad_number(self, clean_env) -> None:
        clean_env.setenv(f"{PREFIX}BASE_URL", "https://env.example.com")
        clean_env.setenv(f"{PREFIX}TIMEOUT", "soon")

        with pytest.raises(InvalidConfigError) as exc_info:
            TransportConfig.from_env()

        assert exc_info.value.details == {"field": "timeout"}


class TestDispatcherConfig:
    def test_defaults(self) -> None:
        config = DispatcherConfig()

        assert config.network_poll_interval == 2.0
        assert config.propagate_errors is False
        assert config.debug_cookie is None

    def test_invalid_poll_interval(self) -> None:
        with pytest.raises(ValidationError):
            DispatcherConfig(network_poll_interval=0)

    def test_with_overrides_keeps_secret(self) -> None:
        config = DispatcherConfig(debug_cookie="XDEBUG_SESSION=1")

        updated = config.with_overrides(propagate_errors=True)

        assert updated.propagate_errors is True
        assert updated.debug_cookie.get_secret_value() == "XDEBUG_SESSION=1"

    def test_from_env(self, clean_env) -> None:
        clean_env.setenv(f"{PREFIX}NETWORK_POLL_INTERVAL", "0.5")
        clean_env.setenv(f"{PREFIX}PROPAGATE_ERRORS", "yes")
        clean_env.setenv(f"{PREFIX}DEBUG_COOKIE", "XDEBUG_SESSION=1")
        clean_env.setenv(f"{PREFIX}TELEMETRY_ENABLED", "0")
        clean_env.setenv(f"{PREFIX}LOG_LEVEL", "warning")

        config = DispatcherConfig.from_env()

        assert config.network_poll_interval == 0.5
        assert config.propagate_errors is True
        assert config.debug_cookie.get_secret_value() == "XDEBUG_SESSION=1"
        assert config.telemetry.enabled is False
        assert config.telemetry.log_level == "WARNING"

    def test_from_env_defaults(self, clean_env) -> None:
        config = DispatcherConfig.from_env()

        assert config == DispatcherConfig()
