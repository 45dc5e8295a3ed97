"""
Shared test fixtures for auth dispatch SDK tests.

Provides configuration, credential stores, a scripted transport and a
dispatcher factory wired together the way applications use them.
"""

from collections.abc import Callable
from typing import Any

import pytest
from hypothesis import settings

from auth_dispatch_sdk.config import (
    ClientCredentials,
    DispatcherConfig,
    TelemetryConfig,
)
from auth_dispatch_sdk.credentials import InMemoryCredentialStore
from auth_dispatch_sdk.dispatcher import AuthDispatcher
from auth_dispatch_sdk.strategies import PasswordOAuthStrategy
from auth_dispatch_sdk.testing import MockTransport

settings.register_profile("ci", max_examples=100)
settings.register_profile("dev", max_examples=25)
settings.load_profile("dev")


@pytest.fixture
def client_credentials() -> ClientCredentials:
    """Provide OAuth client credentials for testing."""
    return ClientCredentials(client_id="client-id", client_secret="client-secret")


@pytest.fixture
def telemetry_config() -> TelemetryConfig:
    """Provide telemetry configuration for testing."""
    return TelemetryConfig(enabled=False, service_name="test-sdk")


@pytest.fixture
def dispatcher_config(telemetry_config: TelemetryConfig) -> DispatcherConfig:
    """Provide dispatcher configuration with a short poll interval."""
    return DispatcherConfig(network_poll_interval=0.01, telemetry=telemetry_config)


@pytest.fixture
def seeded_tokens() -> dict[str, str]:
    """Tokens present before any refresh."""
    return {"accessToken": "A1", "refreshToken": "R1"}


@pytest.fixture
def new_tokens() -> dict[str, str]:
    """Tokens returned by the token endpoint."""
    return {"accessToken": "A2", "refreshToken": "R2"}


@pytest.fixture
def store(seeded_tokens: dict[str, str]) -> InMemoryCredentialStore:
    """Provide a credential store seeded with the first token pair."""
    return InMemoryCredentialStore(seeded_tokens)


@pytest.fixture
def transport() -> MockTransport:
    """Provide a scripted transport."""
    return MockTransport()


class FailureRecorder:
    """Collects errors passed to ``on_auth_failure``."""

    def __init__(self) -> None:
        self.errors: list[BaseException] = []

    def __call__(self, error: BaseException) -> None:
        self.errors.append(error)


@pytest.fixture
def on_auth_failure() -> FailureRecorder:
    return FailureRecorder()


@pytest.fixture
def make_dispatcher(
    transport: MockTransport,
    store: InMemoryCredentialStore,
    client_credentials: ClientCredentials,
    on_auth_failure: FailureRecorder,
    dispatcher_config: DispatcherConfig,
) -> Callable[..., AuthDispatcher]:
    """Build a dispatcher around the shared fixtures; keyword args override."""

    def factory(**overrides: Any) -> AuthDispatcher:
        kwargs: dict[str, Any] = {
            "transport": transport,
            "credential_store": store,
            "strategy": PasswordOAuthStrategy(client_credentials),
            "on_auth_failure": on_auth_failure,
            "config": dispatcher_config,
        }
        kwargs.update(overrides)
        return AuthDispatcher(**kwargs)

    return factory


@pytest.fixture
def api(make_dispatcher: Callable[..., AuthDispatcher]) -> AuthDispatcher:
    """Provide a dispatcher using the password OAuth strategy."""
    return make_dispatcher()
