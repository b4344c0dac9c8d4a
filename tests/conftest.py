"""Shared pytest fixtures for rest-api-context tests."""

import threading
import time

import pytest

from rest_api_context.auth import OAuthTokenCredential, TokenGrant
from rest_api_context.context import APIContext
from rest_api_context.exceptions import AuthenticationError


class FakeClock:
    """Manually advanced replacement for time.time."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class StubTokenFetcher:
    """Token fetcher that replays queued grants or errors and records its calls."""

    def __init__(self, *results, delay: float = 0.0):
        self.results = list(results)
        self.delay = delay
        self.calls: list[dict] = []
        self._lock = threading.Lock()

    def fetch_token(self, client_id, client_secret, configuration, refresh_token=None):
        with self._lock:
            self.calls.append(
                {
                    "client_id": client_id,
                    "client_secret": client_secret,
                    "configuration": dict(configuration),
                    "refresh_token": refresh_token,
                }
            )
            if self.results:
                result = self.results.pop(0)
            else:
                result = TokenGrant("default-token", expires_in=3600)
        if self.delay:
            time.sleep(self.delay)
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def fake_clock() -> FakeClock:
    """Return a clock frozen until advanced."""
    return FakeClock()


@pytest.fixture
def token_fetcher():
    """Factory fixture for stub token fetchers."""

    def _create_token_fetcher(*results, delay: float = 0.0) -> StubTokenFetcher:
        return StubTokenFetcher(*results, delay=delay)

    return _create_token_fetcher


@pytest.fixture
def auth_failure() -> AuthenticationError:
    """An authorization server rejection."""
    return AuthenticationError("Token request failed (401): invalid_client", status_code=401)


@pytest.fixture
def credential(fake_clock):
    """Factory fixture for client id/secret credentials with a stub fetcher."""

    def _create_credential(
        *results,
        client_id: str | None = "client-id-123",
        client_secret: str | None = "client-secret-456",
        mode: str | None = "sandbox",
    ) -> OAuthTokenCredential:
        cred = OAuthTokenCredential(
            client_id,
            client_secret,
            token_fetcher=StubTokenFetcher(*results),
            clock=fake_clock,
        )
        if mode:
            cred.set_mode(mode)
        return cred

    return _create_credential


@pytest.fixture
def api_context():
    """Factory fixture for client credential contexts."""

    def _create_api_context(
        fetcher: StubTokenFetcher | None = None,
        mode: str = "sandbox",
        configurations: dict[str, str] | None = None,
    ) -> APIContext:
        return APIContext(
            client_id="client-id-123",
            client_secret="client-secret-456",
            mode=mode,
            configurations=configurations,
            token_fetcher=fetcher or StubTokenFetcher(),
        )

    return _create_api_context


@pytest.fixture
def bearer_context() -> APIContext:
    """Pre-configured direct token context."""
    return APIContext("Bearer test-bearer-token-xyz")
