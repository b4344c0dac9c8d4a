"""OAuth credential handling - cached access tokens for client id/secret or direct tokens."""

import logging
import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

import httpx

from .config import (
    CONNECTION_TIMEOUT,
    DEFAULT_CONNECTION_TIMEOUT_MS,
    MODE,
    OAUTH_ENDPOINT,
    SERVICE_ENDPOINT,
    default_endpoint,
)
from .exceptions import AuthenticationError, InvalidArgumentError

logger = logging.getLogger(__name__)

TOKEN_PATH = "/v1/oauth2/token"

MISSING_CREDENTIALS = (
    "ClientID and Secret are required. "
    "Please use APIContext(client_id=..., client_secret=..., mode=...)"
)

# Seconds of remaining lifetime below which a cached token is fetched again
TOKEN_EXPIRY_MARGIN = 120


class Mode(Enum):
    """Deployment target of the API."""

    LIVE = "live"
    SANDBOX = "sandbox"


def validate_mode(mode: Mode | str | None) -> str:
    """Return the configuration value for a mode, rejecting anything unrecognized."""
    if isinstance(mode, Mode):
        return mode.value
    if mode not in (Mode.LIVE.value, Mode.SANDBOX.value):
        raise InvalidArgumentError("Mode needs to be either `sandbox` or `live`.")
    return mode


@dataclass
class TokenGrant:
    """Token returned by the authorization server."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int = 0

    @property
    def authorization(self) -> str:
        """Value for the Authorization header."""
        return f"{self.token_type} {self.access_token}"


class TokenFetcher(Protocol):
    """Obtains access tokens from an authorization server."""

    def fetch_token(
        self,
        client_id: str,
        client_secret: str,
        configuration: Mapping[str, str],
        refresh_token: str | None = None,
    ) -> TokenGrant:
        """Return a fresh token or raise AuthenticationError."""
        ...


class HttpTokenFetcher:
    """Client credentials and refresh token grants against the OAuth2 token endpoint."""

    def __init__(self, transport: httpx.BaseTransport | None = None):
        self.transport = transport

    def token_url(self, configuration: Mapping[str, str]) -> str:
        """Resolve the token endpoint from the configuration."""
        base_url = (
            configuration.get(OAUTH_ENDPOINT)
            or configuration.get(SERVICE_ENDPOINT)
            or default_endpoint(configuration.get(MODE, ""))
        )
        return f"{base_url.rstrip('/')}{TOKEN_PATH}"

    def _timeout(self, configuration: Mapping[str, str]) -> float:
        raw = configuration.get(CONNECTION_TIMEOUT)
        try:
            millis = int(raw) if raw else DEFAULT_CONNECTION_TIMEOUT_MS
        except ValueError:
            raise InvalidArgumentError(
                f"{CONNECTION_TIMEOUT} must be an integer, got {raw!r}"
            ) from None
        return millis / 1000

    def fetch_token(
        self,
        client_id: str,
        client_secret: str,
        configuration: Mapping[str, str],
        refresh_token: str | None = None,
    ) -> TokenGrant:
        token_url = self.token_url(configuration)

        if refresh_token:
            data = {"grant_type": "refresh_token", "refresh_token": refresh_token}
        else:
            data = {"grant_type": "client_credentials"}

        logger.debug("Requesting %s token from %s", data["grant_type"], token_url)

        timeout = self._timeout(configuration)
        try:
            with httpx.Client(timeout=timeout, transport=self.transport) as client:
                response = client.post(
                    token_url,
                    data=data,
                    auth=(client_id, client_secret),
                    headers={
                        "Accept": "application/json",
                        "Content-Type": "application/x-www-form-urlencoded",
                    },
                )
        except httpx.HTTPError as e:
            raise AuthenticationError(f"Token request to {token_url} failed: {e!s}") from e

        if response.status_code != 200:
            error_detail = self._extract_error(response)
            raise AuthenticationError(
                f"Token request failed ({response.status_code}): {error_detail}",
                status_code=response.status_code,
            )

        try:
            token_data = response.json()
        except ValueError as e:
            raise AuthenticationError(
                "Token response was not valid JSON", status_code=response.status_code
            ) from e

        access_token = token_data.get("access_token") if isinstance(token_data, dict) else None
        if not access_token:
            raise AuthenticationError(
                "Token response did not contain an access_token", status_code=response.status_code
            )

        try:
            expires_in = int(token_data.get("expires_in") or 0)
        except (TypeError, ValueError) as e:
            raise AuthenticationError(
                "Token response had an invalid expires_in", status_code=response.status_code
            ) from e

        return TokenGrant(
            access_token=access_token,
            token_type=token_data.get("token_type") or "Bearer",
            expires_in=expires_in,
        )

    def _extract_error(self, response: httpx.Response) -> str:
        """Extract error message from response."""
        try:
            data = response.json()
            if isinstance(data, dict):
                return data.get("error_description") or data.get("error") or str(data)
            return str(data)
        except ValueError:
            return response.text[:200]


class OAuthTokenCredential:
    """Authentication material and API configuration for one context.

    Built either from a client id and secret, in which case access tokens are fetched
    and cached on demand, or from an access token that is used as-is.
    """

    def __init__(
        self,
        client_id: str | None,
        client_secret: str | None,
        token_fetcher: TokenFetcher | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_fetcher = token_fetcher or HttpTokenFetcher()
        self.clock = clock

        self._refresh_token: str | None = None
        self._configurations: dict[str, str] = {}
        self._headers: dict[str, str] = {}

        self._direct_token: str | None = None
        self._access_token: str | None = None
        self._expires_at: float = 0.0
        self._token_lock = threading.Lock()

    @classmethod
    def from_access_token(cls, access_token: str | None) -> "OAuthTokenCredential":
        """Create a credential that always returns the given token."""
        if not access_token:
            raise InvalidArgumentError("AccessToken cannot be null")
        credential = cls(None, None)
        credential._direct_token = access_token
        return credential

    def __repr__(self) -> str:
        return (
            f"OAuthTokenCredential(client_id={self.client_id!r}, "
            f"mode={self._configurations.get(MODE)!r})"
        )

    def has_credentials(self) -> bool:
        return bool(self.client_id) and bool(self.client_secret)

    @property
    def refresh_token(self) -> str | None:
        return self._refresh_token

    def set_refresh_token(self, refresh_token: str) -> "OAuthTokenCredential":
        """Set the refresh token used for third party token grants."""
        if not self.has_credentials():
            raise InvalidArgumentError(MISSING_CREDENTIALS)
        self._refresh_token = refresh_token
        return self

    def set_mode(self, mode: Mode | str) -> "OAuthTokenCredential":
        self._configurations[MODE] = validate_mode(mode)
        return self

    def expires_in(self) -> int:
        """Seconds until the cached token expires, 0 when nothing is cached."""
        if self._access_token is None:
            return 0
        return max(0, int(self._expires_at - self.clock()))

    def get_access_token(self) -> str:
        """Return a usable access token, fetching a new one when missing or expiring.

        Raises:
            AuthenticationError: If the token fetcher fails. The previously cached
                token, if any, is left in place.
        """
        if self._direct_token is not None:
            return self._direct_token

        with self._token_lock:
            now = self.clock()
            remaining = self._expires_at - now
            if self._access_token is not None and remaining > TOKEN_EXPIRY_MARGIN:
                logger.debug("Using cached access token, expires in %ds", int(remaining))
                return self._access_token

            if not self.has_credentials():
                raise AuthenticationError(
                    "ClientID and Secret are required to fetch an access token"
                )

            grant = self.token_fetcher.fetch_token(
                self.client_id,
                self.client_secret,
                dict(self._configurations),
                refresh_token=self._refresh_token,
            )

            self._access_token = grant.authorization
            self._expires_at = now + grant.expires_in
            logger.info(
                "Obtained %s access token valid for %ds", grant.token_type, grant.expires_in
            )
            return self._access_token

    def get_headers(self) -> dict[str, str]:
        return self._headers

    def set_headers(self, headers: Mapping[str, str] | None) -> "OAuthTokenCredential":
        self._headers = dict(headers or {})
        return self

    def add_headers(self, headers: Mapping[str, str] | None) -> "OAuthTokenCredential":
        if headers:
            self._headers.update(headers)
        return self

    def add_header(self, key: str, value: str) -> "OAuthTokenCredential":
        self._headers[key] = value
        return self

    def get_configurations(self) -> dict[str, str]:
        return self._configurations

    def set_configurations(
        self, configurations: Mapping[str, str] | None
    ) -> "OAuthTokenCredential":
        """Replace the configuration map, keeping the current mode when none is given."""
        configurations = dict(configurations or {})
        if MODE in configurations:
            configurations[MODE] = validate_mode(configurations[MODE])
        elif MODE in self._configurations:
            configurations[MODE] = self._configurations[MODE]
        self._configurations = configurations
        return self

    def add_configurations(
        self, configurations: Mapping[str, str] | None
    ) -> "OAuthTokenCredential":
        if not configurations:
            return self
        configurations = dict(configurations)
        if MODE in configurations:
            configurations[MODE] = validate_mode(configurations[MODE])
        self._configurations.update(configurations)
        return self

    def add_configuration(self, key: str, value: str) -> "OAuthTokenCredential":
        return self.add_configurations({key: value})
