"""Per-call API context: credential, idempotency request id and outbound headers."""

import logging
import threading
import uuid
import warnings
from collections.abc import Mapping
from dataclasses import dataclass

from .auth import MISSING_CREDENTIALS, Mode, OAuthTokenCredential, TokenFetcher
from .exceptions import AuthenticationError, InvalidArgumentError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SDKVersion:
    """Identifies the SDK issuing the calls."""

    sdk_id: str
    version: str

    def user_agent(self) -> str:
        return f"{self.sdk_id}/{self.version}"


class APIContext:
    """Wire-level parameters for API calls.

    The access token is mandatory for every call. It is either passed in directly or
    fetched (and regenerated when expired) from the client id and secret. The request
    id marks the idempotency of a call; it is generated on first use when not supplied
    and stays the same for the lifetime of the context.

    Two construction forms are supported::

        APIContext("Bearer A21AA...", request_id="order-42")
        APIContext(client_id="id", client_secret="secret", mode="sandbox")
    """

    def __init__(
        self,
        access_token: str | None = None,
        request_id: str | None = None,
        *,
        client_id: str | None = None,
        client_secret: str | None = None,
        mode: Mode | str | None = None,
        configurations: Mapping[str, str] | None = None,
        token_fetcher: TokenFetcher | None = None,
    ):
        self.sdk_version: SDKVersion | None = None
        self._mask_request_id = False
        self._request_id: str | None = None
        self._request_id_lock = threading.Lock()

        if client_id is not None or client_secret is not None:
            if access_token is not None:
                raise InvalidArgumentError(
                    "Pass either an access token or client id and secret, not both"
                )
            credential = OAuthTokenCredential(client_id, client_secret, token_fetcher=token_fetcher)
            credential.add_configurations(configurations)
            credential.set_mode(mode)
            self._credential = credential
        else:
            self._credential = OAuthTokenCredential.from_access_token(access_token)

        if request_id is not None:
            if not request_id:
                raise InvalidArgumentError("RequestId cannot be null")
            self._request_id = request_id

    @classmethod
    def from_credentials(
        cls,
        client_id: str,
        client_secret: str,
        mode: Mode | str,
        configurations: Mapping[str, str] | None = None,
        token_fetcher: TokenFetcher | None = None,
    ) -> "APIContext":
        """Create a context that fetches access tokens with the client credentials."""
        return cls(
            client_id=client_id,
            client_secret=client_secret,
            mode=mode,
            configurations=configurations,
            token_fetcher=token_fetcher,
        )

    def __repr__(self) -> str:
        return (
            f"APIContext(credential={self._credential!r}, "
            f"mask_request_id={self._mask_request_id})"
        )

    @property
    def credential(self) -> OAuthTokenCredential:
        return self._credential

    def set_refresh_token(self, refresh_token: str) -> "APIContext":
        """Set the refresh token used for third party operations such as invoicing."""
        if self._credential is None or not self._credential.has_credentials():
            raise InvalidArgumentError(MISSING_CREDENTIALS)
        self._credential.set_refresh_token(refresh_token)
        return self

    def set_mode(self, mode: Mode | str) -> "APIContext":
        """Set mode to either `live` or `sandbox`."""
        self._credential.set_mode(mode)
        return self

    def fetch_access_token(self) -> str:
        """Return the access token, regenerating it if missing or expired.

        Raises:
            AuthenticationError: If a new token could not be obtained.
        """
        return self._credential.get_access_token()

    def get_access_token(self) -> str | None:
        """Best-effort access token lookup.

        Deprecated: failures are swallowed and reported as ``None``, which hides the
        reason the token could not be obtained. Use :meth:`fetch_access_token`.
        """
        warnings.warn(
            "APIContext.get_access_token() is deprecated, use fetch_access_token() instead",
            DeprecationWarning,
            stacklevel=2,
        )
        try:
            return self.fetch_access_token()
        except AuthenticationError as e:
            logger.warning("Access token unavailable: %s", e)
            return None

    def get_request_id(self) -> str | None:
        """Return the idempotency request id, or None when masked.

        A missing id is generated on first call and kept for later calls.
        """
        if self._mask_request_id:
            return None
        with self._request_id_lock:
            if not self._request_id:
                self._request_id = str(uuid.uuid4())
                logger.debug("Generated request id %s", self._request_id)
            return self._request_id

    @property
    def mask_request_id(self) -> bool:
        return self._mask_request_id

    def set_mask_request_id(self, mask_request_id: bool) -> None:
        """Hide the request id so callers leave the idempotency header out."""
        self._mask_request_id = mask_request_id

    def get_http_headers(self) -> dict[str, str]:
        return self._credential.get_headers()

    def set_http_headers(self, http_headers: Mapping[str, str] | None) -> "APIContext":
        """Replace existing headers with the provided ones."""
        self._credential.set_headers(http_headers)
        return self

    def add_http_headers(self, http_headers: Mapping[str, str] | None) -> "APIContext":
        self._credential.add_headers(http_headers)
        return self

    def add_http_header(self, key: str, value: str) -> "APIContext":
        self._credential.add_header(key, value)
        return self

    def get_headers_map(self) -> dict[str, str]:
        """Deprecated alias of :meth:`get_http_headers`."""
        warnings.warn(
            "get_headers_map() is deprecated, use get_http_headers() instead",
            DeprecationWarning,
            stacklevel=2,
        )
        return self.get_http_headers()

    def set_headers_map(self, headers_map: Mapping[str, str] | None) -> None:
        """Deprecated alias of :meth:`set_http_headers`."""
        warnings.warn(
            "set_headers_map() is deprecated, use set_http_headers() instead",
            DeprecationWarning,
            stacklevel=2,
        )
        self.set_http_headers(headers_map)

    def get_configuration_map(self) -> dict[str, str]:
        return self._credential.get_configurations()

    def set_configuration_map(self, configuration_map: Mapping[str, str] | None) -> "APIContext":
        """Replace the existing configurations with the provided ones."""
        self._credential.set_configurations(configuration_map)
        return self

    def add_configurations(self, configurations: Mapping[str, str] | None) -> None:
        self._credential.add_configurations(configurations)

    def get_client_id(self) -> str | None:
        if self._credential is None:
            raise InvalidArgumentError(MISSING_CREDENTIALS)
        return self._credential.client_id

    def get_client_secret(self) -> str | None:
        if self._credential is None:
            raise InvalidArgumentError(MISSING_CREDENTIALS)
        return self._credential.client_secret
