"""Configuration keys, endpoint defaults and configuration file loading."""

import json
from pathlib import Path

import yaml

from .exceptions import InvalidArgumentError

MODE = "mode"
SANDBOX = "sandbox"
LIVE = "live"

SERVICE_ENDPOINT = "service.EndPoint"
OAUTH_ENDPOINT = "oauth.EndPoint"
CONNECTION_TIMEOUT = "http.ConnectionTimeOut"

SANDBOX_ENDPOINT = "https://api.sandbox.paypal.com"
LIVE_ENDPOINT = "https://api.paypal.com"

DEFAULT_CONNECTION_TIMEOUT_MS = 60000


def default_endpoint(mode: str) -> str:
    """Return the REST base URL for a mode."""
    match mode:
        case "sandbox":
            return SANDBOX_ENDPOINT
        case "live":
            return LIVE_ENDPOINT
    raise InvalidArgumentError(f"Mode needs to be either `{SANDBOX}` or `{LIVE}`.")


def load_configuration(source: str) -> dict[str, str]:
    """Load a flat configuration map from a YAML or JSON file.

    Values are converted to strings so the result can be passed straight to
    ``APIContext(configurations=...)``.
    """
    path = Path(source)
    content = path.read_text()
    try:
        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(content)
        else:
            data = json.loads(content)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise InvalidArgumentError(f"Could not parse configuration file {source}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidArgumentError(f"Configuration file {source} must contain a mapping")

    configuration = {}
    for key, value in data.items():
        if isinstance(value, (dict, list)):
            raise InvalidArgumentError(f"Configuration key {key!r} must have a scalar value")
        configuration[str(key)] = "" if value is None else str(value)
    return configuration
