"""Outbound header assembly for the transport layer."""

from .context import APIContext

AUTHORIZATION_HEADER = "Authorization"
REQUEST_ID_HEADER = "PayPal-Request-Id"
USER_AGENT_HEADER = "User-Agent"

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


def build_request_headers(context: APIContext) -> dict[str, str]:
    """Get the headers for one API call made with the given context.

    The request id header is left out entirely when the context masks it. Headers set
    on the context are merged last and override the defaults.

    Raises:
        AuthenticationError: If no access token could be obtained.
    """
    headers = dict(DEFAULT_HEADERS)
    headers[AUTHORIZATION_HEADER] = context.fetch_access_token()

    request_id = context.get_request_id()
    if request_id is not None:
        headers[REQUEST_ID_HEADER] = request_id

    if context.sdk_version is not None:
        headers[USER_AGENT_HEADER] = context.sdk_version.user_agent()

    headers.update(context.get_http_headers())
    return headers
