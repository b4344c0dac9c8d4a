"""CLI for rest-api-context."""

import json
import logging
import sys

import click

from .config import LIVE, SANDBOX, load_configuration
from .context import APIContext
from .exceptions import AuthenticationError, InvalidArgumentError
from .transport import build_request_headers

MODE_CHOICES = click.Choice([SANDBOX, LIVE], case_sensitive=False)


CREDENTIAL_OPTIONS = [
    click.option("--client-id", envvar="PAYPAL_CLIENT_ID", help="OAuth2 client ID"),
    click.option("--client-secret", envvar="PAYPAL_CLIENT_SECRET", help="OAuth2 client secret"),
    click.option("--mode", "-m", type=MODE_CHOICES, default=SANDBOX, help="API mode"),
    click.option(
        "--config",
        "-c",
        "config_file",
        type=click.Path(exists=True, dir_okay=False),
        help="YAML or JSON file with extra configuration",
    ),
    click.option("--refresh-token", help="Refresh token for third party operations"),
]


def credential_options(func):
    """Options shared by commands that build a context from client credentials."""
    for option in reversed(CREDENTIAL_OPTIONS):
        func = option(func)
    return func


def build_context(
    client_id: str | None,
    client_secret: str | None,
    mode: str,
    config_file: str | None,
    refresh_token: str | None,
    access_token: str | None = None,
    request_id: str | None = None,
) -> APIContext:
    """Create the context described by the command line options."""
    if access_token:
        if refresh_token or config_file:
            raise click.UsageError(
                "--refresh-token and --config need client credentials, not --access-token"
            )
        return APIContext(access_token, request_id)

    if not client_id or not client_secret:
        raise click.UsageError("--client-id and --client-secret are required (or --access-token)")

    configurations = load_configuration(config_file) if config_file else None
    context = APIContext(
        request_id=request_id,
        client_id=client_id,
        client_secret=client_secret,
        mode=mode.lower(),
        configurations=configurations,
    )
    if refresh_token:
        context.set_refresh_token(refresh_token)
    return context


def parse_header(value: str) -> tuple[str, str]:
    key, sep, header_value = value.partition("=")
    if not sep or not key.strip():
        raise click.BadParameter(f"expected KEY=VALUE, got {value!r}", param_hint="--header")
    return key.strip(), header_value


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log token handling to stderr")
def main(verbose: bool):
    """Inspect access tokens and request headers for REST API calls."""
    logging.basicConfig(
        stream=sys.stderr,
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command()
@credential_options
def token(
    client_id: str | None,
    client_secret: str | None,
    mode: str,
    config_file: str | None,
    refresh_token: str | None,
):
    """Fetch an access token with the client credentials and print it."""
    try:
        context = build_context(client_id, client_secret, mode, config_file, refresh_token)
        click.echo(context.fetch_access_token())
    except InvalidArgumentError as e:
        raise click.UsageError(str(e)) from e
    except AuthenticationError as e:
        raise click.ClickException(str(e)) from e


@main.command()
@credential_options
@click.option("--access-token", help="Use this token instead of fetching one")
@click.option("--request-id", help="Idempotency request id (generated if omitted)")
@click.option("--mask-request-id", is_flag=True, help="Leave the request id header out")
@click.option("--header", "-H", "header", multiple=True, help="Extra header as KEY=VALUE")
def headers(
    client_id: str | None,
    client_secret: str | None,
    mode: str,
    config_file: str | None,
    refresh_token: str | None,
    access_token: str | None,
    request_id: str | None,
    mask_request_id: bool,
    header: tuple[str, ...],
):
    """Print the headers an API call would be sent with, as JSON.

    \b
    Examples:
      # Client credentials, sandbox
      headers --client-id ID --client-secret SECRET

      # Existing token, fixed idempotency key
      headers --access-token "Bearer A21..." --request-id order-42

      # Extra header, no idempotency key
      headers --access-token "Bearer A21..." --mask-request-id -H X-Debug=1
    """
    extra_headers = dict(parse_header(value) for value in header)

    try:
        context = build_context(
            client_id,
            client_secret,
            mode,
            config_file,
            refresh_token,
            access_token=access_token,
            request_id=request_id,
        )
        context.set_mask_request_id(mask_request_id)
        context.add_http_headers(extra_headers)
        result = build_request_headers(context)
    except InvalidArgumentError as e:
        raise click.UsageError(str(e)) from e
    except AuthenticationError as e:
        raise click.ClickException(str(e)) from e

    click.echo(json.dumps(result, indent=2))


if __name__ == "__main__":
    main()
