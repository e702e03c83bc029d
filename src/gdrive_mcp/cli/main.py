"""Command-line interface for gdrive-mcp."""

import asyncio
import os
import sys

import click
from dotenv import load_dotenv
from pydantic import ValidationError

from gdrive_mcp.__version__ import __version__
from gdrive_mcp.config import (
    ENV_CLIENT_ID,
    ENV_CLIENT_SECRET,
    ENV_CREDENTIALS_PATH,
    ENV_LOG_LEVEL,
    ServerConfig,
    TransportMode,
    configure_logging,
)


def _echo_missing(missing: list[str]) -> None:
    click.echo("Missing required environment variables:", err=True)
    for name in missing:
        click.echo(f"- {name}", err=True)


@click.group(invoke_without_command=True)
@click.option("--sse", is_flag=True, help="Serve over Server-Sent Events (MCP Inspector)")
@click.option("--websocket", is_flag=True, help="Serve over WebSocket at /mcp")
@click.version_option(version=__version__)
@click.pass_context
def main(ctx: click.Context, sse: bool, websocket: bool) -> None:
    """Google Drive MCP Server - read-only Drive access for MCP clients.

    Without a subcommand, starts the server. The transport is stdio unless
    --sse/--websocket (or MCP_TRANSPORT) selects an HTTP front-end.

    Requires GDRIVE_ACCESS_TOKEN, GDRIVE_REFRESH_TOKEN, GDRIVE_CLIENT_ID,
    GDRIVE_CLIENT_SECRET and GDRIVE_CREDENTIALS_PATH, read from the
    environment or a .env file. Run 'gdrive-mcp auth' to obtain tokens.
    """
    load_dotenv()

    if ctx.invoked_subcommand is not None:
        return

    try:
        config = ServerConfig.from_env(sse=sse, websocket=websocket)
    except ValidationError as e:
        click.echo("Invalid server configuration:", err=True)
        for error in e.errors():
            click.echo(f"- {error['loc'][0]}: {error['msg']}", err=True)
        sys.exit(1)

    configure_logging(config.log_level)
    _serve(config)


def _serve(config: ServerConfig) -> None:
    from gdrive_mcp.auth import MissingConfigError, materialize_from_config
    from gdrive_mcp.drive import DriveClient
    from gdrive_mcp.server import create_server
    from gdrive_mcp.server.http_app import run_http_server

    try:
        record = materialize_from_config()
    except MissingConfigError as e:
        _echo_missing(e.missing)
        sys.exit(1)
    except OSError as e:
        click.echo(f"Error writing credentials file: {e}", err=True)
        sys.exit(1)

    gdrive = create_server(DriveClient(record.to_credentials()))

    try:
        if config.transport == TransportMode.STDIO:
            click.echo("Starting MCP server with stdio transport...", err=True)
            asyncio.run(gdrive.run_stdio())
        else:
            click.echo(
                f"Starting {config.transport.value} server on port {config.port}...", err=True
            )
            run_http_server(gdrive, config)
    except KeyboardInterrupt:
        click.echo("\nServer stopped.", err=True)


@main.command()
def auth() -> None:
    """Run the Google OAuth consent flow and save new tokens.

    This will:
    1. Open browser for OAuth2 consent (drive.readonly scope)
    2. Write the tokens to $GDRIVE_CREDENTIALS_PATH
    3. Print the token variables to copy into your .env file

    Requires GDRIVE_CLIENT_ID, GDRIVE_CLIENT_SECRET and GDRIVE_CREDENTIALS_PATH.
    """
    from gdrive_mcp.auth import AuthFlowError, MissingConfigError, OAuthManager

    configure_logging(os.environ.get(ENV_LOG_LEVEL) or "INFO")
    click.echo("Launching auth flow...")

    try:
        manager = OAuthManager.from_env()
    except MissingConfigError as e:
        click.echo("Required environment variables must be set in .env file:", err=True)
        for name in e.missing:
            click.echo(f"- {name}", err=True)
        sys.exit(1)

    try:
        credentials = asyncio.run(
            manager.authenticate(
                client_id=os.environ[ENV_CLIENT_ID],
                client_secret=os.environ[ENV_CLIENT_SECRET],
            )
        )
    except (AuthFlowError, MissingConfigError, OSError) as e:
        click.echo(f"Authentication failed: {e}", err=True)
        sys.exit(1)

    click.echo(f"Credentials saved to: {manager.token_path}")
    click.echo("")
    click.echo("Update your .env file with these tokens:")
    click.echo(f"GDRIVE_ACCESS_TOKEN={credentials.token}")
    click.echo(f"GDRIVE_REFRESH_TOKEN={credentials.refresh_token}")
    click.echo("")
    click.echo("You can now run the server with: gdrive-mcp")


@main.command()
def doctor() -> None:
    """Check configuration and credentials status.

    Verifies:
    1. Required environment variables are set
    2. The credentials file exists and parses
    """
    from gdrive_mcp.auth import TokenStatus, TokenStorage
    from gdrive_mcp.auth.token_storage import REQUIRED_SERVE_VARIABLES, find_missing

    click.echo("Google Drive MCP Status:")
    click.echo("")

    missing = find_missing(os.environ, REQUIRED_SERVE_VARIABLES)
    click.echo("Environment:")
    for name in REQUIRED_SERVE_VARIABLES:
        mark = "❌" if name in missing else "✓"
        click.echo(f"  {mark} {name}")
    click.echo("")

    credentials_path = os.environ.get(ENV_CREDENTIALS_PATH)
    click.echo("Credentials:")
    if not credentials_path:
        click.echo("  ❌ GDRIVE_CREDENTIALS_PATH not set")
        click.echo("")
        click.echo("❌ Setup required. Set the variables above or run 'gdrive-mcp auth'.")
        sys.exit(1)

    storage = TokenStorage(credentials_path)
    status = storage.get_status()
    click.echo(f"  File: {storage.token_path}")

    if status == TokenStatus.MISSING:
        click.echo("  ⚠️  Not written yet (created when the server starts)")
    elif status == TokenStatus.INVALID:
        click.echo("  ❌ Credentials file corrupted")
    elif status == TokenStatus.EXPIRED:
        click.echo("  ⚠️  Token expired (run 'gdrive-mcp auth' for new tokens)")
    else:
        click.echo("  ✓ Credentials present")
    click.echo("")

    if missing:
        click.echo("❌ Setup required. Set the variables above or run 'gdrive-mcp auth'.")
        sys.exit(1)
    click.echo("✓ Ready to use!")


if __name__ == "__main__":
    main()
