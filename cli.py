"""CLI entry point for neon-auth-proxy."""

import sys
from datetime import datetime

from rich.console import Console

from app import create_app
from core.config import CONFIG_FILE, Config, load_config
from core.exceptions import ConfigurationError
from ui.dashboard import Dashboard
from ui.log_utils import clear_logs, write_cli_log

console = Console()


def main():
    """Main CLI entry point."""
    arg = sys.argv[1] if len(sys.argv) > 1 else None

    if arg == "--config":
        console.print(f"[bold]Config:[/bold] {CONFIG_FILE}")
        return

    if arg in ("--help", "-h"):
        _print_help()
        return

    try:
        config = load_config()
    except ConfigurationError as e:
        console.print(f"[red][ERROR][/red] {e}")
        console.print(f"[dim]Set NEON_AUTH_BASE_URL or edit {CONFIG_FILE}[/dim]")
        sys.exit(1)

    if arg == "--check":
        _print_config(config)
        return

    # Clear previous logs and start dashboard
    clear_logs()
    dashboard = Dashboard(config)

    import uvicorn

    app = create_app(config, dashboard)

    uvicorn_config = uvicorn.Config(
        app,
        host=config.proxy.host,
        port=config.proxy.port,
        log_level="warning",
    )
    server = uvicorn.Server(uvicorn_config)

    dashboard.start()
    start_time = datetime.now()
    write_cli_log("STARTUP", "Proxy started", port=config.proxy.port, upstream=config.auth.base_url)
    try:
        server.run()
    finally:
        duration = datetime.now() - start_time
        write_cli_log("SHUTDOWN", "Proxy stopped", duration=str(duration))
        dashboard.stop()


def _print_config(config: Config) -> None:
    """Print the resolved configuration."""
    console.print("[green]Configuration OK[/green]")
    console.print(f"[bold]Upstream:[/bold] {config.auth.base_url}")
    console.print(f"[bold]Route prefix:[/bold] {config.auth.route_prefix}")
    console.print(f"[bold]Login URL:[/bold] {config.auth.login_url}")
    routes = ", ".join(config.auth.matched_routes) or "[dim]none[/dim]"
    console.print(f"[bold]Protected routes:[/bold] {routes}")
    console.print(f"[bold]Forward query:[/bold] {config.auth.forward_query}")
    timeout = config.auth.timeout if config.auth.timeout is not None else "client default"
    console.print(f"[bold]Timeout:[/bold] {timeout}")


def _print_help():
    """Print help message."""
    help_text = """
[bold cyan]Neon Auth Proxy[/bold cyan]

Same-origin proxy for the auth service: forwards /api/auth/* upstream
with only safelisted headers and session cookies.

[bold]Usage:[/bold]
    neon-auth-proxy              Start with live dashboard
    neon-auth-proxy --check      Validate and show configuration
    neon-auth-proxy --config     Show config location
    neon-auth-proxy --help       Show this help

[bold]Configuration:[/bold]
    NEON_AUTH_BASE_URL (required), NEON_AUTH_LOGIN_URL,
    NEON_AUTH_ROUTE_PREFIX, NEON_AUTH_MATCHED_ROUTES,
    NEON_AUTH_FORWARD_QUERY, NEON_AUTH_TIMEOUT, PROXY_HOST, PROXY_PORT,
    PROXY_DEBUG (write JSON header logs under logs/)
"""
    console.print(help_text)


if __name__ == "__main__":
    main()
