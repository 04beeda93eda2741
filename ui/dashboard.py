"""Real-time CLI dashboard for proxy monitoring."""

from collections.abc import Mapping
from datetime import datetime
from threading import Lock

from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.config import Config
from ui.log_utils import write_cli_log, write_upstream_log

console = Console()

METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH")


class RequestInfo:
    """Info about a single forwarded request."""

    def __init__(self, method: str, url: str, timestamp: datetime):
        self.method = method
        self.url = url
        self.timestamp = timestamp
        self.status: int | None = None
        self.reason = ""


class Dashboard:
    """Real-time dashboard showing forwarded auth requests."""

    def __init__(self, config: Config):
        self.config = config
        self._lock = Lock()
        self._requests: list[RequestInfo] = []
        self._max_requests = 10
        self._request_count = dict.fromkeys(METHODS, 0)
        self._errors: list[str] = []
        self._live: Live | None = None

    def start(self) -> "Dashboard":
        """Start the live dashboard."""
        self._live = Live(
            self._build_layout(),
            console=console,
            refresh_per_second=4,
            screen=False,
        )
        self._live.start()
        return self

    def stop(self) -> None:
        """Stop the live dashboard."""
        if self._live:
            self._live.stop()

    def log_request(self, method: str, url: str, headers: Mapping[str, str]) -> None:
        """Log a request about to be forwarded upstream."""
        with self._lock:
            self._request_count[method] = self._request_count.get(method, 0) + 1
            self._requests.insert(0, RequestInfo(method, url, datetime.now()))
            self._requests = self._requests[: self._max_requests]
            self._refresh()

            if self.config.proxy.debug:
                write_upstream_log(method, url, headers)
            write_cli_log("REQUEST", url, method=method)

    def log_response(
        self,
        method: str,
        url: str,
        status: int,
        reason: str,
        headers: Mapping[str, str],
    ) -> None:
        """Log the upstream answer for a forwarded request."""
        with self._lock:
            for info in self._requests:
                if info.url == url and info.method == method and info.status is None:
                    info.status = status
                    info.reason = reason
                    break
            self._refresh()

            if self.config.proxy.debug:
                write_upstream_log(method, url, headers, status=status, reason=reason)
            write_cli_log("RESPONSE", url, method=method, status=status)

    def log_error(self, method: str, url: str, error: Exception) -> None:
        """Log a forwarding failure."""
        message = str(error)
        with self._lock:
            truncated = message[:50] + "..." if len(message) > 50 else message
            self._errors.insert(0, f"{method} {type(error).__name__}: {truncated}")
            self._errors = self._errors[:3]
            self._refresh()
            write_cli_log("ERROR", message[:200], method=method, url=url)

    def _refresh(self) -> None:
        """Refresh the display."""
        if self._live:
            self._live.update(self._build_layout())

    def _build_layout(self) -> Layout:
        """Build the dashboard layout."""
        layout = Layout()

        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="body"),
            Layout(name="footer", size=4),
        )

        layout["header"].update(self._build_header())
        layout["body"].update(self._build_requests_panel())
        layout["footer"].update(self._build_footer())

        return layout

    def _build_header(self) -> Panel:
        """Build header with stats."""
        stats = Text()
        stats.append("Neon Auth Proxy", style="bold cyan")
        for method in METHODS:
            stats.append("  |  ")
            stats.append(f"{method}: {self._request_count.get(method, 0)}", style="blue")
        stats.append("  |  ")
        stats.append(f"Port: {self.config.proxy.port}", style="dim")

        return Panel(stats, style="cyan")

    def _build_requests_panel(self) -> Panel:
        """Build the recent requests panel."""
        if self._requests:
            table = Table(show_header=True, header_style="bold", expand=True, box=None)
            table.add_column("Time", style="dim", width=8)
            table.add_column("Method", width=7)
            table.add_column("Upstream URL", ratio=3)
            table.add_column("Status", ratio=1)

            for info in self._requests:
                if info.status is None:
                    status = "[dim]...[/dim]"
                elif info.status >= 400:
                    status = f"[yellow]{info.status} {info.reason}[/yellow]"
                else:
                    status = f"[green]{info.status} {info.reason}[/green]"

                table.add_row(
                    info.timestamp.strftime("%H:%M:%S"),
                    info.method,
                    info.url,
                    status,
                )

            content = table
        else:
            content = Text("Waiting for requests...", style="dim")

        return Panel(
            content,
            title=f"[blue]Upstream {self.config.auth.base_url}[/blue]",
            border_style="blue",
        )

    def _build_footer(self) -> Panel:
        """Build footer with errors and help."""
        if self._errors:
            error_text = Text()
            for err in self._errors:
                error_text.append("! ", style="red bold")
                error_text.append(err + "\n", style="red")
            content = error_text
        else:
            content = Text(
                f"Auth routes served at http://{self.config.proxy.host}:"
                f"{self.config.proxy.port}{self.config.auth.route_prefix}",
                style="dim",
            )

        return Panel(content, title="[dim]Status[/dim]", border_style="dim")
