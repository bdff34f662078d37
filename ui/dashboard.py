"""Real-time CLI dashboard for proxy monitoring."""

from datetime import datetime
from threading import Lock

from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.config import Config
from ui.log_utils import write_cli_log

console = Console()


class RequestInfo:
    """Info about a single proxied request."""

    def __init__(self, method: str, target: str, status: int, kind: str, timestamp: datetime):
        self.method = method
        self.target = target[:80] + "..." if len(target) > 80 else target
        self.status = status
        self.kind = kind
        self.timestamp = timestamp


class Dashboard:
    """Real-time dashboard showing recent proxied requests."""

    def __init__(self, config: Config):
        self.config = config
        self._lock = Lock()
        self._recent: list[RequestInfo] = []
        self._max_recent = 10
        self._request_count = {"total": 0, "rewritten": 0, "passthrough": 0, "errors": 0}
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

    def log_request(self, method: str, target_url: str) -> None:
        """Count an inbound request before it is dispatched."""
        with self._lock:
            self._request_count["total"] += 1
            write_cli_log("REQUEST", target_url, method=method)
            self._refresh()

    def log_response(
        self,
        method: str,
        target_url: str,
        status: int,
        *,
        reason: str = "",
        rewritten: bool = False,
    ) -> None:
        """Log an upstream response, rewritten or passed through."""
        kind = "rewritten" if rewritten else "passthrough"
        with self._lock:
            self._request_count[kind] += 1
            self._remember(RequestInfo(method, target_url, status, kind, datetime.now()))
            write_cli_log(
                kind.upper(),
                target_url,
                method=method,
                status=f"{status} {reason}".strip(),
            )
            self._refresh()

    def log_error(self, target_url: str, status: int, message: str) -> None:
        """Log an error."""
        with self._lock:
            self._request_count["errors"] += 1
            truncated = message[:50] + "..." if len(message) > 50 else message
            self._errors.insert(0, f"{status}: {truncated}")
            self._errors = self._errors[:3]
            self._remember(RequestInfo("-", target_url or "-", status, "error", datetime.now()))
            write_cli_log("ERROR", message[:200], target=target_url, status=status)
            self._refresh()

    def _remember(self, info: RequestInfo) -> None:
        self._recent.insert(0, info)
        self._recent = self._recent[: self._max_recent]

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
            Layout(name="footer", size=5),
        )

        layout["header"].update(self._build_header())
        layout["body"].update(self._build_requests_panel())
        layout["footer"].update(self._build_footer())

        return layout

    def _build_header(self) -> Panel:
        """Build header with stats."""
        stats = Text()
        stats.append("Mirror Proxy", style="bold cyan")
        stats.append("  |  ")
        stats.append(f"Requests: {self._request_count['total']}", style="bold")
        stats.append("  |  ")
        stats.append(f"Rewritten: {self._request_count['rewritten']}", style="blue")
        stats.append("  |  ")
        stats.append(f"Passthrough: {self._request_count['passthrough']}", style="magenta")
        stats.append("  |  ")
        stats.append(f"Errors: {self._request_count['errors']}", style="red")
        stats.append("  |  ")
        stats.append(f"Port: {self.config.proxy.port}", style="dim")

        return Panel(stats, style="cyan")

    def _build_requests_panel(self) -> Panel:
        """Build recent requests panel."""
        if self._recent:
            table = Table(show_header=True, header_style="bold", expand=True, box=None)
            table.add_column("Time", style="dim", width=8)
            table.add_column("Method", width=7)
            table.add_column("Status", width=6)
            table.add_column("Kind", width=11)
            table.add_column("Target", ratio=1)

            styles = {"rewritten": "blue", "passthrough": "magenta", "error": "red"}
            for info in self._recent:
                table.add_row(
                    info.timestamp.strftime("%H:%M:%S"),
                    info.method,
                    str(info.status),
                    Text(info.kind, style=styles[info.kind]),
                    info.target,
                )

            content = table
        else:
            content = Text("Waiting for requests...", style="dim")

        return Panel(content, title="[blue]Recent Requests[/blue]", border_style="blue")

    def _build_footer(self) -> Panel:
        """Build footer with errors and help."""
        if self._errors:
            error_text = Text()
            for err in self._errors:
                error_text.append("! ", style="red bold")
                error_text.append(err + "\n", style="red")
            content = error_text
        else:
            proxy = self.config.proxy
            content = Text(
                f"Open http://{proxy.host}:{proxy.port}{proxy.path}?target=https://example.com",
                style="dim",
            )

        return Panel(content, title="[dim]Status[/dim]", border_style="dim")
