"""Rich renderables for the nm-wifi session.

Builds one Rich renderable per tick from a read-only :class:`Session`:
header, body (network table or the modal panel for the current phase) and
a status bar with key hints.  Can be used standalone to preview the list::

    python -m nmwifi.display.screens          # render a demo screen
"""

from __future__ import annotations

import time

from rich.console import Console, Group, RenderableType
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from nmwifi.session import Phase, Session
from nmwifi.wifi_common import (
    Network,
    frequency_band,
    signal_color,
    signal_quality,
)

APP_NAME = "nm-wifi"
APP_VERSION = "0.1.0"

GRAPH_WIDTH = 20
PROGRESS_WIDTH = 30
# Progress tops out below 100% while the backend call is still running.
PROGRESS_CAP = 0.9
PROGRESS_FULL_MS = 5000
SPINNER_FRAMES = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"

KEY_HINTS: dict[Phase, str] = {
    Phase.NETWORK_LIST: "h:Help | i:Info | r:Rescan | c/Enter:Connect | d:Disconnect | q:Quit",
    Phase.HELP: "h/q/Esc:Back",
    Phase.NETWORK_DETAILS: "q/i/Esc:Back",
    Phase.PASSWORD_INPUT: "Enter:Connect | Tab:Show/Hide | Esc:Cancel",
    Phase.CONNECTION_RESULT: "Enter:Continue | q/Esc:Quit",
}
DEFAULT_HINT = "Esc:Cancel | q:Quit"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def create_signal_graph(strength: int, width: int = GRAPH_WIDTH) -> str:
    """Build a bar like '██████░░░░' proportional to *strength* percent."""
    filled = max(0, min(width, strength * width // 100))
    return "█" * filled + "░" * (width - filled)


def create_progress_bar(progress: float, width: int = PROGRESS_WIDTH) -> str:
    filled = max(0, min(width, int(progress * width)))
    return "█" * filled + "░" * (width - filled)


def animation_frame(elapsed_ms: int) -> str:
    return SPINNER_FRAMES[(elapsed_ms // 100) % len(SPINNER_FRAMES)]


def _elapsed_ms(session: Session, now: float) -> int:
    if session.operation_started_at is None:
        return 0
    return max(0, int((now - session.operation_started_at) * 1000))


# ---------------------------------------------------------------------------
# Header / status bar
# ---------------------------------------------------------------------------

def build_header(session: Session, now: float) -> Table:
    """App name on the left, scan summary in the middle, adapter on the right."""
    grid = Table.grid(expand=True)
    grid.add_column(justify="left")
    grid.add_column(justify="center")
    grid.add_column(justify="right")

    if session.last_scan_at is not None:
        ago = int(now - session.last_scan_at)
        summary = f"Networks: {session.network_count} | Last scan: {ago}s ago"
    else:
        summary = f"Networks: {session.network_count}"

    grid.add_row(
        f"[bold cyan]{APP_NAME}[/bold cyan] [grey50]v{APP_VERSION}[/grey50]",
        f"[white]{summary}[/white]",
        f"[magenta]{escape(session.adapter_identity or 'WiFi Adapter')}[/magenta]",
    )
    return grid


def build_status_bar(session: Session) -> Table:
    grid = Table.grid(expand=True)
    grid.add_column(justify="left")
    grid.add_column(justify="right")
    grid.add_row(
        f"[yellow]{escape(session.status_message)}[/yellow]",
        f"[grey50]{KEY_HINTS.get(session.phase, DEFAULT_HINT)}[/grey50]",
    )
    return grid


# ---------------------------------------------------------------------------
# Network table
# ---------------------------------------------------------------------------

def build_network_table(session: Session, title: str = "WiFi Networks") -> Table:
    """Build a Rich Table of the catalog with the cursor row highlighted."""
    table = Table(
        title=title,
        title_style="bold cyan",
        caption=f"{len(session.catalog)} networks found",
        caption_style="grey50",
        expand=True,
        show_lines=False,
        padding=(0, 1),
    )
    table.add_column("", width=2)
    table.add_column("Con", justify="center", width=3)
    table.add_column("Sec", justify="center", width=3)
    table.add_column("SSID", style="white", min_width=15, max_width=32)
    table.add_column("Band", justify="right", width=5)
    table.add_column("Sig", justify="right", width=5)
    table.add_column("Graph", width=GRAPH_WIDTH)

    for i, net in enumerate(session.catalog):
        is_cursor = i == session.cursor
        sig_c = signal_color(net.signal_strength)
        table.add_row(
            "►" if is_cursor else "",
            "[green]●[/green]" if net.connected else "",
            "[magenta]*[/magenta]" if net.secured else "",
            escape(net.ssid),
            f"[cyan]{frequency_band(net.frequency)}[/cyan]",
            f"[{sig_c}]{net.signal_strength}%[/{sig_c}]",
            f"[{sig_c}]{create_signal_graph(net.signal_strength)}[/{sig_c}]",
            style="bold on grey23" if is_cursor else ("bold" if net.connected else ""),
        )

    return table


# ---------------------------------------------------------------------------
# Modal panels
# ---------------------------------------------------------------------------

def build_help_panel() -> Panel:
    table = Table.grid(padding=(0, 3))
    table.add_column(style="green")
    table.add_column(style="white")
    table.add_row("[bold cyan]Navigation[/bold cyan]", "")
    table.add_row("↑/k", "Move up")
    table.add_row("↓/j", "Move down")
    table.add_row("", "")
    table.add_row("[bold cyan]Actions[/bold cyan]", "")
    table.add_row("Enter/c", "Connect to network")
    table.add_row("d", "Disconnect from network")
    table.add_row("r", "Rescan networks")
    table.add_row("i", "Show network details")
    table.add_row("", "")
    table.add_row("[bold cyan]Other[/bold cyan]", "")
    table.add_row("h", "Show this help")
    table.add_row("q/Esc", "Quit application")
    table.add_row("", "")
    table.add_row("[bold cyan]Symbols[/bold cyan]", "")
    table.add_row("●", "Connected")
    table.add_row("*", "Secured network")
    table.add_row("2.4G/5G", "Frequency band")
    return Panel(table, title=f"Help - {APP_NAME}", border_style="cyan")


def build_details_panel(network: Network) -> Panel:
    security = "Secured (WPA/WPA2)" if network.secured else "Open"
    status = "[green]Connected[/green]" if network.connected else "[white]Available[/white]"
    sig_c = signal_color(network.signal_strength)

    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()
    table.add_row("SSID:", escape(network.ssid))
    table.add_row("Status:", status)
    table.add_row("Security:", security)
    table.add_row(
        "Signal Strength:",
        f"[{sig_c}]{network.signal_strength}% ({signal_quality(network.signal_strength)})[/{sig_c}]",
    )
    table.add_row(
        "Frequency:",
        f"[cyan]{network.frequency} MHz ({frequency_band(network.frequency)})[/cyan]",
    )
    return Panel(
        Group(table, Text(""), Text("Press i or Esc to close", style="grey50")),
        title="Network Details",
        border_style="cyan",
    )


def build_password_panel(session: Session) -> Panel:
    """Passphrase prompt; the buffer is masked unless visibility is on."""
    network = session.selected
    name = escape(network.ssid) if network else "Unknown"
    if session.credential_visible:
        shown = escape(session.credential_buffer)
    else:
        shown = "•" * len(session.credential_buffer)

    body = Table.grid(padding=(0, 2))
    body.add_column(style="bold cyan")
    body.add_column()
    body.add_row("Network:", name)
    if network is not None:
        sig_c = signal_color(network.signal_strength)
        body.add_row("Security:", "[yellow]WPA/WPA2[/yellow]" if network.secured else "Open")
        body.add_row(
            "Signal:",
            f"[{sig_c}]{network.signal_strength}%[/{sig_c}]  "
            f"[cyan]{frequency_band(network.frequency)}[/cyan]",
        )
    body.add_row("Password:", Panel(Text(shown or " "), width=42, border_style="grey50"))

    return Panel(
        Group(
            body,
            Text("Tab toggles password visibility", style="grey50"),
            Text("Press Enter to connect or Esc to cancel", style="grey50"),
        ),
        title="Enter Network Password",
        border_style="blue",
    )


def build_operation_panel(session: Session, now: float) -> Panel:
    """Spinner, progress and elapsed time for a connect/disconnect."""
    disconnecting = session.phase is Phase.DISCONNECTING
    elapsed = _elapsed_ms(session, now)
    spinner = animation_frame(elapsed)
    progress = min(elapsed / PROGRESS_FULL_MS, PROGRESS_CAP)
    name = escape(session.selected.ssid) if session.selected else "Unknown"
    action = "Terminating connection..." if disconnecting else "Establishing connection..."

    body = Table.grid(padding=(0, 2))
    body.add_column(style="bold cyan")
    body.add_column()
    body.add_row("Network:", name)
    body.add_row("Status:", f"[yellow]{spinner} {action}[/yellow]")
    body.add_row("Progress:", f"[blue]{create_progress_bar(progress)}[/blue] {int(progress * 100)}%")
    body.add_row("Elapsed:", f"{elapsed // 1000}s")

    return Panel(
        Group(body, Text(""), Text("Press Esc to cancel", style="grey50")),
        title="Disconnecting..." if disconnecting else "Connecting...",
        border_style="blue",
    )


def build_result_panel(session: Session) -> Panel:
    """Outcome of the last operation, including the raw error detail."""
    outcome = session.last_outcome
    success = outcome is not None and outcome.success
    name = escape(session.selected.ssid) if session.selected else "Unknown"

    if success and session.is_disconnect:
        title, message = "Disconnection Successful", f"Successfully disconnected from {name}!"
    elif success:
        title, message = "Connection Successful", f"Successfully connected to {name}!"
    elif session.is_disconnect:
        title, message = "Disconnection Failed", "Failed to disconnect from network"
    else:
        title, message = "Connection Failed", f"Failed to connect to {name}"

    color = "green" if success else "red"
    parts: list[RenderableType] = [Text.from_markup(f"[bold {color}]{message}[/bold {color}]")]
    if outcome is not None and outcome.detail:
        parts += [Text(""), Text("Error details:", style="bold"), Text(outcome.detail, style="red")]
    parts += [Text(""), Text("Press Enter to continue or q to quit", style="grey50")]
    return Panel(Group(*parts), title=title, border_style=color)


# ---------------------------------------------------------------------------
# Whole screen
# ---------------------------------------------------------------------------

def _build_body(session: Session, now: float) -> RenderableType:
    phase = session.phase
    if phase is Phase.SCANNING:
        if not session.catalog:
            return Panel(
                Text(f"{session.status_message}\n\nPlease wait...", justify="center"),
                title="Scanning",
                border_style="blue",
            )
        return build_network_table(session, title="Scanning...")
    if phase is Phase.HELP:
        return build_help_panel()
    if phase is Phase.NETWORK_DETAILS and session.current_network is not None:
        return build_details_panel(session.current_network)
    if phase is Phase.PASSWORD_INPUT:
        return build_password_panel(session)
    if phase in (Phase.CONNECTING, Phase.DISCONNECTING):
        return build_operation_panel(session, now)
    if phase is Phase.CONNECTION_RESULT:
        return build_result_panel(session)
    return build_network_table(session)


def render_session(session: Session, now: float | None = None) -> Group:
    """Compose the whole screen for *session*."""
    now = session.clock() if now is None else now
    return Group(
        build_header(session, now),
        _build_body(session, now),
        build_status_bar(session),
    )


class RichSessionRenderer:
    """Renderer conforming to :class:`~nmwifi.wifi_common.RendererProtocol`."""

    def render(self, session: Session) -> Group:
        return render_session(session)


# ---------------------------------------------------------------------------
# Standalone demo
# ---------------------------------------------------------------------------

def main() -> None:
    """Print a demo network list."""
    session = Session(clock=time.monotonic)
    session.catalog = [
        Network(ssid="HomeNetwork", signal_strength=85, secured=True, frequency=5180, connected=True),
        Network(ssid="CoffeeShop", signal_strength=62, secured=False, frequency=2437),
        Network(ssid="Office 5G", signal_strength=35, secured=True, frequency=5745),
    ]
    session.network_count = len(session.catalog)
    session.phase = Phase.NETWORK_LIST
    session.status_message = "Found 3 network(s). Ready to connect!"
    Console().print(render_session(session))


if __name__ == "__main__":
    main()
