#!/usr/bin/env python3
"""nm-wifi — interactive WiFi controller for NetworkManager.

Scans for nearby networks with nmcli and lets you join or leave them from a
full-screen Rich terminal UI.

Usage:
    nm-wifi                          # scan all interfaces
    nm-wifi -i wlan1                 # specific interface
    nm-wifi --scan-once              # print the network list and exit
    nm-wifi --debug                  # log to stderr and /tmp/nm_wifi_debug.log
"""

from __future__ import annotations

import sys

MIN_PYTHON = (3, 9)
if sys.version_info < MIN_PYTHON:
    sys.exit(f"Python {MIN_PYTHON[0]}.{MIN_PYTHON[1]}+ is required (found {sys.version}).")

import argparse
import logging
import termios

from rich.console import Console
from rich.live import Live
from rich.markup import escape

from nmwifi.backend.nmcli import NmcliBackend
from nmwifi.display.screens import APP_NAME, RichSessionRenderer, build_network_table
from nmwifi.event_loop import POLL_INTERVAL, perform_scan, run_loop
from nmwifi.keys import TerminalInput
from nmwifi.session import Phase, Session
from nmwifi.wifi_common import BackendProtocol

DEBUG_LOG = "/tmp/nm_wifi_debug.log"
_LOGGER = logging.getLogger("nmwifi.app")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Interactive WiFi controller for NetworkManager",
    )
    parser.add_argument(
        "-i", "--interface",
        help="wireless interface name (e.g. wlan0)",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=POLL_INTERVAL,
        metavar="SECONDS",
        help=f"how long to wait for a key before doing background work (default: {POLL_INTERVAL})",
    )
    parser.add_argument(
        "--scan-once",
        action="store_true",
        help="scan once, print the network list and exit",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="enable debug logging for troubleshooting",
    )
    parser.add_argument(
        "--log-file",
        metavar="FILE",
        default=DEBUG_LOG,
        help=f"debug log file used with --debug (default: {DEBUG_LOG})",
    )
    args = parser.parse_args(argv)
    if args.poll_interval <= 0:
        parser.error("--poll-interval must be positive")
    return args


def _configure_logging(args: argparse.Namespace) -> None:
    """Enable debug logging to stderr and, if possible, a log file."""
    log_format = "%(name)s: %(levelname)s: %(message)s"
    logging.basicConfig(
        level=logging.DEBUG,
        format=log_format,
        stream=sys.stderr,
    )
    logging.getLogger("nmwifi").setLevel(logging.DEBUG)
    try:
        file_handler = logging.FileHandler(args.log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(log_format))
        logging.getLogger().addHandler(file_handler)
    except OSError:
        pass  # Debug log file optional; stderr still works


def scan_once(backend: BackendProtocol, console: Console) -> int:
    """Run one scan cycle and print the resulting list."""
    session = Session()
    perform_scan(session, backend)
    if session.phase is not Phase.NETWORK_LIST:
        console.print(f"[bold cyan]{APP_NAME}[/bold cyan] — [yellow]{escape(session.status_message)}[/yellow]")
        return 1 if session.status_message.startswith("Scan failed") else 0
    console.print(build_network_table(session))
    return 0


def run_interactive(
    backend: BackendProtocol,
    console: Console,
    poll_interval: float = POLL_INTERVAL,
) -> Session:
    """Run the full-screen session until the user quits."""
    session = Session()
    renderer = RichSessionRenderer()
    with TerminalInput() as keys, Live(
        console=console, auto_refresh=False, screen=True,
    ) as live:
        def draw(current: Session) -> None:
            live.update(renderer.render(current), refresh=True)

        run_loop(session, backend, keys, draw, poll_interval)
    return session


def main(argv: list[str] | None = None) -> None:
    """Run the nm-wifi TUI.

    Handles KeyboardInterrupt (Ctrl+C) gracefully so the terminal is left
    clean when the user exits.
    """
    args = _parse_args(argv)
    if args.debug:
        _configure_logging(args)
        _LOGGER.debug(
            "CLI: interface=%s poll_interval=%s scan_once=%s log_file=%s",
            args.interface, args.poll_interval, args.scan_once, args.log_file,
        )

    console = Console()
    backend = NmcliBackend(interface=args.interface)

    if args.scan_once:
        sys.exit(scan_once(backend, console))

    if not sys.stdin.isatty():
        console.print(f"[bold cyan]{APP_NAME}[/bold cyan] — [red]stdin is not a terminal[/red]")
        sys.exit(2)

    try:
        run_interactive(backend, console, args.poll_interval)
    except KeyboardInterrupt:
        pass
    except (OSError, termios.error) as exc:
        _LOGGER.exception("terminal I/O failure")
        console.print(f"[bold cyan]{APP_NAME}[/bold cyan] — [red]terminal error: {escape(str(exc))}[/red]")
        sys.exit(1)
    console.print(f"[bold cyan]{APP_NAME}[/bold cyan] — stopped.")


if __name__ == "__main__":
    main()
