"""Session state machine for the interactive WiFi controller.

A single :class:`Session` holds everything the event loop and the renderer
need.  It is created once at start-up, mutated in place by the transition
methods below and thrown away at exit.  Every transition checks the phase it
is called from; calling one from the wrong phase is a no-op that returns
``False`` so the input router can stay ignorant of the legality rules.
"""

from __future__ import annotations

import enum
import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from nmwifi.catalog import locate_ssid, reconcile_networks
from nmwifi.wifi_common import (
    MissingCredentialError,
    Network,
    Outcome,
    RawObservation,
)

logger = logging.getLogger(__name__)

STATUS_SCANNING = "Scanning for networks..."
STATUS_SCANNING_EMPTY = "Scanning for WiFi networks..."


class Phase(enum.Enum):
    """States of the session."""

    SCANNING = "scanning"
    NETWORK_LIST = "network_list"
    PASSWORD_INPUT = "password_input"
    CONNECTING = "connecting"
    DISCONNECTING = "disconnecting"
    CONNECTION_RESULT = "connection_result"
    HELP = "help"
    NETWORK_DETAILS = "network_details"


# Read-only overlays reachable from the network list only.
OVERLAYS = frozenset({Phase.HELP, Phase.NETWORK_DETAILS})
# Phases in which a backend connect/disconnect call is due.
OPERATIONS = frozenset({Phase.CONNECTING, Phase.DISCONNECTING})


@dataclass
class Session:
    """The one mutable context of a running program.

    ``pending_selection`` remembers which SSID to re-highlight once the next
    scan replaces the catalog.  ``selected`` is the network the current (or
    last) connect/disconnect targets; it survives the return to scanning so
    the rescan can find it again.
    """

    catalog: list[Network] = field(default_factory=list)
    phase: Phase = Phase.SCANNING
    cursor: int = 0
    pending_selection: str | None = None
    selected: Network | None = None
    credential_buffer: str = ""
    credential_visible: bool = False
    operation_started_at: float | None = None
    last_outcome: Outcome | None = None
    adapter_identity: str | None = None
    adapter_checked: bool = False
    status_message: str = STATUS_SCANNING
    is_disconnect: bool = False
    network_count: int = 0
    last_scan_at: float | None = None
    quit_requested: bool = False
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)

    # -- queries -------------------------------------------------------------

    @property
    def current_network(self) -> Network | None:
        """The highlighted network, or ``None`` on an empty catalog."""
        if not self.catalog:
            return None
        return self.catalog[self.cursor]

    def _enter(self, phase: Phase) -> None:
        if phase is not self.phase:
            logger.debug("phase: %s -> %s", self.phase.value, phase.value)
        self.phase = phase

    # -- navigation ----------------------------------------------------------

    def next(self) -> None:
        """Move the cursor down, wrapping to the top."""
        if not self.catalog:
            return
        self.cursor = 0 if self.cursor >= len(self.catalog) - 1 else self.cursor + 1

    def previous(self) -> None:
        """Move the cursor up, wrapping to the bottom."""
        if not self.catalog:
            return
        self.cursor = len(self.catalog) - 1 if self.cursor == 0 else self.cursor - 1

    # -- network list --------------------------------------------------------

    def select(self) -> bool:
        """Act on the highlighted network.

        Connected networks are disconnected, secured ones ask for a
        passphrase, open ones are joined directly.
        """
        if self.phase not in (Phase.SCANNING, Phase.NETWORK_LIST):
            return False
        network = self.current_network
        if network is None:
            return False

        self.selected = network
        if network.connected:
            self._begin_operation(Phase.DISCONNECTING, f"Disconnecting from {network.ssid}...")
        elif network.secured:
            self.credential_buffer = ""
            self.credential_visible = False
            self.is_disconnect = False
            self._enter(Phase.PASSWORD_INPUT)
        else:
            self._begin_operation(Phase.CONNECTING, f"Connecting to {network.ssid}...")
        return True

    def request_disconnect(self) -> bool:
        """Disconnect the highlighted network if it is the connected one."""
        if self.phase is not Phase.NETWORK_LIST:
            return False
        network = self.current_network
        if network is None or not network.connected:
            return False
        self.selected = network
        self._begin_operation(Phase.DISCONNECTING, f"Disconnecting from {network.ssid}...")
        return True

    def request_rescan(self) -> bool:
        """Throw the catalog away and scan again, remembering the cursor."""
        if self.phase is not Phase.NETWORK_LIST:
            return False
        network = self.current_network
        self.pending_selection = network.ssid if network is not None else None
        self._restart_scan()
        return True

    def open_help(self) -> bool:
        if self.phase is not Phase.NETWORK_LIST:
            return False
        self._enter(Phase.HELP)
        return True

    def open_details(self) -> bool:
        if self.phase is not Phase.NETWORK_LIST or not self.catalog:
            return False
        self._enter(Phase.NETWORK_DETAILS)
        return True

    def close_overlay(self) -> bool:
        if self.phase not in OVERLAYS:
            return False
        self._enter(Phase.NETWORK_LIST)
        return True

    # -- password input ------------------------------------------------------

    def append_char(self, char: str) -> None:
        if self.phase is Phase.PASSWORD_INPUT:
            self.credential_buffer += char

    def remove_char(self) -> None:
        if self.phase is Phase.PASSWORD_INPUT:
            self.credential_buffer = self.credential_buffer[:-1]

    def toggle_credential_visibility(self) -> None:
        if self.phase is Phase.PASSWORD_INPUT:
            self.credential_visible = not self.credential_visible

    def confirm_credential(self) -> bool:
        """Start connecting with the typed passphrase.

        An empty buffer is rejected and the phase stays put.
        """
        if self.phase is not Phase.PASSWORD_INPUT or self.selected is None:
            return False
        if not self.credential_buffer:
            self.reject_missing_credential(MissingCredentialError())
            return False
        self._begin_operation(Phase.CONNECTING, f"Connecting to {self.selected.ssid}...")
        return True

    def cancel_credential(self) -> bool:
        if self.phase is not Phase.PASSWORD_INPUT:
            return False
        self.credential_buffer = ""
        self.credential_visible = False
        self._enter(Phase.NETWORK_LIST)
        return True

    def reject_missing_credential(self, error: MissingCredentialError) -> None:
        """Send the user back to the passphrase prompt."""
        logger.debug("missing credential for %s", self.selected.ssid if self.selected else None)
        self.status_message = str(error)
        self.operation_started_at = None
        self._enter(Phase.PASSWORD_INPUT)

    # -- operations ----------------------------------------------------------

    def _begin_operation(self, phase: Phase, status: str) -> None:
        self.is_disconnect = phase is Phase.DISCONNECTING
        self.operation_started_at = self.clock()
        self.status_message = status
        self._enter(phase)

    def cancel_operation(self) -> bool:
        """Abandon a connect/disconnect that has not been dispatched yet.

        Unlike q and Ctrl-C, Esc here does not quit the program; it drops
        back to the network list with a "Cancelled" status.
        """
        if self.phase not in OPERATIONS:
            return False
        self.operation_started_at = None
        self.is_disconnect = False
        self.credential_buffer = ""
        self.credential_visible = False
        self.status_message = "Cancelled"
        self._enter(Phase.NETWORK_LIST)
        return True

    def record_outcome(self, success: bool, detail: str | None = None) -> None:
        """Store the result of the backend call and show it."""
        if self.phase not in OPERATIONS:
            return
        self.last_outcome = Outcome(success=success, detail=None if success else detail)
        if self.is_disconnect:
            self.status_message = "Disconnected successfully!" if success else "Disconnection failed"
        else:
            self.status_message = "Connected successfully!" if success else "Connection failed"
        logger.debug("operation finished: success=%s detail=%s", success, detail)
        self._enter(Phase.CONNECTION_RESULT)

    def acknowledge(self) -> bool:
        """Leave the result screen and rescan to refresh connection status.

        The selected network is kept so the rescan can re-highlight it.
        """
        if self.phase is not Phase.CONNECTION_RESULT:
            return False
        self.last_outcome = None
        self.credential_buffer = ""
        self.credential_visible = False
        self.operation_started_at = None
        self.is_disconnect = False
        if self.selected is not None:
            self.pending_selection = self.selected.ssid
        self._restart_scan()
        return True

    # -- scanning ------------------------------------------------------------

    def _restart_scan(self) -> None:
        self.catalog = []
        self.cursor = 0
        self.status_message = STATUS_SCANNING
        self._enter(Phase.SCANNING)

    def apply_scan(
        self,
        observations: Iterable[RawObservation],
        connected_ssid: str | None = None,
    ) -> None:
        """Merge one scan cycle into the session.

        The catalog is replaced wholesale.  A non-empty result moves on to
        the network list with the cursor on the remembered SSID (or the
        top if it vanished); an empty one keeps scanning.
        """
        if self.phase is not Phase.SCANNING:
            return
        self.catalog = reconcile_networks(observations, connected_ssid)
        self.network_count = len(self.catalog)
        self.last_scan_at = self.clock()

        if not self.catalog:
            self.cursor = 0
            self.status_message = STATUS_SCANNING_EMPTY
            return

        self._relocate_cursor()
        self.status_message = f"Found {len(self.catalog)} network(s). Ready to connect!"
        self._enter(Phase.NETWORK_LIST)

    def _relocate_cursor(self) -> None:
        index = locate_ssid(self.catalog, self.pending_selection)
        if self.pending_selection is not None:
            logger.debug("reselect %r -> %s", self.pending_selection, index)
        self.cursor = index if index is not None else 0
        self.pending_selection = None
        self.selected = None

    def record_scan_failure(self, detail: str) -> None:
        """Show a failed scan; the loop retries on its next idle tick."""
        if self.phase is not Phase.SCANNING:
            return
        self.status_message = f"Scan failed: {detail}"

    # -- lifecycle -----------------------------------------------------------

    def quit(self) -> None:
        self.quit_requested = True
