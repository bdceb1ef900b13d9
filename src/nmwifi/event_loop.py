"""Cooperative event loop and input router.

Everything runs on one thread.  Each tick draws the session, then either
routes one key to the state machine or, when the phase needs it and no key
arrived within the poll window, makes exactly one blocking backend call and
merges its result.  The poll window bounds the redraw interval while idle.

Cancelling a connect/disconnect is only possible during the poll that
precedes the backend call; once the call is issued the loop waits for it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from nmwifi.keys import InputSource, Intent, KeyPress, decode_key
from nmwifi.session import OPERATIONS, Phase, Session
from nmwifi.wifi_common import BackendError, BackendProtocol, MissingCredentialError

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.1  # seconds


# ---------------------------------------------------------------------------
# Input routing
# ---------------------------------------------------------------------------

def _route_scanning(session: Session, press: KeyPress) -> None:
    intent = press.intent
    if intent in (Intent.QUIT, Intent.CANCEL):
        session.quit()
    elif intent is Intent.MOVE_DOWN:
        session.next()
    elif intent is Intent.MOVE_UP:
        session.previous()
    elif intent is Intent.CONFIRM:
        session.select()


def _route_network_list(session: Session, press: KeyPress) -> None:
    intent = press.intent
    if intent in (Intent.QUIT, Intent.CANCEL):
        session.quit()
    elif intent is Intent.MOVE_DOWN:
        session.next()
    elif intent is Intent.MOVE_UP:
        session.previous()
    elif intent is Intent.CONFIRM:
        session.select()
    elif intent is Intent.DISCONNECT:
        session.request_disconnect()
    elif intent is Intent.RESCAN:
        session.request_rescan()
    elif intent is Intent.OPEN_HELP:
        session.open_help()
    elif intent is Intent.OPEN_DETAILS:
        session.open_details()


def _route_help(session: Session, press: KeyPress) -> None:
    if press.intent in (Intent.CANCEL, Intent.QUIT, Intent.OPEN_HELP):
        session.close_overlay()


def _route_details(session: Session, press: KeyPress) -> None:
    if press.intent in (Intent.CANCEL, Intent.QUIT, Intent.OPEN_DETAILS):
        session.close_overlay()


def _route_password(session: Session, press: KeyPress) -> None:
    intent = press.intent
    if intent is Intent.QUIT:
        session.quit()
    elif intent is Intent.CONFIRM:
        session.confirm_credential()
    elif intent is Intent.CANCEL:
        session.cancel_credential()
    elif intent is Intent.REMOVE_CHAR:
        session.remove_char()
    elif intent is Intent.TOGGLE_VISIBILITY:
        session.toggle_credential_visibility()
    elif intent is Intent.APPEND_CHAR and press.char:
        session.append_char(press.char)


def _route_operation(session: Session, press: KeyPress) -> None:
    if press.intent is Intent.QUIT:
        session.quit()
    elif press.intent is Intent.CANCEL:
        session.cancel_operation()


def _route_result(session: Session, press: KeyPress) -> None:
    if press.intent in (Intent.QUIT, Intent.CANCEL):
        session.quit()
    elif press.intent is Intent.CONFIRM:
        session.acknowledge()


_ROUTES: dict[Phase, Callable[[Session, KeyPress], None]] = {
    Phase.SCANNING: _route_scanning,
    Phase.NETWORK_LIST: _route_network_list,
    Phase.HELP: _route_help,
    Phase.NETWORK_DETAILS: _route_details,
    Phase.PASSWORD_INPUT: _route_password,
    Phase.CONNECTING: _route_operation,
    Phase.DISCONNECTING: _route_operation,
    Phase.CONNECTION_RESULT: _route_result,
}


def route_intent(session: Session, press: KeyPress) -> None:
    """Apply one decoded key to the session according to its phase."""
    _ROUTES[session.phase](session, press)


def route_key(session: Session, key: str) -> None:
    """Decode a raw key for the current phase and route it."""
    press = decode_key(key, text_entry=session.phase is Phase.PASSWORD_INPUT)
    if press is None:
        return
    route_intent(session, press)


# ---------------------------------------------------------------------------
# Background work
# ---------------------------------------------------------------------------

def perform_scan(session: Session, backend: BackendProtocol) -> None:
    """Run one scan cycle and merge it into the session.

    A backend failure is shown as the status line; the session stays in
    the scanning phase so the next idle tick retries.

    The adapter is looked up after the first successful scan only, even
    when nothing was found.
    """
    try:
        observations = backend.scan()
    except BackendError as exc:
        logger.debug("scan failed: %s", exc)
        session.record_scan_failure(str(exc))
        return

    connected = backend.current_association()
    if not session.adapter_checked:
        session.adapter_identity = backend.adapter_identity()
        session.adapter_checked = True
    session.apply_scan(observations, connected)


def perform_operation(session: Session, backend: BackendProtocol) -> None:
    """Issue the pending connect or disconnect and record the outcome."""
    network = session.selected
    if network is None:
        # Nothing to act on; fall back to the list rather than spin.
        session.cancel_operation()
        return

    disconnecting = session.phase is Phase.DISCONNECTING
    credential = session.credential_buffer if network.secured else None
    if not disconnecting and network.secured and not credential:
        session.reject_missing_credential(MissingCredentialError())
        return

    try:
        if disconnecting:
            backend.disconnect(network.ssid)
        else:
            backend.connect(network.ssid, network.secured, credential)
    except BackendError as exc:
        session.record_outcome(False, str(exc))
    else:
        session.record_outcome(True)


# ---------------------------------------------------------------------------
# Loop
# ---------------------------------------------------------------------------

def tick(
    session: Session,
    backend: BackendProtocol,
    keys: InputSource,
    draw: Callable[[Session], None],
    poll_interval: float = POLL_INTERVAL,
) -> bool:
    """Run one iteration of the loop.

    Returns:
        False once the session asked to quit, True otherwise.
    """
    draw(session)
    if session.quit_requested:
        return False

    phase = session.phase
    key = keys.poll(poll_interval)

    if phase is Phase.SCANNING:
        if key is not None:
            route_key(session, key)
        else:
            perform_scan(session, backend)
    elif phase in OPERATIONS:
        if key is not None:
            press = decode_key(key)
            if press is not None and press.intent in (Intent.CANCEL, Intent.QUIT):
                route_intent(session, press)
        if session.phase is phase and not session.quit_requested:
            perform_operation(session, backend)
    elif key is not None:
        route_key(session, key)

    return not session.quit_requested


def run_loop(
    session: Session,
    backend: BackendProtocol,
    keys: InputSource,
    draw: Callable[[Session], None],
    poll_interval: float = POLL_INTERVAL,
) -> None:
    """Tick until the session asks to quit."""
    while tick(session, backend, keys, draw, poll_interval):
        pass
    logger.debug("loop finished in phase %s", session.phase.value)
