"""Network backend over nmcli (NetworkManager CLI).

Scans, reports the associated SSID, and joins or leaves networks by shelling
out to ``nmcli``.  It can also be invoked as a standalone tool::

    python -m nmwifi.backend.nmcli                  # scan, print table
    python -m nmwifi.backend.nmcli -i wlan1         # specific interface
    python -m nmwifi.backend.nmcli --json           # JSON output
"""

from __future__ import annotations

import argparse
import json
import logging
import re
import subprocess
from typing import Any

from nmwifi import adapter
from nmwifi.catalog import reconcile_networks
from nmwifi.wifi_common import (
    BackendUnavailableError,
    CommandRunner,
    MissingCredentialError,
    OperationError,
    RawObservation,
    SubprocessRunner,
    _minimal_env,
    clamp_percent,
    frequency_band,
)

logger = logging.getLogger(__name__)

_DEFAULT_RUNNER = SubprocessRunner()

SCAN_TIMEOUT = 15
CONNECT_TIMEOUT = 30
QUERY_TIMEOUT = 5

_FREQ_RE = re.compile(r"(\d+)")


# ---------------------------------------------------------------------------
# nmcli output parsing
# ---------------------------------------------------------------------------

def _split_nmcli_line(line: str) -> list[str]:
    """Split a nmcli terse-mode line on unescaped colons.

    Colons inside field values are escaped as ``\\:``.  We split on
    unescaped colons and then unescape the fields.
    """
    parts = re.split(r"(?<!\\):", line)
    return [p.replace("\\:", ":").replace("\\\\", "\\") for p in parts]


def _parse_frequency(field: str) -> int:
    """Parse ``"5180 MHz"`` (or a bare number) into MHz; 0 if unparseable."""
    match = _FREQ_RE.search(field)
    return int(match.group(1)) if match else 0


def _is_secured(security: str) -> bool:
    """True unless nmcli reports no security (empty or ``--``)."""
    s = security.strip()
    return bool(s) and s != "--"


def parse_scan_output(output: str) -> list[RawObservation]:
    """Parse ``nmcli -t -f SSID,SECURITY,SIGNAL,FREQ device wifi list``.

    Every line becomes one observation, duplicates and hidden SSIDs
    included; reconciliation happens later.  Short lines are skipped.
    """
    observations: list[RawObservation] = []

    for line in output.strip().splitlines():
        line = line.strip()
        if not line:
            continue

        fields = _split_nmcli_line(line)
        if len(fields) < 4:
            logger.debug("skipped nmcli line with %d fields: %r", len(fields), line)
            continue

        try:
            signal_pct = clamp_percent(int(fields[2]))
        except ValueError:
            signal_pct = 0

        observations.append(RawObservation(
            ssid=fields[0],
            secured=_is_secured(fields[1]),
            signal_strength=signal_pct,
            frequency=_parse_frequency(fields[3]),
        ))

    return observations


def parse_active_ssid(output: str) -> str | None:
    """Return the SSID from the first ``yes:<ssid>`` line, if any."""
    for line in output.splitlines():
        fields = _split_nmcli_line(line.strip())
        if len(fields) >= 2 and fields[0] == "yes":
            return fields[1] or None
    return None


def _error_text(result: subprocess.CompletedProcess[Any]) -> str:
    text = (result.stderr or "").strip()
    return text or f"exit status {result.returncode}"


# ---------------------------------------------------------------------------
# Live operations (require nmcli on the system)
# ---------------------------------------------------------------------------

def _run(
    runner: CommandRunner,
    cmd: list[str],
    timeout: int,
) -> subprocess.CompletedProcess[Any]:
    """Run an nmcli command, turning launch failures into backend errors."""
    logger.debug("nmcli: %s", " ".join(_redact(cmd)))
    try:
        return runner.run(cmd, capture_output=True, text=True, timeout=timeout, env=_minimal_env())
    except subprocess.TimeoutExpired as exc:
        raise BackendUnavailableError(f"{cmd[0]} timed out after {timeout}s") from exc
    except (FileNotFoundError, OSError) as exc:
        raise BackendUnavailableError(f"Failed to execute {cmd[0]}: {exc}") from exc


def _redact(cmd: list[str]) -> list[str]:
    """Hide the passphrase argument when logging a command."""
    out = list(cmd)
    for i, arg in enumerate(out[:-1]):
        if arg == "wifi-sec.psk":
            out[i + 1] = "***"
    return out


def scan_wifi_nmcli(
    interface: str | None = None,
    *,
    runner: CommandRunner | None = None,
) -> list[RawObservation]:
    """Scan for WiFi networks using nmcli.

    Triggers a rescan first (needs privileges), then lists cached results.
    A failed rescan is not fatal; a failed list is.

    Raises:
        BackendUnavailableError: nmcli is missing, timed out, or failed.
    """
    runner = runner or _DEFAULT_RUNNER

    rescan_cmd = ["nmcli", "device", "wifi", "rescan"]
    if interface:
        rescan_cmd += ["ifname", interface]
    try:
        _run(runner, rescan_cmd, SCAN_TIMEOUT)
    except BackendUnavailableError as exc:
        logger.debug("rescan failed, using cached results: %s", exc)

    list_cmd = [
        "nmcli", "-t",
        "-f", "SSID,SECURITY,SIGNAL,FREQ",
        "device", "wifi", "list",
    ]
    if interface:
        list_cmd += ["ifname", interface]

    result = _run(runner, list_cmd, SCAN_TIMEOUT)
    if result.returncode != 0:
        raise BackendUnavailableError(f"nmcli scan failed: {_error_text(result)}")

    observations = parse_scan_output(result.stdout)
    logger.debug("scan: %d observation(s)", len(observations))
    return observations


def get_connected_ssid(
    interface: str | None = None,
    *,
    runner: CommandRunner | None = None,
) -> str | None:
    """Return the SSID currently associated, or ``None`` on any failure."""
    runner = runner or _DEFAULT_RUNNER
    cmd = ["nmcli", "-t", "-f", "ACTIVE,SSID", "device", "wifi"]
    if interface:
        cmd += ["ifname", interface]
    try:
        result = _run(runner, cmd, QUERY_TIMEOUT)
    except BackendUnavailableError as exc:
        logger.debug("active ssid lookup failed: %s", exc)
        return None
    if result.returncode != 0:
        return None
    return parse_active_ssid(result.stdout)


def connect_wifi_nmcli(
    ssid: str,
    secured: bool,
    credential: str | None = None,
    interface: str | None = None,
    *,
    runner: CommandRunner | None = None,
) -> None:
    """Connect to a WiFi network using nmcli.

    Secured networks get a WPA-PSK connection profile (created, or updated
    if one with that name already exists) which is then brought up.  Open
    networks use ``nmcli device wifi connect``.

    Raises:
        MissingCredentialError: *secured* without a credential; nothing runs.
        BackendUnavailableError: nmcli could not be executed.
        OperationError: nmcli rejected the request.
    """
    if secured and not credential:
        raise MissingCredentialError()

    runner = runner or _DEFAULT_RUNNER

    if not secured:
        cmd = ["nmcli", "device", "wifi", "connect", ssid]
        if interface:
            cmd += ["ifname", interface]
        result = _run(runner, cmd, CONNECT_TIMEOUT)
        if result.returncode != 0:
            raise OperationError(f"nmcli failed: {_error_text(result)}")
        return

    add_cmd = ["nmcli", "connection", "add", "type", "wifi"]
    if interface:
        add_cmd += ["ifname", interface]
    add_cmd += [
        "con-name", ssid,
        "ssid", ssid,
        "wifi-sec.key-mgmt", "wpa-psk",
        "wifi-sec.psk", credential,
    ]
    result = _run(runner, add_cmd, CONNECT_TIMEOUT)
    if result.returncode != 0:
        error = _error_text(result)
        if "already exists" not in error:
            raise OperationError(f"nmcli add failed: {error}")
        modify_cmd = ["nmcli", "connection", "modify", ssid, "wifi-sec.psk", credential]
        modified = _run(runner, modify_cmd, CONNECT_TIMEOUT)
        if modified.returncode != 0:
            raise OperationError(f"nmcli modify failed: {_error_text(modified)}")

    activated = _run(runner, ["nmcli", "connection", "up", ssid], CONNECT_TIMEOUT)
    if activated.returncode != 0:
        raise OperationError(f"nmcli activation failed: {_error_text(activated)}")


def disconnect_wifi_nmcli(
    ssid: str,
    *,
    runner: CommandRunner | None = None,
) -> None:
    """Bring down the connection named *ssid*.

    Raises:
        BackendUnavailableError: nmcli could not be executed.
        OperationError: nmcli rejected the request.
    """
    runner = runner or _DEFAULT_RUNNER
    result = _run(runner, ["nmcli", "connection", "down", ssid], CONNECT_TIMEOUT)
    if result.returncode != 0:
        raise OperationError(f"nmcli disconnect failed: {_error_text(result)}")


# ---------------------------------------------------------------------------
# Protocol adapter (BackendProtocol)
# ---------------------------------------------------------------------------

class NmcliBackend:
    """Backend that drives NetworkManager through nmcli.

    Wraps the module functions into a class conforming to
    :class:`~nmwifi.wifi_common.BackendProtocol`.
    """

    def __init__(
        self,
        interface: str | None = None,
        runner: CommandRunner | None = None,
    ) -> None:
        self._interface = interface
        self._runner = runner

    def scan(self) -> list[RawObservation]:
        return scan_wifi_nmcli(self._interface, runner=self._runner)

    def current_association(self) -> str | None:
        return get_connected_ssid(self._interface, runner=self._runner)

    def adapter_identity(self) -> str | None:
        return adapter.adapter_identity(self._interface, runner=self._runner)

    def connect(self, ssid: str, secured: bool, credential: str | None = None) -> None:
        connect_wifi_nmcli(ssid, secured, credential, self._interface, runner=self._runner)

    def disconnect(self, ssid: str) -> None:
        disconnect_wifi_nmcli(ssid, runner=self._runner)


# ---------------------------------------------------------------------------
# Standalone CLI
# ---------------------------------------------------------------------------

def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments for standalone invocation."""
    parser = argparse.ArgumentParser(
        description="Scan WiFi networks via nmcli and print the reconciled list.",
    )
    parser.add_argument(
        "-i", "--interface",
        help="Wireless interface to scan (default: all)",
    )
    parser.add_argument(
        "--json", action="store_true", dest="json_output",
        help="Output as JSON instead of a table",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Scan WiFi networks and print results to stdout."""
    args = _parse_args(argv)
    backend = NmcliBackend(interface=args.interface)
    try:
        observations = backend.scan()
    except BackendUnavailableError as exc:
        print(f"Scan failed: {exc}")
        return 1
    networks = reconcile_networks(observations, backend.current_association())

    if args.json_output:
        data = [
            {
                "ssid": n.ssid,
                "signal_strength": n.signal_strength,
                "secured": n.secured,
                "frequency": n.frequency,
                "connected": n.connected,
            }
            for n in networks
        ]
        print(json.dumps(data, indent=2))
        return 0

    if not networks:
        print("No networks found.")
        return 0
    print(f"{'':<2} {'SSID':<25} {'Band':>5} {'Sig':>4} {'Security':<8}")
    print("-" * 48)
    for n in networks:
        mark = "*" if n.connected else ""
        security = "Secured" if n.secured else "Open"
        print(f"{mark:<2} {n.ssid:<25} {frequency_band(n.frequency):>5} {n.signal_strength:>3}% {security:<8}")
    print(f"\n{len(networks)} network(s) found.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
