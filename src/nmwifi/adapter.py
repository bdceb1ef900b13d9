"""Wireless adapter discovery for nm-wifi.

Finds the WiFi device NetworkManager is using (``nmcli device``) and labels
it with its kernel driver from sysfs.

All external I/O is injectable for testability:
- ``find_wifi_device`` and ``adapter_identity`` accept a ``CommandRunner``
- ``_read_driver_name`` accepts a ``sysfs_net`` path
"""

from __future__ import annotations

import logging
import os
import subprocess

from nmwifi.wifi_common import CommandRunner, SubprocessRunner, _minimal_env

logger = logging.getLogger(__name__)

_DEFAULT_RUNNER = SubprocessRunner()
QUERY_TIMEOUT = 5


# ---------------------------------------------------------------------------
# nmcli device output parsing
# ---------------------------------------------------------------------------

def _parse_device_output(output: str) -> list[tuple[str, str, str]]:
    """Parse ``nmcli -t -f DEVICE,TYPE,STATE device`` into tuples.

    Lines with fewer than three fields are skipped.
    """
    rows: list[tuple[str, str, str]] = []
    for line in output.splitlines():
        parts = line.strip().split(":")
        if len(parts) < 3:
            continue
        rows.append((parts[0], parts[1], parts[2]))
    return rows


def _pick_wifi_device(rows: list[tuple[str, str, str]]) -> str | None:
    """Prefer a connected wifi device, else the first wifi device."""
    wifi = [row for row in rows if row[1] == "wifi"]
    for device, _type, state in wifi:
        if state == "connected":
            return device
    return wifi[0][0] if wifi else None


# ---------------------------------------------------------------------------
# sysfs driver name
# ---------------------------------------------------------------------------

def _read_driver_name(
    iface: str,
    *,
    sysfs_net: str = "/sys/class/net",
) -> str | None:
    """Read the kernel driver name for *iface* from sysfs.

    Returns:
        Basename of ``/sys/class/net/<iface>/device/driver``, or ``None``.
    """
    driver_path = os.path.join(sysfs_net, iface, "device", "driver")
    try:
        return os.path.basename(os.readlink(driver_path))
    except OSError:
        return None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def find_wifi_device(runner: CommandRunner | None = None) -> str | None:
    """Return the name of the WiFi device NetworkManager manages, if any."""
    runner = runner or _DEFAULT_RUNNER
    cmd = ["nmcli", "-t", "-f", "DEVICE,TYPE,STATE", "device"]
    try:
        result = runner.run(
            cmd, capture_output=True, text=True, timeout=QUERY_TIMEOUT, env=_minimal_env(),
        )
    except (subprocess.TimeoutExpired, FileNotFoundError, OSError) as exc:
        logger.debug("nmcli device failed: %s", exc)
        return None

    if result.returncode != 0:
        logger.debug("nmcli device returned non-zero: %d", result.returncode)
        return None

    return _pick_wifi_device(_parse_device_output(result.stdout))


def adapter_identity(
    interface: str | None = None,
    *,
    runner: CommandRunner | None = None,
    sysfs_net: str = "/sys/class/net",
) -> str | None:
    """Describe the adapter in use, e.g. ``"wlan0 (iwlwifi)"``.

    Args:
        interface: Use this interface instead of asking nmcli.
        runner: Command runner for subprocess calls. Uses default if ``None``.
        sysfs_net: Override for the sysfs net directory (for testing).
    """
    device = interface or find_wifi_device(runner)
    if not device:
        return None
    driver = _read_driver_name(device, sysfs_net=sysfs_net)
    return f"{device} ({driver})" if driver else device
