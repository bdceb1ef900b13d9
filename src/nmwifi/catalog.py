"""Network catalog reconciliation.

Turns the raw, possibly duplicated observations of one scan cycle into the
canonical list shown to the user:

1. observations without an SSID are dropped;
2. each one is tagged ``connected`` against the associated SSID;
3. duplicates collapse onto the observation with the highest frequency;
4. the connected network sorts first, the rest by descending signal.

Everything here is pure, so the session and the tests can call it directly.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from nmwifi.wifi_common import Network, RawObservation

logger = logging.getLogger(__name__)


def _sort_key(network: Network) -> tuple[int, int]:
    return (0 if network.connected else 1, -network.signal_strength)


def reconcile_networks(
    observations: Iterable[RawObservation],
    connected_ssid: str | None = None,
) -> list[Network]:
    """Build the canonical catalog from one scan cycle.

    Args:
        observations: Raw observations in any order, duplicates allowed.
        connected_ssid: SSID the adapter is currently associated with.

    Returns:
        Networks with unique SSIDs, connected first, then strongest first.
        Equal-signal entries keep first-seen order.
    """
    unique: dict[str, Network] = {}
    dropped = 0

    for obs in observations:
        if not obs.ssid:
            dropped += 1
            continue
        existing = unique.get(obs.ssid)
        if existing is not None and obs.frequency <= existing.frequency:
            continue
        unique[obs.ssid] = Network(
            ssid=obs.ssid,
            signal_strength=obs.signal_strength,
            secured=obs.secured,
            frequency=obs.frequency,
            connected=connected_ssid is not None and obs.ssid == connected_ssid,
        )

    networks = sorted(unique.values(), key=_sort_key)
    logger.debug(
        "catalog: %d unique network(s), %d hidden observation(s) dropped",
        len(networks), dropped,
    )
    return networks


def locate_ssid(networks: Sequence[Network], ssid: str | None) -> int | None:
    """Return the index of *ssid* in *networks*, or ``None`` if absent."""
    if ssid is None:
        return None
    for i, net in enumerate(networks):
        if net.ssid == ssid:
            return i
    return None
