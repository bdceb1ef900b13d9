"""Shared data structures and helpers for nm-wifi."""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from typing import Any, Protocol

logger = logging.getLogger(__name__)

# Channel centre frequencies at or above this are reported as the 5 GHz band.
BAND_5G_MHZ = 5000


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass
class RawObservation:
    """One access point as reported by a single scan, before reconciliation."""

    ssid: str
    secured: bool = False
    signal_strength: int = 0    # percent, 0-100
    frequency: int = 0          # MHz


@dataclass
class Network:
    """A network in the canonical catalog."""

    ssid: str
    signal_strength: int = 0    # percent, 0-100
    secured: bool = False
    frequency: int = 0          # MHz
    connected: bool = False


@dataclass
class Outcome:
    """Result of the most recent connect/disconnect attempt.

    ``detail`` is the raw error text from the backend; ``None`` on success.
    """

    success: bool
    detail: str | None = None


# ---------------------------------------------------------------------------
# Error taxonomy
# ---------------------------------------------------------------------------

class BackendError(Exception):
    """Base class for everything the network backend can raise."""


class BackendUnavailableError(BackendError):
    """The management service or its CLI could not be reached."""


class OperationError(BackendError):
    """A connect or disconnect request was rejected."""


class MissingCredentialError(BackendError):
    """A secured network was attempted without a passphrase."""

    def __init__(self, message: str = "Password required for secured network") -> None:
        super().__init__(message)


# ---------------------------------------------------------------------------
# Backend / Renderer protocols (composition seams)
# ---------------------------------------------------------------------------

class BackendProtocol(Protocol):
    """Protocol for the network backend driven by the session loop.

    Enables swapping the nmcli backend for a fake in tests without touching
    the event loop.
    """

    def scan(self) -> list[RawObservation]:
        """Scan and return every observation, duplicates included."""
        ...  # pragma: no cover

    def current_association(self) -> str | None:
        """Return the SSID the adapter is associated with, if any."""
        ...  # pragma: no cover

    def adapter_identity(self) -> str | None:
        """Return a short descriptor of the wireless adapter."""
        ...  # pragma: no cover

    def connect(self, ssid: str, secured: bool, credential: str | None = None) -> None:
        """Associate with *ssid*; raises :class:`BackendError` on failure."""
        ...  # pragma: no cover

    def disconnect(self, ssid: str) -> None:
        """Drop the association with *ssid*; raises on failure."""
        ...  # pragma: no cover


class RendererProtocol(Protocol):
    """Protocol for session renderers.

    Any class with a ``render(session)`` method satisfies this protocol.
    The renderer reads the session and must never mutate it.
    """

    def render(self, session: Any) -> Any:
        """Render *session* into a displayable object."""
        ...  # pragma: no cover


# ---------------------------------------------------------------------------
# Command runner protocol (subprocess injection seam)
# ---------------------------------------------------------------------------

class CommandRunner(Protocol):
    """Protocol for running external commands.

    Provides an injection seam so callers can substitute a fake runner in
    tests instead of patching ``subprocess`` globally.
    """

    def run(
        self,
        cmd: list[str],
        *,
        capture_output: bool = True,
        text: bool = True,
        timeout: int | None = None,
        env: dict[str, str] | None = None,
    ) -> subprocess.CompletedProcess[Any]:
        """Run *cmd* and return a CompletedProcess."""
        ...  # pragma: no cover


class SubprocessRunner:
    """Default CommandRunner that delegates to the real ``subprocess`` module."""

    def run(
        self,
        cmd: list[str],
        *,
        capture_output: bool = True,
        text: bool = True,
        timeout: int | None = None,
        env: dict[str, str] | None = None,
    ) -> subprocess.CompletedProcess[Any]:
        """Run *cmd* via ``subprocess.run``."""
        return subprocess.run(
            cmd,
            capture_output=capture_output,
            text=text,
            timeout=timeout,
            env=env,
        )


def _minimal_env() -> dict[str, str]:
    """Build a minimal environment for subprocess calls.

    Only passes PATH, LC_ALL, and HOME so the user's full environment does
    not leak into child processes.  ``LC_ALL=C`` keeps nmcli output parseable.
    """
    return {
        "PATH": os.environ.get("PATH", "/usr/bin:/bin"),
        "LC_ALL": "C",
        "HOME": os.environ.get("HOME", ""),
    }


# ---------------------------------------------------------------------------
# Signal / band helpers
# ---------------------------------------------------------------------------

def clamp_percent(value: int) -> int:
    """Clamp *value* into the 0-100 range."""
    return max(0, min(100, value))


def frequency_band(frequency: int) -> str:
    """Return ``"5G"`` or ``"2.4G"`` for a channel frequency in MHz."""
    return "5G" if frequency >= BAND_5G_MHZ else "2.4G"


def signal_quality(strength: int) -> str:
    """Describe a signal percentage in words."""
    if strength >= 80:
        return "Excellent"
    if strength >= 60:
        return "Good"
    if strength >= 40:
        return "Fair"
    if strength >= 20:
        return "Weak"
    return "Very Weak"


def signal_color(strength: int) -> str:
    """Return a Rich color name for a signal percentage."""
    if strength >= 70:
        return "green"
    if strength >= 40:
        return "yellow"
    return "red"
