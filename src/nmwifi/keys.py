"""Keyboard contract and raw terminal input.

Keys are decoded into logical :class:`Intent` values so the event loop never
deals with byte sequences.  :class:`TerminalInput` puts stdin into cbreak
mode and exposes a bounded :meth:`~TerminalInput.poll`; the previous terminal
attributes are restored on exit.
"""

from __future__ import annotations

import codecs
import collections
import enum
import logging
import os
import select
import sys
import termios
import time
import tty
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)

ESC = "\x1b"
CTRL_C = "\x03"


class Intent(enum.Enum):
    """Logical user requests, independent of key bindings."""

    QUIT = "quit"
    MOVE_UP = "move_up"
    MOVE_DOWN = "move_down"
    CONFIRM = "confirm"
    CANCEL = "cancel"
    TOGGLE_VISIBILITY = "toggle_visibility"
    RESCAN = "rescan"
    OPEN_HELP = "open_help"
    OPEN_DETAILS = "open_details"
    DISCONNECT = "disconnect"
    APPEND_CHAR = "append_char"
    REMOVE_CHAR = "remove_char"


@dataclass(frozen=True)
class KeyPress:
    """A decoded key: the intent plus the typed character, if any."""

    intent: Intent
    char: str | None = None


# Keys that mean the same thing whether or not text is being typed.
_CONTROL_KEYS: dict[str, Intent] = {
    ESC: Intent.CANCEL,
    f"{ESC}[A": Intent.MOVE_UP,
    f"{ESC}OA": Intent.MOVE_UP,
    f"{ESC}[B": Intent.MOVE_DOWN,
    f"{ESC}OB": Intent.MOVE_DOWN,
    "\r": Intent.CONFIRM,
    "\n": Intent.CONFIRM,
    "\t": Intent.TOGGLE_VISIBILITY,
    "\x7f": Intent.REMOVE_CHAR,
    "\x08": Intent.REMOVE_CHAR,
    CTRL_C: Intent.QUIT,
}

# Single-letter commands, only outside text entry.
_COMMAND_KEYS: dict[str, Intent] = {
    "q": Intent.QUIT,
    "k": Intent.MOVE_UP,
    "j": Intent.MOVE_DOWN,
    "c": Intent.CONFIRM,
    "r": Intent.RESCAN,
    "h": Intent.OPEN_HELP,
    "i": Intent.OPEN_DETAILS,
    "d": Intent.DISCONNECT,
}


def decode_key(key: str, *, text_entry: bool = False) -> KeyPress | None:
    """Translate one key into a :class:`KeyPress`.

    Args:
        key: A single character or a complete escape sequence.
        text_entry: When True, printable characters are typed rather than
            treated as commands.

    Returns:
        The decoded key, or ``None`` for keys with no binding.
    """
    intent = _CONTROL_KEYS.get(key)
    if intent is not None:
        return KeyPress(intent)
    if text_entry:
        if len(key) == 1 and key.isprintable():
            return KeyPress(Intent.APPEND_CHAR, key)
        return None
    intent = _COMMAND_KEYS.get(key)
    if intent is None:
        return None
    return KeyPress(intent)


def split_keys(data: str) -> list[str]:
    """Split a chunk read from the terminal into individual keys.

    CSI/SS3 arrow sequences (``ESC [ X`` / ``ESC O X``) stay together; a
    lone ``ESC`` is its own key.
    """
    keys: list[str] = []
    i = 0
    while i < len(data):
        if data[i] == ESC and i + 2 < len(data) and data[i + 1] in "[O":
            # Consume parameter bytes up to the final byte of the sequence.
            j = i + 2
            while j < len(data) and not ("@" <= data[j] <= "~"):
                j += 1
            keys.append(data[i:j + 1])
            i = j + 1
            continue
        keys.append(data[i])
        i += 1
    return keys


# ---------------------------------------------------------------------------
# Input sources
# ---------------------------------------------------------------------------

class InputSource(Protocol):
    """Anything the event loop can poll for keys."""

    def poll(self, timeout: float) -> str | None:
        """Return the next key, waiting at most *timeout* seconds."""
        ...  # pragma: no cover


class TerminalInput:
    """Cbreak-mode reader over a terminal file descriptor.

    Use as a context manager so the terminal is restored even when the loop
    dies.  Several keys arriving in one read are queued and handed out one
    per :meth:`poll`.
    """

    def __init__(self, fd: int | None = None) -> None:
        self._fd = sys.stdin.fileno() if fd is None else fd
        self._saved: list | None = None
        self._pending: collections.deque[str] = collections.deque()
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="ignore")
        self._closed = False

    def __enter__(self) -> TerminalInput:
        if os.isatty(self._fd):
            self._saved = termios.tcgetattr(self._fd)
            tty.setcbreak(self._fd)
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.restore()

    def restore(self) -> None:
        """Put the terminal back the way we found it."""
        if self._saved is not None:
            termios.tcsetattr(self._fd, termios.TCSADRAIN, self._saved)
            self._saved = None

    def poll(self, timeout: float) -> str | None:
        if self._pending:
            return self._pending.popleft()
        if self._closed:
            # EOF: nothing more will arrive, just pace the caller.
            time.sleep(timeout)
            return None
        ready, _, _ = select.select([self._fd], [], [], timeout)
        if not ready:
            return None
        data = os.read(self._fd, 64)
        if not data:
            logger.debug("input: EOF on fd %d", self._fd)
            self._closed = True
            return None
        text = self._decoder.decode(data)
        if not text:
            return None
        keys = split_keys(text)
        logger.debug("input: %r", keys)
        self._pending.extend(keys)
        return self._pending.popleft() if self._pending else None
