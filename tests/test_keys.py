"""Tests for nmwifi.keys — key decoding and terminal polling."""

from __future__ import annotations

import os
import time

import pytest

from nmwifi.keys import ESC, Intent, KeyPress, TerminalInput, decode_key, split_keys


# ---------------------------------------------------------------------------
# decode_key
# ---------------------------------------------------------------------------

class TestDecodeKey:
    @pytest.mark.parametrize("key, intent", [
        ("q", Intent.QUIT),
        ("k", Intent.MOVE_UP),
        ("j", Intent.MOVE_DOWN),
        (f"{ESC}[A", Intent.MOVE_UP),
        (f"{ESC}[B", Intent.MOVE_DOWN),
        (f"{ESC}OA", Intent.MOVE_UP),
        ("\r", Intent.CONFIRM),
        ("c", Intent.CONFIRM),
        (ESC, Intent.CANCEL),
        ("\t", Intent.TOGGLE_VISIBILITY),
        ("r", Intent.RESCAN),
        ("h", Intent.OPEN_HELP),
        ("i", Intent.OPEN_DETAILS),
        ("d", Intent.DISCONNECT),
        ("\x7f", Intent.REMOVE_CHAR),
        ("\x03", Intent.QUIT),
    ])
    def test_command_bindings(self, key, intent):
        assert decode_key(key) == KeyPress(intent)

    def test_unbound_key_returns_none(self):
        assert decode_key("z") is None

    def test_text_entry_letters_are_typed(self):
        assert decode_key("q", text_entry=True) == KeyPress(Intent.APPEND_CHAR, "q")

    def test_text_entry_keeps_control_keys(self):
        assert decode_key("\r", text_entry=True) == KeyPress(Intent.CONFIRM)
        assert decode_key(ESC, text_entry=True) == KeyPress(Intent.CANCEL)
        assert decode_key("\x7f", text_entry=True) == KeyPress(Intent.REMOVE_CHAR)

    def test_text_entry_space_is_typed(self):
        assert decode_key(" ", text_entry=True) == KeyPress(Intent.APPEND_CHAR, " ")

    def test_text_entry_non_printable_ignored(self):
        assert decode_key("\x01", text_entry=True) is None


# ---------------------------------------------------------------------------
# split_keys
# ---------------------------------------------------------------------------

class TestSplitKeys:
    def test_plain_characters(self):
        assert split_keys("abc") == ["a", "b", "c"]

    def test_arrow_sequence_kept_whole(self):
        assert split_keys(f"{ESC}[Aj") == [f"{ESC}[A", "j"]

    def test_lone_escape(self):
        assert split_keys(ESC) == [ESC]

    def test_two_arrows(self):
        assert split_keys(f"{ESC}[B{ESC}[B") == [f"{ESC}[B", f"{ESC}[B"]

    def test_parameterised_sequence(self):
        assert split_keys(f"{ESC}[3~x") == [f"{ESC}[3~", "x"]

    def test_empty(self):
        assert split_keys("") == []


# ---------------------------------------------------------------------------
# TerminalInput over a pipe (not a tty, so no termios calls)
# ---------------------------------------------------------------------------

class TestTerminalInput:
    @pytest.fixture
    def pipe(self):
        read_fd, write_fd = os.pipe()
        yield read_fd, write_fd
        os.close(read_fd)
        os.close(write_fd)

    def test_poll_times_out_with_none(self, pipe):
        read_fd, _ = pipe
        with TerminalInput(read_fd) as keys:
            assert keys.poll(0.01) is None

    def test_poll_returns_keys_in_order(self, pipe):
        read_fd, write_fd = pipe
        os.write(write_fd, b"j\x1b[Ak")
        with TerminalInput(read_fd) as keys:
            assert keys.poll(0.1) == "j"
            assert keys.poll(0.1) == "\x1b[A"
            assert keys.poll(0.1) == "k"
            assert keys.poll(0.01) is None

    def test_multibyte_char_split_across_reads(self, pipe):
        read_fd, write_fd = pipe
        encoded = "é".encode("utf-8")
        with TerminalInput(read_fd) as keys:
            os.write(write_fd, encoded[:1])
            assert keys.poll(0.1) is None
            os.write(write_fd, encoded[1:])
            assert keys.poll(0.1) == "é"


class TestTerminalInputEof:
    def test_eof_waits_out_timeout(self):
        read_fd, write_fd = os.pipe()
        os.close(write_fd)
        try:
            with TerminalInput(read_fd) as keys:
                assert keys.poll(0.05) is None
                start = time.monotonic()
                assert keys.poll(0.05) is None
                assert time.monotonic() - start >= 0.04
        finally:
            os.close(read_fd)
