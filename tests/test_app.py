"""Tests for nmwifi.app — CLI parsing, logging setup and one-shot scan."""

from __future__ import annotations

import io
import logging
import termios
from unittest.mock import patch

import pytest
from rich.console import Console

from nmwifi.app import MIN_PYTHON, _configure_logging, _parse_args, main, scan_once
from nmwifi.event_loop import POLL_INTERVAL
from nmwifi.wifi_common import BackendUnavailableError, RawObservation


class _FakeBackend:
    def __init__(self, observations=None, error=None, connected=None):
        self._observations = observations or []
        self._error = error
        self._connected = connected

    def scan(self):
        if self._error:
            raise self._error
        return self._observations

    def current_association(self):
        return self._connected

    def adapter_identity(self):
        return "wlan0"

    def connect(self, ssid, secured, credential=None):
        raise AssertionError("scan_once must not connect")

    def disconnect(self, ssid):
        raise AssertionError("scan_once must not disconnect")


def _console():
    return Console(file=io.StringIO(), width=120, color_system=None)


class TestMinPython:
    def test_is_tuple(self):
        assert MIN_PYTHON == (3, 9)


class TestParseArgs:
    def test_defaults(self):
        args = _parse_args([])
        assert args.interface is None
        assert args.poll_interval == POLL_INTERVAL
        assert args.scan_once is False
        assert args.debug is False

    def test_interface(self):
        assert _parse_args(["-i", "wlan1"]).interface == "wlan1"

    def test_poll_interval(self):
        assert _parse_args(["--poll-interval", "0.25"]).poll_interval == 0.25

    def test_non_positive_poll_interval_rejected(self):
        with pytest.raises(SystemExit):
            _parse_args(["--poll-interval", "0"])


class TestConfigureLogging:
    def test_unwritable_log_file_ignored(self, tmp_path):
        args = _parse_args(["--debug", "--log-file", str(tmp_path / "missing" / "x.log")])
        root = logging.getLogger()
        before = list(root.handlers)
        try:
            _configure_logging(args)
        finally:
            for handler in root.handlers[:]:
                if handler not in before:
                    root.removeHandler(handler)
                    handler.close()

    def test_writes_log_file(self, tmp_path):
        log_file = tmp_path / "debug.log"
        args = _parse_args(["--debug", "--log-file", str(log_file)])
        root = logging.getLogger()
        before = list(root.handlers)
        package_logger = logging.getLogger("nmwifi")
        level = package_logger.level
        try:
            _configure_logging(args)
            logging.getLogger("nmwifi.test").debug("hello")
        finally:
            package_logger.setLevel(level)
            for handler in root.handlers[:]:
                if handler not in before:
                    root.removeHandler(handler)
                    handler.close()
        assert "nmwifi.test: DEBUG: hello" in log_file.read_text()


class TestScanOnce:
    def test_prints_reconciled_table(self):
        console = _console()
        backend = _FakeBackend([
            RawObservation("Home", True, 60, 2412),
            RawObservation("Home", True, 40, 5180),
        ])
        assert scan_once(backend, console) == 0
        out = console.file.getvalue()
        assert out.count("Home") == 1
        assert "5G" in out

    def test_empty_scan(self):
        console = _console()
        assert scan_once(_FakeBackend([]), console) == 0
        assert "Scanning for WiFi networks" in console.file.getvalue()

    def test_failure_exit_code(self):
        console = _console()
        backend = _FakeBackend(error=BackendUnavailableError("Failed to execute nmcli"))
        assert scan_once(backend, console) == 1
        assert "Failed to execute nmcli" in console.file.getvalue()


class TestMain:
    @patch("nmwifi.app.scan_once", return_value=0)
    def test_scan_once_exits(self, mock_scan):
        with pytest.raises(SystemExit) as exc:
            main(["--scan-once", "-i", "wlan3"])
        assert exc.value.code == 0
        backend = mock_scan.call_args[0][0]
        assert backend._interface == "wlan3"

    @patch("nmwifi.app.run_interactive")
    def test_non_tty_refused(self, mock_run):
        with patch("nmwifi.app.sys.stdin") as stdin:
            stdin.isatty.return_value = False
            with pytest.raises(SystemExit) as exc:
                main([])
        assert exc.value.code == 2
        mock_run.assert_not_called()

    @patch("nmwifi.app.run_interactive", side_effect=KeyboardInterrupt)
    def test_ctrl_c_exits_cleanly(self, _mock_run):
        with patch("nmwifi.app.sys.stdin") as stdin:
            stdin.isatty.return_value = True
            main([])

    @patch("nmwifi.app.run_interactive", side_effect=OSError("terminal gone"))
    def test_terminal_failure_exits_nonzero(self, _mock_run):
        with patch("nmwifi.app.sys.stdin") as stdin:
            stdin.isatty.return_value = True
            with pytest.raises(SystemExit) as exc:
                main([])
        assert exc.value.code == 1

    @patch("nmwifi.app.run_interactive", side_effect=termios.error(5, "Input/output error"))
    def test_terminal_restore_failure_exits_nonzero(self, _mock_run):
        with patch("nmwifi.app.sys.stdin") as stdin:
            stdin.isatty.return_value = True
            with pytest.raises(SystemExit) as exc:
                main([])
        assert exc.value.code == 1
