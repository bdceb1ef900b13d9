"""Tests for nmwifi.display.screens — Rich renderables per phase."""

from __future__ import annotations

import io

import pytest
from rich.console import Console
from rich.table import Table

from nmwifi.display.screens import (
    KEY_HINTS,
    RichSessionRenderer,
    animation_frame,
    build_details_panel,
    build_network_table,
    create_progress_bar,
    create_signal_graph,
    render_session,
)
from nmwifi.session import Phase, Session
from nmwifi.wifi_common import Network, Outcome


def _text(renderable) -> str:
    console = Console(file=io.StringIO(), width=120, color_system=None)
    console.print(renderable)
    return console.file.getvalue()


@pytest.fixture
def session():
    s = Session(clock=lambda: 200.0)
    s.catalog = [
        Network(ssid="HomeNetwork", signal_strength=85, secured=True, frequency=5180, connected=True),
        Network(ssid="CoffeeShop", signal_strength=42, secured=False, frequency=2462),
    ]
    s.network_count = 2
    s.phase = Phase.NETWORK_LIST
    return s


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class TestSignalGraph:
    @pytest.mark.parametrize("strength, filled", [(0, 0), (50, 10), (100, 20), (99, 19), (150, 20)])
    def test_filled_cells(self, strength, filled):
        graph = create_signal_graph(strength)
        assert len(graph) == 20
        assert graph.count("█") == filled


class TestProgressBar:
    def test_capped_to_width(self):
        assert create_progress_bar(2.0, 10) == "█" * 10

    def test_half(self):
        assert create_progress_bar(0.5, 10).count("█") == 5


class TestAnimationFrame:
    def test_cycles_every_100ms(self):
        assert animation_frame(0) != animation_frame(100)
        assert animation_frame(0) == animation_frame(1000)


# ---------------------------------------------------------------------------
# Network table
# ---------------------------------------------------------------------------

class TestBuildNetworkTable:
    def test_returns_table_with_row_per_network(self, session):
        table = build_network_table(session)
        assert isinstance(table, Table)
        assert table.row_count == 2

    def test_shows_ssid_band_and_signal(self, session):
        out = _text(build_network_table(session))
        assert "HomeNetwork" in out
        assert "5G" in out
        assert "85%" in out
        assert "2.4G" in out

    def test_markup_in_ssid_escaped(self, session):
        session.catalog = [Network(ssid="[bold]evil[/bold]", signal_strength=50)]
        assert "[bold]evil[/bold]" in _text(build_network_table(session))


# ---------------------------------------------------------------------------
# Whole-screen rendering per phase
# ---------------------------------------------------------------------------

class TestRenderSession:
    def test_header_shows_adapter_and_age(self, session):
        session.adapter_identity = "wlan0 (iwlwifi)"
        session.last_scan_at = 190.0
        out = _text(render_session(session))
        assert "wlan0 (iwlwifi)" in out
        assert "Last scan: 10s ago" in out

    def test_scanning_empty(self):
        out = _text(render_session(Session(clock=lambda: 0.0)))
        assert "Please wait" in out

    def test_list_hints(self, session):
        assert KEY_HINTS[Phase.NETWORK_LIST] in _text(render_session(session))

    def test_help(self, session):
        session.phase = Phase.HELP
        assert "Rescan networks" in _text(render_session(session))

    def test_details(self, session):
        session.phase = Phase.NETWORK_DETAILS
        out = _text(render_session(session))
        assert "Excellent" in out
        assert "5180 MHz" in out

    def test_password_masked(self, session):
        session.phase = Phase.PASSWORD_INPUT
        session.selected = session.catalog[0]
        session.credential_buffer = "secret"
        out = _text(render_session(session))
        assert "secret" not in out
        assert "••••••" in out

    def test_password_visible(self, session):
        session.phase = Phase.PASSWORD_INPUT
        session.selected = session.catalog[0]
        session.credential_buffer = "secret"
        session.credential_visible = True
        assert "secret" in _text(render_session(session))

    def test_connecting_elapsed(self, session):
        session.phase = Phase.CONNECTING
        session.selected = session.catalog[1]
        session.operation_started_at = 197.0
        out = _text(render_session(session))
        assert "Elapsed:" in out
        assert "3s" in out

    def test_result_shows_error_detail(self, session):
        session.phase = Phase.CONNECTION_RESULT
        session.selected = session.catalog[1]
        session.last_outcome = Outcome(success=False, detail="auth-rejected")
        session.status_message = "Connection failed"
        out = _text(render_session(session))
        assert "Connection Failed" in out
        assert "auth-rejected" in out

    def test_render_does_not_mutate(self, session):
        before = (session.phase, list(session.catalog), session.cursor, session.status_message)
        RichSessionRenderer().render(session)
        assert (session.phase, session.catalog, session.cursor, session.status_message) == before


class TestBuildDetailsPanel:
    def test_open_network(self):
        out = _text(build_details_panel(Network(ssid="Cafe", signal_strength=30, frequency=2412)))
        assert "Open" in out
        assert "Weak" in out
