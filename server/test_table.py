"""
Test suite for the Table: connection bookkeeping and publishing.

Covers:
- Binding connections to participants
- Disconnect removing the participant
- Event notifications before projections
- Per-viewer projections and the your_turn nudge
- A failing socket not blocking the others

Run with: pytest test_table.py -v
"""

import json
import logging
import random

import pytest

from constants import HIDDEN
from game import Match, MatchStatus
from table import Table, create_table


# =============================================================================
# Mock helpers
# =============================================================================

class MockWebSocket:
    """Mock WebSocket that collects sent messages."""

    def __init__(self):
        self.messages: list[dict] = []

    async def send_json(self, data: dict):
        self.messages.append(data)

    def types(self) -> list[str]:
        return [m["type"] for m in self.messages]

    def messages_of_type(self, msg_type: str) -> list[dict]:
        return [m for m in self.messages if m.get("type") == msg_type]


class BrokenWebSocket(MockWebSocket):
    async def send_json(self, data: dict):
        raise RuntimeError("connection reset")


def make_table(num_players: int = 2) -> tuple[Table, dict[str, MockWebSocket]]:
    """Table with one bound connection per participant, events drained."""
    table = Table(match=Match(rng=random.Random(5)))
    sockets = {}
    for i in range(num_players):
        ws = MockWebSocket()
        table.connect(f"conn{i}", ws)
        table.match.join(f"p{i}", f"Player {i}")
        table.bind(f"conn{i}", f"p{i}")
        sockets[f"p{i}"] = ws
    table._pending.clear()
    return table, sockets


# =============================================================================
# Bookkeeping
# =============================================================================

class TestConnections:

    def test_connect_unbound(self):
        table = Table()
        table.connect("c1", MockWebSocket())
        assert table.participant_for("c1") is None

    def test_bind(self):
        table, _ = make_table(2)
        assert table.participant_for("conn1") == "p1"
        assert [s.connection_id for s in table.connections_for("p1")] == ["conn1"]

    def test_participant_for_unknown_connection(self):
        table = Table()
        assert table.participant_for("nope") is None

    def test_disconnect_removes_participant(self):
        table, _ = make_table(3)
        removed = table.disconnect("conn2")
        assert removed.id == "p2"
        assert table.match.get_participant("p2") is None
        assert "conn2" not in table.seats

    def test_disconnect_unbound_connection(self):
        table, _ = make_table(2)
        table.connect("watcher", MockWebSocket())
        assert table.disconnect("watcher") is None
        assert len(table.match.participants) == 2

    def test_disconnect_unknown_connection(self):
        table = Table()
        assert table.disconnect("ghost") is None

    def test_second_connection_keeps_participant(self):
        table, _ = make_table(2)
        table.connect("conn1b", MockWebSocket())
        table.bind("conn1b", "p1")

        assert table.disconnect("conn1") is None
        assert table.match.get_participant("p1") is not None

    def test_is_full(self):
        table = Table(max_participants=2)
        table.match.join("a", "A")
        assert not table.is_full()
        table.match.join("b", "B")
        assert table.is_full()

    def test_table_wires_match_events(self):
        table = Table()
        table.match.join("a", "A")
        assert len(table._pending) == 1


class TestCreateTable:

    def test_uses_config(self):
        table = create_table()
        assert table.match.status == MatchStatus.WAITING
        assert table.match.hand_size == 7
        assert table.match.min_participants == 2
        assert table.max_participants >= 2

    def test_independent_tables(self):
        assert create_table().match.match_id != create_table().match.match_id


# =============================================================================
# Publishing
# =============================================================================

class TestFlush:

    @pytest.mark.asyncio
    async def test_events_precede_projections(self):
        table, sockets = make_table(2)
        table.match.start()

        await table.flush()

        assert sockets["p0"].types() == ["game_started", "game_update", "your_turn"]
        assert sockets["p1"].types() == ["game_started", "game_update"]

    @pytest.mark.asyncio
    async def test_each_connection_sees_own_hand(self):
        table, sockets = make_table(2)
        table.match.start()

        await table.flush()

        for pid, ws in sockets.items():
            state = ws.messages_of_type("game_update")[0]["game_state"]
            for participant in state["participants"]:
                hidden = all(c["id"] == HIDDEN for c in participant["cards"])
                assert hidden == (participant["id"] != pid)

    @pytest.mark.asyncio
    async def test_join_notification_carries_membership(self):
        table, sockets = make_table(2)
        table.match.join("p2", "Player 2")

        await table.flush()

        joined = sockets["p0"].messages_of_type("player_joined")[0]
        assert joined["participant_id"] == "p2"
        assert joined["name"] == "Player 2"
        assert [p["id"] for p in joined["participants"]] == ["p0", "p1", "p2"]

    @pytest.mark.asyncio
    async def test_unbound_connections_get_events_only(self):
        table, _ = make_table(2)
        watcher = MockWebSocket()
        table.connect("watcher", watcher)
        table.match.start()

        await table.flush()

        assert watcher.types() == ["game_started"]

    @pytest.mark.asyncio
    async def test_published_events_logged_as_json(self, caplog):
        table, _ = make_table(2)
        table.match.start()

        with caplog.at_level(logging.DEBUG, logger="table"):
            await table.flush()

        lines = [r.getMessage() for r in caplog.records if r.getMessage().startswith("Event ")]
        record = json.loads(lines[0][len("Event "):])
        assert record["event_type"] == "game_started"
        assert record["match_id"] == table.match.match_id
        assert record["data"] == {"participant_order": ["p0", "p1"]}
        assert record["timestamp"]

    @pytest.mark.asyncio
    async def test_pending_drained(self):
        table, sockets = make_table(2)
        table.match.start()
        await table.flush()
        sockets["p0"].messages.clear()

        await table.flush()

        assert "game_started" not in sockets["p0"].types()

    @pytest.mark.asyncio
    async def test_no_your_turn_while_waiting(self):
        table, sockets = make_table(2)
        await table.flush()
        assert sockets["p0"].types() == ["game_update"]

    @pytest.mark.asyncio
    async def test_broken_socket_does_not_block_others(self):
        table, sockets = make_table(2)
        table.connect("broken", BrokenWebSocket())
        table.match.join("p9", "Broken")
        table.bind("broken", "p9")
        table.match.start()

        await table.flush()

        assert "game_update" in sockets["p0"].types()
        assert "game_update" in sockets["p1"].types()

    @pytest.mark.asyncio
    async def test_messages_carry_no_hidden_card_ids(self):
        table, sockets = make_table(2)
        table.match.start()
        await table.flush()

        hidden_ids = {c.id for c in table.match.get_participant("p1").cards}
        hidden_ids |= {c.id for c in table.match.draw_pile}
        sent = repr(sockets["p0"].messages)
        assert not any(card_id in sent for card_id in hidden_ids)
