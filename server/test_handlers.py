"""
Test suite for WebSocket intent handlers.

Tests handler flows and validation using mock WebSockets and a real Table.

Run with: pytest test_handlers.py -v
"""

import random

import pytest

from cards import Card
from game import Match, MatchStatus
from handlers import (
    ConnectionContext,
    dispatch,
    handle_disconnect,
    handle_draw,
    handle_join,
    handle_start,
)
from models.intents import DrawIntent, JoinIntent, StartIntent
from table import Table


# =============================================================================
# Mock helpers
# =============================================================================

class MockWebSocket:
    """Mock WebSocket that collects sent messages."""

    def __init__(self):
        self.messages: list[dict] = []

    async def send_json(self, data: dict):
        self.messages.append(data)

    def last_message(self) -> dict:
        return self.messages[-1] if self.messages else {}

    def messages_of_type(self, msg_type: str) -> list[dict]:
        return [m for m in self.messages if m.get("type") == msg_type]


def make_table(**kwargs) -> Table:
    return Table(match=Match(rng=random.Random(9)), **kwargs)


def make_ctx(table: Table, connection_id: str = "conn_0") -> ConnectionContext:
    """Create a connected ConnectionContext."""
    ws = MockWebSocket()
    table.connect(connection_id, ws)
    return ConnectionContext(websocket=ws, connection_id=connection_id)


async def join(table: Table, ctx: ConnectionContext, participant_id: str, name: str = None):
    await dispatch(
        {"type": "join", "participant_id": participant_id, "name": name or participant_id},
        ctx,
        table=table,
    )


async def make_playing_table(num_players: int = 2):
    """Table with num_players joined over their own connections and started."""
    table = make_table()
    ctxs = []
    for i in range(num_players):
        ctx = make_ctx(table, f"conn_{i}")
        await join(table, ctx, f"p{i}")
        ctxs.append(ctx)
    await dispatch({"type": "start"}, ctxs[0], table=table)
    for ctx in ctxs:
        ctx.websocket.messages.clear()
    return table, ctxs


def error_codes(ws: MockWebSocket) -> list[str]:
    return [m["code"] for m in ws.messages_of_type("error")]


# =============================================================================
# Membership
# =============================================================================

class TestHandleJoin:

    @pytest.mark.asyncio
    async def test_join_binds_and_broadcasts(self):
        table = make_table()
        ctx = make_ctx(table)

        await handle_join(JoinIntent(type="join", participant_id="p1", name="Alice"), ctx, table=table)

        assert table.participant_for("conn_0") == "p1"
        assert table.match.get_participant("p1").name == "Alice"
        joined = ctx.websocket.messages_of_type("player_joined")[0]
        assert joined["participant_id"] == "p1"
        assert joined["participants"] == [{"id": "p1", "name": "Alice"}]
        assert ctx.websocket.messages_of_type("game_update")

    @pytest.mark.asyncio
    async def test_other_connections_notified(self):
        table = make_table()
        alice = make_ctx(table, "a")
        bob = make_ctx(table, "b")
        await join(table, alice, "p1", "Alice")

        await join(table, bob, "p2", "Bob")

        joined = alice.websocket.messages_of_type("player_joined")
        assert [m["participant_id"] for m in joined] == ["p1", "p2"]

    @pytest.mark.asyncio
    async def test_table_full(self):
        table = make_table(max_participants=1)
        first = make_ctx(table, "a")
        second = make_ctx(table, "b")
        await join(table, first, "p1")
        first.websocket.messages.clear()

        await join(table, second, "p2")

        assert error_codes(second.websocket) == ["table-full"]
        assert first.websocket.messages == []
        assert table.participant_for("b") is None

    @pytest.mark.asyncio
    async def test_rejoin_same_id_allowed_when_full(self):
        table = make_table(max_participants=1)
        ctx = make_ctx(table)
        await join(table, ctx, "p1", "Alice")

        await join(table, ctx, "p1", "Alicia")

        assert error_codes(ctx.websocket) == []
        assert table.match.get_participant("p1").name == "Alicia"

    @pytest.mark.asyncio
    async def test_connection_cannot_switch_identity(self):
        table = make_table()
        ctx = make_ctx(table)
        await join(table, ctx, "p1")

        await join(table, ctx, "p2")

        assert error_codes(ctx.websocket) == ["invalid-intent"]
        assert table.match.get_participant("p2") is None

    @pytest.mark.asyncio
    async def test_cannot_take_over_connected_participant(self):
        table, ctxs = await make_playing_table(2)
        intruder = make_ctx(table, "conn_intruder")

        await join(table, intruder, "p0")

        assert error_codes(intruder.websocket) == ["invalid-intent"]
        assert table.participant_for("conn_intruder") is None
        assert not intruder.websocket.messages_of_type("game_update")
        assert ctxs[0].websocket.messages == []

        await dispatch({"type": "draw", "participant_id": "p0"}, intruder, table=table)

        assert error_codes(intruder.websocket) == ["invalid-intent", "not-your-turn"]
        assert table.match.active_participant_id == "p0"
        assert len(table.match.get_participant("p0").cards) == 7

    @pytest.mark.asyncio
    async def test_seat_can_be_reclaimed_after_disconnect(self):
        table = make_table()
        first = make_ctx(table, "a")
        await join(table, first, "p0", "Alice")
        await handle_disconnect(first, table=table)
        second = make_ctx(table, "b")

        await join(table, second, "p0", "Alice")

        assert error_codes(second.websocket) == []
        assert table.participant_for("b") == "p0"


class TestHandleLeave:

    @pytest.mark.asyncio
    async def test_leave_removes_and_broadcasts(self):
        table, ctxs = await make_playing_table(3)

        await dispatch({"type": "leave"}, ctxs[2], table=table)

        assert table.match.get_participant("p2") is None
        assert table.participant_for("conn_2") is None
        left = ctxs[0].websocket.messages_of_type("player_left")[0]
        assert left["participant_id"] == "p2"
        assert [p["id"] for p in left["participants"]] == ["p0", "p1"]

    @pytest.mark.asyncio
    async def test_leave_before_join_is_noop(self):
        table = make_table()
        ctx = make_ctx(table)
        await dispatch({"type": "leave"}, ctx, table=table)
        assert ctx.websocket.messages == []


class TestHandleDisconnect:

    @pytest.mark.asyncio
    async def test_disconnect_reverts_to_waiting(self):
        table, ctxs = await make_playing_table(2)

        await handle_disconnect(ctxs[1], table=table)

        assert table.match.status == MatchStatus.WAITING
        assert "conn_1" not in table.seats
        assert ctxs[0].websocket.messages_of_type("player_left")
        state = ctxs[0].websocket.messages_of_type("game_update")[-1]["game_state"]
        assert state["status"] == "waiting"
        assert state["discard_top"] is None

    @pytest.mark.asyncio
    async def test_disconnect_without_join_is_silent(self):
        table, ctxs = await make_playing_table(2)
        watcher = make_ctx(table, "watcher")

        await handle_disconnect(watcher, table=table)

        assert ctxs[0].websocket.messages == []
        assert table.match.status == MatchStatus.PLAYING


# =============================================================================
# Lifecycle
# =============================================================================

class TestHandleStart:

    @pytest.mark.asyncio
    async def test_insufficient_players_only_to_requester(self):
        table = make_table()
        ctx = make_ctx(table, "a")
        watcher = make_ctx(table, "b")
        await join(table, ctx, "p1")
        ctx.websocket.messages.clear()
        watcher.websocket.messages.clear()

        await handle_start(StartIntent(type="start"), ctx, table=table)

        assert ctx.websocket.last_message() == {
            "type": "error",
            "code": "insufficient-players",
            "message": "Need at least 2 players to start the game",
        }
        assert watcher.websocket.messages == []
        assert table.match.status == MatchStatus.WAITING

    @pytest.mark.asyncio
    async def test_start_sends_private_hands(self):
        table, ctxs = await make_playing_table(2)
        await dispatch({"type": "start"}, ctxs[1], table=table)

        for i, ctx in enumerate(ctxs):
            types = [m["type"] for m in ctx.websocket.messages]
            assert types[0] == "game_started"
            state = ctx.websocket.messages_of_type("game_update")[0]["game_state"]
            mine = next(p for p in state["participants"] if p["id"] == f"p{i}")
            theirs = next(p for p in state["participants"] if p["id"] != f"p{i}")
            assert mine["cards"][0]["id"] != "hidden"
            assert theirs["cards"][0]["id"] == "hidden"
            assert len(theirs["cards"]) == 7

    @pytest.mark.asyncio
    async def test_reset(self):
        table, ctxs = await make_playing_table(2)

        await dispatch({"type": "reset"}, ctxs[1], table=table)

        assert table.match.status == MatchStatus.WAITING
        assert ctxs[0].websocket.messages_of_type("game_reset")


# =============================================================================
# Turn actions
# =============================================================================

class TestHandlePlayAndDraw:

    @pytest.mark.asyncio
    async def test_draw_passes_turn(self):
        table, ctxs = await make_playing_table(2)

        await handle_draw(DrawIntent(type="draw", participant_id="p0"), ctxs[0], table=table)

        assert table.match.active_participant_id == "p1"
        drawn = ctxs[1].websocket.messages_of_type("card_drawn")[0]
        assert drawn == {"type": "card_drawn", "participant_id": "p0", "count": 1, "forced": False}
        assert ctxs[1].websocket.messages_of_type("your_turn")

    @pytest.mark.asyncio
    async def test_draw_out_of_turn(self):
        table, ctxs = await make_playing_table(2)

        await dispatch({"type": "draw", "participant_id": "p1"}, ctxs[1], table=table)

        assert error_codes(ctxs[1].websocket) == ["not-your-turn"]
        assert ctxs[0].websocket.messages == []

    @pytest.mark.asyncio
    async def test_cannot_act_for_someone_else(self):
        table, ctxs = await make_playing_table(2)

        await dispatch({"type": "draw", "participant_id": "p0"}, ctxs[1], table=table)

        assert error_codes(ctxs[1].websocket) == ["not-your-turn"]
        assert table.match.active_participant_id == "p0"

    @pytest.mark.asyncio
    async def test_play_legal_card(self):
        table, ctxs = await make_playing_table(2)
        table.match.get_participant("p0").cards = [
            Card("r5", "red", "5"),
            Card("b1", "blue", "1"),
        ]
        table.match.discard_pile = [Card("r9", "red", "9")]

        await dispatch({"type": "play", "participant_id": "p0", "card_id": "r5"}, ctxs[0], table=table)

        played = ctxs[1].websocket.messages_of_type("card_played")[0]
        assert played["participant_id"] == "p0"
        assert played["card_id"] == "r5"
        state = ctxs[1].websocket.messages_of_type("game_update")[-1]["game_state"]
        assert state["discard_top"]["id"] == "r5"
        assert state["active_participant_id"] == "p1"

    @pytest.mark.asyncio
    async def test_illegal_play(self):
        table, ctxs = await make_playing_table(2)
        table.match.get_participant("p0").cards = [Card("b1", "blue", "1"), Card("b2", "blue", "2")]
        table.match.discard_pile = [Card("r9", "red", "9")]

        await dispatch({"type": "play", "participant_id": "p0", "card_id": "b1"}, ctxs[0], table=table)

        assert error_codes(ctxs[0].websocket) == ["illegal-play"]
        assert len(table.match.get_participant("p0").cards) == 2

    @pytest.mark.asyncio
    async def test_unknown_card(self):
        table, ctxs = await make_playing_table(2)

        await dispatch({"type": "play", "participant_id": "p0", "card_id": "nope"}, ctxs[0], table=table)

        assert error_codes(ctxs[0].websocket) == ["card-not-found"]

    @pytest.mark.asyncio
    async def test_winning_play(self):
        table, ctxs = await make_playing_table(2)
        table.match.get_participant("p0").cards = [Card("r5", "red", "5")]
        table.match.discard_pile = [Card("r9", "red", "9")]

        await dispatch({"type": "play", "participant_id": "p0", "card_id": "r5"}, ctxs[0], table=table)

        won = ctxs[1].websocket.messages_of_type("game_won")[0]
        assert won["winner_id"] == "p0"
        assert not ctxs[1].websocket.messages_of_type("your_turn")
        assert not ctxs[0].websocket.messages_of_type("your_turn")

    @pytest.mark.asyncio
    async def test_play_before_start(self):
        table = make_table()
        ctx = make_ctx(table)
        await join(table, ctx, "p0")

        await dispatch({"type": "play", "participant_id": "p0", "card_id": "x"}, ctx, table=table)

        assert error_codes(ctx.websocket) == ["not-playing"]


class TestHandleDeclareLowHand:

    @pytest.mark.asyncio
    async def test_declaration_broadcast(self):
        table, ctxs = await make_playing_table(2)

        await dispatch({"type": "declare_low_hand", "participant_id": "p1"}, ctxs[1], table=table)

        assert ctxs[0].websocket.messages_of_type("low_hand_declared")[0]["participant_id"] == "p1"
        state = ctxs[0].websocket.messages_of_type("game_update")[-1]["game_state"]
        declared = {p["id"]: p["declared_low_hand"] for p in state["participants"]}
        assert declared == {"p0": False, "p1": True}


# =============================================================================
# Dispatch
# =============================================================================

class TestDispatch:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("frame", [
        {"type": "update_game", "key": "status", "value": "finished"},
        {"type": "play", "participant_id": "p0"},
        {"no_type": True},
    ])
    async def test_malformed_frames_rejected(self, frame):
        table, ctxs = await make_playing_table(2)

        await dispatch(frame, ctxs[0], table=table)

        assert error_codes(ctxs[0].websocket) == ["invalid-intent"]
        assert ctxs[1].websocket.messages == []
        assert table.match.status == MatchStatus.PLAYING
