"""
The table: one match plus the WebSocket connections watching it.

The Table owns exactly one Match and is the only place connections meet game
state. It maps connection ids to participant ids, serializes mutations with
an asyncio.Lock, and after each committed mutation sends:

    1. one notification per event the match emitted (to every connection),
    2. one projection per bound connection (each sees only its own hand),
    3. a your_turn nudge to the active participant.

A Table is constructed once per server and handed to the handlers, so tests
can build as many independent tables as they like.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from fastapi import WebSocket

from config import config
from game import Match, MatchStatus, Participant
from logging_config import ContextLogger, get_logger
from models.events import EventType, GameEvent
from views import project_match


@dataclass
class Seat:
    """
    A WebSocket connection at the table (transport-level representation).

    This is separate from game.Participant - a Seat tracks the socket and
    which participant it speaks for, while Participant tracks cards.

    Attributes:
        connection_id: Unique id assigned when the socket connected.
        websocket: The live connection.
        participant_id: Participant bound by this connection's join, if any.
    """

    connection_id: str
    websocket: WebSocket
    participant_id: Optional[str] = None


@dataclass
class Table:
    """
    A single match and its audience.

    Attributes:
        match: The authoritative Match.
        seats: Connection id -> Seat.
        max_participants: Join is refused beyond this many seated participants.
        lock: Serializes every mutation and the broadcast that follows it.
    """

    match: Match = field(default_factory=Match)
    seats: dict[str, Seat] = field(default_factory=dict)
    max_participants: int = 10
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    _pending: list[GameEvent] = field(default_factory=list, repr=False)
    log: ContextLogger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.match.set_event_emitter(self._pending.append)
        self.log = get_logger(__name__).with_context(match_id=self.match.match_id)

    # -------------------------------------------------------------------------
    # Connections
    # -------------------------------------------------------------------------

    def connect(self, connection_id: str, websocket: WebSocket) -> Seat:
        seat = Seat(connection_id=connection_id, websocket=websocket)
        self.seats[connection_id] = seat
        self.log.debug(f"Connection {connection_id} opened ({len(self.seats)} connected)")
        return seat

    def disconnect(self, connection_id: str) -> Optional[Participant]:
        """
        Drop a connection, removing its participant from the match.

        Returns:
            The participant who left, or None if the connection never joined
            (or another connection still speaks for the same participant).
        """
        seat = self.seats.pop(connection_id, None)
        if seat is None or seat.participant_id is None:
            return None
        if self.connections_for(seat.participant_id):
            return None
        return self.match.leave(seat.participant_id)

    def bind(self, connection_id: str, participant_id: Optional[str]) -> None:
        """Make `connection_id` speak for `participant_id`."""
        seat = self.seats.get(connection_id)
        if seat is not None:
            seat.participant_id = participant_id

    def participant_for(self, connection_id: str) -> Optional[str]:
        seat = self.seats.get(connection_id)
        return seat.participant_id if seat else None

    def connections_for(self, participant_id: str) -> list[Seat]:
        return [s for s in self.seats.values() if s.participant_id == participant_id]

    def is_full(self) -> bool:
        return len(self.match.participants) >= self.max_participants

    # -------------------------------------------------------------------------
    # Messaging
    # -------------------------------------------------------------------------

    async def _send(self, seat: Seat, message: dict) -> None:
        try:
            await seat.websocket.send_json(message)
        except Exception as e:
            self.log.warning(f"Send to {seat.connection_id} failed: {e}")

    async def broadcast(self, message: dict) -> None:
        """Send a message to every open connection."""
        for seat in list(self.seats.values()):
            await self._send(seat, message)

    async def broadcast_state(self) -> None:
        """Send each bound connection its own projection of the match."""
        for seat in list(self.seats.values()):
            if seat.participant_id is None:
                continue
            await self._send(seat, {
                "type": "game_update",
                "game_state": project_match(self.match, seat.participant_id),
            })

        if self.match.status == MatchStatus.PLAYING:
            for seat in self.connections_for(self.match.active_participant_id):
                await self._send(seat, {"type": "your_turn"})

    async def flush(self) -> None:
        """
        Publish what the last mutation produced.

        Called after a mutation has been applied; sends the queued event
        notifications, then fresh projections.
        """
        events = list(self._pending)
        self._pending.clear()

        for event in events:
            self.log.debug(f"Event {event.to_json()}")
            message = event.to_message()
            if event.event_type in (EventType.PLAYER_JOINED, EventType.PLAYER_LEFT):
                message["participants"] = self.match.participant_list()
            await self.broadcast(message)

        await self.broadcast_state()


def create_table() -> Table:
    """Build the server's table from configuration."""
    defaults = config.game_defaults
    match = Match(
        hand_size=defaults.hand_size,
        min_participants=defaults.min_participants,
    )
    table = Table(match=match, max_participants=config.MAX_PARTICIPANTS)
    logging.getLogger(__name__).info(
        f"Table ready: match {match.match_id}, hand size {match.hand_size}, "
        f"{match.min_participants}-{table.max_participants} participants"
    )
    return table
