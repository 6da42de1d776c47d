"""WebSocket intent handlers for the card game.

Each handler corresponds to a single intent type from the client. Frames are
validated into typed intents by models.intents, then dispatched via the
HANDLERS dict. Handlers mutate the match under the table lock and publish
the result with table.flush(); a rejected intent is answered with an error
to the requesting connection only.
"""

import logging
from dataclasses import dataclass

from fastapi import WebSocket
from pydantic import ValidationError

from game import ErrorKind, GameError
from logging_config import participant_id_var
from models.intents import (
    DeclareLowHandIntent,
    DrawIntent,
    JoinIntent,
    LeaveIntent,
    PlayIntent,
    ResetIntent,
    StartIntent,
    parse_intent,
)
from table import Table

logger = logging.getLogger(__name__)


@dataclass
class ConnectionContext:
    """State tracked per WebSocket connection."""

    websocket: WebSocket
    connection_id: str


async def reply_error(ctx: ConnectionContext, error: GameError) -> None:
    """Acknowledge a rejected intent to its sender only."""
    logger.info(f"Rejected intent from {ctx.connection_id}: {error.kind.value}")
    await ctx.websocket.send_json({
        "type": "error",
        "code": error.kind.value,
        "message": error.message,
    })


def acting_participant(participant_id: str, ctx: ConnectionContext, table: Table) -> str:
    """
    Resolve who an intent speaks for.

    A connection may only act for the participant it joined as.

    Raises:
        GameError: NOT_YOUR_TURN if the connection has not joined, or names
            someone else.
    """
    bound = table.participant_for(ctx.connection_id)
    if bound is None or bound != participant_id:
        raise GameError(ErrorKind.NOT_YOUR_TURN)
    return bound


# ---------------------------------------------------------------------------
# Membership handlers
# ---------------------------------------------------------------------------

async def handle_join(intent: JoinIntent, ctx: ConnectionContext, *, table: Table) -> None:
    async with table.lock:
        try:
            bound = table.participant_for(ctx.connection_id)
            if bound is not None and bound != intent.participant_id:
                raise GameError(ErrorKind.INVALID_INTENT, f"Already joined as {bound}")

            # Participant ids are public; one live connection per seat
            others = [
                seat for seat in table.connections_for(intent.participant_id)
                if seat.connection_id != ctx.connection_id
            ]
            if others:
                raise GameError(
                    ErrorKind.INVALID_INTENT,
                    f"{intent.participant_id} is already connected",
                )

            already_seated = table.match.get_participant(intent.participant_id) is not None
            if not already_seated and table.is_full():
                raise GameError(ErrorKind.TABLE_FULL)

            table.match.join(intent.participant_id, intent.name)
        except GameError as e:
            await reply_error(ctx, e)
            return

        table.bind(ctx.connection_id, intent.participant_id)
        logger.info(f"{intent.name} ({intent.participant_id}) joined via {ctx.connection_id}")
        await table.flush()


async def handle_leave(intent: LeaveIntent, ctx: ConnectionContext, *, table: Table) -> None:
    async with table.lock:
        participant_id = table.participant_for(ctx.connection_id)
        if participant_id is None:
            return

        table.bind(ctx.connection_id, None)
        if table.connections_for(participant_id):
            return
        table.match.leave(participant_id)
        await table.flush()


async def handle_disconnect(ctx: ConnectionContext, *, table: Table) -> None:
    """Connection closed: the participant leaves the match."""
    async with table.lock:
        removed = table.disconnect(ctx.connection_id)
        if removed:
            logger.info(f"{removed.name} ({removed.id}) disconnected")
            await table.flush()


# ---------------------------------------------------------------------------
# Lifecycle handlers
# ---------------------------------------------------------------------------

async def handle_start(intent: StartIntent, ctx: ConnectionContext, *, table: Table) -> None:
    async with table.lock:
        try:
            table.match.start()
        except GameError as e:
            await reply_error(ctx, e)
            return
        await table.flush()


async def handle_reset(intent: ResetIntent, ctx: ConnectionContext, *, table: Table) -> None:
    async with table.lock:
        table.match.reset()
        await table.flush()


# ---------------------------------------------------------------------------
# Turn action handlers
# ---------------------------------------------------------------------------

async def handle_play(intent: PlayIntent, ctx: ConnectionContext, *, table: Table) -> None:
    async with table.lock:
        try:
            participant_id = acting_participant(intent.participant_id, ctx, table)
            card = table.match.play_card(participant_id, intent.card_id, intent.chosen_color)
        except GameError as e:
            await reply_error(ctx, e)
            return

        logger.debug(f"{participant_id} played {card.color} {card.value}")
        await table.flush()


async def handle_draw(intent: DrawIntent, ctx: ConnectionContext, *, table: Table) -> None:
    async with table.lock:
        try:
            participant_id = acting_participant(intent.participant_id, ctx, table)
            drawn = table.match.draw_card(participant_id)
        except GameError as e:
            await reply_error(ctx, e)
            return

        logger.debug(f"{participant_id} drew {len(drawn)} card(s)")
        await table.flush()


async def handle_declare_low_hand(intent: DeclareLowHandIntent, ctx: ConnectionContext, *, table: Table) -> None:
    async with table.lock:
        try:
            participant_id = acting_participant(intent.participant_id, ctx, table)
        except GameError as e:
            await reply_error(ctx, e)
            return

        if table.match.declare_low_hand(participant_id):
            await table.flush()


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

HANDLERS = {
    "join": handle_join,
    "start": handle_start,
    "play": handle_play,
    "draw": handle_draw,
    "declare_low_hand": handle_declare_low_hand,
    "reset": handle_reset,
    "leave": handle_leave,
}


async def dispatch(data: dict, ctx: ConnectionContext, *, table: Table) -> None:
    """
    Validate one client frame and run its handler.

    Frames that match no intent shape are answered with invalid-intent.
    """
    try:
        intent = parse_intent(data)
    except ValidationError as e:
        logger.debug(f"Invalid frame from {ctx.connection_id}: {e.error_count()} error(s)")
        await reply_error(ctx, GameError(ErrorKind.INVALID_INTENT))
        return

    token = participant_id_var.set(table.participant_for(ctx.connection_id))
    try:
        await HANDLERS[intent.type](intent, ctx, table=table)
    finally:
        participant_id_var.reset(token)
