"""
Legality and turn effects.

Pure functions with no access to match state: given cards and seat indices
they answer whether a play is allowed and who moves next. game.py is the only
caller that turns these answers into state changes.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from cards import Card
from constants import PENALTY_DRAWS, REVERSE, SKIP, SUIT_COLORS


class Direction(str, Enum):
    """Rotational sense in which turns advance around the table."""

    CLOCKWISE = "clockwise"
    COUNTERCLOCKWISE = "counterclockwise"

    def flipped(self) -> "Direction":
        if self is Direction.CLOCKWISE:
            return Direction.COUNTERCLOCKWISE
        return Direction.CLOCKWISE


@dataclass(frozen=True)
class TurnEffect:
    """
    Outcome of playing a card.

    Attributes:
        next_index: Seat index of the participant who moves next.
        direction: Direction after the play (flipped by reverse).
        penalty_index: Seat index forced to draw, or None.
        penalty_count: Number of cards forced on penalty_index.
    """

    next_index: int
    direction: Direction
    penalty_index: Optional[int] = None
    penalty_count: int = 0


def effective_color(card: Card) -> str:
    """The chosen color of a played wild, else the card's own color."""
    if card.is_wild and card.chosen_color:
        return card.chosen_color
    return card.color


def is_legal(candidate: Card, top: Card) -> bool:
    """
    Check whether `candidate` may be played on `top`.

    A wild is always playable. Otherwise the candidate must match the top
    card's effective color or its value.
    """
    if candidate.is_wild:
        return True
    if candidate.color == effective_color(top):
        return True
    return candidate.value == top.value


def is_valid_choice(color: Optional[str]) -> bool:
    """Whether `color` may be chosen for a wild."""
    return color in SUIT_COLORS


def step(direction: Direction) -> int:
    """Seat offset of one turn in the given direction."""
    return 1 if direction is Direction.CLOCKWISE else -1


def advance(index: int, count: int, direction: Direction, steps: int = 1) -> int:
    """Move `steps` seats from `index` in `direction`, modulo `count`."""
    return (index + steps * step(direction)) % count


def resolve_effect(
    card: Card,
    current_index: int,
    participant_count: int,
    direction: Direction,
) -> TurnEffect:
    """
    Compute whose turn follows a play and what penalty applies.

    Rules:
        - skip: the next participant is passed over.
        - reverse: direction flips; the turn goes one seat from the player
          in the new direction.
        - draw2 / wild_draw4: the next participant draws 2 / 4 and is passed
          over.
        - anything else: the next participant moves.

    Two-player tables need no special case: stepping twice modulo 2 lands
    back on the player.

    Args:
        card: The card just played.
        current_index: Seat index of the player.
        participant_count: Number of seated participants.
        direction: Direction before the play.

    Returns:
        TurnEffect describing the next turn.
    """
    raw_next = advance(current_index, participant_count, direction)

    if card.value == SKIP:
        return TurnEffect(
            next_index=advance(raw_next, participant_count, direction),
            direction=direction,
        )

    if card.value == REVERSE:
        new_direction = direction.flipped()
        return TurnEffect(
            next_index=advance(current_index, participant_count, new_direction),
            direction=new_direction,
        )

    penalty = PENALTY_DRAWS.get(card.value)
    if penalty:
        return TurnEffect(
            next_index=advance(raw_next, participant_count, direction),
            direction=direction,
            penalty_index=raw_next,
            penalty_count=penalty,
        )

    return TurnEffect(next_index=raw_next, direction=direction)
