"""
Cards and the draw pile.

A Card is an immutable value. Building, shuffling and drawing never mutate
their inputs; they return new lists, so the match decides when a pile changes.

Pile convention: the top of a pile is the END of the list (pop() draws).
"""

import random
import uuid
from dataclasses import dataclass, replace
from typing import Callable, Optional

from constants import (
    ACTION_COPIES_PER_COLOR,
    ACTION_VALUES,
    NUMBER_COPIES_PER_COLOR,
    NUMBER_VALUES,
    SUIT_COLORS,
    WILD,
    WILD_COPIES,
    WILD_VALUES,
    ZERO_COPIES_PER_COLOR,
)


def new_card_id() -> str:
    """Generate a fresh unique card id."""
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Card:
    """
    A single playing card.

    Attributes:
        id: Unique token for this physical card.
        color: red, yellow, green, blue or wild.
        value: "0".."9", skip, reverse, draw2, wild or wild_draw4.
        chosen_color: Color picked when a wild is played (None otherwise).
    """

    id: str
    color: str
    value: str
    chosen_color: Optional[str] = None

    @property
    def is_wild(self) -> bool:
        return self.color == WILD

    def with_color(self, chosen_color: Optional[str]) -> "Card":
        """Return a copy of this card carrying the chosen color."""
        return replace(self, chosen_color=chosen_color)

    def to_dict(self) -> dict:
        """Convert card to dictionary for JSON serialization."""
        data = {
            "id": self.id,
            "color": self.color,
            "value": self.value,
        }
        if self.chosen_color is not None:
            data["chosen_color"] = self.chosen_color
        return data


def build_deck() -> list[Card]:
    """
    Build the canonical 108-card set in unshuffled order.

    Every card receives a fresh id, so two decks never share ids.
    """
    cards: list[Card] = []

    for color in SUIT_COLORS:
        for value in NUMBER_VALUES:
            copies = ZERO_COPIES_PER_COLOR if value == "0" else NUMBER_COPIES_PER_COLOR
            for _ in range(copies):
                cards.append(Card(new_card_id(), color, value))

    for color in SUIT_COLORS:
        for value in ACTION_VALUES:
            for _ in range(ACTION_COPIES_PER_COLOR):
                cards.append(Card(new_card_id(), color, value))

    for value in WILD_VALUES:
        for _ in range(WILD_COPIES):
            cards.append(Card(new_card_id(), WILD, value))

    return cards


def shuffle(cards: list[Card], rng: Optional[random.Random] = None) -> list[Card]:
    """
    Return a uniformly random permutation of the cards.

    random.Random.shuffle is an in-place Fisher-Yates shuffle, so it is
    applied to a copy to leave the caller's list untouched.

    Args:
        cards: Cards to shuffle.
        rng: Optional random source (seeded in tests for reproducibility).
    """
    shuffled = list(cards)
    (rng or random).shuffle(shuffled)
    return shuffled


def fresh_pile(rng: Optional[random.Random] = None) -> list[Card]:
    """Build and shuffle a brand-new deck."""
    return shuffle(build_deck(), rng)


def draw_cards(
    pile: list[Card],
    count: int,
    refill: Optional[Callable[[], list[Card]]] = None,
) -> tuple[list[Card], list[Card]]:
    """
    Draw up to `count` cards from the top of a pile.

    When the pile runs out before `count` is satisfied, `refill()` supplies a
    new pile (a brand-new shuffled deck by default) and drawing continues.
    Discarded cards are never recycled into the pile.

    Args:
        pile: Source pile, top = end of list. Not mutated.
        count: Number of cards wanted.
        refill: Factory for a replacement pile when the current one is empty.

    Returns:
        (drawn cards in draw order, remaining pile)
    """
    remaining = list(pile)
    drawn: list[Card] = []
    refill = refill or fresh_pile

    while len(drawn) < count:
        if not remaining:
            remaining = list(refill())
            if not remaining:
                break
        drawn.append(remaining.pop())

    return drawn, remaining
