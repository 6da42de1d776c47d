"""
Card constants for the shedding card game.

This module is the single source of truth for the card vocabulary and the
composition of a full deck. Game flow lives in game.py, legality and turn
effects in rules.py.

Deck composition (108 cards):
    - Per color: one "0" and two each of "1".."9"       (19 x 4 = 76)
    - Per color: two each of skip, reverse, draw2        (6 x 4 = 24)
    - Wilds: four "wild" and four "wild_draw4"           (8)
"""

# =============================================================================
# Colors
# =============================================================================

RED = "red"
YELLOW = "yellow"
GREEN = "green"
BLUE = "blue"
WILD = "wild"

# Colors a non-wild card can carry, and the colors a player may choose for a wild
SUIT_COLORS: tuple[str, ...] = (RED, YELLOW, GREEN, BLUE)
ALL_COLORS: tuple[str, ...] = SUIT_COLORS + (WILD,)


# =============================================================================
# Values
# =============================================================================

NUMBER_VALUES: tuple[str, ...] = tuple(str(n) for n in range(10))

SKIP = "skip"
REVERSE = "reverse"
DRAW2 = "draw2"
WILD_CARD = "wild"
WILD_DRAW4 = "wild_draw4"

ACTION_VALUES: tuple[str, ...] = (SKIP, REVERSE, DRAW2)
WILD_VALUES: tuple[str, ...] = (WILD_CARD, WILD_DRAW4)
ALL_VALUES: tuple[str, ...] = NUMBER_VALUES + ACTION_VALUES + WILD_VALUES

# Cards the next participant is forced to draw
PENALTY_DRAWS: dict[str, int] = {
    DRAW2: 2,
    WILD_DRAW4: 4,
}


# =============================================================================
# Deck composition
# =============================================================================

ZERO_COPIES_PER_COLOR = 1
NUMBER_COPIES_PER_COLOR = 2
ACTION_COPIES_PER_COLOR = 2
WILD_COPIES = 4

DECK_SIZE = 108

DEFAULT_HAND_SIZE = 7
MIN_PARTICIPANTS = 2


# =============================================================================
# Redaction
# =============================================================================

HIDDEN = "hidden"
