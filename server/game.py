"""
Match state machine for the shedding card game.

The Match is the single authoritative copy of game state and the only writer
of it. Every transition validates its preconditions first and raises
GameError before touching anything, so a rejected intent leaves no trace.

Rules Summary:
    - 108-card deck, 7 cards dealt to each participant one at a time
    - A card is playable if it matches the top card's color or value, or is wild
    - skip / reverse / draw2 / wild_draw4 alter who moves next (see rules.py)
    - Drawing takes one card and ends the turn
    - The first participant to empty their hand wins immediately

Status flow:
    WAITING -> PLAYING -> FINISHED
    PLAYING -> WAITING when too few participants remain
    any -> WAITING on reset()
"""

import logging
import random
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

from cards import Card, draw_cards, fresh_pile
from constants import DEFAULT_HAND_SIZE, MIN_PARTICIPANTS
from models.events import EventType, GameEvent
from rules import Direction, advance, is_legal, is_valid_choice, resolve_effect

logger = logging.getLogger(__name__)


class MatchStatus(str, Enum):
    """
    Lifecycle status of a match.

    WAITING: Lobby, participants joining
    PLAYING: Cards dealt, turns in progress
    FINISHED: Someone emptied their hand
    """

    WAITING = "waiting"
    PLAYING = "playing"
    FINISHED = "finished"


class ErrorKind(str, Enum):
    """Reasons an intent is rejected. Reported to the requester only."""

    INSUFFICIENT_PLAYERS = "insufficient-players"
    NOT_YOUR_TURN = "not-your-turn"
    CARD_NOT_FOUND = "card-not-found"
    ILLEGAL_PLAY = "illegal-play"
    NOT_PLAYING = "not-playing"
    TABLE_FULL = "table-full"
    INVALID_INTENT = "invalid-intent"


_DEFAULT_MESSAGES = {
    ErrorKind.INSUFFICIENT_PLAYERS: "Need at least 2 players to start the game",
    ErrorKind.NOT_YOUR_TURN: "Not your turn",
    ErrorKind.CARD_NOT_FOUND: "Card not found",
    ErrorKind.ILLEGAL_PLAY: "Cannot play this card",
    ErrorKind.NOT_PLAYING: "No game in progress",
    ErrorKind.TABLE_FULL: "Table is full",
    ErrorKind.INVALID_INTENT: "Malformed message",
}


class GameError(Exception):
    """A rejected intent. Non-fatal; the match is left unchanged."""

    def __init__(self, kind: ErrorKind, message: Optional[str] = None) -> None:
        self.kind = kind
        self.message = message or _DEFAULT_MESSAGES[kind]
        super().__init__(self.message)


@dataclass
class Participant:
    """
    A seated participant.

    Attributes:
        id: Identifier supplied by the client; stable for the session.
        name: Display name.
        cards: The participant's hand, private to them.
    """

    id: str
    name: str
    cards: list[Card] = field(default_factory=list)

    def find_card(self, card_id: str) -> Optional[int]:
        """Index of the card with this id in the hand, or None."""
        for i, card in enumerate(self.cards):
            if card.id == card_id:
                return i
        return None


@dataclass
class Match:
    """
    Authoritative state of one match.

    Attributes:
        participants: Seated participants; list order is turn order.
        active_participant_id: Whose turn it is ("" when nobody's).
        discard_pile: Played cards, top = end. Never recycled.
        direction: Current rotational sense of play.
        draw_pile: Face-down cards, top = end.
        status: Current lifecycle status.
        winner_id: Participant who emptied their hand, if any.
        low_hand_declared: Participants who signalled a low hand this deal.
        hand_size: Cards dealt to each participant at start.
        min_participants: Seats required to start (and to keep playing).
        rng: Random source for shuffles (seed it for reproducible deals).
        match_id: Unique identifier for events and logging.
    """

    participants: list[Participant] = field(default_factory=list)
    active_participant_id: str = ""
    discard_pile: list[Card] = field(default_factory=list)
    direction: Direction = Direction.CLOCKWISE
    draw_pile: list[Card] = field(default_factory=list)
    status: MatchStatus = MatchStatus.WAITING
    winner_id: Optional[str] = None
    low_hand_declared: set = field(default_factory=set)
    hand_size: int = DEFAULT_HAND_SIZE
    min_participants: int = MIN_PARTICIPANTS
    rng: random.Random = field(default_factory=random.Random, repr=False)

    match_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    _event_emitter: Optional[Callable[[GameEvent], None]] = field(
        default=None, repr=False, compare=False
    )
    _sequence_num: int = field(default=0, repr=False, compare=False)

    def set_event_emitter(self, emitter: Callable[[GameEvent], None]) -> None:
        """
        Set callback for event emission.

        The emitter is called with each GameEvent once its transition has
        been applied.
        """
        self._event_emitter = emitter

    def _emit(
        self,
        event_type: EventType,
        participant_id: Optional[str] = None,
        **data: Any,
    ) -> None:
        if self._event_emitter is None:
            return

        self._sequence_num += 1
        event = GameEvent(
            event_type=event_type,
            match_id=self.match_id,
            sequence_num=self._sequence_num,
            participant_id=participant_id,
            data=data,
        )
        self._event_emitter(event)

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    @property
    def discard_top(self) -> Optional[Card]:
        """The face-up card plays must match against."""
        if self.discard_pile:
            return self.discard_pile[-1]
        return None

    def get_participant(self, participant_id: str) -> Optional[Participant]:
        for participant in self.participants:
            if participant.id == participant_id:
                return participant
        return None

    def seat_of(self, participant_id: str) -> Optional[int]:
        """Turn-order index of a participant, or None if not seated."""
        for i, participant in enumerate(self.participants):
            if participant.id == participant_id:
                return i
        return None

    def active_participant(self) -> Optional[Participant]:
        """Get the participant whose turn it currently is."""
        return self.get_participant(self.active_participant_id)

    def is_active(self, participant_id: str) -> bool:
        return bool(participant_id) and participant_id == self.active_participant_id

    def card_count(self) -> int:
        """Cards across all hands, the draw pile and the discard pile."""
        in_hands = sum(len(p.cards) for p in self.participants)
        return in_hands + len(self.draw_pile) + len(self.discard_pile)

    def participant_list(self) -> list[dict]:
        """Public membership list (no cards)."""
        return [{"id": p.id, "name": p.name} for p in self.participants]

    # -------------------------------------------------------------------------
    # Membership
    # -------------------------------------------------------------------------

    def join(self, participant_id: str, name: str) -> Participant:
        """
        Seat a participant at the end of turn order.

        Joining is accepted in every status; someone joining mid-match gets an
        empty hand and enters the rotation. A participant id that is already
        seated keeps its seat and hand and only updates its display name.

        Returns:
            The seated Participant.
        """
        existing = self.get_participant(participant_id)
        if existing:
            existing.name = name
            self._emit(EventType.PLAYER_JOINED, participant_id, name=name)
            return existing

        participant = Participant(id=participant_id, name=name)
        if not self.participants and self.status == MatchStatus.WAITING:
            # First seat holds the turn flag until start() assigns it properly
            self.active_participant_id = participant_id
        self.participants.append(participant)

        logger.debug(f"Participant {participant_id} joined ({len(self.participants)} seated)")
        self._emit(EventType.PLAYER_JOINED, participant_id, name=name)
        return participant

    def leave(self, participant_id: str) -> Optional[Participant]:
        """
        Remove a participant.

        While playing, dropping below min_participants reverts the match to
        WAITING. Otherwise, if the leaver held the turn, it passes to whoever
        now sits next in the current direction.

        Returns:
            The removed Participant, or None if not seated.
        """
        seat = self.seat_of(participant_id)
        if seat is None:
            return None

        removed = self.participants.pop(seat)
        self.low_hand_declared.discard(participant_id)

        if self.status == MatchStatus.PLAYING and len(self.participants) < self.min_participants:
            logger.info(
                f"Match {self.match_id} reverted to waiting: "
                f"{len(self.participants)} participant(s) left"
            )
            self._clear_table()
        elif self.active_participant_id == participant_id:
            self.active_participant_id = self._successor_after_removal(seat)

        self._emit(EventType.PLAYER_LEFT, participant_id, name=removed.name)
        return removed

    def _successor_after_removal(self, seat: int) -> str:
        if not self.participants:
            return ""
        if self.status != MatchStatus.PLAYING:
            return self.participants[0].id
        if self.direction is Direction.CLOCKWISE:
            # The old next seat slid down into the vacated index
            index = seat % len(self.participants)
        else:
            index = (seat - 1) % len(self.participants)
        return self.participants[index].id

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """
        Deal a fresh match.

        Builds and shuffles a new deck, deals hand_size cards one at a time
        around the table, then flips the first discard. A wild flipped first
        is buried under the discard pile and another card is flipped.

        Raises:
            GameError: INSUFFICIENT_PLAYERS with fewer than min_participants.
        """
        if len(self.participants) < self.min_participants:
            raise GameError(
                ErrorKind.INSUFFICIENT_PLAYERS,
                f"Need at least {self.min_participants} players to start the game",
            )

        self.draw_pile = fresh_pile(self.rng)
        self.discard_pile = []
        for participant in self.participants:
            participant.cards = []

        for _ in range(self.hand_size):
            for participant in self.participants:
                participant.cards.extend(self._take(1))

        buried: list[Card] = []
        first = self._take(1)[0]
        while first.is_wild:
            buried.append(first)
            first = self._take(1)[0]
        self.discard_pile = buried + [first]

        self.direction = Direction.CLOCKWISE
        self.active_participant_id = self.participants[0].id
        self.status = MatchStatus.PLAYING
        self.winner_id = None
        self.low_hand_declared = set()

        logger.info(
            f"Match {self.match_id} started with {len(self.participants)} participants, "
            f"first discard {first.color} {first.value}"
        )
        self._emit(
            EventType.GAME_STARTED,
            participant_order=[p.id for p in self.participants],
        )

    def reset(self) -> None:
        """Return to WAITING with empty hands, keeping everyone seated."""
        for participant in self.participants:
            participant.cards = []
        self._clear_table()
        logger.info(f"Match {self.match_id} reset")
        self._emit(EventType.GAME_RESET)

    def _clear_table(self) -> None:
        self.status = MatchStatus.WAITING
        self.winner_id = None
        self.discard_pile = []
        self.draw_pile = []
        self.direction = Direction.CLOCKWISE
        self.active_participant_id = ""
        self.low_hand_declared = set()

    # -------------------------------------------------------------------------
    # Turn Actions
    # -------------------------------------------------------------------------

    def _require_turn(self, participant_id: str) -> Participant:
        if self.status != MatchStatus.PLAYING:
            raise GameError(ErrorKind.NOT_PLAYING)
        if not self.is_active(participant_id):
            raise GameError(ErrorKind.NOT_YOUR_TURN)
        participant = self.get_participant(participant_id)
        if participant is None:
            raise GameError(ErrorKind.NOT_YOUR_TURN)
        return participant

    def play_card(
        self,
        participant_id: str,
        card_id: str,
        chosen_color: Optional[str] = None,
    ) -> Card:
        """
        Play a card from the active participant's hand.

        Emptying the hand ends the match at once: the card is discarded but
        its skip/reverse/draw effect is not applied.

        Args:
            participant_id: Who is playing.
            card_id: Id of the card in their hand.
            chosen_color: Required for wilds; ignored otherwise.

        Returns:
            The card as placed on the discard pile.

        Raises:
            GameError: NOT_PLAYING, NOT_YOUR_TURN, CARD_NOT_FOUND or ILLEGAL_PLAY.
        """
        participant = self._require_turn(participant_id)

        position = participant.find_card(card_id)
        if position is None:
            raise GameError(ErrorKind.CARD_NOT_FOUND)

        card = participant.cards[position]
        if not is_legal(card, self.discard_top):
            raise GameError(ErrorKind.ILLEGAL_PLAY)

        if card.is_wild:
            if not is_valid_choice(chosen_color):
                raise GameError(ErrorKind.ILLEGAL_PLAY, "Choose a color for the wild card")
            card = card.with_color(chosen_color)
        else:
            chosen_color = None

        participant.cards.pop(position)
        self.discard_pile.append(card)
        self._emit(
            EventType.CARD_PLAYED,
            participant_id,
            card_id=card.id,
            chosen_color=chosen_color,
        )

        if not participant.cards:
            self.status = MatchStatus.FINISHED
            self.winner_id = participant_id
            logger.info(f"Match {self.match_id} won by {participant_id}")
            self._emit(EventType.GAME_WON, participant_id, winner_id=participant_id)
            return card

        seat = self.seat_of(participant_id)
        effect = resolve_effect(card, seat, len(self.participants), self.direction)
        self.direction = effect.direction

        if effect.penalty_index is not None:
            victim = self.participants[effect.penalty_index]
            victim.cards.extend(self._take(effect.penalty_count))
            logger.debug(f"{victim.id} forced to draw {effect.penalty_count}")
            self._emit(
                EventType.CARD_DRAWN,
                victim.id,
                count=effect.penalty_count,
                forced=True,
            )

        self.active_participant_id = self.participants[effect.next_index].id
        return card

    def draw_card(self, participant_id: str) -> list[Card]:
        """
        Draw one card and pass the turn.

        Drawing never grants an extra play: the turn always moves one seat
        in the current direction.

        Returns:
            The drawn cards (one, unless every source is empty).

        Raises:
            GameError: NOT_PLAYING or NOT_YOUR_TURN.
        """
        participant = self._require_turn(participant_id)

        drawn = self._take(1)
        participant.cards.extend(drawn)

        seat = self.seat_of(participant_id)
        next_seat = advance(seat, len(self.participants), self.direction)
        self.active_participant_id = self.participants[next_seat].id

        self._emit(EventType.CARD_DRAWN, participant_id, count=len(drawn), forced=False)
        return drawn

    def declare_low_hand(self, participant_id: str) -> bool:
        """
        Record a participant's low-hand signal.

        Purely informational: nothing is enforced for declaring, or for
        failing to declare.

        Returns:
            True if recorded, False for an unknown participant.
        """
        if self.get_participant(participant_id) is None:
            return False
        self.low_hand_declared.add(participant_id)
        self._emit(EventType.LOW_HAND_DECLARED, participant_id)
        return True

    # -------------------------------------------------------------------------
    # Draw pile
    # -------------------------------------------------------------------------

    def _take(self, count: int) -> list[Card]:
        """Pop cards off the draw pile, opening a fresh deck when it runs dry."""

        def refill() -> list[Card]:
            logger.info(f"Match {self.match_id} draw pile exhausted, opening a fresh deck")
            return fresh_pile(self.rng)

        drawn, self.draw_pile = draw_cards(self.draw_pile, count, refill=refill)
        return drawn
