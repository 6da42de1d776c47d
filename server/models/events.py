"""
Event definitions for match notifications.

The match emits one GameEvent per committed transition. The table turns each
event into an outbound notification for every connected participant, after
the authoritative state has been updated.

Event data never carries private card information: a card_drawn event names
who drew and how many, not which cards.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
import json


class EventType(str, Enum):
    """All possible event types in a match."""

    # Membership events
    PLAYER_JOINED = "player_joined"
    PLAYER_LEFT = "player_left"

    # Lifecycle events
    GAME_STARTED = "game_started"
    GAME_WON = "game_won"
    GAME_RESET = "game_reset"

    # Gameplay events
    CARD_PLAYED = "card_played"
    CARD_DRAWN = "card_drawn"
    LOW_HAND_DECLARED = "low_hand_declared"


@dataclass
class GameEvent:
    """
    Immutable record of something that happened in a match.

    Attributes:
        event_type: The type of event (from EventType enum).
        match_id: UUID of the match this event belongs to.
        sequence_num: Monotonically increasing sequence number within match.
        timestamp: When the event occurred (UTC).
        participant_id: ID of the participant the event concerns (if any).
        data: Event-specific payload data.
    """

    event_type: EventType
    match_id: str
    sequence_num: int
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    participant_id: Optional[str] = None
    data: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Serialize event to dictionary for logging."""
        return {
            "event_type": self.event_type.value,
            "match_id": self.match_id,
            "sequence_num": self.sequence_num,
            "timestamp": self.timestamp.isoformat(),
            "participant_id": self.participant_id,
            "data": self.data,
        }

    def to_json(self) -> str:
        """Serialize event to JSON string."""
        return json.dumps(self.to_dict())

    def to_message(self) -> dict:
        """
        Build the client notification for this event.

        The message type is the event type; the payload is the event data,
        plus participant_id when the event concerns one participant.
        """
        message = {"type": self.event_type.value}
        if self.participant_id is not None:
            message["participant_id"] = self.participant_id
        message.update(self.data)
        return message
