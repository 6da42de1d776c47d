"""Models package for card game messages."""

from .events import EventType, GameEvent
from .intents import (
    DeclareLowHandIntent,
    DrawIntent,
    Intent,
    JoinIntent,
    LeaveIntent,
    PlayIntent,
    ResetIntent,
    StartIntent,
    parse_intent,
)

__all__ = [
    "EventType",
    "GameEvent",
    "Intent",
    "JoinIntent",
    "StartIntent",
    "PlayIntent",
    "DrawIntent",
    "DeclareLowHandIntent",
    "ResetIntent",
    "LeaveIntent",
    "parse_intent",
]
