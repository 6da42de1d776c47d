"""
Inbound intents sent by clients over the WebSocket.

Each intent is a pydantic model with a fixed payload shape, discriminated by
its `type` literal. Anything that does not validate against one of these
shapes is rejected before it reaches the match.
"""

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

ChosenColor = Literal["red", "yellow", "green", "blue"]


class IntentBase(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class JoinIntent(IntentBase):
    type: Literal["join"]
    participant_id: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=32)


class StartIntent(IntentBase):
    type: Literal["start"]


class PlayIntent(IntentBase):
    type: Literal["play"]
    participant_id: str
    card_id: str
    chosen_color: Optional[ChosenColor] = None


class DrawIntent(IntentBase):
    type: Literal["draw"]
    participant_id: str


class DeclareLowHandIntent(IntentBase):
    type: Literal["declare_low_hand"]
    participant_id: str


class ResetIntent(IntentBase):
    type: Literal["reset"]


class LeaveIntent(IntentBase):
    type: Literal["leave"]


Intent = Annotated[
    Union[
        JoinIntent,
        StartIntent,
        PlayIntent,
        DrawIntent,
        DeclareLowHandIntent,
        ResetIntent,
        LeaveIntent,
    ],
    Field(discriminator="type"),
]

_intent_adapter = TypeAdapter(Intent)


def parse_intent(data: dict) -> Intent:
    """
    Validate a decoded client frame into its intent model.

    Raises:
        pydantic.ValidationError: If the frame matches no intent shape.
    """
    return _intent_adapter.validate_python(data)
