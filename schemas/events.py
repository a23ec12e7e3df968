from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Any, Optional


class Envelope(BaseModel):
    """A single websocket frame: {"event": name, "data": payload}."""
    event: str
    data: Any = None


class RoomScoped(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    room: Optional[str] = None


class JoinPayload(RoomScoped):
    token: Optional[str] = None
    username: Optional[str] = None

class OfferPayload(RoomScoped):
    offer: Any = None

class AnswerPayload(RoomScoped):
    answer: Any = None

class CandidatePayload(RoomScoped):
    candidate: Any = None

class ChatMessagePayload(RoomScoped):
    user_id: Optional[str] = Field(default=None, alias="userId")
    message: Optional[str] = None
    timestamp: Optional[str] = None


class SignalPayload(BaseModel):
    """Direct signal addressed by connection id.

    Sent either positionally as [to, from, data] or as an object with the same keys.
    """
    model_config = ConfigDict(populate_by_name=True)

    to: str
    from_: Optional[str] = Field(default=None, alias="from")
    data: Any = None

    @model_validator(mode="before")
    @classmethod
    def from_positional(cls, value):
        if isinstance(value, (list, tuple)):
            keys = ("to", "from", "data")
            return dict(zip(keys, value))
        return value
