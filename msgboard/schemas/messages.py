from ._strict_base import StrictModel, StrictRequestModel

# msgboard/schemas/messages.py
"""
Request and response schemas for the message board endpoints.

Field names follow the JSON contract of the existing frontend
(``message`` on submit, ``timestamp`` on reactions).
"""

from typing import Dict, Optional, Union

from pydantic import ConfigDict, Field

from ..models.message import Message


class SubmitMessageRequest(StrictRequestModel):
    model_config = ConfigDict(extra="forbid", validate_assignment=True)
    """Body of POST /messages. Blank or missing text is rejected by the service."""

    message: Optional[str] = Field(default=None, description="Message text")


class SubmitMessageResponse(StrictModel):
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    success: bool = True


class ReactionRequest(StrictRequestModel):
    model_config = ConfigDict(extra="forbid", validate_assignment=True)
    """Body of POST /like and POST /dislike."""

    id: Optional[int] = Field(default=None, description="Message id")
    timestamp: Optional[Union[int, str]] = Field(
        default=None,
        description="Message id, or the creation timestamp sent by older clients",
    )

    @property
    def identifier(self) -> Union[int, str, None]:
        return self.id if self.id is not None else self.timestamp


class MessageResponse(StrictModel):
    model_config = ConfigDict(extra="forbid", validate_assignment=True)
    """A message as clients see it."""

    id: int
    text: str
    timestamp: str = Field(description="UTC ISO8601Z creation time")
    likes: int = Field(ge=0)
    dislikes: int = Field(ge=0)

    @classmethod
    def from_message(cls, message: Message) -> "MessageResponse":
        return cls(**message.to_dict())


class HealthResponse(StrictModel):
    model_config = ConfigDict(extra="forbid", validate_assignment=True)
    """Response for the health check endpoint."""

    status: str = Field(description="Health status")
    service: str = Field(description="Service name")
    version: str = Field(description="API version")
    environment: str = Field(description="Environment name")
    delivery_mode: str = Field(description="GET /messages delivery mode")
    timestamp: str = Field(description="UTC ISO8601Z timestamp of the health response")
    messages: int = Field(description="Messages currently on the board")
    subscribers: Dict[str, int] = Field(description="Registered subscribers by kind")
