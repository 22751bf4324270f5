from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class SendMessageRequestDTO(BaseModel):
    model_config = ConfigDict(strict=True, extra="ignore")

    content: str
    # Optional echo of the sender; must match the authenticated user when present.
    sender: str | None = None


class TypingRequestDTO(BaseModel):
    model_config = ConfigDict(strict=True, extra="ignore")

    typing: bool


class RecentMessagesQueryDTO(BaseModel):
    limit: int | None = Field(None, ge=0)


class MessageDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sender: str
    content: str
    timestamp: datetime


class UserListDTO(BaseModel):
    """Body of ``/api/chat/online`` and of presence and typing stream events."""

    users: list[str]
