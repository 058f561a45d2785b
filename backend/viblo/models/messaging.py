"""Inbox models."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from viblo.models.profile import Profile


class Message(BaseModel):
    id: Optional[str] = None
    conversation_id: str
    sender_id: str
    content: str
    is_read: Optional[bool] = False
    created_at: Optional[datetime] = None


class ParticipantPreview(BaseModel):
    id: str
    username: Optional[str] = None
    avatar_url: Optional[str] = None


class LastMessage(BaseModel):
    content: str
    created_at: Optional[datetime] = None
    is_read: bool = False
    sender_id: Optional[str] = None


class ConversationSummary(BaseModel):
    """One row returned by the ``get_user_conversations`` procedure."""

    id: str
    is_favorite: bool = False
    other_participant: Optional[ParticipantPreview] = None
    last_message: Optional[LastMessage] = None

    def is_unread_for(self, user_id: str) -> bool:
        last = self.last_message
        return bool(last and not last.is_read and last.sender_id != user_id)


class ConversationThread(BaseModel):
    conversation_id: str
    messages: list[Message] = Field(default_factory=list)
    other_participant: Optional[Profile] = None
