"""Pydantic schemas for conversation turns and their attachments.

- ConversationTurn: one persisted message, authored by the user or assistant
- HistoryEntry: one element of the alternating sequence sent to the provider
- Attachment: a durable file stored on a turn (uploads and generated files)
"""
import uuid
from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

Role = Literal["user", "assistant"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConversationTurn(BaseModel):
    """A persisted turn.

    ``file_ids`` holds provider file ids: inputs for user turns, generated
    files for assistant turns.
    """
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Turn ID")
    conversation_id: str = Field(..., description="Conversation the turn belongs to")
    role: Role = Field(..., description="Author of the turn")
    content: str = Field("", description="Message text")
    file_ids: List[str] = Field(default_factory=list, description="Provider file ids")
    created_at: datetime = Field(default_factory=utcnow, description="Creation time (UTC)")


class HistoryEntry(BaseModel):
    """A turn as it is sent to the provider, after merging."""
    role: Role
    content: str = ""
    file_ids: List[str] = Field(default_factory=list)


class Attachment(BaseModel):
    """A file stored durably on a turn."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Attachment ID")
    turn_id: str = Field(..., description="Turn the file is attached to")
    conversation_id: str = Field(..., description="Conversation of the turn")
    provider_file_id: Optional[str] = Field(None, description="Provider file id, if any")
    filename: str = Field(..., description="Original or generated filename")
    mime_type: str = Field(..., description="MIME type")
    size_bytes: int = Field(..., description="File size in bytes")
    stored_filename: str = Field(..., description="Filename on disk (UUID-based)")
    created_at: datetime = Field(default_factory=utcnow, description="Storage time (UTC)")
