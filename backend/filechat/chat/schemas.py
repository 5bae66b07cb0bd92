"""Pydantic response models for the conversation endpoints."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from filechat.conversation.schemas import Attachment, ConversationTurn


class AttachmentResponse(BaseModel):
    """A stored file as shown to the client."""
    id: str = Field(..., description="Attachment ID")
    file_id: Optional[str] = Field(None, description="Provider file id")
    filename: str = Field(..., description="Filename")
    content_type: str = Field(..., description="MIME type")
    byte_size: int = Field(..., description="File size in bytes")
    url: str = Field(..., description="Download path")
    turn_id: str = Field(..., description="Turn the file is attached to")
    created_at: datetime = Field(..., description="Storage time")

    @classmethod
    def from_attachment(cls, attachment: Attachment) -> "AttachmentResponse":
        return cls(
            id=attachment.id,
            file_id=attachment.provider_file_id,
            filename=attachment.filename,
            content_type=attachment.mime_type,
            byte_size=attachment.size_bytes,
            url=f"/conversations/attachments/{attachment.id}",
            turn_id=attachment.turn_id,
            created_at=attachment.created_at,
        )


class TurnResponse(BaseModel):
    id: str
    role: str
    content: str
    attachments: List[AttachmentResponse] = Field(default_factory=list)
    created_at: datetime

    @classmethod
    def from_turn(cls, turn: ConversationTurn, attachments: List[Attachment]) -> "TurnResponse":
        return cls(
            id=turn.id,
            role=turn.role,
            content=turn.content,
            attachments=[AttachmentResponse.from_attachment(a) for a in attachments],
            created_at=turn.created_at,
        )


class MessageCreateResponse(BaseModel):
    """Response of POST /conversations/{id}/messages."""
    user_message: TurnResponse
    assistant_message: TurnResponse
    container_id: Optional[str] = None
    model_used: str = Field(..., description="Model name as requested, alias or full id")
    failed_downloads: List[str] = Field(
        default_factory=list,
        description="Provider ids of generated files that could not be stored",
    )


class ConversationMessagesResponse(BaseModel):
    conversation_id: str
    messages: List[TurnResponse]


class ConversationFilesResponse(BaseModel):
    conversation_id: str
    total_count: int
    files: List[AttachmentResponse]
