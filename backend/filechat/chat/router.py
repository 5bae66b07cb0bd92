"""Conversation router providing the message and file endpoints.

This module provides:
    - POST   /conversations/{conversation_id}/messages: send a message with files
    - GET    /conversations/{conversation_id}/messages: all turns with attachments
    - GET    /conversations/{conversation_id}/uploaded_files: files sent by the user
    - GET    /conversations/{conversation_id}/generated_files: files made in the sandbox
    - GET    /conversations/attachments/{attachment_id}: download a stored file
    - DELETE /conversations/{conversation_id}/messages: clear a conversation

Pipeline errors map to status codes through ``FilechatError.status_code``:
413 file too large, 415 unsupported type, 422 unknown model, 503 connect
timeout, 504 still processing, 502 provider errors.
"""
import logging
import uuid
from pathlib import Path
from typing import List, Optional

from fastapi import APIRouter, File, Form, HTTPException, UploadFile
from fastapi.responses import FileResponse

from filechat.ai_provider.schemas import ServiceSession
from filechat.config import get_config
from filechat.conversation.store import ConversationStore
from filechat.errors import FilechatError, ProviderStillProcessingError
from filechat.files.schemas import UploadedFile

from .pipeline import get_pipeline
from .schemas import (
    AttachmentResponse,
    ConversationFilesResponse,
    ConversationMessagesResponse,
    MessageCreateResponse,
    TurnResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/conversations", tags=["conversations"])


def handle_pipeline_error(error: FilechatError) -> HTTPException:
    """Convert a FilechatError to an HTTPException."""
    detail: object = error.message
    if isinstance(error, ProviderStillProcessingError):
        detail = {"error": error.message, "container_id": error.session_id}
    return HTTPException(status_code=error.status_code, detail=detail)


async def _save_uploads(files: List[UploadFile]) -> List[UploadedFile]:
    """Write incoming uploads to the temporary upload directory."""
    upload_dir = Path(get_config().files.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)

    saved = []
    for upload in files:
        filename = Path(upload.filename or "unnamed").name
        temp_path = upload_dir / f"{uuid.uuid4()}_{filename}"
        temp_path.write_bytes(await upload.read())
        saved.append(UploadedFile(
            local_path=temp_path,
            original_filename=filename,
            mime_type=upload.content_type or "application/octet-stream",
            size_bytes=temp_path.stat().st_size,
        ))
    return saved


@router.post("/{conversation_id}/messages", response_model=MessageCreateResponse, status_code=201)
async def create_message(
    conversation_id: str,
    content: str = Form(""),
    model: Optional[str] = Form(None),
    container_id: Optional[str] = Form(None),
    enable_code_execution: Optional[bool] = Form(None),
    files: Optional[List[UploadFile]] = File(None),
) -> MessageCreateResponse:
    """Send a user message, with optional files, and return both turns.

    Args:
        conversation_id: Conversation to append to.
        content: Message text.
        model: Model alias (e.g. ``claude-sonnet-4-5``); defaults from config.
        container_id: Sandbox container to reuse.
        enable_code_execution: Declare the code-execution tool; defaults from config.
        files: Attached files.

    Returns:
        MessageCreateResponse with the user and assistant turns.
    """
    pipeline = get_pipeline()
    if pipeline is None:
        raise HTTPException(status_code=503, detail="Conversation service is not configured")

    if enable_code_execution is None:
        enable_code_execution = get_config().provider.enable_code_execution
    session = ServiceSession(session_id=container_id or None, enable_code_execution=enable_code_execution)

    uploads = await _save_uploads(files or [])
    try:
        result = await pipeline.handle_message(
            conversation_id,
            content,
            uploads,
            session,
            model=model,
        )
    except FilechatError as e:
        logger.error(f"Message for conversation {conversation_id} failed: {e.message}")
        raise handle_pipeline_error(e)
    finally:
        for uploaded in uploads:
            uploaded.local_path.unlink(missing_ok=True)

    return MessageCreateResponse(
        user_message=TurnResponse.from_turn(result.user_turn, result.user_attachments),
        assistant_message=TurnResponse.from_turn(result.assistant_turn, result.downloads.stored),
        container_id=result.session_id,
        model_used=result.model_requested,
        failed_downloads=[error.file_id for error in result.downloads.failed],
    )


@router.get("/{conversation_id}/messages", response_model=ConversationMessagesResponse)
async def list_messages(conversation_id: str) -> ConversationMessagesResponse:
    store = ConversationStore.get_instance()
    turns = store.list_turns(conversation_id)
    return ConversationMessagesResponse(
        conversation_id=conversation_id,
        messages=[TurnResponse.from_turn(t, store.get_attachments(t.id)) for t in turns],
    )


def _files_response(conversation_id: str, role: str) -> ConversationFilesResponse:
    store = ConversationStore.get_instance()
    attachments = store.list_attachments(conversation_id, role=role)
    return ConversationFilesResponse(
        conversation_id=conversation_id,
        total_count=len(attachments),
        files=[AttachmentResponse.from_attachment(a) for a in attachments],
    )


@router.get("/{conversation_id}/uploaded_files", response_model=ConversationFilesResponse)
async def uploaded_files(conversation_id: str) -> ConversationFilesResponse:
    """Files the user sent, oldest first."""
    return _files_response(conversation_id, "user")


@router.get("/{conversation_id}/generated_files", response_model=ConversationFilesResponse)
async def generated_files(conversation_id: str) -> ConversationFilesResponse:
    """Files the code-execution sandbox produced, oldest first."""
    return _files_response(conversation_id, "assistant")


@router.get("/attachments/{attachment_id}")
async def download_attachment(attachment_id: str):
    """Download a stored attachment.

    Raises:
        HTTPException 404: If the attachment is unknown or missing on disk.
    """
    store = ConversationStore.get_instance()
    attachment = store.get_attachment(attachment_id)
    if not attachment:
        raise HTTPException(status_code=404, detail="File not found")

    file_path = store.get_attachment_path(attachment_id)
    if not file_path:
        raise HTTPException(status_code=404, detail="File not found on disk")

    return FileResponse(
        path=file_path,
        filename=attachment.filename,
        media_type=attachment.mime_type,
    )


@router.delete("/{conversation_id}/messages")
async def delete_messages(conversation_id: str):
    """Delete every turn and stored file of a conversation."""
    store = ConversationStore.get_instance()
    count = store.delete_conversation(conversation_id)

    logger.info(f"Deleted {count} turns for conversation {conversation_id}")

    return {"deleted_count": count, "conversation_id": conversation_id}
