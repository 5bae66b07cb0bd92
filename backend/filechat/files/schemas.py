"""Pydantic schemas and the MIME routing table for uploaded files.

This module defines the data models for files a user sends with a message:
- UploadedFile: a transient local copy of an incoming upload
- StoredFile: the bytes of a routed file, kept for durable storage
- RoutingDecision: what to do with a file (upload, convert, reject)
- SUPPORTED_MIME_TYPES: the auditable MIME -> behavior table

Routing is driven entirely by SUPPORTED_MIME_TYPES; adding a format means
adding a row here, not a branch in the router.
"""
from enum import Enum
from pathlib import Path
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

# File size limit: 500MB (provider Files API maximum)
MAX_FILE_SIZE_BYTES = 500 * 1024 * 1024


class FileBehavior(str, Enum):
    """How the provider consumes a supported MIME type."""
    DOCUMENT = "document"
    IMAGE = "image"
    CONVERT_TO_TEXT = "convert_to_text"


class MimeRule(BaseModel):
    """One row of the routing table."""
    model_config = ConfigDict(frozen=True)

    behavior: FileBehavior
    requires_conversion: bool = False


DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
DOC_MIME = "application/msword"
XLS_MIME = "application/vnd.ms-excel"
CSV_MIME = "text/csv"

_DOCUMENT = MimeRule(behavior=FileBehavior.DOCUMENT)
_IMAGE = MimeRule(behavior=FileBehavior.IMAGE)
_CONVERT = MimeRule(behavior=FileBehavior.CONVERT_TO_TEXT, requires_conversion=True)

SUPPORTED_MIME_TYPES: Dict[str, MimeRule] = {
    "application/pdf": _DOCUMENT,
    "text/plain": _DOCUMENT,
    CSV_MIME: _DOCUMENT,
    "image/jpeg": _IMAGE,
    "image/png": _IMAGE,
    "image/gif": _IMAGE,
    "image/webp": _IMAGE,
    # Office formats the provider cannot read directly
    DOCX_MIME: _CONVERT,
    XLSX_MIME: _CONVERT,
    DOC_MIME: _CONVERT,
    XLS_MIME: _CONVERT,
}


def get_mime_rule(mime_type: str) -> Optional[MimeRule]:
    """Return the routing rule for a MIME type, or None if unsupported."""
    return SUPPORTED_MIME_TYPES.get(mime_type)


class RoutingAction(str, Enum):
    UPLOAD_TO_PROVIDER = "upload_to_provider"
    CONVERT_TO_TEXT = "convert_to_text"
    REJECT = "reject"


class RejectReason(str, Enum):
    FILE_TOO_LARGE = "file_too_large"
    UNSUPPORTED_MEDIA_TYPE = "unsupported_media_type"


class RoutingDecision(BaseModel):
    """Closed variant: Reject(reason) | UploadToProvider | ConvertToText.

    Build instances through the classmethods; ``reason`` is set exactly when
    ``action`` is REJECT.
    """
    model_config = ConfigDict(frozen=True)

    action: RoutingAction
    reason: Optional[RejectReason] = None

    @classmethod
    def upload(cls) -> "RoutingDecision":
        return cls(action=RoutingAction.UPLOAD_TO_PROVIDER)

    @classmethod
    def convert(cls) -> "RoutingDecision":
        return cls(action=RoutingAction.CONVERT_TO_TEXT)

    @classmethod
    def reject(cls, reason: RejectReason) -> "RoutingDecision":
        return cls(action=RoutingAction.REJECT, reason=reason)

    @property
    def is_reject(self) -> bool:
        return self.action == RoutingAction.REJECT


class UploadedFile(BaseModel):
    """A file received with a message, written to a temporary local path.

    Exists only while the request is handled; the ingestion service deletes
    ``local_path`` once the file has been uploaded or converted.
    """
    local_path: Path = Field(..., description="Temporary path on disk")
    original_filename: str = Field(..., description="Filename as sent by the client")
    mime_type: str = Field(..., description="MIME type as sent by the client")
    size_bytes: int = Field(..., ge=0, description="File size in bytes")


class StoredFile(BaseModel):
    """Bytes of a routed upload, kept so they can be attached to the user turn."""
    filename: str
    mime_type: str
    content: bytes
    provider_file_id: Optional[str] = None
