"""Pydantic schemas exchanged with the completion service."""
from typing import List, Optional

from pydantic import BaseModel, Field

GENERATED_FILE_FALLBACK_NAME = "generated_file"


class ServiceSession(BaseModel):
    """Caller-supplied execution state.

    Attributes:
        session_id: Provider container id to reuse; None starts a new container.
        enable_code_execution: Whether the code-execution tool is declared.
    """
    session_id: Optional[str] = None
    enable_code_execution: bool = True


class GeneratedArtifact(BaseModel):
    """A file produced in the provider's sandbox during a turn."""
    file_id: str
    filename: str = GENERATED_FILE_FALLBACK_NAME


class ExtractedContent(BaseModel):
    """Readable text and generated files recovered from a response body."""
    text: str
    generated_artifacts: List[GeneratedArtifact] = Field(default_factory=list)


class CompletionResult(BaseModel):
    """Result of one completion call.

    Attributes:
        text: Readable response text.
        session_id: Container id reported by the provider, if any.
        generated_artifacts: Files the sandbox produced, in block order.
    """
    text: str
    session_id: Optional[str] = None
    generated_artifacts: List[GeneratedArtifact] = Field(default_factory=list)


class ProviderFile(BaseModel):
    """File metadata as returned by the provider's Files API."""
    id: str
    filename: Optional[str] = None
    mime_type: Optional[str] = None
    size_bytes: Optional[int] = None
    created_at: Optional[str] = None
    downloadable: Optional[bool] = None
