"""Exception hierarchy for the conversation/file pipeline.

Every error carries the HTTP status code the API layer responds with, the
same way the provider wrapper errors do.  Validation errors (bad files, bad
model alias) are raised before any state is mutated; provider errors are
raised after the user turn has been recorded.
"""
from typing import Optional


class FilechatError(Exception):
    """Base exception for pipeline errors."""
    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------


class UnsupportedMediaTypeError(FilechatError):
    """Raised when an uploaded file's MIME type is not in the supported table."""
    def __init__(self, mime_type: str, filename: Optional[str] = None):
        self.mime_type = mime_type
        self.filename = filename
        label = f" ({filename})" if filename else ""
        super().__init__(f"Unsupported file type: {mime_type}{label}", status_code=415)


class FileTooLargeError(FilechatError):
    """Raised when an uploaded file exceeds the configured size limit."""
    def __init__(self, size_bytes: int, max_bytes: int, filename: Optional[str] = None):
        self.size_bytes = size_bytes
        self.max_bytes = max_bytes
        self.filename = filename
        label = f"{filename} " if filename else ""
        super().__init__(
            f"File {label}too large ({size_bytes} bytes). "
            f"Maximum size is {max_bytes // (1024 * 1024)} MB",
            status_code=413,
        )


class ConversionError(FilechatError):
    """Raised when a file reaches the text converter with a MIME type it cannot handle."""
    def __init__(self, mime_type: str):
        self.mime_type = mime_type
        super().__init__(f"Cannot convert {mime_type} to text", status_code=500)


class InvalidModelError(FilechatError):
    """Raised when the requested model alias is not configured."""
    def __init__(self, model: str, allowed: list[str]):
        self.model = model
        self.allowed = allowed
        super().__init__(
            f"Invalid model. Choose from: {', '.join(allowed)}",
            status_code=422,
        )


# ---------------------------------------------------------------------------
# Provider
# ---------------------------------------------------------------------------


class ProviderConnectTimeoutError(FilechatError):
    """Raised when a connection to the provider could not be established."""
    def __init__(self, detail: str):
        super().__init__(
            f"Connection timeout - provider took too long to connect: {detail}",
            status_code=503,
        )


class ProviderStillProcessingError(FilechatError):
    """Raised when the provider accepted the request but no response arrived in time.

    The work may still finish upstream; ``session_id`` is the container the
    request was sent with, if any, so the caller can resubmit against it.
    """
    def __init__(self, session_id: Optional[str] = None):
        self.session_id = session_id
        super().__init__(
            "Response timeout - the provider is still processing. "
            "Resubmit with the same container id to continue.",
            status_code=504,
        )


class ServiceError(FilechatError):
    """Raised when the provider answers with a non-2xx status."""
    def __init__(self, status: int, body: str):
        self.status = status
        self.body = body
        super().__init__(f"Provider API error: {status} - {body}", status_code=502)


class ProviderCallError(FilechatError):
    """Raised for any other network or response-parsing fault."""
    def __init__(self, message: str):
        super().__init__(f"Provider call failed: {message}", status_code=502)


class ArtifactDownloadError(FilechatError):
    """Raised for a single generated file that could not be fetched or stored.

    Never propagates past the artifact downloader.
    """
    def __init__(self, file_id: str, reason: str):
        self.file_id = file_id
        self.reason = reason
        super().__init__(f"Failed to download generated file {file_id}: {reason}")
