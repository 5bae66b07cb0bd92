"""Classify uploaded files into routing decisions.

The decision table, evaluated in order:

1. larger than the size limit      -> Reject(FILE_TOO_LARGE)
2. MIME type not in the table      -> Reject(UNSUPPORTED_MEDIA_TYPE)
3. rule requires conversion        -> ConvertToText
4. everything else                 -> UploadToProvider

``classify`` is pure; ``ensure_routable`` turns a reject into the matching
exception for callers that want to fail fast.
"""
from typing import Optional

from filechat.errors import FileTooLargeError, UnsupportedMediaTypeError

from .schemas import (
    CSV_MIME,
    MAX_FILE_SIZE_BYTES,
    RejectReason,
    RoutingDecision,
    get_mime_rule,
)


def classify(
    mime_type: str,
    size_bytes: int,
    code_execution_enabled: bool,
    max_bytes: int = MAX_FILE_SIZE_BYTES,
) -> RoutingDecision:
    """Decide how an uploaded file reaches the provider.

    Args:
        mime_type: MIME type reported for the file.
        size_bytes: Size of the file in bytes.
        code_execution_enabled: Whether the turn runs with the execution sandbox.
        max_bytes: Size limit; defaults to the provider maximum (500MB).

    Returns:
        RoutingDecision for the file.

    Examples:
        >>> classify("application/msword", 1000, False).action
        <RoutingAction.CONVERT_TO_TEXT: 'convert_to_text'>
        >>> classify("video/mp4", 1000, True).reason
        <RejectReason.UNSUPPORTED_MEDIA_TYPE: 'unsupported_media_type'>
    """
    if size_bytes > max_bytes:
        return RoutingDecision.reject(RejectReason.FILE_TOO_LARGE)

    rule = get_mime_rule(mime_type)
    if rule is None:
        return RoutingDecision.reject(RejectReason.UNSUPPORTED_MEDIA_TYPE)

    # CSV goes to the sandbox as a file when code execution is on. With it
    # off, the table rule applies, which is also an upload.
    if code_execution_enabled and mime_type == CSV_MIME:
        return RoutingDecision.upload()

    if rule.requires_conversion:
        return RoutingDecision.convert()

    return RoutingDecision.upload()


def ensure_routable(
    decision: RoutingDecision,
    mime_type: str,
    size_bytes: int,
    filename: Optional[str] = None,
    max_bytes: int = MAX_FILE_SIZE_BYTES,
) -> RoutingDecision:
    """Raise the ingestion error matching a reject decision.

    Returns the decision unchanged when it is not a reject.

    Raises:
        FileTooLargeError: decision rejected the size.
        UnsupportedMediaTypeError: decision rejected the MIME type.
    """
    if decision.reason == RejectReason.FILE_TOO_LARGE:
        raise FileTooLargeError(size_bytes, max_bytes, filename)
    if decision.reason == RejectReason.UNSUPPORTED_MEDIA_TYPE:
        raise UnsupportedMediaTypeError(mime_type, filename)
    return decision
