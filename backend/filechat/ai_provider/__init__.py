"""AI Provider module for the Messages and Files APIs.

This module provides the completion client used by the conversation
pipeline, the Files API client, and the parser that turns code-execution
responses into text and generated files.

Usage:
    from filechat.ai_provider import (
        ClaudeCompletionClient, ProviderFilesClient, ServiceSession
    )

    client = ClaudeCompletionClient(api_key="sk-ant-...")
    result = await client.complete(history, "claude-sonnet-4-5-20250929", ServiceSession())

    files = ProviderFilesClient(api_key="sk-ant-...")
    content = await files.download(result.generated_artifacts[0].file_id)
"""
from .client import ClaudeCompletionClient, format_messages
from .downloader import ArtifactDownloader, DownloadReport
from .extractor import EMPTY_RESPONSE_TEXT, extract
from .files_client import ProviderFilesClient
from .schemas import (
    CompletionResult,
    ExtractedContent,
    GeneratedArtifact,
    ProviderFile,
    ServiceSession,
)

__all__ = [
    "ClaudeCompletionClient",
    "format_messages",
    "ProviderFilesClient",
    "ArtifactDownloader",
    "DownloadReport",
    "extract",
    "EMPTY_RESPONSE_TEXT",
    "CompletionResult",
    "ExtractedContent",
    "GeneratedArtifact",
    "ProviderFile",
    "ServiceSession",
]
