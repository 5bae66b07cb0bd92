"""Turn a code-execution response into readable text and generated files.

With code execution enabled a response can interleave plain text, the
commands the model ran, and their output.  All of it is rendered into one
markdown-ish string so the user can follow what happened:

- text                -> verbatim
- shell command       -> fenced ``bash`` block
- file editor command -> ``[File operation: <command> <path>]``
- shell result        -> stdout fenced, stderr as ``Error: ...``
- file editor result  -> returned file content fenced

Generated files are collected separately from the same typed block list.
"""
import logging
from typing import Any, Dict, List, Optional

from .blocks import (
    FILE_EDITOR_RESULT_TYPE,
    OUTPUT_FILE_TYPES,
    SHELL_RESULT_TYPE,
    FileEditorCommandBlock,
    FileEditorResultBlock,
    ResponseBlock,
    ShellCommandBlock,
    ShellResultBlock,
    TextBlock,
    parse_blocks,
)
from .schemas import GENERATED_FILE_FALLBACK_NAME, ExtractedContent, GeneratedArtifact

logger = logging.getLogger(__name__)

EMPTY_RESPONSE_TEXT = "No response generated"


def render_block(block: ResponseBlock) -> List[str]:
    """Return the text parts a single block contributes, possibly none."""
    if isinstance(block, TextBlock):
        return [block.text] if block.text else []

    if isinstance(block, ShellCommandBlock):
        if block.input.command:
            return [f"\n```bash\n{block.input.command}\n```"]
        return []

    if isinstance(block, FileEditorCommandBlock):
        if block.input.command and block.input.path:
            return [f"\n[File operation: {block.input.command} {block.input.path}]"]
        return []

    if isinstance(block, ShellResultBlock):
        result = block.content
        if result is None or result.type != SHELL_RESULT_TYPE:
            return []
        parts = []
        if result.stdout:
            parts.append(f"\n```\n{result.stdout}\n```")
        if result.stderr:
            parts.append(f"\nError: {result.stderr}")
        return parts

    if isinstance(block, FileEditorResultBlock):
        result = block.content
        if result is not None and result.type == FILE_EDITOR_RESULT_TYPE and result.content:
            return [f"\n```\n{result.content}\n```"]
        return []

    return []


def render_text(blocks: List[ResponseBlock]) -> str:
    """Join every block's rendering with blank lines."""
    if not blocks:
        return EMPTY_RESPONSE_TEXT
    parts = [part for block in blocks for part in render_block(block)]
    return "\n\n".join(parts).strip()


def _editor_paths(blocks: List[ResponseBlock]) -> Dict[str, str]:
    """Map file-editor tool_use ids to the path they operated on."""
    return {
        block.id: block.input.path
        for block in blocks
        if isinstance(block, FileEditorCommandBlock) and block.id and block.input.path
    }


def _artifacts_from_block(
    block: ResponseBlock,
    editor_paths: Dict[str, str],
) -> List[GeneratedArtifact]:
    if isinstance(block, ShellResultBlock) and block.content is not None:
        return [
            GeneratedArtifact(
                file_id=item.file_id,
                filename=item.filename or GENERATED_FILE_FALLBACK_NAME,
            )
            for item in block.content.content
            if item.type in OUTPUT_FILE_TYPES and item.file_id
        ]

    if isinstance(block, FileEditorResultBlock) and block.content is not None:
        result = block.content
        if result.type != FILE_EDITOR_RESULT_TYPE or not result.file_id:
            return []
        origin_path: Optional[str] = None
        if block.tool_use_id:
            origin_path = editor_paths.get(block.tool_use_id)
        if origin_path is None and block.input is not None:
            origin_path = block.input.path
        return [
            GeneratedArtifact(
                file_id=result.file_id,
                filename=result.filename or origin_path or GENERATED_FILE_FALLBACK_NAME,
            )
        ]

    return []


def collect_artifacts(blocks: List[ResponseBlock]) -> List[GeneratedArtifact]:
    """Collect generated files in block order, duplicates kept."""
    editor_paths = _editor_paths(blocks)
    artifacts: List[GeneratedArtifact] = []
    for block in blocks:
        artifacts = artifacts + _artifacts_from_block(block, editor_paths)
    return artifacts


def extract(response_body: Dict[str, Any]) -> ExtractedContent:
    """Parse a completion response body.

    Args:
        response_body: Decoded JSON body of a successful completion call.

    Returns:
        ExtractedContent with the rendered text and generated files.
    """
    blocks = parse_blocks(response_body.get("content") or [])
    artifacts = collect_artifacts(blocks)

    logger.info(f"Extracted {len(artifacts)} generated files from {len(blocks)} blocks")
    if artifacts:
        logger.debug("Generated files: %s", [a.model_dump() for a in artifacts])

    return ExtractedContent(text=render_text(blocks), generated_artifacts=artifacts)
