"""Completion client for the provider's Messages API with code execution.

This module sends an alternating history to the Messages endpoint, with the
code-execution tool declared when the session asks for it, and hands the
response body to the extractor.

Usage:
    client = ClaudeCompletionClient(api_key="sk-ant-...")
    result = await client.complete(history, "claude-sonnet-4-5-20250929", ServiceSession())
    print(result.text, result.session_id, result.generated_artifacts)
"""
import json
import logging
from typing import Any, Dict, List, Optional, Union

import httpx

from filechat.conversation.schemas import HistoryEntry
from filechat.errors import ProviderCallError

from .extractor import extract
from .http import ProviderHTTPClient
from .schemas import CompletionResult, ServiceSession

logger = logging.getLogger(__name__)

MESSAGES_PATH = "/v1/messages"
DEFAULT_BETA_FEATURES = ["code-execution-2025-08-25", "files-api-2025-04-14"]
# Generous ceiling; responses often quote or summarise whole documents.
DEFAULT_MAX_TOKENS = 8192

CODE_EXECUTION_TOOL = {
    "type": "code_execution_20250825",
    "name": "code_execution",
}

MessageContent = Union[str, List[Dict[str, Any]]]


def build_content(entry: HistoryEntry) -> Optional[MessageContent]:
    """Build the ``content`` of one outbound message.

    Text-only entries become a bare string.  Entries with files become a
    block list: the text block (if any) followed by one ``container_upload``
    block per file id, so the sandbox can open the files directly.

    Returns:
        The content, or None if the entry has neither text nor files.
    """
    file_ids = [file_id for file_id in entry.file_ids if file_id and file_id.strip()]
    has_text = bool(entry.content and entry.content.strip())

    if not file_ids:
        return entry.content if has_text else None

    blocks: List[Dict[str, Any]] = []
    if has_text:
        blocks.append({"type": "text", "text": entry.content})
    for file_id in file_ids:
        blocks.append({"type": "container_upload", "file_id": file_id})
    return blocks


def format_messages(entries: List[HistoryEntry]) -> List[Dict[str, Any]]:
    """Format history entries for the wire, dropping empty ones."""
    messages = []
    for entry in entries:
        content = build_content(entry)
        if content is None:
            continue
        messages.append({"role": entry.role, "content": content})
    return messages


class ClaudeCompletionClient(ProviderHTTPClient):
    """Calls the Messages API with the code-execution and Files betas.

    Attributes:
        max_tokens: Token ceiling sent with every request.
    """

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        api_version: Optional[str] = None,
        beta_features: Optional[List[str]] = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout: Optional[httpx.Timeout] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(
            api_key=api_key,
            beta_features=beta_features or DEFAULT_BETA_FEATURES,
            base_url=base_url,
            api_version=api_version,
            timeout=timeout,
            transport=transport,
        )
        self.max_tokens = max_tokens

    def build_request_body(
        self,
        entries: List[HistoryEntry],
        model_id: str,
        session: ServiceSession,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "model": model_id,
            "max_tokens": self.max_tokens,
            "messages": format_messages(entries),
        }
        if session.enable_code_execution:
            body["tools"] = [dict(CODE_EXECUTION_TOOL)]
        if session.session_id:
            body["container"] = session.session_id
        return body

    async def complete(
        self,
        entries: List[HistoryEntry],
        model_id: str,
        session: ServiceSession,
    ) -> CompletionResult:
        """Send one completion request.

        Args:
            entries: Alternating history ending with the pending user entry.
            model_id: Full provider model id.
            session: Container reuse and code-execution switch.

        Returns:
            CompletionResult with rendered text, the container id and any
            generated files.

        Raises:
            ProviderConnectTimeoutError: Could not connect.
            ProviderStillProcessingError: No response within the read timeout.
            ServiceError: Non-2xx response.
            ProviderCallError: Other transport or parse failure.
        """
        body = self.build_request_body(entries, model_id, session)

        logger.info(
            "Claude API request - model: %s, code execution: %s, container: %s, messages: %d",
            model_id,
            session.enable_code_execution,
            session.session_id or "new",
            len(body["messages"]),
        )
        logger.debug("Claude API request body: %s", json.dumps(body))

        response = await self._request(
            "POST",
            MESSAGES_PATH,
            session_id=session.session_id,
            headers={"content-type": "application/json"},
            json=body,
        )
        data = self._json(response)
        logger.debug("Claude API response body: %s", json.dumps(data))

        container = data.get("container")
        session_id = container.get("id") if isinstance(container, dict) else None

        try:
            extracted = extract(data)
        except Exception as e:
            logger.error(f"Failed to parse Claude API response: {e}")
            raise ProviderCallError(f"Unparseable response: {e}") from e

        return CompletionResult(
            text=extracted.text,
            session_id=session_id,
            generated_artifacts=extracted.generated_artifacts,
        )
