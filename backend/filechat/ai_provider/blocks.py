"""Typed content blocks of a code-execution completion response.

The provider returns ``content`` as a list of loosely typed dicts.  Each one
is validated into exactly one variant of :data:`ResponseBlock`:

==========================================  ===========================
wire type                                   variant
==========================================  ===========================
``text``                                    :class:`TextBlock`
``server_tool_use`` / bash_code_execution   :class:`ShellCommandBlock`
``server_tool_use`` / text_editor_...       :class:`FileEditorCommandBlock`
``bash_code_execution_tool_result``         :class:`ShellResultBlock`
``text_editor_code_execution_tool_result``  :class:`FileEditorResultBlock`
anything else, or malformed                 :class:`IgnoredBlock`
==========================================  ===========================
"""
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Tag,
    TypeAdapter,
    ValidationError,
    field_validator,
)

SHELL_TOOL_NAME = "bash_code_execution"
FILE_EDITOR_TOOL_NAME = "text_editor_code_execution"
SHELL_RESULT_TYPE = "bash_code_execution_result"
FILE_EDITOR_RESULT_TYPE = "text_editor_code_execution_result"
OUTPUT_FILE_TYPES = ("file", "bash_code_execution_output")


class _Block(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class ToolInput(_Block):
    command: Optional[str] = None
    path: Optional[str] = None


class TextBlock(_Block):
    type: Literal["text"]
    text: str = ""


class ShellCommandBlock(_Block):
    type: Literal["server_tool_use"]
    name: Literal["bash_code_execution"]
    id: Optional[str] = None
    input: ToolInput = ToolInput()


class FileEditorCommandBlock(_Block):
    type: Literal["server_tool_use"]
    name: Literal["text_editor_code_execution"]
    id: Optional[str] = None
    input: ToolInput = ToolInput()


class OutputFile(_Block):
    """An item of a shell result's nested ``content`` array."""
    type: Optional[str] = None
    file_id: Optional[str] = None
    filename: Optional[str] = None


class ShellResult(_Block):
    type: Optional[str] = None
    stdout: Optional[str] = None
    stderr: Optional[str] = None
    return_code: Optional[int] = None
    content: List[OutputFile] = []

    @field_validator("content", mode="before")
    @classmethod
    def _keep_dict_items(cls, value: Any) -> list:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict)]


class ShellResultBlock(_Block):
    type: Literal["bash_code_execution_tool_result"]
    tool_use_id: Optional[str] = None
    content: Optional[ShellResult] = None

    @field_validator("content", mode="before")
    @classmethod
    def _dict_or_none(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else None


class FileEditorResult(_Block):
    type: Optional[str] = None
    content: Optional[str] = None
    file_id: Optional[str] = None
    filename: Optional[str] = None

    @field_validator("content", mode="before")
    @classmethod
    def _text_or_none(cls, value: Any) -> Any:
        return value if isinstance(value, str) else None


class FileEditorResultBlock(_Block):
    type: Literal["text_editor_code_execution_tool_result"]
    tool_use_id: Optional[str] = None
    content: Optional[FileEditorResult] = None
    input: Optional[ToolInput] = None

    @field_validator("content", mode="before")
    @classmethod
    def _dict_or_none(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else None


class IgnoredBlock(_Block):
    """Any block this service does not render (thinking, web search, errors...)."""
    type: Any = None


_TOOL_TAGS = {
    SHELL_TOOL_NAME: "shell_command",
    FILE_EDITOR_TOOL_NAME: "file_editor_command",
}

_TYPE_TAGS = {
    "text": "text",
    "bash_code_execution_tool_result": "shell_result",
    "text_editor_code_execution_tool_result": "file_editor_result",
}


def _block_tag(raw: Any) -> str:
    if isinstance(raw, BaseModel):
        raw = raw.model_dump()
    if not isinstance(raw, dict):
        return "ignored"
    block_type = raw.get("type")
    if block_type == "server_tool_use":
        return _TOOL_TAGS.get(raw.get("name"), "ignored")
    if isinstance(block_type, str):
        return _TYPE_TAGS.get(block_type, "ignored")
    return "ignored"


ResponseBlock = Annotated[
    Union[
        Annotated[TextBlock, Tag("text")],
        Annotated[ShellCommandBlock, Tag("shell_command")],
        Annotated[FileEditorCommandBlock, Tag("file_editor_command")],
        Annotated[ShellResultBlock, Tag("shell_result")],
        Annotated[FileEditorResultBlock, Tag("file_editor_result")],
        Annotated[IgnoredBlock, Tag("ignored")],
    ],
    Discriminator(_block_tag),
]

_block_adapter: TypeAdapter = TypeAdapter(ResponseBlock)


def parse_block(raw: Any) -> ResponseBlock:
    """Validate one raw block; anything malformed becomes an IgnoredBlock."""
    try:
        return _block_adapter.validate_python(raw)
    except ValidationError:
        return IgnoredBlock(type=raw.get("type") if isinstance(raw, dict) else None)


def parse_blocks(raw_blocks: Any) -> List[ResponseBlock]:
    """Validate a response's ``content`` list, preserving order."""
    if not isinstance(raw_blocks, list):
        return []
    return [parse_block(raw) for raw in raw_blocks]
