"""Extract plain text from office documents.

Word and Excel files cannot be read by the provider directly, so their text
is inlined into the user's message instead.

- docx: tags of ``word/document.xml`` stripped, whitespace collapsed
- xlsx: one line per row, cells tab-separated, sheets in workbook order;
  a placeholder naming the file if the workbook cannot be parsed
- csv: returned unchanged
"""
import logging
import re
import zipfile
from pathlib import Path
from typing import Callable, Dict, Union

from openpyxl import load_workbook

from filechat.errors import ConversionError

from .schemas import CSV_MIME, DOCX_MIME, XLSX_MIME

logger = logging.getLogger(__name__)

DOCX_DOCUMENT_PART = "word/document.xml"

_TAG_RE = re.compile(r"<[^>]+>")
_WHITESPACE_RE = re.compile(r"\s+")


def extract_docx_text(path: Path) -> str:
    """Return the body text of a .docx archive, or "" if the body part is missing."""
    with zipfile.ZipFile(path) as archive:
        if DOCX_DOCUMENT_PART not in archive.namelist():
            logger.warning("No %s in %s", DOCX_DOCUMENT_PART, path.name)
            return ""
        xml = archive.read(DOCX_DOCUMENT_PART).decode("utf-8", errors="replace")

    text = _TAG_RE.sub(" ", xml)
    return _WHITESPACE_RE.sub(" ", text).strip()


def extract_workbook_text(path: Path) -> str:
    """Return every row of every sheet as tab-separated lines.

    Any parse failure (corrupt or truncated file) yields a placeholder
    instead of an error so the message can still be sent.
    """
    try:
        workbook = load_workbook(filename=str(path), read_only=True, data_only=True)
        try:
            lines = []
            for sheet in workbook.worksheets:
                for row in sheet.iter_rows(values_only=True):
                    lines.append("\t".join("" if v is None else str(v) for v in row) + "\n")
            return "".join(lines)
        finally:
            workbook.close()
    except Exception as e:
        logger.warning(f"Workbook parse failed for {path.name}: {e}")
        return f"Excel file: {path.name}"


def read_text_file(path: Path) -> str:
    return path.read_text(encoding="utf-8", errors="replace")


_CONVERTERS: Dict[str, Callable[[Path], str]] = {
    DOCX_MIME: extract_docx_text,
    XLSX_MIME: extract_workbook_text,
    CSV_MIME: read_text_file,
}


def convert_to_text(path: Union[str, Path], mime_type: str) -> str:
    """Convert a routed document to plain text.

    Args:
        path: Local path of the file.
        mime_type: MIME type the file was routed with.

    Returns:
        Extracted text.

    Raises:
        ConversionError: No converter exists for ``mime_type``.
    """
    converter = _CONVERTERS.get(mime_type)
    if converter is None:
        raise ConversionError(mime_type)
    return converter(Path(path))


def attach_text(content: str, filename: str, text: str) -> str:
    """Append extracted file text to message content as a labeled block."""
    return f"{content}\n\n[Attached file: {filename}]\n{text}"
