"""Tests for document-to-text conversion."""
import re
import zipfile
from pathlib import Path

import pytest
from openpyxl import Workbook

from filechat.errors import ConversionError
from filechat.files.conversion import (
    attach_text,
    convert_to_text,
    extract_docx_text,
    extract_workbook_text,
)
from filechat.files.schemas import CSV_MIME, DOC_MIME, DOCX_MIME, XLS_MIME, XLSX_MIME

DOCUMENT_XML = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    '<w:document xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main">'
    "<w:body>"
    "<w:p><w:r><w:t>Quarterly</w:t></w:r><w:r><w:t>report</w:t></w:r></w:p>"
    "<w:p><w:r><w:t>Revenue   grew\n\n 12%</w:t></w:r></w:p>"
    "</w:body></w:document>"
)


def _write_docx(path: Path, document_xml: str = DOCUMENT_XML) -> Path:
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        archive.writestr("[Content_Types].xml", "<Types/>")
        archive.writestr("word/document.xml", document_xml)
    return path


def _write_xlsx(path: Path) -> Path:
    workbook = Workbook()
    first = workbook.active
    first.title = "Sales"
    first.append(["region", "units"])
    first.append(["north", 10])
    second = workbook.create_sheet("Notes")
    second.append(["ok", None, "done"])
    workbook.save(path)
    return path


class TestDocxConversion:
    """Tests for .docx text extraction."""

    def test_strips_tags_and_collapses_whitespace(self, tmp_path):
        text = extract_docx_text(_write_docx(tmp_path / "report.docx"))
        assert text == "Quarterly report Revenue grew 12%"

    def test_missing_document_part_yields_empty_text(self, tmp_path):
        path = tmp_path / "empty.docx"
        with zipfile.ZipFile(path, "w") as archive:
            archive.writestr("[Content_Types].xml", "<Types/>")
        assert extract_docx_text(path) == ""

    def test_dispatch_by_mime(self, tmp_path):
        path = _write_docx(tmp_path / "report.docx")
        assert convert_to_text(path, DOCX_MIME).startswith("Quarterly")


class TestWorkbookConversion:
    """Tests for .xlsx text extraction."""

    def test_rows_tab_separated_sheets_in_order(self, tmp_path):
        text = extract_workbook_text(_write_xlsx(tmp_path / "sales.xlsx"))
        assert text == "region\tunits\nnorth\t10\nok\t\tdone\n"

    def test_corrupt_workbook_falls_back_to_placeholder(self, tmp_path):
        path = tmp_path / "broken.xlsx"
        path.write_bytes(b"not a zip archive")
        assert extract_workbook_text(path) == "Excel file: broken.xlsx"

    def test_legacy_xls_has_no_converter(self, tmp_path):
        path = tmp_path / "old.xls"
        path.write_bytes(b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1" + b"\x00" * 64)
        with pytest.raises(ConversionError) as exc_info:
            convert_to_text(path, XLS_MIME)
        assert exc_info.value.mime_type == XLS_MIME

    def test_dispatch_by_mime(self, tmp_path):
        path = _write_xlsx(tmp_path / "sales.xlsx")
        assert "north\t10" in convert_to_text(path, XLSX_MIME)


class TestCsvAndUnsupported:
    """Tests for pass-through and rejected conversions."""

    def test_csv_returned_unchanged(self, tmp_path):
        path = tmp_path / "data.csv"
        path.write_text("a,b\n1,2\n", encoding="utf-8")
        assert convert_to_text(path, CSV_MIME) == "a,b\n1,2\n"

    @pytest.mark.parametrize("mime", [DOC_MIME, "application/pdf", "image/png"])
    def test_other_types_raise_conversion_error(self, tmp_path, mime):
        path = tmp_path / "file.bin"
        path.write_bytes(b"\x00")
        with pytest.raises(ConversionError) as exc_info:
            convert_to_text(path, mime)
        assert exc_info.value.status_code == 500
        assert mime in exc_info.value.message


class TestAttachText:
    """Tests for inlining converted text into message content."""

    def test_labeled_block_format(self):
        assert attach_text("Summarise this", "a.docx", "body") == (
            "Summarise this\n\n[Attached file: a.docx]\nbody"
        )

    def test_converted_documents_contain_no_xml_tags(self, tmp_path):
        docx_text = convert_to_text(_write_docx(tmp_path / "r.docx"), DOCX_MIME)
        xlsx_text = convert_to_text(_write_xlsx(tmp_path / "s.xlsx"), XLSX_MIME)
        content = attach_text(attach_text("hi", "r.docx", docx_text), "s.xlsx", xlsx_text)
        assert re.search(r"<[^>]+>", content) is None
