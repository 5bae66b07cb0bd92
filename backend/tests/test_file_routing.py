"""Tests for uploaded-file routing decisions."""
import pytest

from filechat.errors import FileTooLargeError, UnsupportedMediaTypeError
from filechat.files.routing import classify, ensure_routable
from filechat.files.schemas import (
    DOC_MIME,
    DOCX_MIME,
    MAX_FILE_SIZE_BYTES,
    SUPPORTED_MIME_TYPES,
    XLS_MIME,
    XLSX_MIME,
    FileBehavior,
    RejectReason,
    RoutingAction,
    RoutingDecision,
)

MB = 1024 * 1024


class TestClassify:
    """Tests for the routing decision table."""

    def test_csv_with_code_execution_uploads(self):
        decision = classify("text/csv", 1000, code_execution_enabled=True)
        assert decision == RoutingDecision.upload()

    def test_csv_without_code_execution_still_uploads(self):
        """CSV is never converted, whichever way the flag is set."""
        decision = classify("text/csv", 1000, code_execution_enabled=False)
        assert decision.action == RoutingAction.UPLOAD_TO_PROVIDER

    @pytest.mark.parametrize("flag", [True, False])
    def test_legacy_word_converts(self, flag):
        decision = classify("application/msword", 1000, code_execution_enabled=flag)
        assert decision.action == RoutingAction.CONVERT_TO_TEXT

    @pytest.mark.parametrize("mime", [DOCX_MIME, XLSX_MIME, DOC_MIME, XLS_MIME])
    def test_office_formats_convert(self, mime):
        assert classify(mime, 10, True).action == RoutingAction.CONVERT_TO_TEXT

    @pytest.mark.parametrize("mime", [
        "application/pdf", "text/plain", "image/jpeg", "image/png", "image/gif", "image/webp",
    ])
    def test_provider_readable_formats_upload(self, mime):
        assert classify(mime, 10, False).action == RoutingAction.UPLOAD_TO_PROVIDER

    @pytest.mark.parametrize("flag", [True, False])
    def test_video_is_unsupported(self, flag):
        decision = classify("video/mp4", 1000, code_execution_enabled=flag)
        assert decision == RoutingDecision.reject(RejectReason.UNSUPPORTED_MEDIA_TYPE)

    def test_oversized_pdf_is_rejected(self):
        decision = classify("application/pdf", 600 * MB, code_execution_enabled=True)
        assert decision.is_reject
        assert decision.reason == RejectReason.FILE_TOO_LARGE

    def test_size_checked_before_media_type(self):
        """An oversized unsupported file is reported as too large."""
        decision = classify("video/mp4", 600 * MB, code_execution_enabled=True)
        assert decision.reason == RejectReason.FILE_TOO_LARGE

    def test_exactly_at_limit_is_accepted(self):
        decision = classify("application/pdf", MAX_FILE_SIZE_BYTES, True)
        assert decision.action == RoutingAction.UPLOAD_TO_PROVIDER

    def test_custom_limit(self):
        assert classify("application/pdf", 11, True, max_bytes=10).is_reject

    def test_classification_is_deterministic(self):
        """Repeated calls with the same inputs give equal decisions."""
        inputs = [
            ("text/csv", 1000, True),
            ("application/msword", 5, False),
            ("video/mp4", 1, True),
            ("application/pdf", 600 * MB, False),
        ]
        first = [classify(*args) for args in inputs]
        second = [classify(*args) for args in inputs]
        assert first == second

    def test_decisions_are_immutable(self):
        decision = classify("text/plain", 1, True)
        with pytest.raises(Exception):
            decision.action = RoutingAction.REJECT


class TestMimeTable:
    """Tests for the MIME routing table itself."""

    def test_conversion_rows_are_convert_behavior(self):
        for mime, rule in SUPPORTED_MIME_TYPES.items():
            assert rule.requires_conversion == (rule.behavior == FileBehavior.CONVERT_TO_TEXT), mime

    def test_images_have_image_behavior(self):
        for mime in ("image/jpeg", "image/png", "image/gif", "image/webp"):
            assert SUPPORTED_MIME_TYPES[mime].behavior == FileBehavior.IMAGE

    def test_svg_is_not_supported(self):
        assert "image/svg+xml" not in SUPPORTED_MIME_TYPES


class TestEnsureRoutable:
    """Tests for turning reject decisions into errors."""

    def test_passes_through_non_reject(self):
        decision = RoutingDecision.upload()
        assert ensure_routable(decision, "application/pdf", 1) is decision

    def test_too_large_raises_413(self):
        decision = RoutingDecision.reject(RejectReason.FILE_TOO_LARGE)
        with pytest.raises(FileTooLargeError) as exc_info:
            ensure_routable(decision, "application/pdf", 600 * MB, filename="big.pdf")
        assert exc_info.value.status_code == 413
        assert "big.pdf" in exc_info.value.message

    def test_unsupported_raises_415(self):
        decision = RoutingDecision.reject(RejectReason.UNSUPPORTED_MEDIA_TYPE)
        with pytest.raises(UnsupportedMediaTypeError) as exc_info:
            ensure_routable(decision, "video/mp4", 10)
        assert exc_info.value.status_code == 415
        assert exc_info.value.mime_type == "video/mp4"
