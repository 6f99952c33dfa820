"""Tests for the Text Transformer."""

import pytest

from conftest import FakeCommandRunner, make_pdf
from etd_ingest.exceptions import CriticalError
from etd_ingest.transformers import TextTransformer, sanitize_text
from schemas.submission import SubmissionRecord


@pytest.fixture
def record(tmp_path):
    working_dir = tmp_path / "etdadmin_upload_100000"
    working_dir.mkdir()
    make_pdf(working_dir / "Jane-Doe.pdf", [["Chapter One"]])
    return SubmissionRecord(
        name="etdadmin_upload_100000",
        zip_filename="etdadmin_upload_100000.zip",
        working_dir=working_dir,
        primary_document="Jane-Doe.pdf",
        fulltext_filename="Jane-Doe.txt",
    )


class TestSanitizeText:
    """Tests for control character removal."""

    def test_removes_control_characters(self):
        assert sanitize_text("a\x00b\x07c\x1fd") == "abcd"

    def test_removes_newlines_and_form_feeds(self):
        assert sanitize_text("line one\nline two\r\n\f") == "line oneline two"

    def test_keeps_printable_text(self):
        assert sanitize_text("Résumé – 100%") == "Résumé – 100%"


class TestTransform:
    """Tests for full text extraction."""

    def test_pdftotext_arguments(self, record):
        runner = FakeCommandRunner()
        transformer = TextTransformer(runner, pdftotext="/usr/bin/pdftotext")

        transformer.transform(record)

        assert runner.calls == [[
            "/usr/bin/pdftotext",
            str(record.working_dir / "Jane-Doe.pdf"),
            str(record.working_dir / "fulltext.txt"),
        ]]

    def test_writes_sanitized_text(self, record):
        transformer = TextTransformer(FakeCommandRunner(text="Full text\nof the ETD.\f"))

        output = transformer.transform(record)

        assert output == record.working_dir / "Jane-Doe.txt"
        assert output.read_text(encoding="utf-8") == "Full textof the ETD."

    def test_pdftotext_failure(self, record):
        transformer = TextTransformer(FakeCommandRunner(fail=("pdftotext",)))

        with pytest.raises(CriticalError, match="FULL_TEXT document creation failed"):
            transformer.transform(record)

    def test_empty_text(self, record):
        transformer = TextTransformer(FakeCommandRunner(text="\n\f"))

        with pytest.raises(CriticalError, match="empty"):
            transformer.transform(record)
