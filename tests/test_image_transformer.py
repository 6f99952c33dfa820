"""Tests for the Image Transformer."""

import fitz  # PyMuPDF
import pytest

from conftest import make_pdf
from etd_ingest.exceptions import CriticalError
from etd_ingest.transformers import ImageTransformer
from schemas.submission import SubmissionRecord


@pytest.fixture
def record(tmp_path):
    working_dir = tmp_path / "etdadmin_upload_100000"
    working_dir.mkdir()
    make_pdf(working_dir / "Jane-Doe.pdf", [["Title page"], ["Chapter One"]])
    return SubmissionRecord(
        name="etdadmin_upload_100000",
        zip_filename="etdadmin_upload_100000.zip",
        working_dir=working_dir,
        primary_document="Jane-Doe.pdf",
    )


class TestImageTransformer:
    """Tests for first-page rendering."""

    def test_thumbnail_fits_bounding_box(self, record):
        transformer = ImageTransformer((200, 200), "thumbnail.jpg")

        output = transformer.transform(record)

        assert output == record.working_dir / "thumbnail.jpg"
        pix = fitz.Pixmap(str(output))
        assert 199 <= pix.height <= 201
        assert pix.width < pix.height

    def test_preview_keeps_aspect_ratio(self, record):
        transformer = ImageTransformer((500, 700), "preview.jpg")

        output = transformer.transform(record)

        pix = fitz.Pixmap(str(output))
        # Letter pages are 612x792 points, so width is the limiting side.
        assert 499 <= pix.width <= 501
        assert pix.height < 700

    def test_writes_jpeg(self, record):
        output = ImageTransformer((200, 200), "thumbnail.jpg").transform(record)

        assert output.read_bytes()[:3] == b"\xff\xd8\xff"

    def test_rgb_without_alpha(self, record):
        output = ImageTransformer((200, 200), "thumbnail.jpg").transform(record)

        pix = fitz.Pixmap(str(output))
        assert pix.n == 3
        assert pix.alpha == 0

    def test_unreadable_pdf(self, record):
        (record.working_dir / "Jane-Doe.pdf").write_bytes(b"not a pdf")

        with pytest.raises(CriticalError, match="thumbnail.jpg"):
            ImageTransformer((200, 200), "thumbnail.jpg").transform(record)
