"""Tests for the Archive Extractor."""

import struct

import pytest

from conftest import PDF_NAME, XML_NAME, etd_entries, make_pdf_bytes, make_submission_xml
from etd_ingest.aggregators import ArchiveExtractor
from etd_ingest.exceptions import CriticalError


@pytest.fixture
def extractor():
    return ArchiveExtractor(marker="0016")


def _patch_central_directory(path, offset: int, value: int) -> None:
    """Overwrite a two-byte field in every central directory header of *path*."""
    data = bytearray(path.read_bytes())
    start = data.find(b"PK\x01\x02")
    while start != -1:
        struct.pack_into("<H", data, start + offset, value)
        start = data.find(b"PK\x01\x02", start + 4)
    path.write_bytes(bytes(data))


class TestOpenArchive:
    """Tests for refusing archives that cannot be opened."""

    def test_short_name_refused_without_opening(self, extractor, make_record):
        """A zip name shorter than 5 characters is refused before any I/O."""
        record = make_record(zip_name=".zip")

        with pytest.raises(CriticalError, match="Failed to open ETD zip file"):
            extractor.extract(record)

        assert record.zip_contents == []

    def test_missing_archive(self, extractor, make_record):
        record = make_record()

        with pytest.raises(CriticalError, match="Failed to open ETD zip file"):
            extractor.extract(record)

    def test_corrupt_archive(self, extractor, make_record):
        """Bytes that are not a zip container are refused."""
        record = make_record()
        record.archive_path.write_bytes(b"this is not a zip file at all")

        with pytest.raises(CriticalError, match="Failed to open ETD zip file"):
            extractor.extract(record)

    def test_tiny_archive(self, extractor, make_record):
        record = make_record()
        record.archive_path.write_bytes(b"PK")

        with pytest.raises(CriticalError, match="Failed to open ETD zip file"):
            extractor.extract(record)

    def test_encrypted_member(self, extractor, make_record):
        record = make_record(etd_entries())
        _patch_central_directory(record.archive_path, offset=8, value=0x0001)

        with pytest.raises(CriticalError, match="Failed to extract ETD zip file"):
            extractor.extract(record)

    def test_unsupported_compression(self, extractor, make_record):
        record = make_record(etd_entries())
        _patch_central_directory(record.archive_path, offset=10, value=99)

        with pytest.raises(CriticalError, match="Failed to extract ETD zip file"):
            extractor.extract(record)

    def test_empty_archive(self, extractor, make_record):
        record = make_record(entries={})

        with pytest.raises(CriticalError, match="no files"):
            extractor.extract(record)


class TestClassification:
    """Tests for sorting archive entries."""

    def test_well_formed_archive(self, extractor, make_record):
        """One tagged PDF and one tagged XML yield status success."""
        record = make_record(etd_entries())

        assert extractor.extract(record) is True

        assert record.status == "success"
        assert record.primary_document == PDF_NAME
        assert record.primary_metadata == XML_NAME
        assert record.has_supplements is False
        assert record.supplements == []
        assert sorted(record.zip_contents) == sorted([PDF_NAME, XML_NAME])
        assert (record.working_dir / PDF_NAME).exists()

    def test_zip_itself_not_listed(self, extractor, make_record):
        record = make_record(etd_entries())

        extractor.extract(record)

        assert record.zip_filename not in record.zip_contents

    def test_extension_is_case_insensitive(self, extractor, make_record):
        record = make_record({
            "Foo_bc_0016D_10001.PDF": make_pdf_bytes([["Text"]]),
            "Foo_bc_0016D_10001_DATA.XML": make_submission_xml(),
        })

        assert extractor.extract(record) is True
        assert record.primary_document == "Foo_bc_0016D_10001.PDF"
        assert record.primary_metadata == "Foo_bc_0016D_10001_DATA.XML"

    def test_untagged_file_is_noncritical(self, extractor, make_record):
        """Entries without the marker are ignored with a non-critical error."""
        entries = etd_entries()
        entries["readme.txt"] = "Read me"
        record = make_record(entries)

        assert extractor.extract(record) is True

        assert record.status == "success"
        assert record.noncritical_errors == [
            "Located a file that was not named properly and was ignored: readme.txt"
        ]
        assert "readme.txt" in record.zip_contents
        assert record.has_supplements is False

    def test_supplemental_file_skips_record(self, extractor, make_record):
        """A tagged entry that is neither the PDF nor the XML is a supplement."""
        entries = etd_entries()
        entries["Foo_bc_0016D_10001/dataset.csv"] = "a,b\n1,2\n"
        record = make_record(entries)

        assert extractor.extract(record) is False

        assert record.status == "skipped"
        assert record.has_supplements is True
        assert record.supplements == ["Foo_bc_0016D_10001/dataset.csv"]

    def test_directory_entries_are_not_supplements(self, extractor, make_record):
        entries = etd_entries()
        entries["Foo_bc_0016D_10001/dataset.csv"] = "a,b\n"
        record = make_record(entries)

        extractor.extract(record)

        assert "Foo_bc_0016D_10001" in record.zip_contents
        assert "Foo_bc_0016D_10001" not in record.supplements

    def test_second_pdf_is_a_supplement(self, extractor, make_record):
        """Only the first tagged PDF is the primary document."""
        entries = etd_entries()
        entries["Foo_bc_0016D_10001_appendix.pdf"] = make_pdf_bytes([["Appendix"]])
        record = make_record(entries)

        assert extractor.extract(record) is False
        assert record.primary_document == PDF_NAME
        assert record.supplements == ["Foo_bc_0016D_10001_appendix.pdf"]

    def test_missing_pdf(self, extractor, make_record):
        record = make_record({XML_NAME: make_submission_xml()})

        with pytest.raises(CriticalError, match="PDF"):
            extractor.extract(record)

    def test_missing_xml(self, extractor, make_record):
        record = make_record({PDF_NAME: make_pdf_bytes([["Text"]])})

        with pytest.raises(CriticalError, match="XML"):
            extractor.extract(record)

    def test_custom_marker(self, make_record):
        extractor = ArchiveExtractor(marker="0024")
        record = make_record({
            "Bar_0024D_1.pdf": make_pdf_bytes([["Text"]]),
            "Bar_0024D_1_DATA.xml": make_submission_xml(),
        })

        assert extractor.extract(record) is True
        assert record.primary_document == "Bar_0024D_1.pdf"


class TestListEntries:
    """Tests for recursive directory listing."""

    def test_sorted_and_relative(self, extractor, tmp_path):
        (tmp_path / "b").mkdir()
        (tmp_path / "b" / "c.txt").write_text("c")
        (tmp_path / "a.txt").write_text("a")

        assert extractor.list_entries(tmp_path) == ["a.txt", "b", "b/c.txt"]

    def test_skips_dot_files(self, extractor, tmp_path):
        (tmp_path / ".DS_Store").write_text("")
        (tmp_path / "a.txt").write_text("a")

        assert extractor.list_entries(tmp_path) == ["a.txt"]

    def test_exclude(self, extractor, tmp_path):
        (tmp_path / "a.zip").write_text("")
        (tmp_path / "a.txt").write_text("a")

        assert extractor.list_entries(tmp_path, exclude={"a.zip"}) == ["a.txt"]
