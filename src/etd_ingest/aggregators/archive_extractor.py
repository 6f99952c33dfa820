"""Archive Extractor for expanding and classifying ETD zip archives.

ProQuest delivers each ETD as a zip archive. Files belonging to the
submission carry an institution marker (e.g. ``0016``) in their names:

    etdadmin_upload_100000.zip
    ├── Smith_bc_0016D_10001.pdf        # primary document
    ├── Smith_bc_0016D_10001_DATA.xml   # ProQuest submission metadata
    └── Smith_bc_0016D_10001/           # present only with supplements
        └── dataset.csv
"""

import logging
import re
import zipfile
from pathlib import Path

from etd_ingest.exceptions import CriticalError
from schemas.submission import SubmissionRecord

logger = logging.getLogger(__name__)

MIN_ARCHIVE_NAME_LENGTH = 5
MIN_ARCHIVE_SIZE = 4


class ArchiveExtractor:
    """Expand an ETD archive into its working directory and classify it.

    The ArchiveExtractor:
    1. Refuses archives that cannot plausibly be zip files
    2. Extracts every entry into the record's working directory
    3. Lists the working directory recursively in sorted order
    4. Sorts marker-tagged entries into the first PDF, the first XML and
       supplemental files; untagged entries become non-critical errors
    5. Marks the record skipped when supplements exist, otherwise requires
       both a PDF and an XML

    Attributes:
        marker: Regular expression identifying submission files
    """

    def __init__(self, marker: str = "0016"):
        self.marker = marker
        self._marker_re = re.compile(marker)

    def extract(self, record: SubmissionRecord) -> bool:
        """Extract and classify the record's archive.

        Args:
            record: Record with working_dir and zip_filename set

        Returns:
            True when the record is ready for metadata derivation, False when
            it was skipped because of supplemental files

        Raises:
            CriticalError: If the archive cannot be opened or extracted, is
                empty, or lacks the PDF or XML
        """
        logger.info(f"Extracting {record.zip_filename} into {record.working_dir}")
        self._open_and_extract(record)

        entries = self.list_entries(record.working_dir, exclude={record.zip_filename})
        if not entries:
            raise CriticalError("There are no files in this expanded zip file.")

        logger.info(f"Found {len(entries)} files in {record.working_dir}")
        for entry in entries:
            self._classify(record, entry)

        if record.has_supplements:
            record.status = "skipped"
            logger.info(
                f"{record.name} has {len(record.supplements)} supplemental files, skipping"
            )
            return False

        if not record.primary_document:
            raise CriticalError("The ETD PDF file was not found or set.")
        if not record.primary_metadata:
            raise CriticalError("The ETD XML file was not found or set.")

        record.status = "success"
        logger.info(
            f"Classified {record.name}: PDF {record.primary_document}, "
            f"XML {record.primary_metadata}"
        )
        return True

    def _open_and_extract(self, record: SubmissionRecord) -> None:
        archive = record.archive_path
        if len(record.zip_filename) < MIN_ARCHIVE_NAME_LENGTH:
            raise CriticalError(
                f"Failed to open ETD zip file: name '{record.zip_filename}' is too short"
            )

        try:
            size = archive.stat().st_size
        except OSError as e:
            raise CriticalError(f"Failed to open ETD zip file: {e}") from e
        if size < MIN_ARCHIVE_SIZE or not zipfile.is_zipfile(archive):
            raise CriticalError(f"Failed to open ETD zip file: {archive.name}")

        try:
            with zipfile.ZipFile(archive) as zf:
                zf.extractall(record.working_dir)
        except (zipfile.BadZipFile, OSError, EOFError, RuntimeError, NotImplementedError) as e:
            raise CriticalError(f"Failed to extract ETD zip file: {e}") from e

    def list_entries(self, directory: Path, exclude: set[str] | None = None) -> list[str]:
        """List *directory* recursively as sorted relative POSIX paths.

        Dot files are skipped. A directory is listed before its members.
        """
        exclude = exclude or set()
        entries = []
        for path in sorted(directory.rglob("*")):
            relative = path.relative_to(directory)
            if any(part.startswith(".") for part in relative.parts):
                continue
            name = relative.as_posix()
            if name in exclude:
                continue
            entries.append(name)
        return entries

    def _classify(self, record: SubmissionRecord, entry: str) -> None:
        record.zip_contents.append(entry)

        if not self._marker_re.search(entry):
            message = f"Located a file that was not named properly and was ignored: {entry}"
            logger.warning(message)
            record.noncritical_errors.append(message)
            return

        extension = entry[-3:].lower()
        if extension == "pdf" and not record.primary_document:
            record.primary_document = entry
            logger.debug(f"ETD PDF: {entry}")
        elif extension == "xml" and not record.primary_metadata:
            record.primary_metadata = entry
            logger.debug(f"ETD XML: {entry}")
        elif record.path(entry).is_dir():
            logger.debug(f"Directory {entry} skipped")
        else:
            record.supplements.append(entry)
            record.has_supplements = True
            logger.debug(f"Supplemental file: {entry}")
