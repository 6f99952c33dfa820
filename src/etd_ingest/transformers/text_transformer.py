"""Text Transformer for extracting the full text of an ETD with pdftotext."""

import logging
import re
from pathlib import Path

from etd_ingest.exceptions import CriticalError
from schemas.submission import SubmissionRecord

from .commands import CommandRunner
from .transformer import DerivativeTransformer

logger = logging.getLogger(__name__)

EXTRACTED_FILENAME = "fulltext.txt"

_CONTROL_CHARS = re.compile(r"[\x00-\x1f]")


def sanitize_text(text: str) -> str:
    """Remove control characters (0x00-0x1F), newlines included."""
    return _CONTROL_CHARS.sub("", text)


class TextTransformer(DerivativeTransformer):
    """Extract and sanitize the text of the record's PDF.

    The raw output of ``pdftotext <pdf> fulltext.txt`` is kept; the sanitized
    text is written to the record's ``fulltext_filename``.
    """

    def __init__(self, runner: CommandRunner, pdftotext: str = "pdftotext"):
        self.runner = runner
        self.pdftotext = pdftotext

    def transform(self, record: SubmissionRecord) -> Path:
        text = self.extract_text(record)
        output = record.path(record.fulltext_filename or EXTRACTED_FILENAME)
        try:
            output.write_text(text, encoding="utf-8")
        except OSError as e:
            raise CriticalError(f"Could not write full text file: {e}") from e
        return output

    def extract_text(self, record: SubmissionRecord) -> str:
        extracted = record.path(EXTRACTED_FILENAME)
        result = self.runner.run(
            [self.pdftotext, record.path(record.primary_document), extracted],
            cwd=record.working_dir,
        )
        if not result.ok:
            raise CriticalError(
                f"FULL_TEXT document creation failed. {result.stderr.strip()[:500]}".strip()
            )

        try:
            raw = extracted.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise CriticalError(f"Could not read in file: {extracted}") from e

        text = sanitize_text(raw)
        if not text:
            raise CriticalError("The extracted full text is empty.")
        logger.info(f"Extracted {len(text)} characters of full text for {record.name}")
        return text
