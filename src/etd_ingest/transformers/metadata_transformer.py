"""Metadata Transformer for deriving MODS and access policy from ProQuest XML.

Applies two XSLT stylesheets with lxml (ProQuest submission → MODS, MODS →
display label), resolves open access and embargo terms from the submission,
allocates the record's PID, and renames the working files after the
normalized author.
"""

import logging
import random
import re
from pathlib import Path

from lxml import etree

from etd_ingest.clients.exceptions import ClientError
from etd_ingest.clients.repository import Repository
from etd_ingest.config import XSLTSettings
from etd_ingest.exceptions import ConfigurationError, CriticalError
from schemas.submission import INDEFINITE_EMBARGO, SubmissionRecord

from .transformer import RecordTransformer

logger = logging.getLogger(__name__)

_DISALLOWED_CHARS = re.compile(r"[^a-z0-9-]+", re.IGNORECASE)


def normalize_string(value: str) -> str:
    """Reduce a name to a file-system friendly base name.

    Trims the value, turns spaces into hyphens and drops every character
    that is not a letter, digit or hyphen:

        >>> normalize_string("Jane Anne O'Foo")
        'Jane-Anne-OFoo'
    """
    return _DISALLOWED_CHARS.sub("", value.strip().replace(" ", "-"))


def node_value(result) -> str | None:
    """Canonical string value of the first XPath result, or None."""
    if isinstance(result, list):
        if not result:
            return None
        result = result[0]
    if isinstance(result, etree._Element):
        return "".join(result.itertext()).strip()
    if isinstance(result, bool):
        return "1" if result else "0"
    return str(result).strip()


def _is_zero(value: str | None) -> bool:
    if not value:
        return True
    try:
        return float(value) == 0
    except ValueError:
        return False


class MetadataTransformer(RecordTransformer):
    """Derive record metadata from the ProQuest submission XML.

    The MetadataTransformer:
    1. Loads the MODS and label stylesheets (once per instance)
    2. Parses the submission XML
    3. Resolves open access, embargo and the indefinite-embargo rule
    4. Allocates a PID (random in debug mode)
    5. Transforms the submission to MODS with the PID as ``handle``
    6. Derives the display label and the author from MODS
    7. Renames the PDF and writes MODS using the normalized author

    Attributes:
        settings: Stylesheet paths and XPath queries
        repository: Repository used to allocate PIDs
        namespace: PID namespace
        debug: Synthesize PIDs instead of asking the repository
    """

    def __init__(
        self,
        settings: XSLTSettings,
        repository: Repository,
        namespace: str,
        debug: bool = False,
    ):
        self.settings = settings
        self.repository = repository
        self.namespace = namespace
        self.debug = debug
        self._mods_xslt: etree.XSLT | None = None
        self._label_xslt: etree.XSLT | None = None

    def load_stylesheets(self) -> None:
        """Load both stylesheets.

        Raises:
            ConfigurationError: If either stylesheet cannot be loaded
        """
        if self._mods_xslt is None:
            self._mods_xslt = self._load_stylesheet(self.settings.xslt, "MODS")
        if self._label_xslt is None:
            self._label_xslt = self._load_stylesheet(self.settings.label, "Fedora Label")

    def _load_stylesheet(self, path: Path, kind: str) -> etree.XSLT:
        try:
            xslt = etree.XSLT(etree.parse(str(path)))
        except (OSError, etree.XMLSyntaxError, etree.XSLTParseError) as e:
            raise ConfigurationError(f"Failed to load {kind} XSLT stylesheet: {e}") from e
        logger.info(f"Loaded {kind} XSLT stylesheet {path}")
        return xslt

    def transform(self, record: SubmissionRecord) -> bool:
        """Derive metadata for the record.

        Returns:
            True on success, False when the record has supplemental files

        Raises:
            ConfigurationError: If a stylesheet or XPath query is unusable
            CriticalError: If the record's metadata cannot be derived
        """
        if record.has_supplements:
            logger.info(f"Skipping metadata for {record.name}, it has supplemental files")
            return False

        self.load_stylesheets()
        submission = self._parse_submission(record)

        self.resolve_access(record, submission)

        record.pid = self._allocate_pid()
        logger.info(f"PID for {record.name}: {record.pid}")

        mods = self._transform_to_mods(submission, record.pid)
        record.label = self._derive_label(mods)
        logger.info(f"ETD title: {record.label}")

        author = self._derive_author(mods)
        normalized = normalize_string(author)
        if not normalized:
            raise CriticalError(f"The ETD author '{author}' is empty once normalized.")
        record.author = author
        record.author_normalized = normalized
        logger.info(f"ETD author: [{author}], normalized: [{normalized}]")

        self._write_files(record, mods)
        record.status = "processed"
        return True

    def _parse_submission(self, record: SubmissionRecord) -> etree._ElementTree:
        path = record.path(record.primary_metadata)
        try:
            return etree.parse(str(path))
        except (OSError, etree.XMLSyntaxError) as e:
            raise CriticalError(f"Failed to load ETD XML file: {e}") from e

    def _query(self, doc: etree._ElementTree, expression: str) -> str | None:
        try:
            result = doc.xpath(expression, namespaces=self.settings.namespaces)
        except etree.XPathError as e:
            raise ConfigurationError(f"Invalid XPath expression '{expression}': {e}") from e
        return node_value(result)

    def resolve_access(self, record: SubmissionRecord, submission: etree._ElementTree) -> None:
        """Set the open access and embargo fields on the record.

        - No OA node, or a zero value: OA unavailable, indicator "0".
        - Embargo node with a value: "YYYY-MM-DD HH:MM:SS" becomes
          "YYYY-MM-DDTHH:MM:SSZ".
        - OA unavailable and no embargo: embargo is "indefinite".
        """
        oa_value = self._query(submission, self.settings.oa)
        if _is_zero(oa_value):
            record.oa_available = False
            record.oa_value = "0"
            logger.info("No OA agreement found.")
        else:
            record.oa_available = True
            record.oa_value = oa_value
            logger.info("Found an OA agreement.")

        embargo = self._query(submission, self.settings.embargo)
        if embargo:
            logger.info(f"Unformatted embargo date: {embargo}")
            record.has_embargo = True
            record.embargo = embargo.replace(" ", "T") + "Z"
        else:
            record.has_embargo = False
            record.embargo = None
            logger.info("There is no embargo on this record.")

        if not record.oa_available and not record.has_embargo:
            record.has_embargo = True
            record.embargo = INDEFINITE_EMBARGO
            logger.info("No OA agreement and no embargo, embargo is indefinite")

        if record.has_embargo:
            logger.info(f"Using embargo date of: {record.embargo}")

    def _allocate_pid(self) -> str:
        if self.debug:
            pid = f"{self.namespace}:{random.randint(50000, 100000) + 9000000}"
            logger.info(f"DEBUG: Generated random PID {pid} (not allocated by the repository)")
            return pid
        try:
            return self.repository.allocate_id(self.namespace)
        except ClientError as e:
            raise CriticalError(f"Could not allocate a PID: {e}") from e

    def _transform_to_mods(self, submission: etree._ElementTree, pid: str) -> etree._ElementTree:
        try:
            mods = self._mods_xslt(submission, handle=etree.XSLT.strparam(pid))
        except etree.XSLTApplyError as e:
            raise CriticalError(f"Could not transform ETD XML file to MODS: {e}") from e
        if mods.getroot() is None:
            raise CriticalError("Could not transform ETD XML file to MODS: empty result")
        return mods

    def _derive_label(self, mods: etree._ElementTree) -> str:
        try:
            label = str(self._label_xslt(mods)).strip()
        except etree.XSLTApplyError as e:
            raise CriticalError(
                f"Could not generate ETD title using Fedora Label XSLT stylesheet: {e}"
            ) from e
        if not label:
            raise CriticalError("Could not generate ETD title: the label is empty.")
        return label

    def _derive_author(self, mods: etree._ElementTree) -> str:
        author = self._query(mods, self.settings.creator)
        if not author:
            raise CriticalError("Could not find an Author element in this document.")
        return author

    def _write_files(self, record: SubmissionRecord, mods: etree._ElementTree) -> None:
        base = record.author_normalized
        pdf_name = f"{base}.pdf"
        mods_name = f"{base}.xml"

        try:
            record.path(record.primary_document).rename(record.path(pdf_name))
            logger.info(f"Renamed ETD PDF file from {record.primary_document} to {pdf_name}")
            record.primary_document = pdf_name

            mods.write(
                str(record.path(mods_name)),
                xml_declaration=True,
                encoding="UTF-8",
                pretty_print=True,
            )
        except OSError as e:
            raise CriticalError(f"Could not write ETD files for {base}: {e}") from e

        record.mods_filename = mods_name
        record.fulltext_filename = f"{base}.txt"
        logger.info(f"Created ETD MODS file {mods_name}")
