"""Datastream Compiler for assembling an ETD's Fedora object.

Builds every datastream of the object in a fixed order:

    MODS         transformed MODS (inline XML)
    ARCHIVE      original ProQuest XML (inline XML)
    ARCHIVE-PDF  the ETD as submitted
    PDF          splash page + ETD
    FULL_TEXT    sanitized text of the ETD
    TN           200x200 thumbnail
    PREVIEW      500x700 preview
    RELS-INT     embargo descriptor (permanent or dated)
    RELS-EXT     collection membership and the parent's access policy

The first failure stops the build; nothing is deposited for the record.
"""

import logging
from collections.abc import Callable
from pathlib import Path

from etd_ingest.clients.exceptions import ClientError
from etd_ingest.clients.repository import Repository
from etd_ingest.config import Settings
from etd_ingest.exceptions import CriticalError, DatastreamError
from etd_ingest.transformers import (
    CommandRunner,
    DerivativeTransformer,
    ImageTransformer,
    PDFTransformer,
    TextTransformer,
)
from schemas.repository import Datastream, RepositoryObject
from schemas.submission import SubmissionRecord

from .compiler import Compiler

logger = logging.getLogger(__name__)

CHECKSUM_TYPE = "SHA-256"
IS_MEMBER_OF_COLLECTION = "isMemberOfCollection"

PERMANENT_TEMPLATE = "permRELS-INT.xml"
EMBARGO_TEMPLATE = "embargoRELS-INT.xml"
PID_TOKEN = "######"
EMBARGO_TOKEN = "$$$$$$"

THUMBNAIL_SIZE = (200, 200)
PREVIEW_SIZE = (500, 700)


def relationship_template(record: SubmissionRecord) -> str | None:
    """Name of the RELS-INT template that applies to the record.

    No open access means a permanent restriction. Open access with an
    embargo date means a dated restriction. Open access without an embargo
    needs no descriptor.
    """
    if not record.oa_available:
        return PERMANENT_TEMPLATE
    if record.has_embargo and record.embargo:
        return EMBARGO_TEMPLATE
    return None


class DatastreamCompiler(Compiler):
    """Assemble the Fedora object for a processed ETD record.

    Derivative files are produced by the PDF, text and image transformers;
    by default they are built from ``settings`` and share one CommandRunner.

    Attributes:
        repository: Repository used to construct objects and fetch policies
        settings: Run settings
    """

    def __init__(
        self,
        repository: Repository,
        settings: Settings,
        runner: CommandRunner | None = None,
        pdf_transformer: DerivativeTransformer | None = None,
        text_transformer: DerivativeTransformer | None = None,
        thumbnail_transformer: DerivativeTransformer | None = None,
        preview_transformer: DerivativeTransformer | None = None,
    ):
        self.repository = repository
        self.settings = settings
        runner = runner or CommandRunner(timeout=settings.packages.timeout)

        packages = settings.packages
        self.pdf_transformer = pdf_transformer or PDFTransformer(
            splash_stylesheet=settings.xslt.splash,
            runner=runner,
            fop=packages.fop,
            fop_config=packages.fop_config,
            merge_splash=packages.merge_splash,
        )
        self.text_transformer = text_transformer or TextTransformer(
            runner=runner, pdftotext=packages.pdftotext
        )
        self.thumbnail_transformer = thumbnail_transformer or ImageTransformer(
            THUMBNAIL_SIZE, "thumbnail.jpg"
        )
        self.preview_transformer = preview_transformer or ImageTransformer(
            PREVIEW_SIZE, "preview.jpg"
        )

    def compile(self, record: SubmissionRecord) -> RepositoryObject:
        """Build all datastreams for the record.

        Raises:
            DatastreamError: On the first datastream that cannot be built
        """
        obj = self._construct_object(record)
        policy = self._resolve_collection(record, obj)

        steps: list[tuple[str, Callable[[SubmissionRecord], Datastream | None]]] = [
            ("MODS", self._build_mods),
            ("ARCHIVE", self._build_archive),
            ("ARCHIVE-PDF", self._build_archive_pdf),
            ("PDF", self._build_pdf),
            ("FULL_TEXT", self._build_full_text),
            ("TN", self._build_thumbnail),
            ("PREVIEW", self._build_preview),
            ("RELS-INT", self._build_rels_int),
        ]
        for dsid, build in steps:
            logger.info(f"[{dsid}] Generating datastream.")
            try:
                ds = build(record)
            except CriticalError as e:
                raise DatastreamError(dsid, e.message) from e
            if ds is None:
                continue
            self._deposit(record, obj, ds, dsid)

        logger.info("[RELS-EXT] Depositing the collection policy after all content datastreams.")
        self._deposit(record, obj, policy, "RELS-EXT")

        logger.info(f"Created {len(record.datastreams_created)} datastreams for {record.pid}")
        return obj

    def _construct_object(self, record: SubmissionRecord) -> RepositoryObject:
        obj = self.repository.construct_object(record.pid)
        obj.label = record.label
        obj.owner = self.settings.fedora.owner
        obj.models = [self.settings.fedora.content_model]
        obj.checksum_type = CHECKSUM_TYPE
        obj.state = "I"
        logger.info(f"Instantiated a Fedora object with PID {record.pid}")
        return obj

    def _resolve_collection(self, record: SubmissionRecord, obj: RepositoryObject) -> Datastream:
        """Pick the collection, add membership and return the parent's policy."""
        collections = self.settings.collections
        if record.has_embargo:
            parent_pid = collections.root_pid_embargo
            collection = collections.theses_restricted
        else:
            parent_pid = collections.root_pid
            collection = collections.theses

        try:
            parent = self.repository.get_object(parent_pid)
            policy = self.repository.get_datastream(parent.pid, collections.policy_dsid)
        except ClientError as e:
            raise DatastreamError(
                "RELS-EXT",
                f"Could not fetch Fedora object '{parent_pid}'. "
                f"Please check the Fedora connection. Fedora error: {e}",
            ) from e
        if policy is None:
            raise DatastreamError(
                "RELS-EXT",
                f"Parent object '{parent_pid}' has no {collections.policy_dsid} datastream",
            )

        obj.add_relationship(IS_MEMBER_OF_COLLECTION, collection)
        record.collection = collection
        logger.info(f"[RELS-EXT] Adding to collection {collection} (policy from {parent_pid})")

        copy = self.repository.construct_datastream(policy.dsid, "X")
        copy.label = policy.label or "XACML Policy Stream"
        copy.mime_type = policy.mime_type
        copy.set_content_from_string(policy.read_bytes().decode("utf-8"))
        return copy

    def _deposit(
        self, record: SubmissionRecord, obj: RepositoryObject, ds: Datastream, name: str
    ) -> None:
        try:
            self.repository.deposit_datastream(obj, ds)
        except ClientError as e:
            raise DatastreamError(name, f"{name} datastream ingest failed: {e}") from e
        record.datastreams_created.append(name)
        logger.info(f"[{name}] Ingested datastream.")

    def _file_datastream(
        self,
        dsid: str,
        path: Path,
        label: str,
        mime_type: str,
        control_group: str = "M",
        checksum: bool = False,
        inactive: bool = False,
    ) -> Datastream:
        if not path.is_file():
            raise CriticalError(f"Could not find file {path.name}")
        ds = self.repository.construct_datastream(dsid, control_group)
        ds.label = label
        ds.mime_type = mime_type
        if checksum:
            ds.checksum_type = CHECKSUM_TYPE
        if inactive:
            ds.state = "I"
        ds.set_content_from_file(path)
        logger.info(f"[{dsid}] Selected file {path.name}")
        return ds

    def _build_mods(self, record: SubmissionRecord) -> Datastream:
        return self._file_datastream(
            "MODS",
            record.path(record.mods_filename),
            "MODS Record",
            "application/xml",
            control_group="X",
        )

    def _build_archive(self, record: SubmissionRecord) -> Datastream:
        original = Path(record.primary_metadata)
        return self._file_datastream(
            "ARCHIVE",
            record.path(record.primary_metadata),
            original.stem,
            "application/xml",
            control_group="X",
            checksum=True,
            inactive=True,
        )

    def _build_archive_pdf(self, record: SubmissionRecord) -> Datastream:
        return self._file_datastream(
            "ARCHIVE-PDF",
            record.path(record.primary_document),
            "ARCHIVE-PDF Datastream",
            "application/pdf",
            checksum=True,
            inactive=True,
        )

    def _build_pdf(self, record: SubmissionRecord) -> Datastream:
        path = self.pdf_transformer.transform(record)
        return self._file_datastream(
            "PDF", path, "PDF Datastream", "application/pdf", checksum=True
        )

    def _build_full_text(self, record: SubmissionRecord) -> Datastream:
        path = self.text_transformer.transform(record)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise CriticalError(f"Could not read in file: {path}") from e

        ds = self.repository.construct_datastream("FULL_TEXT")
        ds.label = "FULL_TEXT"
        ds.mime_type = "text/plain"
        ds.set_content_from_string(text)
        return ds

    def _build_thumbnail(self, record: SubmissionRecord) -> Datastream:
        path = self.thumbnail_transformer.transform(record)
        return self._file_datastream("TN", path, "TN", "image/jpeg")

    def _build_preview(self, record: SubmissionRecord) -> Datastream:
        path = self.preview_transformer.transform(record)
        return self._file_datastream("PREVIEW", path, "PREVIEW", "image/jpeg")

    def _build_rels_int(self, record: SubmissionRecord) -> Datastream | None:
        template_name = relationship_template(record)
        if template_name is None:
            logger.info(
                "[RELS-INT] Open access without an embargo, no relationship descriptor needed."
            )
            return None

        template = self.settings.script.templates_dir / template_name
        try:
            content = template.read_text(encoding="utf-8")
        except OSError as e:
            raise CriticalError(f"Could not read in file: {template}") from e

        content = content.replace(PID_TOKEN, record.pid)
        if template_name == EMBARGO_TEMPLATE:
            content = content.replace(EMBARGO_TOKEN, record.embargo or "")
        logger.info(f"[RELS-INT] Read in {template_name}")

        ds = self.repository.construct_datastream("RELS-INT", "X")
        ds.label = "Fedora Relationship Metadata"
        ds.mime_type = "application/rdf+xml"
        ds.set_content_from_string(content)
        return ds
