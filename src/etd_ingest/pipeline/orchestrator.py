"""Batch orchestrator for an ETD ingest run.

Logs into the FTP server, creates one SubmissionRecord per archive found in
the fetch directory, runs each through a RecordProcessor, files the archives
on the FTP server afterwards and renders the status report.
"""

import logging
import posixpath
from collections.abc import Callable
from pathlib import Path

from etd_ingest.aggregators import ArchiveExtractor
from etd_ingest.clients.repository import Repository
from etd_ingest.clients.transport import Transport
from etd_ingest.compilers import DatastreamCompiler
from etd_ingest.config import Settings
from etd_ingest.exceptions import BatchError, ConfigurationError
from etd_ingest.transformers import MetadataTransformer
from schemas.submission import SubmissionRecord

from .record_processor import RecordProcessor

logger = logging.getLogger(__name__)

ProcessorFactory = Callable[[SubmissionRecord], RecordProcessor]


class Orchestrator:
    """Drive a batch of ETD archives through the record pipeline.

    Attributes:
        settings: Run settings
        transport: Transport connected to the ProQuest FTP drop
        repository: Repository records are deposited into
        log_file: Log file named at the end of the status report
        records: One record per archive, in the order they were listed
        processing_errors: Batch-level errors; any entry suppresses
            post-processing and replaces the per-record report
    """

    def __init__(
        self,
        settings: Settings,
        transport: Transport,
        repository: Repository,
        log_file: Path | None = None,
        processor_factory: ProcessorFactory | None = None,
    ):
        self.settings = settings
        self.transport = transport
        self.repository = repository
        self.log_file = log_file
        self.processor_factory = processor_factory or self._default_processor_factory()
        self.records: list[SubmissionRecord] = []
        self.processing_errors: list[str] = []

    def _default_processor_factory(self) -> ProcessorFactory:
        extractor = ArchiveExtractor(marker=self.settings.script.marker)
        metadata_transformer = MetadataTransformer(
            self.settings.xslt,
            self.repository,
            namespace=self.settings.fedora.namespace,
            debug=self.settings.debug,
        )
        compiler = DatastreamCompiler(self.repository, self.settings)

        def factory(record: SubmissionRecord) -> RecordProcessor:
            return RecordProcessor(
                record,
                self.settings,
                self.transport,
                self.repository,
                extractor=extractor,
                metadata_transformer=metadata_transformer,
                compiler=compiler,
            )

        return factory

    @property
    def debug(self) -> bool:
        return self.settings.debug

    @property
    def succeeded(self) -> bool:
        """True when no batch error occurred and no record failed."""
        if self.processing_errors:
            return False
        return not any(record.failed for record in self.records)

    def run(self, custom_regex: str | None = None) -> str:
        """Run the whole batch and return the status report.

        Batch errors are recorded in ``processing_errors`` and end the run
        early; they are never raised.
        """
        try:
            self.login()
            filenames = self.scan(custom_regex)
            self.create_records(filenames)
            self.process_all()
        except BatchError as e:
            self._batch_error(e.message)

        if not self.processing_errors:
            self.move_files()
        else:
            logger.warning("Skipping post-processing because the batch did not complete")

        return self.status_report()

    def _batch_error(self, message: str) -> None:
        self.processing_errors.append(message)
        logger.error(message)

    def login(self) -> None:
        """Log into the FTP server.

        Raises:
            BatchError: If the login fails
        """
        ftp = self.settings.ftp
        if not self.transport.login(ftp.user, ftp.password):
            raise BatchError(f"Could not log into FTP server: {ftp.server}")
        logger.info(f"Logged into FTP server {ftp.server}")

    def scan(self, custom_regex: str | None = None) -> list[str]:
        """List the ETD archives waiting in the fetch directory.

        Args:
            custom_regex: Pattern used instead of ``ftp.file_regex``

        Returns:
            Archive file names

        Raises:
            BatchError: If the working directory is unset, the fetch
                directory cannot be entered or no archives are found
        """
        ftp = self.settings.ftp
        if not ftp.localdir:
            raise BatchError("Local working directory not set.")

        if ftp.fetchdir and not self.transport.change_dir(ftp.fetchdir):
            raise BatchError(f"Could not change FTP directory: {ftp.fetchdir}")

        pattern = custom_regex or ftp.file_regex
        logger.info(f"Looking for ETD files matching {pattern}")
        filenames = [
            posixpath.basename(name)
            for name in self.transport.list_files(pattern)
            if ".zip" in name
        ]
        if not filenames:
            raise BatchError("Did not find any ETD files on the FTP server.")

        logger.info(f"Found {len(filenames)} ETD file(s)")
        return filenames

    def create_records(self, filenames: list[str]) -> list[SubmissionRecord]:
        """Create one record per archive name."""
        ftp = self.settings.ftp
        for filename in filenames:
            name = filename[:-4]
            record = SubmissionRecord(
                name=name,
                zip_filename=filename,
                working_dir=Path(ftp.localdir) / name,
                remote_path=posixpath.join(ftp.fetchdir, filename),
            )
            record.postprocess_location = record.remote_path
            self.records.append(record)
            logger.debug(f"Created record {name}")
        return self.records

    def process_all(self) -> None:
        """Run every record through the pipeline, one after another.

        A configuration error ends the batch; records after it stay
        ``scanned``. Any other unexpected error fails only its own record.
        """
        for record in self.records:
            processor = self.processor_factory(record)
            try:
                processor.run()
            except ConfigurationError as e:
                self._batch_error(e.message)
                break
            except Exception as e:
                message = f"ERROR: Unexpected error while processing {record.zip_filename}: {e}"
                record.critical_errors.append(message)
                record.status = "failed"
                logger.error(f"{record.name}: {message}")

    def _target_dir(self, record: SubmissionRecord) -> str:
        ftp = self.settings.ftp
        if record.ingested:
            return ftp.processdir
        if record.has_supplements:
            return ftp.manualdir
        return ftp.faildir

    def move_files(self) -> None:
        """File each processed archive on the FTP server by outcome.

        Archives that were never processed stay where they are. A failed move
        is a non-critical error for the record.
        """
        fetchdir = self.settings.ftp.fetchdir
        for record in self.records:
            if record.status == "scanned":
                continue

            target_dir = self._target_dir(record)
            location = posixpath.join(target_dir, record.zip_filename)

            if self.debug:
                logger.info(f"DEBUG: Not moving {record.zip_filename} to {target_dir}")
                record.postprocess_location = location
                continue

            if not self.transport.move(record.zip_filename, fetchdir, target_dir):
                message = f"Could not move ETD file to '{target_dir}' FTP directory."
                record.noncritical_errors.append(message)
                logger.warning(f"{record.name}: {message}")
                continue

            record.postprocess_location = location
            logger.info(f"Moved {record.zip_filename} to {location}")

    def status_report(self) -> str:
        """Render the end-of-run report."""
        lines = ["\n"]

        if self.processing_errors:
            lines.append("This script failed to run because of the following issue(s):\n")
            lines.extend(f"  • {error}\n" for error in self.processing_errors)
        else:
            lines.append(f"There were {len(self.records)} ETD(s) processed.\n")
            for index, record in enumerate(self.records, start=1):
                lines.extend(self._record_report(index, record))

        lines.append("\nThe full log file can be found at:\n")
        lines.append(f"{self.log_file or 'console only'}.\n")
        return "".join(lines)

    def _record_report(self, index: int, record: SubmissionRecord) -> list[str]:
        lines = [
            f"\n  [{index}] Zip filename:      {record.zip_filename}\n",
            f"      Status:            {record.status}\n",
            f"      Has supplements:   {_flag(record.has_supplements)}\n",
        ]

        if record.has_supplements:
            lines.append("      WARNING: This ETD contains supplemental files and was not processed.\n")
            lines.append(
                "               Please manually process the ETD zip file, "
                "which can be found here on the FTP server:\n"
            )
            lines.append(f"               {record.postprocess_location}\n")
            return lines

        if record.critical_errors:
            lines.append("      WARNING: This ETD failed to ingest because of the following reasons(s):\n")
            lines.extend(f"       • {error}\n" for error in record.critical_errors)
            return lines

        lines.append(f"      Has OA agreement:  {_flag(record.oa_available)}\n")
        lines.append(f"      Has embargo:       {_flag(record.has_embargo)}\n")
        if record.has_embargo:
            lines.append(f"      Embargo date:      {record.embargo}\n")
        lines.append(f"      PID:               {record.pid}\n")
        lines.append(f"      URL:               {record.record_url}\n")
        lines.append(f"      Author:            {record.author}\n")
        lines.append(f"      Title:             {record.label}\n")

        if record.noncritical_errors:
            lines.append(
                "      WARNING: This ETD was ingested but logged the following noncritical issues:\n"
            )
            lines.extend(f"       • {error}\n" for error in record.noncritical_errors)
        return lines


def _flag(value: bool) -> str:
    return "true" if value else "false"
