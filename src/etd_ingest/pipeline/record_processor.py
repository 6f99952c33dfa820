"""Record processor: the per-archive state machine.

    scanned → downloaded → success → processed → (datastreams) → ingested
                              ↘ skipped (supplemental files, terminal)
    any step ↘ failed (terminal)

Each step raises CriticalError on failure after recording it on the record.
``run`` executes the steps in order and stops at the first step that fails
or does not apply.
"""

import logging
import shutil

from etd_ingest.aggregators import ArchiveExtractor
from etd_ingest.clients.exceptions import ClientError
from etd_ingest.clients.repository import Repository
from etd_ingest.clients.transport import Transport
from etd_ingest.compilers import Compiler, DatastreamCompiler
from etd_ingest.config import Settings
from etd_ingest.exceptions import ConfigurationError, CriticalError, DatastreamError
from etd_ingest.transformers import MetadataTransformer, RecordTransformer
from schemas.repository import RepositoryObject
from schemas.submission import SubmissionRecord

logger = logging.getLogger(__name__)


class RecordProcessor:
    """Run one SubmissionRecord through download, extraction, metadata
    derivation, datastream construction and deposit.

    Collaborators default to ones built from ``settings``; the orchestrator
    passes shared instances so stylesheets are loaded once per batch.

    Attributes:
        record: The record being processed
        settings: Run settings
        transport: Transport the archive is fetched from
        repository: Repository the object is deposited into
        repository_object: Object assembled by generate_datastreams
    """

    def __init__(
        self,
        record: SubmissionRecord,
        settings: Settings,
        transport: Transport,
        repository: Repository,
        extractor: ArchiveExtractor | None = None,
        metadata_transformer: RecordTransformer | None = None,
        compiler: Compiler | None = None,
    ):
        self.record = record
        self.settings = settings
        self.transport = transport
        self.repository = repository
        self.extractor = extractor or ArchiveExtractor(marker=settings.script.marker)
        self.metadata_transformer = metadata_transformer or MetadataTransformer(
            settings.xslt,
            repository,
            namespace=settings.fedora.namespace,
            debug=settings.debug,
        )
        self.compiler = compiler or DatastreamCompiler(repository, settings)
        self.repository_object: RepositoryObject | None = None

    @property
    def debug(self) -> bool:
        return self.settings.debug

    def run(self) -> SubmissionRecord:
        """Process the record from download through deposit.

        Critical errors end processing of this record only; they are recorded
        on the record and not raised.

        Raises:
            ConfigurationError: If settings make every record fail the same way
        """
        logger.info(f"Processing {self.record.name}")
        steps = [
            self.download,
            self.parse,
            self.process,
            self.generate_datastreams,
            self.ingest,
        ]
        for step in steps:
            try:
                if not step():
                    break
            except ConfigurationError:
                raise
            except CriticalError:
                break

        logger.info(f"Finished {self.record.name} with status {self.record.status}")
        return self.record

    def _fail(self, error: CriticalError) -> None:
        if isinstance(error, DatastreamError):
            message = str(error)
        else:
            message = f"ERROR: {error.message}"
        self.record.critical_errors.append(message)
        self.record.status = "failed"
        logger.error(f"{self.record.name}: {message}")

    def _can_continue(self) -> bool:
        return self.record.status not in ("failed", "skipped")

    def download(self) -> bool:
        """Fetch the archive into a freshly created working directory."""
        record = self.record
        try:
            if record.working_dir.exists():
                shutil.rmtree(record.working_dir)
                logger.debug(f"Removed existing working directory {record.working_dir}")
            record.working_dir.mkdir(parents=True)
        except OSError as e:
            error = CriticalError(f"Failed to create local working directory: {record.working_dir}. {e}")
            self._fail(error)
            raise error from e

        if not self.transport.fetch(record.archive_path, record.remote_path):
            error = CriticalError(
                f"Failed to download ETD zip file from FTP server: {record.remote_path} "
                f"to working dir: {record.archive_path}"
            )
            self._fail(error)
            raise error

        record.status = "downloaded"
        logger.info(f"Downloaded {record.remote_path}")
        return True

    def parse(self) -> bool:
        """Extract and classify the archive. False when it is skipped."""
        if not self._can_continue():
            return False
        try:
            return self.extractor.extract(self.record)
        except CriticalError as e:
            self._fail(e)
            raise

    def process(self) -> bool:
        """Derive metadata. False when the record is skipped."""
        if not self._can_continue():
            return False
        try:
            return self.metadata_transformer.transform(self.record)
        except CriticalError as e:
            self._fail(e)
            raise

    def generate_datastreams(self) -> bool:
        """Build every datastream. False when the record is skipped."""
        if not self._can_continue():
            return False
        try:
            self.repository_object = self.compiler.compile(self.record)
        except CriticalError as e:
            self._fail(e)
            raise
        return True

    def ingest(self) -> bool:
        """Deposit the assembled object. Simulated in debug mode."""
        if not self._can_continue():
            logger.info(f"Not ingesting {self.record.name} ({self.record.status})")
            return False

        record = self.record
        if self.repository_object is None:
            error = CriticalError("No repository object was built for this record.")
            self._fail(error)
            raise error

        if self.debug:
            logger.info(f"DEBUG: Not ingesting {record.pid} into Fedora")
        else:
            try:
                self.repository.deposit_object(self.repository_object)
            except (ClientError, OSError) as e:
                error = CriticalError(f"Could not ingest Fedora object {record.pid}: {e}")
                self._fail(error)
                raise error from e
            logger.info(f"Ingested Fedora object {record.pid}")

        record.ingested = True
        record.status = "ingested"
        record.record_url = f"{self.settings.record_path}{record.pid}"
        return True
