"""Submission record schema.

One SubmissionRecord is created per ETD zip archive found on the FTP
server. It is mutated only by the RecordProcessor and its delegated steps
while the archive is processed, then summarised in the batch report.

Working directory layout after a successful run:
    {localdir}/{name}/
    ├── {name}.zip              # downloaded archive
    ├── {original}_0016.xml     # ProQuest submission metadata (ARCHIVE)
    ├── {Author-Name}.pdf       # renamed primary document (ARCHIVE-PDF)
    ├── {Author-Name}.xml       # transformed MODS (MODS)
    ├── {Author-Name}.txt       # extracted full text (FULL_TEXT)
    ├── splash.pdf
    ├── concatted.pdf           # splash page + document (PDF)
    ├── fulltext.txt
    ├── thumbnail.jpg           # TN
    └── preview.jpg             # PREVIEW
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel

RecordStatus = Literal[
    "scanned",
    "downloaded",
    "success",
    "skipped",
    "processed",
    "ingested",
    "failed",
]

INDEFINITE_EMBARGO = "indefinite"


class SubmissionRecord(BaseModel):
    """State of a single ETD submission moving through the pipeline.

    Attributes:
        name: Short name, the zip file name without its extension
        zip_filename: Name of the zip archive on the FTP server
        working_dir: Local directory owned by this record
        remote_path: Path of the archive on the FTP server
        primary_document: Relative path of the ETD PDF within working_dir
        primary_metadata: Relative path of the ProQuest XML within working_dir
        supplements: Relative paths of supplemental files
        has_supplements: True when any supplemental file was found
        zip_contents: Every entry listed after extraction
        oa_available: True when the author agreed to open access
        oa_value: Raw open access indicator ("0" when unavailable)
        has_embargo: True when release of the record is delayed
        embargo: Embargo timestamp, "indefinite", or None
        pid: Persistent identifier allocated for the record
        label: Display label (title) derived from MODS
        author: Author as found in MODS
        author_normalized: Author reduced to [A-Za-z0-9-], the file base name
        mods_filename: File name of the transformed MODS document
        fulltext_filename: File name of the extracted full text
        splash_filename: File name of the rendered splash page
        collection: Collection the record is filed under
        status: Lifecycle status
        noncritical_errors: Problems recorded without halting processing
        critical_errors: Problems that halted processing
        datastreams_created: Datastream ids built, in build order
        ingested: True once the object was deposited
        record_url: Public URL of the deposited record
        postprocess_location: Where the archive was moved on the FTP server
    """

    name: str
    zip_filename: str
    working_dir: Path
    remote_path: str = ""

    primary_document: str = ""
    primary_metadata: str = ""
    supplements: list[str] = []
    has_supplements: bool = False
    zip_contents: list[str] = []

    oa_available: bool = False
    oa_value: str = "0"
    has_embargo: bool = False
    embargo: str | None = None
    pid: str = ""
    label: str = ""
    author: str = ""
    author_normalized: str = ""
    mods_filename: str = ""
    fulltext_filename: str = ""
    splash_filename: str = ""
    collection: str = ""

    status: RecordStatus = "scanned"
    noncritical_errors: list[str] = []
    critical_errors: list[str] = []
    datastreams_created: list[str] = []
    ingested: bool = False
    record_url: str = ""
    postprocess_location: str = ""

    model_config = {"extra": "allow", "validate_assignment": True}

    @property
    def archive_path(self) -> Path:
        """Local path of the downloaded zip archive."""
        return self.working_dir / self.zip_filename

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    def path(self, relative: str) -> Path:
        """Resolve a file name relative to the working directory."""
        return self.working_dir / relative
