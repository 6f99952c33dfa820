"""PDF Transformer for building the access copy of an ETD.

Renders a splash page from the record's MODS with Apache FOP and puts it in
front of the ETD using PyMuPDF.
"""

import logging
import shutil
from pathlib import Path

import fitz  # PyMuPDF

from etd_ingest.exceptions import CriticalError
from schemas.submission import SubmissionRecord

from .commands import CommandRunner
from .transformer import DerivativeTransformer

logger = logging.getLogger(__name__)

SPLASH_FILENAME = "splash.pdf"
CONCATTED_FILENAME = "concatted.pdf"


class PDFTransformer(DerivativeTransformer):
    """Build ``concatted.pdf``: the splash page followed by the ETD.

    The PDFTransformer:
    1. Runs ``fop [-c config] -xml <mods> -xsl <splash.xsl> -pdf splash.pdf``
    2. Merges splash.pdf and the ETD PDF into concatted.pdf, or copies the
       ETD PDF unchanged when merging is turned off

    Attributes:
        splash_stylesheet: XSL-FO stylesheet that renders the splash page
        runner: CommandRunner used to invoke FOP
        fop: FOP executable
        fop_config: Optional FOP configuration file
        merge_splash: Attach the splash page (False keeps a plain copy)
    """

    def __init__(
        self,
        splash_stylesheet: Path,
        runner: CommandRunner,
        fop: str = "fop",
        fop_config: Path | None = None,
        merge_splash: bool = True,
    ):
        self.splash_stylesheet = splash_stylesheet
        self.runner = runner
        self.fop = fop
        self.fop_config = fop_config
        self.merge_splash = merge_splash

    def transform(self, record: SubmissionRecord) -> Path:
        splash = self.render_splash(record)
        output = record.path(CONCATTED_FILENAME)
        document = record.path(record.primary_document)

        if self.merge_splash:
            self._merge(splash, document, output)
            logger.info(f"Attached splash page to {record.primary_document}")
        else:
            try:
                shutil.copyfile(document, output)
            except OSError as e:
                raise CriticalError(f"Could not copy {document.name}: {e}") from e
            logger.warning(
                "Splash page merging is turned off, the ETD PDF is used unchanged"
            )
        return output

    def render_splash(self, record: SubmissionRecord) -> Path:
        """Render the splash page PDF from the record's MODS."""
        output = record.path(SPLASH_FILENAME)
        args = [self.fop]
        if self.fop_config:
            args += ["-c", self.fop_config]
        args += [
            "-xml", record.path(record.mods_filename),
            "-xsl", self.splash_stylesheet,
            "-pdf", output,
        ]

        result = self.runner.run(args, cwd=record.working_dir)
        if not result.ok or not output.exists():
            detail = (result.stderr or result.stdout).strip()[:500]
            raise CriticalError(f"PDF splash page creation failed. {detail}".strip())

        record.splash_filename = SPLASH_FILENAME
        logger.info(f"Rendered splash page for {record.name}")
        return output

    def _merge(self, splash: Path, document: Path, output: Path) -> None:
        merged = fitz.open()
        try:
            for source in (splash, document):
                with fitz.open(str(source)) as doc:
                    merged.insert_pdf(doc)
            merged.save(str(output))
        except (RuntimeError, ValueError, OSError) as e:
            raise CriticalError(f"Could not attach splash page: {e}") from e
        finally:
            merged.close()
