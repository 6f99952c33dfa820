"""Image Transformer for generating JPEG thumbnails and previews of an ETD.

Rasterizes the first page of the record's PDF with PyMuPDF, scaled to fit
a bounding box.
"""

import logging
from pathlib import Path

import fitz  # PyMuPDF

from etd_ingest.exceptions import CriticalError
from schemas.submission import SubmissionRecord

from .transformer import DerivativeTransformer

logger = logging.getLogger(__name__)


class ImageTransformer(DerivativeTransformer):
    """Render the first page of the ETD to a JPEG.

    The page is scaled to fit inside ``size`` keeping its aspect ratio and
    rendered as RGB without an alpha channel, so transparent areas come out
    white.

    Attributes:
        size: Bounding box (width, height) in pixels
        filename: Output file name within the working directory
        quality: JPEG quality
    """

    def __init__(self, size: tuple[int, int], filename: str, quality: int = 75) -> None:
        self.size = size
        self.filename = filename
        self.quality = quality

    def transform(self, record: SubmissionRecord) -> Path:
        pdf_path = record.path(record.primary_document)
        output = record.path(self.filename)

        try:
            with fitz.open(str(pdf_path)) as doc:
                if len(doc) == 0:
                    raise CriticalError(f"{record.primary_document} has no pages")
                page = doc[0]
                scale = self._scale(page.rect)
                pix = page.get_pixmap(
                    matrix=fitz.Matrix(scale, scale),
                    colorspace=fitz.csRGB,
                    alpha=False,
                )
                pix.save(str(output), jpg_quality=self.quality)
        except (RuntimeError, ValueError, OSError) as e:
            raise CriticalError(f"Could not render {self.filename}: {e}") from e

        logger.debug(f"Wrote {self.filename} ({pix.width}x{pix.height}) for {record.name}")
        return output

    def _scale(self, rect: fitz.Rect) -> float:
        width, height = self.size
        return min(width / rect.width, height / rect.height)
