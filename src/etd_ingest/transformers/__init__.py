"""Transformers for deriving metadata and derivatives from submissions."""

from .commands import CommandResult, CommandRunner
from .image_transformer import ImageTransformer
from .metadata_transformer import MetadataTransformer, normalize_string
from .pdf_transformer import PDFTransformer
from .text_transformer import TextTransformer, sanitize_text
from .transformer import DerivativeTransformer, RecordTransformer

__all__ = [
    "RecordTransformer",
    "DerivativeTransformer",
    "CommandRunner",
    "CommandResult",
    "MetadataTransformer",
    "PDFTransformer",
    "TextTransformer",
    "ImageTransformer",
    "normalize_string",
    "sanitize_text",
]
