"""Aggregators for gathering submission content from archives."""

from .archive_extractor import ArchiveExtractor

__all__ = ["ArchiveExtractor"]
