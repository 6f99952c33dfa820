"""ETD Ingest: batch-ingest ProQuest ETD packages into Fedora."""

__version__ = "0.1.0"
