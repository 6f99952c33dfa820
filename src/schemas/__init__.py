"""Schema definitions for ETD Ingest."""

from .repository import Datastream, Relationship, RepositoryObject
from .submission import INDEFINITE_EMBARGO, RecordStatus, SubmissionRecord

__all__ = [
    "Datastream",
    "INDEFINITE_EMBARGO",
    "RecordStatus",
    "Relationship",
    "RepositoryObject",
    "SubmissionRecord",
]
