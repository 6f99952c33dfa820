"""Base classes for transformers.

Transformers turn submission content into what the repository needs.
There are two types:

- RecordTransformer: Derives metadata for a whole record (e.g., MetadataTransformer)
- DerivativeTransformer: Writes one derivative file for a record (e.g., ImageTransformer)
"""

from abc import ABC, abstractmethod
from pathlib import Path

from schemas.submission import SubmissionRecord


class RecordTransformer(ABC):
    """Abstract base class for record-level transformers.

    RecordTransformers read the extracted submission and update the record
    in place.
    """

    @abstractmethod
    def transform(self, record: SubmissionRecord) -> bool:
        """Transform the record.

        Args:
            record: The record to update

        Returns:
            True on success, False when the step does not apply to the record

        Raises:
            CriticalError: If the record cannot be transformed
        """
        pass


class DerivativeTransformer(ABC):
    """Abstract base class for derivative transformers.

    DerivativeTransformers write a single file into the record's working
    directory and return its path.
    """

    @abstractmethod
    def transform(self, record: SubmissionRecord) -> Path:
        """Write the derivative for a record.

        Args:
            record: A processed record (author-named files exist)

        Returns:
            Path of the derivative file

        Raises:
            CriticalError: If the derivative cannot be produced
        """
        pass
