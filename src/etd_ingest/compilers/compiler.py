"""Base class for repository object compilers."""

from abc import ABC, abstractmethod

from schemas.repository import RepositoryObject
from schemas.submission import SubmissionRecord


class Compiler(ABC):
    """Abstract base class for repository object compilers.

    Compilers assemble a processed record into a repository object with all
    of its datastreams, ready for deposit.
    """

    @abstractmethod
    def compile(self, record: SubmissionRecord) -> RepositoryObject:
        """Compile a repository object for the record.

        Args:
            record: A record whose metadata has been derived

        Returns:
            The assembled RepositoryObject (not yet deposited)
        """
        pass
