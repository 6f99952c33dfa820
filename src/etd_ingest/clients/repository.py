"""Repository capability used by the record pipeline.

Objects are assembled in memory (see ``schemas.repository``) and only
reach the repository when ``deposit_object`` is called. Datastreams
deposited on a new object are attached locally and sent with the object.
"""

from abc import ABC, abstractmethod

from schemas.repository import ControlGroup, Datastream, RepositoryObject

from .exceptions import DatastreamExistsError


class Repository(ABC):
    """Abstract base class for digital object repositories."""

    @abstractmethod
    def allocate_id(self, namespace: str) -> str:
        """Reserve a new persistent identifier in *namespace*."""
        pass

    @abstractmethod
    def get_object(self, pid: str) -> RepositoryObject:
        """Load an existing object.

        Raises:
            NotFoundError: If no object with *pid* exists
        """
        pass

    @abstractmethod
    def deposit_object(self, obj: RepositoryObject) -> RepositoryObject:
        """Create *obj* in the repository with all attached datastreams."""
        pass

    @abstractmethod
    def get_datastream(self, pid: str, dsid: str) -> Datastream | None:
        """Load a datastream with its content, or None when absent."""
        pass

    def construct_object(self, pid: str) -> RepositoryObject:
        return RepositoryObject(pid=pid)

    def construct_datastream(
        self, dsid: str, control_group: ControlGroup = "M"
    ) -> Datastream:
        return Datastream(dsid=dsid, control_group=control_group)

    def deposit_datastream(self, obj: RepositoryObject, ds: Datastream) -> bool:
        """Attach *ds* to *obj*.

        Raises:
            DatastreamExistsError: If *obj* already has a datastream with that id
        """
        if obj.has_datastream(ds.dsid):
            raise DatastreamExistsError(obj.pid, ds.dsid)
        obj.datastreams[ds.dsid] = ds
        return True
