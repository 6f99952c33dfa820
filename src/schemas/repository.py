"""Repository object schemas.

In-memory description of a Fedora object and its datastreams while the
object is being assembled. Nothing here talks to the repository; see
``etd_ingest.clients.repository`` for that.
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel

ControlGroup = Literal["X", "M", "E", "R"]

FEDORA_MODEL_NAMESPACE = "info:fedora/fedora-system:def/model#"
FEDORA_RELS_EXT_NAMESPACE = "info:fedora/fedora-system:def/relations-external#"


class Datastream(BaseModel):
    """A single named content part of a repository object.

    Content comes either from a local file (``content_path``) or from an
    in-memory string (``content``), never both.

    Attributes:
        dsid: Datastream identifier (e.g. "MODS", "PDF")
        control_group: X (inline XML), M (managed), E or R (external)
        label: Human-readable label
        mime_type: MIME type of the content
        checksum_type: Checksum algorithm the repository should apply
        state: A (active), I (inactive) or D (deleted)
        content_path: Local file providing the content
        content: String content
    """

    dsid: str
    control_group: ControlGroup = "M"
    label: str = ""
    mime_type: str = "application/octet-stream"
    checksum_type: str | None = None
    state: Literal["A", "I", "D"] | None = None
    content_path: Path | None = None
    content: str | None = None

    def set_content_from_file(self, path: Path) -> None:
        self.content_path = Path(path)
        self.content = None

    def set_content_from_string(self, content: str) -> None:
        self.content = content
        self.content_path = None

    def read_bytes(self) -> bytes:
        """Return the datastream content as bytes."""
        if self.content_path is not None:
            return self.content_path.read_bytes()
        return (self.content or "").encode("utf-8")


class Relationship(BaseModel):
    """A RELS-EXT triple with the object as its subject."""

    predicate: str
    object: str
    namespace: str = FEDORA_RELS_EXT_NAMESPACE


class RepositoryObject(BaseModel):
    """A Fedora object under construction.

    Attributes:
        pid: Persistent identifier
        label: Object label (the ETD title)
        owner: Owner id recorded on the object
        state: Object state
        checksum_type: Default checksum algorithm for datastreams
        models: Content model PIDs
        relationships: RELS-EXT relationships to other objects
        datastreams: Datastreams attached so far, keyed by dsid
        is_new: True until the object has been deposited
    """

    pid: str
    label: str = ""
    owner: str = ""
    state: Literal["A", "I", "D"] = "A"
    checksum_type: str | None = None
    models: list[str] = []
    relationships: list[Relationship] = []
    datastreams: dict[str, Datastream] = {}
    is_new: bool = True

    def add_relationship(
        self, predicate: str, obj: str, namespace: str = FEDORA_RELS_EXT_NAMESPACE
    ) -> None:
        self.relationships.append(
            Relationship(predicate=predicate, object=obj, namespace=namespace)
        )

    def has_datastream(self, dsid: str) -> bool:
        return dsid in self.datastreams
