"""Fedora Commons 3 client.

Implements the Repository capability over the Fedora 3 REST API:

    POST /objects/nextPID                      allocate a PID
    GET  /objects/{pid}?format=xml             object profile
    POST /objects/{pid}                        create an object
    POST /objects/{pid}/datastreams/{dsid}     add a datastream
    GET  /objects/{pid}/datastreams/{dsid}     datastream profile
    GET  /objects/{pid}/datastreams/{dsid}/content
    DELETE /objects/{pid}                     purge an object
"""

import logging
from urllib.parse import quote

from lxml import etree

from schemas.repository import (
    FEDORA_MODEL_NAMESPACE,
    FEDORA_RELS_EXT_NAMESPACE,
    Datastream,
    RepositoryObject,
)

from .client import Client
from .exceptions import ClientError, NotFoundError, ValidationError
from .repository import Repository

logger = logging.getLogger(__name__)

RDF_NS = "http://www.w3.org/1999/02/22-rdf-syntax-ns#"


def _escape(value: str) -> str:
    return quote(value, safe=":")


def _local_text(root: etree._Element, name: str) -> str | None:
    """First text of an element with local name *name*, ignoring namespaces."""
    found = root.xpath(f"//*[local-name()='{name}']/text()")
    return str(found[0]).strip() if found else None


def _parse(content: bytes, what: str) -> etree._Element:
    try:
        return etree.fromstring(content)
    except etree.XMLSyntaxError as e:
        raise ValidationError(f"Could not parse {what}: {e}", errors=[str(e)]) from e


class FedoraClient(Client, Repository):
    """Client for a Fedora 3 repository.

    Example:
        config = {
            "base_url": "http://localhost:8080/fedora",
            "username": "fedoraAdmin",
            "password": "secret",
        }
        with FedoraClient(config) as fedora:
            pid = fedora.allocate_id("bc-ir")
    """

    def allocate_id(self, namespace: str) -> str:
        response = self.post(
            "/objects/nextPID",
            params={"namespace": namespace, "numPIDs": 1, "format": "xml"},
        )
        root = _parse(response.content, "nextPID response")
        pid = _local_text(root, "pid")
        if not pid:
            raise ValidationError("nextPID response contained no PID")
        logger.debug(f"Allocated PID {pid}")
        return pid

    def get_object(self, pid: str) -> RepositoryObject:
        response = self.get(f"/objects/{_escape(pid)}", params={"format": "xml"})
        root = _parse(response.content, f"object profile for {pid}")
        models = [
            str(m).strip().removeprefix("info:fedora/")
            for m in root.xpath("//*[local-name()='model']/text()")
        ]
        return RepositoryObject(
            pid=pid,
            label=_local_text(root, "objLabel") or "",
            owner=_local_text(root, "objOwnerId") or "",
            state=_local_text(root, "objState") or "A",
            models=models,
            is_new=False,
        )

    def get_datastream(self, pid: str, dsid: str) -> Datastream | None:
        base = f"/objects/{_escape(pid)}/datastreams/{_escape(dsid)}"
        try:
            profile = self.get(base, params={"format": "xml"})
            content = self.get(f"{base}/content")
        except NotFoundError:
            return None

        root = _parse(profile.content, f"datastream profile for {pid}/{dsid}")
        ds = Datastream(
            dsid=dsid,
            control_group=_local_text(root, "dsControlGroup") or "M",
            label=_local_text(root, "dsLabel") or "",
            mime_type=_local_text(root, "dsMIME") or "application/octet-stream",
            state=_local_text(root, "dsState"),
        )
        ds.set_content_from_string(content.text)
        return ds

    def deposit_object(self, obj: RepositoryObject) -> RepositoryObject:
        """Create the object, then send its datastreams and RELS-EXT.

        If any datastream cannot be added, the object is purged again so no
        partially populated object stays behind, and the error is re-raised.
        """
        params = {"label": obj.label, "state": obj.state}
        if obj.owner:
            params["ownerId"] = obj.owner
        self.post(f"/objects/{_escape(obj.pid)}", params=params)
        logger.info(f"Created Fedora object {obj.pid}")

        try:
            for ds in obj.datastreams.values():
                self._add_datastream(obj, ds)

            if obj.models or obj.relationships:
                rels = Datastream(
                    dsid="RELS-EXT",
                    control_group="X",
                    label="Fedora Object to Object Relationship Metadata.",
                    mime_type="application/rdf+xml",
                )
                rels.set_content_from_string(self.build_rels_ext(obj))
                self._add_datastream(obj, rels)
        except (ClientError, OSError):
            self.purge_object(obj.pid)
            raise

        obj.is_new = False
        return obj

    def purge_object(self, pid: str) -> bool:
        """Delete an object. Failures are logged, not raised."""
        try:
            self.delete(f"/objects/{_escape(pid)}")
        except ClientError as e:
            logger.error(f"Could not purge partially ingested object {pid}: {e}")
            return False
        logger.warning(f"Purged partially ingested object {pid}")
        return True

    def _add_datastream(self, obj: RepositoryObject, ds: Datastream) -> None:
        params = {
            "controlGroup": ds.control_group,
            "dsLabel": ds.label,
            "mimeType": ds.mime_type,
        }
        checksum_type = ds.checksum_type or obj.checksum_type
        if checksum_type:
            params["checksumType"] = checksum_type
        if ds.state:
            params["dsState"] = ds.state

        self.post(
            f"/objects/{_escape(obj.pid)}/datastreams/{_escape(ds.dsid)}",
            params=params,
            content=ds.read_bytes(),
            headers={"Content-Type": ds.mime_type},
        )
        logger.debug(f"Added datastream {ds.dsid} to {obj.pid}")

    def build_rels_ext(self, obj: RepositoryObject) -> str:
        """Serialize the object's content models and relationships as RDF/XML."""
        nsmap = {
            "rdf": RDF_NS,
            "fedora": FEDORA_RELS_EXT_NAMESPACE,
            "fedora-model": FEDORA_MODEL_NAMESPACE,
        }
        rdf = etree.Element(f"{{{RDF_NS}}}RDF", nsmap=nsmap)
        description = etree.SubElement(rdf, f"{{{RDF_NS}}}Description")
        description.set(f"{{{RDF_NS}}}about", f"info:fedora/{obj.pid}")

        for model in obj.models:
            el = etree.SubElement(description, f"{{{FEDORA_MODEL_NAMESPACE}}}hasModel")
            el.set(f"{{{RDF_NS}}}resource", f"info:fedora/{model}")

        for rel in obj.relationships:
            el = etree.SubElement(description, f"{{{rel.namespace}}}{rel.predicate}")
            el.set(f"{{{RDF_NS}}}resource", f"info:fedora/{rel.object}")

        return etree.tostring(rdf, encoding="unicode", pretty_print=True)
