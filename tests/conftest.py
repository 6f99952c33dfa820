"""Pytest fixtures for ETD Ingest tests."""

import posixpath
import shutil
import zipfile
from fnmatch import fnmatch
from pathlib import Path

import fitz  # PyMuPDF
import pytest

from etd_ingest.clients.exceptions import NotFoundError
from etd_ingest.clients.repository import Repository
from etd_ingest.clients.transport import Transport
from etd_ingest.config import TEMPLATES_DIR, Settings
from etd_ingest.transformers import CommandResult, CommandRunner
from schemas.repository import Datastream, RepositoryObject
from schemas.submission import SubmissionRecord

FIXTURES_DIR = Path(__file__).parent / "fixtures"
XSL_DIR = FIXTURES_DIR / "xsl"

ZIP_NAME = "etdadmin_upload_100000.zip"
PDF_NAME = "Foo_bc_0016D_10001.pdf"
XML_NAME = "Foo_bc_0016D_10001_DATA.xml"

POLICY_XML = '<Policy xmlns="urn:oasis:names:tc:xacml:1.0:policy" PolicyId="theses"/>'


def make_pdf_bytes(pages: list[list[str]]) -> bytes:
    """Build a minimal PDF with text.

    Args:
        pages: List of pages; each page is a list of text strings to insert.
    """
    doc = fitz.open()
    for texts in pages:
        page = doc.new_page(width=612, height=792)
        y = 100
        for text in texts:
            page.insert_text((72, y), text)
            y += 20
    data = doc.tobytes()
    doc.close()
    return data


def make_pdf(path: Path, pages: list[list[str]]) -> None:
    """Write a minimal PDF with text to *path*."""
    path.write_bytes(make_pdf_bytes(pages))


def make_submission_xml(
    title: str = "A Study of Things",
    fname: str = "Jane",
    middle: str = "Anne",
    surname: str = "O'Foo",
    acceptance: str | None = "1",
    embargo: str | None = None,
) -> str:
    """ProQuest DISS_submission document."""
    acceptance_xml = (
        f"<DISS_acceptance>{acceptance}</DISS_acceptance>" if acceptance is not None else ""
    )
    restriction_xml = (
        f'<DISS_sales_restriction code="1" remove="{embargo}"/>' if embargo else ""
    )
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<DISS_submission publishing_option="0" embargo_code="0">
  <DISS_authorship>
    <DISS_author type="primary">
      <DISS_name>
        <DISS_surname>{surname}</DISS_surname>
        <DISS_fname>{fname}</DISS_fname>
        <DISS_middle>{middle}</DISS_middle>
      </DISS_name>
    </DISS_author>
  </DISS_authorship>
  <DISS_description>
    <DISS_title>{title}</DISS_title>
  </DISS_description>
  <DISS_repository>
    {acceptance_xml}
    {restriction_xml}
  </DISS_repository>
</DISS_submission>
"""


def make_zip(path: Path, entries: dict[str, bytes | str]) -> Path:
    """Write a zip archive containing *entries* (name → content)."""
    with zipfile.ZipFile(path, "w") as zf:
        for name, content in entries.items():
            zf.writestr(name, content)
    return path


def etd_entries(**submission) -> dict[str, bytes | str]:
    """Entries of a well-formed ETD archive: one tagged PDF and one tagged XML."""
    return {
        PDF_NAME: make_pdf_bytes([["A Study of Things", "Chapter One"], ["Chapter Two"]]),
        XML_NAME: make_submission_xml(**submission),
    }


class InMemoryRepository(Repository):
    """Repository double keeping objects and datastreams in dicts."""

    def __init__(self):
        self.objects: dict[str, RepositoryObject] = {}
        self.datastreams: dict[tuple[str, str], Datastream] = {}
        self.deposited: list[RepositoryObject] = []
        self._next_id = 1

    def allocate_id(self, namespace: str) -> str:
        pid = f"{namespace}:{self._next_id}"
        self._next_id += 1
        return pid

    def get_object(self, pid: str) -> RepositoryObject:
        if pid not in self.objects:
            raise NotFoundError(f"Resource not found: {pid}")
        return self.objects[pid]

    def deposit_object(self, obj: RepositoryObject) -> RepositoryObject:
        self.objects[obj.pid] = obj
        for ds in obj.datastreams.values():
            self.datastreams[(obj.pid, ds.dsid)] = ds
        obj.is_new = False
        self.deposited.append(obj)
        return obj

    def get_datastream(self, pid: str, dsid: str) -> Datastream | None:
        return self.datastreams.get((pid, dsid))

    def add_collection(self, pid: str, policy: str | None = POLICY_XML) -> RepositoryObject:
        obj = RepositoryObject(pid=pid, label=pid, is_new=False)
        self.objects[pid] = obj
        if policy is not None:
            ds = Datastream(
                dsid="POLICY",
                control_group="X",
                label="XACML Policy Stream",
                mime_type="text/xml",
            )
            ds.set_content_from_string(policy)
            self.datastreams[(pid, "POLICY")] = ds
        return obj


class FakeTransport(Transport):
    """Transport double serving local files under remote paths."""

    def __init__(
        self,
        files: dict[str, Path] | None = None,
        login_ok: bool = True,
        change_dir_ok: bool = True,
        move_ok: bool = True,
    ):
        self.files = dict(files or {})
        self.login_ok = login_ok
        self.change_dir_ok = change_dir_ok
        self.move_ok = move_ok
        self.cwd: str | None = None
        self.fetched: list[str] = []
        self.moves: list[tuple[str, str, str]] = []
        self.closed = False

    def login(self, user: str, password: str) -> bool:
        return self.login_ok

    def list_files(self, pattern: str) -> list[str]:
        names = [posixpath.basename(path) for path in self.files]
        return sorted(name for name in names if fnmatch(name, pattern))

    def change_dir(self, path: str) -> bool:
        self.cwd = path
        return self.change_dir_ok

    def fetch(self, local_path: Path, remote_path: str) -> bool:
        source = self.files.get(remote_path)
        if source is None:
            return False
        shutil.copyfile(source, local_path)
        self.fetched.append(remote_path)
        return True

    def move(self, name: str, from_dir: str, to_dir: str) -> bool:
        self.moves.append((name, from_dir, to_dir))
        return self.move_ok

    def close(self) -> None:
        self.closed = True


class FakeCommandRunner(CommandRunner):
    """CommandRunner double standing in for FOP and pdftotext.

    ``fop`` writes a one-page splash PDF; ``pdftotext`` writes a short text
    file. Executables named in *fail* exit with status 1.
    """

    def __init__(self, fail: tuple[str, ...] = (), text: str = "Full text\nof the ETD.\f"):
        super().__init__(timeout=5)
        self.fail = fail
        self.text = text
        self.calls: list[list[str]] = []

    def run(self, args: list, cwd: Path | None = None) -> CommandResult:
        args = [str(a) for a in args]
        self.calls.append(args)
        tool = Path(args[0]).name
        if tool in self.fail:
            return CommandResult(args=args, returncode=1, stderr=f"{tool} failed")

        if tool == "fop":
            make_pdf(Path(args[args.index("-pdf") + 1]), [["Splash page"]])
        elif tool == "pdftotext":
            Path(args[2]).write_text(self.text, encoding="utf-8")
        return CommandResult(args=args, returncode=0)


@pytest.fixture
def settings_data(tmp_path):
    """Raw settings mapping, as it would be read from YAML."""
    return {
        "ftp": {
            "server": "ftp.example.edu",
            "user": "etd",
            "password": "secret",
            "fetchdir": "/etds/",
            "localdir": str(tmp_path / "work"),
            "processdir": "/etds/processed/",
            "faildir": "/etds/failed/",
            "manualdir": "/etds/manual/",
        },
        "fedora": {
            "url": "http://fedora.example.edu:8080/fedora",
            "username": "fedoraAdmin",
            "password": "secret",
            "namespace": "bc-ir",
        },
        "islandora": {
            "root_url": "https://dlib.example.edu",
            "path": "/islandora/object/",
        },
        "xslt": {
            "xslt": str(XSL_DIR / "proquest_mods.xsl"),
            "label": str(XSL_DIR / "fedora_label.xsl"),
            "splash": str(XSL_DIR / "splash.xsl"),
            "oa": "//DISS_repository/DISS_acceptance",
            "embargo": "//DISS_sales_restriction/@remove",
            "creator": "//mods:name[mods:role/mods:roleTerm='author']/mods:displayForm",
        },
        "script": {"templates_dir": str(TEMPLATES_DIR)},
        "notify": {"email": "etd-admin@example.edu"},
    }


@pytest.fixture
def settings(settings_data):
    return Settings.model_validate(settings_data)


@pytest.fixture
def repository(settings):
    repo = InMemoryRepository()
    repo.add_collection(settings.collections.root_pid)
    repo.add_collection(settings.collections.root_pid_embargo)
    return repo


@pytest.fixture
def runner():
    return FakeCommandRunner()


@pytest.fixture
def archive_dir(tmp_path):
    path = tmp_path / "ftp"
    path.mkdir()
    return path


@pytest.fixture
def make_record(settings):
    """Factory for a record whose working directory already holds *entries*
    as its zip archive."""

    def _make(entries: dict[str, bytes | str] | None = None, zip_name: str = ZIP_NAME):
        name = zip_name[:-4]
        working_dir = Path(settings.ftp.localdir) / name
        working_dir.mkdir(parents=True, exist_ok=True)
        record = SubmissionRecord(
            name=name,
            zip_filename=zip_name,
            working_dir=working_dir,
            remote_path=f"/etds/{zip_name}",
        )
        if entries is not None:
            make_zip(record.archive_path, entries)
        return record

    return _make
