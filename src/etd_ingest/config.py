"""Settings for an ETD ingest run.

Settings are read once from a YAML file and validated into frozen pydantic
models. Components receive the resolved ``Settings`` object (or one of its
sections) at construction and never read configuration on their own.

Example layout::

    ftp:
      server: ftp.example.edu
      user: etd
      password: secret
      fetchdir: /etds/
      localdir: /tmp/processing/
    fedora:
      url: http://localhost:8080/fedora
      username: fedoraAdmin
      password: secret
    xslt:
      xslt: /opt/etd/xsl/proquest_to_mods.xsl
      label: /opt/etd/xsl/mods_to_label.xsl
      splash: /opt/etd/xsl/splash.xsl
      oa: //DISS_access_option
      embargo: //DISS_sales_restriction/@remove
      creator: //mods:name[mods:role/mods:roleTerm='author']/mods:displayForm
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, ValidationError

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# RELS-INT templates ship as package data next to this module
TEMPLATES_DIR = Path(__file__).parent / "resources" / "templates"

MODS_NAMESPACE = "http://www.loc.gov/mods/v3"


class FTPSettings(BaseModel):
    """Connection and directory layout of the ProQuest FTP drop."""

    server: str
    port: int = 21
    user: str = ""
    password: str = ""
    timeout: float = 150
    fetchdir: str = ""
    localdir: str = ""
    processdir: str = ""
    faildir: str = ""
    manualdir: str = ""
    file_regex: str = "*.zip"

    model_config = {"frozen": True}


class FedoraSettings(BaseModel):
    """Fedora 3 REST endpoint and object defaults."""

    url: str
    username: str = ""
    password: str = ""
    namespace: str = "bc-ir"
    timeout: float = 30
    retry_attempts: int = 3
    owner: str = "fedoraAdmin"
    content_model: str = "bc-ir:graduateETDCModel"

    model_config = {"frozen": True}


class IslandoraSettings(BaseModel):
    """Public front end used to build record URLs."""

    root_url: str = ""
    path: str = "/islandora/object/"

    model_config = {"frozen": True}


class CollectionSettings(BaseModel):
    """Parent objects and collections records are filed under."""

    root_pid: str = "bc-ir:GraduateThesesCollection"
    root_pid_embargo: str = "bc-ir:GraduateThesesCollectionRestricted"
    theses: str = "bc-ir:GraduateThesesCollection"
    theses_restricted: str = "bc-ir:GraduateThesesCollectionRestricted"
    policy_dsid: str = "POLICY"

    model_config = {"frozen": True}


class XSLTSettings(BaseModel):
    """Stylesheets and XPath queries used to derive metadata.

    Attributes:
        xslt: ProQuest submission to MODS stylesheet
        label: MODS to display label stylesheet
        splash: MODS to XSL-FO splash page stylesheet (used by FOP)
        oa: XPath of the open access node in the submission
        embargo: XPath of the embargo date node in the submission
        creator: XPath of the author node in the MODS document
        namespaces: Prefix mapping available to all three queries
    """

    xslt: Path
    label: Path
    splash: Path
    oa: str
    embargo: str
    creator: str
    namespaces: dict[str, str] = {"mods": MODS_NAMESPACE}

    model_config = {"frozen": True}


class PackageSettings(BaseModel):
    """External executables."""

    fop: str = "fop"
    fop_config: Path | None = None
    pdftotext: str = "pdftotext"
    timeout: float = 300
    merge_splash: bool = True

    model_config = {"frozen": True}


class ScriptSettings(BaseModel):
    debug: bool = False
    marker: str = "0016"
    templates_dir: Path = TEMPLATES_DIR

    model_config = {"frozen": True}


class LogSettings(BaseModel):
    location: Path | None = None

    model_config = {"frozen": True}


class NotifySettings(BaseModel):
    """Email notification of the end-of-run report.

    ``email`` may hold several comma-separated addresses.
    """

    email: str = ""
    sender: str = "etd-ingest@localhost"
    subject: str = "Message from processProquest"
    smtp_host: str = "localhost"
    smtp_port: int = 25

    model_config = {"frozen": True}

    @property
    def recipients(self) -> list[str]:
        return [addr.strip() for addr in self.email.split(",") if addr.strip()]


class Settings(BaseModel):
    """All settings for an ingest run."""

    ftp: FTPSettings
    fedora: FedoraSettings
    xslt: XSLTSettings
    islandora: IslandoraSettings = IslandoraSettings()
    collections: CollectionSettings = CollectionSettings()
    packages: PackageSettings = PackageSettings()
    script: ScriptSettings = ScriptSettings()
    log: LogSettings = LogSettings()
    notify: NotifySettings = NotifySettings()

    model_config = {"frozen": True}

    @property
    def debug(self) -> bool:
        return self.script.debug

    @property
    def record_path(self) -> str:
        """URL prefix that a PID is appended to for the public record URL."""
        return f"{self.islandora.root_url}{self.islandora.path}"

    def with_debug(self, debug: bool) -> "Settings":
        """Return a copy with ``script.debug`` replaced."""
        script = self.script.model_copy(update={"debug": debug})
        return self.model_copy(update={"script": script})


def load_settings(path: Path) -> Settings:
    """Load and validate settings from a YAML file.

    Args:
        path: Path to the YAML settings file

    Returns:
        Validated Settings

    Raises:
        ConfigurationError: If the file is unreadable or invalid
    """
    try:
        data = yaml.safe_load(Path(path).read_text())
    except OSError as e:
        raise ConfigurationError(f"Could not read settings file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Could not parse settings file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Settings file {path} does not contain a mapping")

    try:
        settings = Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid settings in {path}: {e}") from e

    logger.debug(f"Loaded settings from {path}")
    return settings
