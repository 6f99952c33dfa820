"""File transport used to fetch ETD archives and file them after processing.

Transport methods report success as booleans; the callers decide whether a
failure is critical for a record, non-critical, or fatal for the batch.
"""

import ftplib
import logging
from abc import ABC, abstractmethod
from pathlib import Path

logger = logging.getLogger(__name__)


class Transport(ABC):
    """Abstract base class for remote file stores."""

    @abstractmethod
    def login(self, user: str, password: str) -> bool:
        pass

    @abstractmethod
    def list_files(self, pattern: str) -> list[str]:
        """Names in the current remote directory matching *pattern*."""
        pass

    @abstractmethod
    def change_dir(self, path: str) -> bool:
        pass

    @abstractmethod
    def fetch(self, local_path: Path, remote_path: str) -> bool:
        """Download *remote_path* into the file *local_path*."""
        pass

    @abstractmethod
    def move(self, name: str, from_dir: str, to_dir: str) -> bool:
        """Rename ``from_dir/name`` to ``to_dir/name`` on the remote side."""
        pass

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def _join(directory: str, name: str) -> str:
    if not directory:
        return name
    return f"{directory.rstrip('/')}/{name}"


class FTPTransport(Transport):
    """Transport over plain FTP.

    The connection is opened lazily on first use. ``list_files`` passes the
    pattern to the server's NLST, which expands shell-style wildcards.
    """

    def __init__(self, server: str, port: int = 21, timeout: float = 150):
        self.server = server
        self.port = port
        self.timeout = timeout
        self._ftp: ftplib.FTP | None = None

    @property
    def ftp(self) -> ftplib.FTP:
        if self._ftp is None:
            ftp = ftplib.FTP(timeout=self.timeout)
            ftp.connect(self.server, self.port)
            self._ftp = ftp
        return self._ftp

    def login(self, user: str, password: str) -> bool:
        try:
            self.ftp.login(user, password)
        except ftplib.all_errors as e:
            logger.error(f"FTP login to {self.server} failed: {e}")
            return False
        return True

    def list_files(self, pattern: str) -> list[str]:
        try:
            return self.ftp.nlst(pattern)
        except ftplib.error_perm as e:
            # Most servers answer an empty listing with 550.
            logger.debug(f"FTP listing for {pattern} returned nothing: {e}")
            return []
        except ftplib.all_errors as e:
            logger.error(f"FTP listing for {pattern} failed: {e}")
            return []

    def change_dir(self, path: str) -> bool:
        try:
            self.ftp.cwd(path)
        except ftplib.all_errors as e:
            logger.error(f"FTP change directory to {path} failed: {e}")
            return False
        return True

    def fetch(self, local_path: Path, remote_path: str) -> bool:
        try:
            with open(local_path, "wb") as f:
                self.ftp.retrbinary(f"RETR {remote_path}", f.write)
        except ftplib.all_errors as e:
            logger.error(f"FTP download of {remote_path} failed: {e}")
            return False
        return True

    def move(self, name: str, from_dir: str, to_dir: str) -> bool:
        source = _join(from_dir, name)
        target = _join(to_dir, name)
        try:
            self.ftp.rename(source, target)
        except ftplib.all_errors as e:
            logger.error(f"FTP move {source} -> {target} failed: {e}")
            return False
        return True

    def close(self) -> None:
        if self._ftp is not None:
            try:
                self._ftp.quit()
            except ftplib.all_errors:
                self._ftp.close()
            self._ftp = None
