"""Clients for the repository and the FTP drop."""

from .client import Client
from .exceptions import (
    APIError,
    ClientError,
    ConnectionError,
    DatastreamExistsError,
    NotFoundError,
    ValidationError,
)
from .fedora_client import FedoraClient
from .repository import Repository
from .transport import FTPTransport, Transport

__all__ = [
    "Client",
    "FedoraClient",
    "Repository",
    "Transport",
    "FTPTransport",
    "ClientError",
    "ConnectionError",
    "APIError",
    "NotFoundError",
    "ValidationError",
    "DatastreamExistsError",
]
