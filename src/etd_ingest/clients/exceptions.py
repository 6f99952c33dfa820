"""Custom exceptions for repository and transport clients."""


class ClientError(Exception):
    """Base exception for all client errors."""

    def __init__(self, message: str, *args, **kwargs):
        self.message = message
        super().__init__(message, *args, **kwargs)


class ConnectionError(ClientError):
    """Raised when the service cannot be reached."""

    pass


class APIError(ClientError):
    """Raised when the service returns a non-2xx response."""

    def __init__(self, message: str, status_code: int, *args, **kwargs):
        self.status_code = status_code
        super().__init__(message, *args, **kwargs)


class NotFoundError(APIError):
    """Raised when an object or datastream does not exist."""

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, status_code=404)


class ValidationError(ClientError):
    """Raised when a response body cannot be understood."""

    def __init__(self, message: str, errors: list | None = None, *args, **kwargs):
        self.errors = errors or []
        super().__init__(message, *args, **kwargs)


class DatastreamExistsError(ClientError):
    """Raised when a datastream id is deposited twice on the same object."""

    def __init__(self, pid: str, dsid: str):
        self.pid = pid
        self.dsid = dsid
        super().__init__(f"Datastream {dsid} already exists on {pid}")
