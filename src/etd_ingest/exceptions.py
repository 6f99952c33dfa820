"""Exceptions raised while processing ETD records and batches.

Critical errors invalidate the record being processed. Non-critical
problems are never raised; they are appended to the record as strings.
"""


class ProcessingError(Exception):
    """Base exception for all processing errors."""

    def __init__(self, message: str, *args, **kwargs):
        self.message = message
        super().__init__(message, *args, **kwargs)


class CriticalError(ProcessingError):
    """Raised when a record cannot be processed any further."""

    pass


class DatastreamError(CriticalError):
    """Raised when building or depositing a single datastream fails."""

    def __init__(self, dsid: str, message: str, *args, **kwargs):
        self.dsid = dsid
        super().__init__(message, *args, **kwargs)

    def __str__(self) -> str:
        return f"[{self.dsid}] ERROR: {self.message}"


class ConfigurationError(CriticalError):
    """Raised when settings or stylesheets are unusable.

    Every record in the batch would fail the same way, so the batch stops
    after the first record that hits one.
    """

    pass


class BatchError(ProcessingError):
    """Raised when the batch itself cannot proceed (login, scan, ...)."""

    pass
