"""
Error taxonomy for the bucket-watch trigger.

Configuration problems are detected before any remote call and surface as
ConfigurationError, including from model validation. Remote errors wrap
the underlying Google Cloud exception and are never retried within a cycle;
the scheduler simply tries again on the next interval.
"""

from typing import Optional

from google.api_core.retry import if_transient_error


class BucketWatchError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(BucketWatchError):
    """Malformed location, MOVE without a move directory, invalid pattern..."""


class RemoteError(BucketWatchError):
    """
    Failure reported by the object store.

    Attributes:
        container: Bucket the operation targeted
        name: Object name, if the operation targeted a single object
        retryable: True when the underlying error is transient
    """

    operation = "access"

    def __init__(
        self,
        message: str,
        container: Optional[str] = None,
        name: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.container = container
        self.name = name
        self.retryable = bool(cause is not None and if_transient_error(cause))


class RemoteListError(RemoteError):
    operation = "list"


class RemoteDownloadError(RemoteError):
    operation = "download"


class RemoteActionError(RemoteError):
    operation = "action"


class CycleTimeoutError(BucketWatchError):
    """The poll cycle did not finish within its configured timeout."""
