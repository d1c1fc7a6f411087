"""Error taxonomy for the sync engine.

Every error carries a short ``reason`` which is what gets persisted in
``SyncState.last_error`` when the error is caught at a date boundary.
"""


class SyncError(Exception):
    """Base class for sync engine errors."""

    reason = "sync_error"


class PermissionMissingError(SyncError):
    """Raised when the provider has not granted the required capabilities."""

    reason = "permission_missing"


class ProviderTransientError(SyncError):
    """A single record type could not be read."""

    reason = "provider_transient"


class ProviderQuotaExceededError(ProviderTransientError):
    """The provider signalled a rate limit or quota for a record type."""

    reason = "provider_quota_exceeded"


class ProviderCaptureFailedError(SyncError):
    """Every record type failed during a capture."""

    reason = "provider_capture_failed"

    def __init__(self, failures: list):
        self.failures = failures
        super().__init__(f"All {len(failures)} record types failed")


class NetworkTimeoutError(SyncError):
    """The ingest service did not answer in time."""

    reason = "timeout"


class IngestConnectionError(SyncError):
    """The ingest service could not be reached."""

    reason = "connection_error"


class ServerRejectedError(SyncError):
    """The ingest service answered with a non-2xx status."""

    def __init__(self, status_code: int, body: str | None = None):
        self.status_code = status_code
        self.body = body
        super().__init__(f"HTTP {status_code}")

    @property
    def reason(self) -> str:
        return f"HTTP {self.status_code}"


class UnsupportedSchemaError(ValueError):
    """Raised when decoding a payload with an unknown schema_version."""


def classify(exc: Exception) -> str:
    """Return the reason string persisted for an exception."""
    if isinstance(exc, SyncError):
        return exc.reason
    message = str(exc) or "Unknown exception"
    return f"{type(exc).__name__}: {message}"
