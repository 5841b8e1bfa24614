"""Custom exception hierarchy for fleetsync."""

from __future__ import annotations


class FleetError(Exception):
    """Base exception for all fleetsync errors."""


class FleetConfigError(FleetError):
    """Invalid or missing configuration."""


class FleetTransportError(FleetError):
    """HTTP-level failure (network, non-2xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class FleetSubscriptionError(FleetError):
    """A change feed could not attach, or the live subscription dropped.

    Never retried automatically; the consumer decides whether to
    resubscribe (typically by changing the filter).
    """

    def __init__(self, message: str, *, collection: str = "") -> None:
        self.collection = collection
        super().__init__(message)


class FleetWriteError(FleetError):
    """A mutation was rejected by the remote store."""

    def __init__(
        self,
        message: str,
        *,
        collection: str = "",
        doc_id: str = "",
    ) -> None:
        self.collection = collection
        self.doc_id = doc_id
        super().__init__(message)


class FleetUnavailableError(FleetWriteError):
    """Backend outage or network failure while writing."""


class FleetPermissionDeniedError(FleetWriteError):
    """The remote store refused the write (HTTP 401/403)."""


class FleetNotFoundError(FleetWriteError):
    """Patch target does not exist on the remote store."""


class FleetValidationError(FleetError):
    """A draft failed validation before any write was attempted."""

    def __init__(self, message: str, *, field: str = "") -> None:
        self.field = field
        super().__init__(message)


class FleetStaleReferenceError(FleetError):
    """A nested edit targets a child removed by a concurrent edit.

    Raised while walking a path and absorbed by
    :func:`fleetsync.editor.edit`; callers never see it.
    """

    def __init__(self, message: str, *, list_field: str = "", child_id: str = "") -> None:
        self.list_field = list_field
        self.child_id = child_id
        super().__init__(message)
