"""
Error taxonomy for vaultsync.

    ConfigurationError   missing or unparseable input, raised before any network call
    AuthenticationError  the vault rejected the login; fatal to the run
    ApiError             unexpected HTTP status or transport failure on one operation
    NotFoundDrift        a read found the tracked object gone; untrack it

NotFoundDrift is a signal, not a failure, and is not an ApiError:
``except ApiError`` does not catch it.
"""

from __future__ import annotations


class VaultSyncError(Exception):
    """Base class for every error raised by vaultsync."""


class ConfigurationError(VaultSyncError):
    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(f"{field}: {message}")


class AuthenticationError(VaultSyncError):
    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        body: str | None = None,
    ) -> None:
        self.status = status
        self.body = body
        detail = message
        if status is not None:
            detail = f"{message} (HTTP {status})"
        if body:
            detail = f"{detail}: {body}"
        super().__init__(detail)


class ApiError(VaultSyncError):
    """Unexpected response or transport failure.

    ``status`` is None when the request never produced a response; ``body``
    then holds the transport error text.
    """

    def __init__(self, operation: str, status: int | None, body: str = "") -> None:
        self.operation = operation
        self.status = status
        self.body = body
        if status is None:
            super().__init__(f"{operation} failed: {body}")
        else:
            super().__init__(f"{operation} got unexpected response code {status}: {body}")

    @property
    def is_not_found(self) -> bool:
        return self.status in (404, 410)


class NotFoundDrift(VaultSyncError):
    """The tracked resource no longer exists remotely; drop it from state."""

    def __init__(self, kind: str, resource_id: str) -> None:
        self.kind = kind
        self.resource_id = resource_id
        super().__init__(f"{kind} {resource_id} no longer exists in the vault")
