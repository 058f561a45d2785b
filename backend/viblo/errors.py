"""Error taxonomy shared by the gateway, the flows and the API layer.

Three failure modes exist and every one of them degrades to "tell the user
and let them repeat the action": a form that fails validation (no network
call is issued), a remote call that fails, and a row that does not exist.
"""

from __future__ import annotations


class VibloError(Exception):
    """Base class for all client-side errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class FormValidationError(VibloError):
    """A required form field is missing or malformed."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class RemoteCallError(VibloError):
    """Non-2xx response or transport failure from a remote service."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        endpoint: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.endpoint = endpoint


class NotFoundError(VibloError):
    """The requested row does not exist (or is not visible to the user)."""

    def __init__(self, entity: str, key: str | None = None) -> None:
        detail = f"{entity} not found" if key is None else f"{entity} '{key}' not found"
        super().__init__(detail)
        self.entity = entity
        self.key = key


class PermissionDeniedError(VibloError):
    """The signed-in role may not perform this action."""
