"""
event_audit.exceptions — Errors raised while handling an audit webhook.

Each error carries the HTTP status the handler should answer with. Errors
with a 4xx status are raised before any audit entry is written.
"""


class AuditLogError(Exception):
    """Base class. Unhandled subclasses surface as HTTP 500."""

    status_code: int = 500

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class AuthError(AuditLogError):
    """Basic-auth credentials were missing, malformed or wrong."""

    status_code = 401


class MalformedEventError(AuditLogError):
    """The request body is not a Spinnaker event envelope."""

    status_code = 400


class EventFieldError(AuditLogError):
    """
    A nested field the selected message template needs is absent.

    Attributes:
        path: Dotted path of the missing field, e.g. "content.execution".
    """

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Event field {path!r} is missing or invalid")


class ConfigurationError(AuditLogError):
    """Static configuration is incomplete or invalid."""
