"""
Error representation shared by the services

Services return result objects with an ``errors`` list instead of raising for
expected failures. Every entry in those lists is a ServiceError so callers
(cron handlers, CLI) can report kind and message uniformly.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

VALIDATION = "validation"
DATABASE = "database"
NOT_FOUND = "not_found"
EXTERNAL = "external"
UNEXPECTED = "unexpected"


class ValidationError(ValueError):
    """Raised for invalid arguments; never silently defaulted"""


@dataclass
class ServiceError:
    kind: str
    message: str
    cause: Optional[str] = None

    def to_dict(self):
        data = {"kind": self.kind, "message": self.message}
        if self.cause:
            data["cause"] = self.cause
        return data

    def __str__(self):
        return self.message


def normalize_error(error, kind=None, message=None):
    """Convert an exception, string or ServiceError into a ServiceError

    Args:
        error: the raised exception, a plain message, or a ServiceError
        kind: overrides the inferred kind
        message: context prefix, e.g. "Failed to score round 4"
    """
    if isinstance(error, ServiceError):
        if message:
            return ServiceError(kind or error.kind, f"{message}: {error.message}", error.cause)
        return error

    if isinstance(error, BaseException):
        if kind is None:
            if isinstance(error, ValidationError):
                kind = VALIDATION
            elif isinstance(error, SQLAlchemyError):
                kind = DATABASE
            else:
                kind = UNEXPECTED
        detail = str(error) or error.__class__.__name__
        return ServiceError(
            kind,
            f"{message}: {detail}" if message else detail,
            cause=error.__class__.__name__,
        )

    text = str(error)
    return ServiceError(kind or UNEXPECTED, f"{message}: {text}" if message else text)


def error_messages(errors):
    """Flatten a list of errors into plain strings for JSON responses"""
    return [str(error) for error in errors or []]
