"""
Typed exceptions shared by the cardflow services.

Callers branch on ``ErrorKind`` rather than on message text:

- VALIDATION: the request can never succeed as given (missing ids, empty
  template set, wrong list view type, staging list without a start date).
- NOT_FOUND: a referenced module or list does not exist.
- INTERNAL: anything unexpected; surfaced to clients as an opaque failure.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Classification of a service failure."""

    VALIDATION = "VALIDATION"
    NOT_FOUND = "NOT_FOUND"
    INTERNAL = "INTERNAL"


class CardflowError(Exception):
    """Base exception for cardflow service errors."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(CardflowError):
    """Input rejected before or during a write; nothing is persisted."""

    kind = ErrorKind.VALIDATION


class NotFoundError(CardflowError):
    """A referenced resource does not exist."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        if resource_id:
            super().__init__(f"{resource} '{resource_id}' not found")
        else:
            super().__init__(f"{resource} not found")


class TemplateValidationError(ValidationError):
    """A specific task template cannot be placed as requested."""

    def __init__(self, template_title: str, reason: str) -> None:
        self.template_title = template_title
        self.reason = reason
        super().__init__(f"{reason} for {template_title}")
