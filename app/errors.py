"""Exception types raised by the Learning Lanes core."""

from __future__ import annotations


class LanesError(Exception):
    """Base class for all application errors."""


class InputValidationError(LanesError):
    """Caller supplied input that cannot be processed."""


class UpstreamServiceError(LanesError):
    """An external search or generation call failed."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ParseError(LanesError):
    """A structured response did not match the expected shape."""


class GenerationParseError(ParseError):
    """The generation service returned text that is not usable JSON."""


class NotFoundError(LanesError):
    """A profile, lane, item or document does not exist."""


class ConflictError(LanesError):
    """A document with the requested id already exists."""
