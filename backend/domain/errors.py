"""
Error taxonomy shared by the resolution pipeline, the rule engine and the API.
"""
from typing import List, Optional


DEFAULT_SUGGESTIONS = [
    "Try a nearby major city instead",
    "Check the spelling of the place name",
    "Use full names rather than nicknames or abbreviations",
]


class WeatherWardrobeError(Exception):
    """Base class for all errors raised by the core services."""


class ValidationError(WeatherWardrobeError):
    """Malformed input, rejected before any I/O. Never retried."""


class InvalidInput(ValidationError):
    """The rule engine was handed non-finite or out-of-domain weather values."""


class TransientIOError(WeatherWardrobeError):
    """Timeout, 5xx or 429 that survived the whole retry budget."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(WeatherWardrobeError):
    """
    Every extraction tier ran and nothing geocoded.

    This is a legitimate outcome, not a bug. ``attempted_names`` lists the
    distinct candidate names that were tried so callers can surface them.
    """

    def __init__(
        self,
        query: str,
        attempted_names: Optional[List[str]] = None,
        deadline_exceeded: bool = False,
        suggestions: Optional[List[str]] = None,
    ):
        self.query = query
        self.attempted_names = list(attempted_names or [])
        self.deadline_exceeded = deadline_exceeded
        self.suggestions = list(suggestions) if suggestions is not None else list(DEFAULT_SUGGESTIONS)
        reason = "deadline exceeded" if deadline_exceeded else "no geocoding results"
        super().__init__(f"Could not resolve {query!r}: {reason}")
