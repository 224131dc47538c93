"""
Error kinds raised by the clerk services.

Services raise these; the conversation flow catches them at the handler
boundary and turns each into a single chat reply.
"""


class ClerkError(Exception):
    """Base class for all clerk errors."""


class ConfigurationError(ClerkError):
    """A required client or credential is missing."""


class FetchError(ClerkError):
    """Page content or link metadata could not be retrieved."""


class SummarizationError(ClerkError):
    """The text generation service failed to produce a summary."""


class DuplicateError(ClerkError):
    """The link was already submitted recently."""


class UnauthorizedError(ClerkError):
    """The backend rejected our API key."""


class UnknownError(ClerkError):
    """
    The backend refused the item for an unclassified reason.

    validation_message holds the per-field errors from the response body,
    already formatted for the user, or "" when the body had none.
    """

    def __init__(self, message: str = "", validation_message: str = ""):
        super().__init__(message or "unknown backend error")
        self.validation_message = validation_message
