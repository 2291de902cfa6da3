"""
Exceptions raised by the data-access layer and input validation.
"""


class PortalError(Exception):
    """Base class for all portal errors."""


class StoreError(PortalError):
    """A database call failed."""


class NotFoundError(PortalError):
    """The requested record does not exist (or is not owned by the caller)."""


class ValidationError(PortalError):
    """User input was rejected before touching the database."""


class DuplicateSubmissionError(ValidationError):
    """The student has already submitted this form."""


class AuthenticationError(PortalError):
    """Sign-in or sign-up failed."""
