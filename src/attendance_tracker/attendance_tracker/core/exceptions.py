class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(ValidationError):
    """Raised when a subject, slot or record id is unknown."""


class AuthenticationError(DomainError):
    """Raised when an operation needs a signed-in session."""


class RemoteWriteError(DomainError):
    """Raised when the authoritative store rejected or lost a write.

    The message is meant to be shown to the user as-is.
    """


class RemoteGatewayError(DomainError):
    """Raised by gateways when a remote read fails."""


class LocalPersistenceError(DomainError):
    """Raised by cache stores on I/O or decode failures."""
