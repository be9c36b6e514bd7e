from typing import Optional


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class RecordNotFound(ValidationError):
    """Raised when a mutation targets a record that does not exist."""


class AuthenticationError(DomainError):
    """Raised when the caller's identity cannot be established."""


class InvalidCredentials(AuthenticationError):
    """Raised when the identity provider rejects an email/password pair."""


class AccountNotProvisioned(AuthenticationError):
    """Raised when an identity signs in but has no role record."""


class NotSignedIn(AuthenticationError):
    """Raised when an operation needs an active identity and there is none."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class Unauthorized(AuthorizationError):
    """Raised when the acting role may not perform a mutation."""


class PartialProvisioning(DomainError):
    """Raised when account creation failed half-way and could not be undone.

    The identity (and possibly its role record) may exist without a matching
    account record; an administrator has to clean it up.
    """

    def __init__(self, message: str, *, identity_id: str, failed_step: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.identity_id = identity_id
        self.failed_step = failed_step
        self.cause = cause


class StoreUnavailable(DomainError):
    """Raised (or reported to listeners) when the record store cannot be read."""
