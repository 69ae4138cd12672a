"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


class ConfigurationError(DomainError):
    """The operation can never succeed until someone changes configuration."""


class LinkageRevokedError(ConfigurationError):
    """A sync or write was attempted against a revoked linkage."""


class MalformedRecordError(ValidationError):
    """A single imported or provider record could not be mapped."""


class SyncInProgressError(ConflictError):
    """Another sync of the same linkage holds its lock."""


class ProviderError(Exception):
    """Communication with the aggregation provider failed.

    Not a DomainError: it is transient and retried on the next invocation.
    """

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.code = code

    def __str__(self) -> str:
        message = super().__str__()
        if self.code:
            return f"{self.code}: {message}"
        return message


def account_not_found(account_id: int) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def linkage_not_found(linkage_id: int) -> str:
    """Return message for missing linkage."""
    return f"Linkage {linkage_id} not found"


def transaction_not_found(transaction_id: int) -> str:
    """Return message for missing transaction."""
    return f"Transaction {transaction_id} not found"


def category_not_found(category_id: int) -> str:
    """Return message for missing category by ID."""
    return f"Category {category_id} not found"


def linkage_revoked(linkage_id: int) -> str:
    """Return message for a write against a revoked linkage."""
    return f"Linkage {linkage_id} is revoked; reconnect the institution to sync again"


def sync_in_progress(linkage_id: int) -> str:
    """Return message when a linkage is already being synced."""
    return f"Linkage {linkage_id} is already being synced"


def unknown_provider_account(external_account_id: str | None) -> str:
    """Return message for a provider record whose account is not linked."""
    return f"Account '{external_account_id}' is not linked to this connection"
