"""Custom exception hierarchy for loanbook."""


class LoanbookError(Exception):
    """Base exception for all loanbook errors."""


class InvalidTermsError(LoanbookError):
    """Raised when loan or rental terms are invalid."""


class EntityNotFoundError(LoanbookError):
    """Raised when a referenced entity does not exist."""


class InvalidEntityStateError(LoanbookError):
    """Raised when an entity is in an invalid state for the operation."""


class ConfigurationError(LoanbookError):
    """Raised when configuration is invalid or missing."""


class StoreError(LoanbookError):
    """Raised when a persistence operation fails."""
