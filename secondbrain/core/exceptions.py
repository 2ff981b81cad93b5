"""Base exceptions for the domain layer."""

from __future__ import annotations


class DomainError(Exception):
    """Base class for all domain level exceptions."""


class ValidationError(DomainError):
    """Raised when required input is missing or malformed."""


class ProviderError(DomainError):
    """Raised when the embedding or language model service fails."""


class VectorIndexError(DomainError):
    """Raised when the vector index service fails."""


# Alias to keep a generic name for error type hints
Error = DomainError

__all__ = [
    "DomainError",
    "ValidationError",
    "ProviderError",
    "VectorIndexError",
    "Error",
]
