"""Application exception hierarchy.

All custom exceptions inherit from CatalogSearchError.
Each exception has an error code for structured error handling.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes for structured error handling."""

    # General errors (1xxx)
    INTERNAL_ERROR = "CS-1000"
    CONFIGURATION_ERROR = "CS-1001"
    VALIDATION_ERROR = "CS-1002"

    # Seed source errors (2xxx)
    SEED_SOURCE_NOT_FOUND = "CS-2000"
    SEED_SOURCE_PARSE_ERROR = "CS-2001"

    # Embedding errors (3xxx)
    EMBEDDING_SERVICE_ERROR = "CS-3000"
    EMBEDDING_DIMENSION_MISMATCH = "CS-3001"
    EMBEDDING_UNAVAILABLE = "CS-3002"

    # Vector store errors (4xxx)
    VECTOR_STORE_ERROR = "CS-4000"
    COLLECTION_NOT_FOUND = "CS-4001"
    COLLECTION_EXISTS = "CS-4002"
    DIMENSION_MISMATCH = "CS-4003"
    STORE_UNAVAILABLE = "CS-4004"


class CatalogSearchError(Exception):
    """Base exception for all catalog search errors.

    Attributes:
        message: Human-readable error message.
        code: Structured error code.
        details: Additional error context.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "details": self.details,
            }
        }


class ConfigurationError(CatalogSearchError):
    """Configuration or environment error."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, details)


class ValidationError(CatalogSearchError):
    """Input validation error."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.VALIDATION_ERROR, details)


class SeedSourceError(CatalogSearchError):
    """Bulk seed file is missing or malformed."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.SEED_SOURCE_NOT_FOUND,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class EmbeddingError(CatalogSearchError):
    """Embedding service error."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.EMBEDDING_SERVICE_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class EmbeddingUnavailableError(EmbeddingError):
    """Embedding backend could not be reached or returned an error status."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.EMBEDDING_UNAVAILABLE, details)


class VectorStoreError(CatalogSearchError):
    """Vector store operation error."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VECTOR_STORE_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, code, details)


class CollectionNotFoundError(VectorStoreError):
    """Operation targeted a collection that does not exist."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.COLLECTION_NOT_FOUND, details)


class CollectionAlreadyExistsError(VectorStoreError):
    """Collection creation was requested for an existing collection."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.COLLECTION_EXISTS, details)


class DimensionMismatchError(VectorStoreError):
    """A vector's length differs from the collection's dimension."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.DIMENSION_MISMATCH, details)


class StoreUnavailableError(VectorStoreError):
    """Transport or connectivity failure talking to the vector store."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, ErrorCode.STORE_UNAVAILABLE, details)

