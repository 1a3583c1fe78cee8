"""Core modules for Cosmos - centralized definitions and utilities."""

from cosmos.core.errors import (
    ApplicationNotFoundError,
    BadInputError,
    ConfigurationError,
    CosmosError,
    DiffError,
    ErrorKind,
    ExitCode,
    InternalError,
    ManifestParseError,
    ManifestValidationError,
    NotFoundError,
    RepositoryError,
    RepositoryFileNotFoundError,
    SpecParseError,
    SpecSnapshotNotFoundError,
    StoreError,
    UnsupportedFormatError,
    error_messages,
    format_error_message,
    main_with_error_handling,
)

__all__ = [
    "ExitCode",
    "ErrorKind",
    "CosmosError",
    "ConfigurationError",
    # Bad input
    "BadInputError",
    "ManifestParseError",
    "ManifestValidationError",
    "UnsupportedFormatError",
    "SpecParseError",
    # Not found
    "NotFoundError",
    "ApplicationNotFoundError",
    "RepositoryFileNotFoundError",
    "SpecSnapshotNotFoundError",
    # Internal
    "InternalError",
    "RepositoryError",
    "StoreError",
    "DiffError",
    # Helpers
    "error_messages",
    "format_error_message",
    "main_with_error_handling",
]
