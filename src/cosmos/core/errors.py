"""
Unified error handling for Cosmos.

Every failure raised by the monitoring core is a ``CosmosError`` carrying an
``ErrorKind``. The HTTP layer maps kinds to status codes and the CLI maps
them to exit codes.

Kinds:
- bad_input: malformed or schema-invalid documents, unsupported spec versions
- not_found: unknown applications, missing repository files or snapshots
- conflict: reserved for callers, nothing in the core raises it
- internal: repository transport, store and diff-engine failures

Exit Codes:
- 0: Success
- 1: Warning (command succeeded but reported findings, e.g. breaking changes)
- 10: Configuration error
- 11: Provider error (repository, store or other external failure)
- 12: Validation error
- 13: Not found
- 127: Unknown/internal error
"""

from __future__ import annotations

import functools
import sys
import traceback
from enum import IntEnum, StrEnum
from typing import Any, Callable, Sequence, TypeVar

import structlog

logger = structlog.get_logger()


class ExitCode(IntEnum):
    """Standardized exit codes for CLI commands."""

    SUCCESS = 0
    WARNING = 1
    CONFIG_ERROR = 10
    PROVIDER_ERROR = 11
    VALIDATION_ERROR = 12
    NOT_FOUND = 13
    UNKNOWN_ERROR = 127


class ErrorKind(StrEnum):
    """Error taxonomy shared by the API and CLI."""

    bad_input = "bad_input"
    not_found = "not_found"
    conflict = "conflict"
    internal = "internal"


class CosmosError(Exception):
    """Base exception for Cosmos errors."""

    kind: ErrorKind = ErrorKind.internal
    exit_code: ExitCode = ExitCode.UNKNOWN_ERROR
    show_traceback: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(CosmosError):
    """Raised for configuration-related errors."""

    kind = ErrorKind.bad_input
    exit_code = ExitCode.CONFIG_ERROR


# Bad input


class BadInputError(CosmosError):
    """Raised when a document supplied to the core is unusable."""

    kind = ErrorKind.bad_input
    exit_code = ExitCode.VALIDATION_ERROR


class ManifestParseError(BadInputError):
    """Manifest text is neither JSON nor YAML, or does not have the manifest shape."""


class ManifestValidationError(BadInputError):
    """Manifest parsed but violates the schema rules."""

    def __init__(self, messages: Sequence[str], details: dict[str, Any] | None = None):
        self.messages = list(messages)
        summary = f"invalid openclient manifest: {len(self.messages)} violation(s)"
        super().__init__(summary, details)

    def __str__(self) -> str:
        return "; ".join(self.messages) if self.messages else self.message


class UnsupportedFormatError(BadInputError):
    """The OpenAPI version cannot be detected or is not supported."""


class SpecParseError(BadInputError):
    """An OpenAPI document could not be loaded into the normalized model."""


# Not found


class NotFoundError(CosmosError):
    """Raised when a referenced entity does not exist."""

    kind = ErrorKind.not_found
    exit_code = ExitCode.NOT_FOUND


class ApplicationNotFoundError(NotFoundError):
    """One or more application names are unknown to the directory."""

    def __init__(self, names: str | Sequence[str], details: dict[str, Any] | None = None):
        self.names = [names] if isinstance(names, str) else sorted(names)
        if len(self.names) == 1:
            message = f"application '{self.names[0]}' not found"
        else:
            message = "applications not found: " + ", ".join(f"'{n}'" for n in self.names)
        super().__init__(message, details)


class RepositoryFileNotFoundError(NotFoundError):
    """The requested file does not exist at the given repository/branch/path."""


class SpecSnapshotNotFoundError(NotFoundError):
    """No OpenAPI snapshot has been stored for the application."""


# Internal


class InternalError(CosmosError):
    """Raised when an external collaborator or the diff engine fails."""

    kind = ErrorKind.internal
    exit_code = ExitCode.PROVIDER_ERROR


class RepositoryError(InternalError):
    """Repository host failed (transport, authorization, inconsistent content)."""


class StoreError(InternalError):
    """The dependency graph store failed."""


class DiffError(InternalError):
    """The compatibility diff could not be computed."""

    exit_code = ExitCode.UNKNOWN_ERROR


def error_messages(error: CosmosError) -> list[str]:
    """Flatten an error into the list of messages shown to users."""
    if isinstance(error, ManifestValidationError):
        return list(error.messages)
    return [error.message]


# Type variable for decorated functions
F = TypeVar("F", bound=Callable[..., int])


def main_with_error_handling(
    *,
    show_traceback: bool = False,
    log_errors: bool = True,
) -> Callable[[F], F]:
    """
    Decorator for CLI main functions that provides unified error handling.

    Exit codes:
        - CosmosError subclasses: Uses the error's exit_code
        - KeyboardInterrupt: Returns 130 (standard for SIGINT)
        - Other exceptions: Returns 127 (unknown error)
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> int:
            try:
                return func(*args, **kwargs)
            except CosmosError as e:
                if log_errors:
                    logger.error(
                        "command_error",
                        error_type=type(e).__name__,
                        kind=e.kind.value,
                        message=e.message,
                        exit_code=e.exit_code,
                        **e.details,
                    )
                if e.show_traceback or show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return e.exit_code
            except KeyboardInterrupt:
                if log_errors:
                    logger.info("command_interrupted")
                return 130
            except Exception as e:
                if log_errors:
                    logger.error(
                        "unexpected_error",
                        error_type=type(e).__name__,
                        message=str(e),
                        exit_code=ExitCode.UNKNOWN_ERROR,
                    )
                if show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return ExitCode.UNKNOWN_ERROR

        return wrapper  # type: ignore[return-value]

    return decorator


def format_error_message(error: CosmosError) -> str:
    """Format an error message for display to users."""
    msg = error.message
    if error.details:
        detail_str = ", ".join(f"{k}={v}" for k, v in error.details.items())
        msg = f"{msg} ({detail_str})"
    return msg
