"""Error codes and error handling utilities for musicfind."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import Any


class ErrorCode(Enum):
    """Standardized error codes for musicfind operations."""

    # File system errors
    FILE_NOT_FOUND = auto()
    FILE_ACCESS_DENIED = auto()
    PATH_INVALID = auto()
    DIRECTORY_UNREADABLE = auto()

    # Tag errors
    TAG_READ_FAILED = auto()
    TAG_CORRUPT = auto()
    TAG_UNSUPPORTED_FORMAT = auto()

    # Index errors
    INDEX_DOCUMENT_INVALID = auto()
    INDEX_COMMIT_FAILED = auto()

    # Terminal errors
    TERMINAL_UNAVAILABLE = auto()

    # Operation errors
    OPERATION_FAILED = auto()

    # Configuration errors
    CONFIG_INVALID = auto()


ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.FILE_NOT_FOUND: "The file was not found. It may have been moved or deleted.",
    ErrorCode.FILE_ACCESS_DENIED: "Access denied. Check file permissions.",
    ErrorCode.PATH_INVALID: "The specified path is invalid or inaccessible.",
    ErrorCode.DIRECTORY_UNREADABLE: "The directory could not be listed.",

    ErrorCode.TAG_READ_FAILED: "Failed to read tags. The file format may not be supported.",
    ErrorCode.TAG_CORRUPT: "The file or its tag metadata is corrupt.",
    ErrorCode.TAG_UNSUPPORTED_FORMAT: "This container format is not supported by the decoder.",

    ErrorCode.INDEX_DOCUMENT_INVALID: "The record cannot be converted into an index document.",
    ErrorCode.INDEX_COMMIT_FAILED: "The search index could not be committed.",

    ErrorCode.TERMINAL_UNAVAILABLE: "The live interface needs an interactive terminal.",

    ErrorCode.OPERATION_FAILED: "Operation failed. See details for more information.",

    ErrorCode.CONFIG_INVALID: "Configuration is invalid.",
}


@dataclass
class MusicFindError(Exception):
    """Base exception for musicfind with error code and context."""

    code: ErrorCode
    message: str = ""
    path: Path | None = None
    details: dict[str, Any] = field(default_factory=dict)
    suggestion: str = ""

    def __post_init__(self) -> None:
        if not self.message:
            self.message = ERROR_MESSAGES.get(self.code, "An unexpected error occurred.")

    def __str__(self) -> str:
        parts = [self.message]
        if self.path:
            parts.append(f"\nFile: {self.path}")
        if self.details:
            details_str = " | ".join(f"{k}={v}" for k, v in self.details.items())
            parts.append(f"\nDetails: {details_str}")
        return "".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "code": self.code.name,
            "message": self.message,
            "path": str(self.path) if self.path else None,
            "details": self.details,
            "suggestion": self.suggestion,
        }


def classify_exception(exc: Exception, path: Path | None = None) -> MusicFindError:
    """Classify a generic exception into a MusicFindError with appropriate code."""
    if isinstance(exc, MusicFindError):
        return exc

    exc_name = type(exc).__name__
    exc_str = str(exc).lower()
    details = {"original": exc_str or exc_name}

    # File system errors
    if isinstance(exc, FileNotFoundError) or "no such file" in exc_str:
        return MusicFindError(ErrorCode.FILE_NOT_FOUND, path=path, details=details)
    if isinstance(exc, PermissionError) or "permission denied" in exc_str:
        return MusicFindError(ErrorCode.FILE_ACCESS_DENIED, path=path, details=details)
    if isinstance(exc, NotADirectoryError):
        return MusicFindError(ErrorCode.PATH_INVALID, path=path, details=details)

    # Decoder errors, mutagen names them <Format>HeaderError / <Format>Error
    if "HeaderNotFoundError" in exc_name or "sync" in exc_str or "header" in exc_str:
        return MusicFindError(ErrorCode.TAG_CORRUPT, path=path, details=details)
    if "not implemented" in exc_str or "unsupported" in exc_str:
        return MusicFindError(ErrorCode.TAG_UNSUPPORTED_FORMAT, path=path, details=details)
    if "corrupt" in exc_str or "invalid" in exc_str:
        return MusicFindError(ErrorCode.TAG_CORRUPT, path=path, details=details)
    if "MutagenError" in exc_name or "tag" in exc_str:
        return MusicFindError(ErrorCode.TAG_READ_FAILED, path=path, details=details)
    if isinstance(exc, OSError):
        return MusicFindError(ErrorCode.PATH_INVALID, path=path, details=details)

    # Default
    return MusicFindError(
        ErrorCode.OPERATION_FAILED,
        message=f"{exc_name}: {exc}",
        path=path,
        details=details,
    )


def format_error_for_user(error: MusicFindError | Exception) -> str:
    """Format an error for display on the terminal."""
    if isinstance(error, MusicFindError):
        parts = [error.message]
        if error.suggestion and error.suggestion != error.message:
            parts.append(f"\n{error.suggestion}")
        if error.path:
            parts.append(f"\nFile: {error.path}")
        return "".join(parts)

    # For generic exceptions, classify and format
    classified = classify_exception(error)
    return format_error_for_user(classified)
