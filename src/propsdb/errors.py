"""Structured error types for propsdb."""

from __future__ import annotations

from typing import Any


class PropsDBError(Exception):
    """Base error for all propsdb errors."""


class ValidationError(PropsDBError):
    """Raised when an identifier string or validity record is malformed."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class AmbiguousSelectorError(ValidationError):
    """Raised when a raw string matches more than one identifier type."""

    def __init__(self, value: str, candidates: list[str]) -> None:
        self.value = value
        self.candidates = candidates
        super().__init__(
            f"String '{value}' is ambiguous, it matches {len(candidates)} selector types: "
            f"{', '.join(candidates)}"
        )


class NoValidityError(PropsDBError):
    """Raised when a validity log has no entries for a category nor for 'all'."""

    def __init__(self, category: Any, path: str | None = None) -> None:
        self.category = category
        self.path = path
        where = f" in '{path}'" if path else ""
        super().__init__(f"No validity entries for category '{category}' or category 'all'{where}")


class SelectionTooEarlyError(PropsDBError):
    """Raised when the selected timestamp precedes the first validity snapshot."""

    def __init__(self, timestamp: Any, earliest: Any, category: Any) -> None:
        self.timestamp = timestamp
        self.earliest = earliest
        self.category = category
        super().__init__(
            f"Selected validity date {timestamp} is before first available validity date "
            f"{earliest} for category '{category}'"
        )


class SelectionRequiredError(PropsDBError):
    """Raised on content access to an unbound node that carries a validity log."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(
            f"Content access not available for PropsDB at '{path}' without validity selection"
        )


class SelectionBoundError(PropsDBError):
    """Raised when a validity selection is bound to an already bound node."""

    def __init__(self, path: str, selection: Any) -> None:
        self.path = path
        self.selection = selection
        super().__init__(f"PropsDB at '{path}' is already bound to validity selection {selection}")


class NotAPropsDBError(PropsDBError):
    """Raised when a PropsDB base path is not a directory."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"PropsDB base path '{path}' is not a directory")


class ValidityFileNotFoundError(PropsDBError, FileNotFoundError):
    """Raised when a file named by a resolved validity filelist does not exist."""

    def __init__(self, path: str, filename: str) -> None:
        self.path = path
        # OSError.filename would change str() to the errno format
        self.entry = filename
        super().__init__(f"Validity entry '{filename}' not found in '{path}' or its override")
