"""Exit codes for the propsdb CLI."""

from __future__ import annotations

from propsdb.errors import (
    NotAPropsDBError,
    NoValidityError,
    SelectionRequiredError,
    SelectionTooEarlyError,
    ValidationError,
    ValidityFileNotFoundError,
)

SUCCESS = 0
EXECUTION_FAILURE = 1
USAGE_ERROR = 2
NOT_FOUND = 3
VALIDATION_ERROR = 4
SELECTION_ERROR = 5


def for_error(error: Exception) -> int:
    """Map an exception to the exit code reported for it."""
    if isinstance(error, NotAPropsDBError | ValidityFileNotFoundError):
        return NOT_FOUND
    if isinstance(error, ValidationError):
        return VALIDATION_ERROR
    if isinstance(error, SelectionRequiredError | SelectionTooEarlyError | NoValidityError):
        return SELECTION_ERROR
    return EXECUTION_FAILURE
