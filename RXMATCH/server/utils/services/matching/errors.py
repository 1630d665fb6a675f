from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from RXMATCH.server.utils.constants import RECOVERABLE_ERROR_PATTERNS


###############################################################################
class MatchingError(RuntimeError):
    reason = "matching_error"
    retryable = False

    def __init__(self, message: str, *, retryable: bool | None = None) -> None:
        super().__init__(message)
        if retryable is not None:
            self.retryable = retryable


###############################################################################
class InvalidNameError(MatchingError):
    reason = "invalid_name"


###############################################################################
class CatalogSearchError(MatchingError):
    reason = "search_error"
    retryable = True

    def __init__(
        self,
        message: str,
        *,
        query: str | None = None,
        retryable: bool | None = None,
    ) -> None:
        super().__init__(message, retryable=retryable)
        self.query = query


###############################################################################
class NotFoundError(MatchingError):
    reason = "not_found"


###############################################################################
class BatchError(MatchingError):
    reason = "batch_error"
    kind = "batch_error"

    def __init__(
        self,
        message: str,
        *,
        errors: tuple[str, ...] = (),
        retryable: bool | None = None,
    ) -> None:
        super().__init__(message, retryable=retryable)
        self.errors = tuple(errors)


###############################################################################
class EmptyInputError(BatchError):
    kind = "empty_input"


###############################################################################
class NoValidNamesError(BatchError):
    kind = "no_valid_names"


###############################################################################
class SystemicCatalogError(BatchError):
    kind = "systemic_failure"
    retryable = True


###############################################################################
class BatchTimeoutError(SystemicCatalogError):
    kind = "timeout"


UNMATCHED_ERRORS: dict[str, type[MatchingError]] = {
    InvalidNameError.reason: InvalidNameError,
    CatalogSearchError.reason: CatalogSearchError,
    NotFoundError.reason: NotFoundError,
}


###############################################################################
@dataclass(frozen=True, slots=True)
class ErrorFeedback:
    type: str
    title: str
    user_message: str
    suggestions: tuple[str, ...]
    retryable: bool

    # -------------------------------------------------------------------------
    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "title": self.title,
            "message": self.user_message,
            "suggestions": list(self.suggestions),
            "retryable": self.retryable,
        }


UNMATCHED_FEEDBACK: dict[str, ErrorFeedback] = {
    "not_found": ErrorFeedback(
        type="matching_error",
        title="Medicine Not Found",
        user_message="No matching medicines found in our database",
        suggestions=(
            "Try searching for individual medicine names manually",
            "Contact our pharmacy team for assistance",
            "Check if the medicine names are spelled correctly",
        ),
        retryable=False,
    ),
    "search_error": ErrorFeedback(
        type="matching_error",
        title="Medicine Matching Failed",
        user_message="Search service temporarily unavailable",
        suggestions=(
            "Try searching again",
            "Check your internet connection",
            "Contact support if the issue continues",
        ),
        retryable=True,
    ),
    "invalid_name": ErrorFeedback(
        type="validation_error",
        title="Invalid Input",
        user_message="This entry does not look like a medicine name",
        suggestions=(
            "Check the prescription text for this line",
            "Enter the medicine name manually",
        ),
        retryable=False,
    ),
}

BATCH_FEEDBACK: dict[str, ErrorFeedback] = {
    "empty_input": ErrorFeedback(
        type="ocr_error",
        title="Prescription Processing Failed",
        user_message="No medicine names could be detected",
        suggestions=(
            "Ensure the prescription contains medicine names",
            "Check that the medicine names are clearly visible",
            "Try uploading a different section of the prescription",
        ),
        retryable=False,
    ),
    "no_valid_names": ErrorFeedback(
        type="ocr_error",
        title="Prescription Processing Failed",
        user_message="No valid medicine names could be extracted from the prescription",
        suggestions=(
            "Ensure the prescription image is clear and well-lit",
            "Make sure all text is visible and not cut off",
            "Contact support if the prescription is handwritten",
        ),
        retryable=False,
    ),
    "systemic_failure": ErrorFeedback(
        type="network_error",
        title="Connection Error",
        user_message="The medicine catalog is currently unavailable",
        suggestions=(
            "Try again in a few moments",
            "Check your internet connection",
            "Contact support if the problem persists",
        ),
        retryable=True,
    ),
    "timeout": ErrorFeedback(
        type="network_error",
        title="Connection Error",
        user_message="Search took too long to complete",
        suggestions=(
            "Try again with a simpler prescription",
            "Check your internet connection",
            "Contact support if timeouts persist",
        ),
        retryable=True,
    ),
}

GENERAL_FEEDBACK = ErrorFeedback(
    type="general_error",
    title="Unexpected Error",
    user_message="An unexpected error occurred",
    suggestions=(
        "Try again in a few moments",
        "Contact support if the problem persists",
    ),
    retryable=True,
)


# -----------------------------------------------------------------------------
def is_recoverable_error(error: BaseException | None) -> bool:
    if error is None:
        return False
    if isinstance(error, MatchingError):
        return bool(error.retryable)
    if isinstance(error, (TimeoutError, ConnectionError)):
        return True
    message = str(error)
    return any(pattern.search(message) for pattern in RECOVERABLE_ERROR_PATTERNS)


# -----------------------------------------------------------------------------
def describe_reason(reason: str) -> ErrorFeedback:
    return UNMATCHED_FEEDBACK.get(reason, GENERAL_FEEDBACK)


# -----------------------------------------------------------------------------
def describe_batch_error(error: BaseException) -> ErrorFeedback:
    kind = getattr(error, "kind", None)
    if isinstance(kind, str) and kind in BATCH_FEEDBACK:
        return BATCH_FEEDBACK[kind]
    return GENERAL_FEEDBACK


# -----------------------------------------------------------------------------
def error_for_reason(reason: str, message: str) -> MatchingError:
    error_class = UNMATCHED_ERRORS.get(reason, MatchingError)
    return error_class(message)


__all__ = [
    "BatchError",
    "BatchTimeoutError",
    "CatalogSearchError",
    "EmptyInputError",
    "ErrorFeedback",
    "InvalidNameError",
    "MatchingError",
    "NoValidNamesError",
    "NotFoundError",
    "SystemicCatalogError",
    "describe_batch_error",
    "describe_reason",
    "error_for_reason",
    "is_recoverable_error",
]
