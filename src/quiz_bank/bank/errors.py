"""Error taxonomy for the question bank."""

from __future__ import annotations

__all__ = [
    "QuestionBankError",
    "StorageUnavailable",
    "NotFound",
    "InvalidArgument",
]


class QuestionBankError(RuntimeError):
    """Base class for question bank failures."""


class StorageUnavailable(QuestionBankError):
    """Raised when the persistence layer cannot be opened or written."""


class NotFound(QuestionBankError):
    """Raised when an operation references an unknown ``question_id``."""

    def __init__(self, question_id: str) -> None:
        super().__init__(f"Question not found: {question_id}")
        self.question_id = question_id


class InvalidArgument(QuestionBankError, ValueError):
    """Raised for malformed input, before any storage access happens."""
