"""MemoError — base exception class for all spatial-memo errors."""

from __future__ import annotations


class MemoError(Exception):
    """Base error for all spatial-memo operations.

    Attributes:
        message: Human-readable error description.
        code: Machine-readable error code string.
    """

    def __init__(self, message: str, *, code: str = "memo-error") -> None:
        super().__init__(message)
        self.message = message
        self.code = code
