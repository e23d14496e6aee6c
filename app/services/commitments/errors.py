"""Errors raised by the hygiene commitment repositories."""

from __future__ import annotations


class CommitmentError(RuntimeError):
    """Raised when a commitment cannot be stored, found, or is invalid."""

    def __init__(self, message: str, code: str = "500_INTERNAL") -> None:
        super().__init__(message)
        self.code = code
