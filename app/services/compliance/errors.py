"""Shared error classes for the compliance classifiers."""

from __future__ import annotations


class ComplianceError(RuntimeError):
    """Base exception raised by the compliance classifiers."""

    def __init__(self, message: str, code: str = "COMPLIANCE_ERROR") -> None:
        super().__init__(message)
        self.code = code


class InvalidDateError(ComplianceError, ValueError):
    """Raised when a caller hands over a date string that cannot be parsed."""

    def __init__(self, message: str, code: str = "E_INVALID_DATE") -> None:
        super().__init__(message, code=code)


class InvalidQuarterError(ComplianceError, ValueError):
    """Raised for fiscal quarter numbers outside 1-4."""

    def __init__(self, message: str, code: str = "E_INVALID_QUARTER") -> None:
        super().__init__(message, code=code)
