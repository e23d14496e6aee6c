from __future__ import annotations

from fastapi import status

_VALIDATION_CODES = frozenset({"E_INVALID_DATE", "E_INVALID_QUARTER"})


def map_error_code(code: str) -> int:
    """Translate a domain error code into the HTTP status returned to the dashboard."""
    if code.startswith("422_") or code in _VALIDATION_CODES:
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if code.startswith("404_"):
        return status.HTTP_404_NOT_FOUND
    if code.startswith("409_"):
        return status.HTTP_409_CONFLICT
    return status.HTTP_500_INTERNAL_SERVER_ERROR
