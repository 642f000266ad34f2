from __future__ import annotations

from typing import Optional


class ParcelsError(Exception):
    """Base exception for county parcel lookups."""

    status_code = 500

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message} (caused by: {self.cause})"
        return self.message


class FilterValidationError(ParcelsError, ValueError):
    """Malformed or missing search input."""

    status_code = 400


class ParcelNotFound(ParcelsError, LookupError):
    """No parcel row matches the requested identifier."""

    status_code = 404

    def __init__(self, parcel_id: object) -> None:
        super().__init__("Parcel not found")
        self.parcel_id = parcel_id


class DatabaseError(ParcelsError):
    """A query or connection failed; the message is safe to show callers."""

    status_code = 500


class ParcelApiError(ParcelsError):
    """A call from the map viewer to the parcel API failed.

    Raised once; callers surface it as a terminal error state.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(message, cause)
        self.http_status = status_code
