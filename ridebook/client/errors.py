"""Typed failures raised at the ride-authority network boundary."""

from __future__ import annotations

from typing import Optional


class AuthorityError(Exception):
    """The authority rejected a call or could not be reached.

    ``message`` carries the authority's own explanation when it sent one, so
    callers can surface it verbatim; it is ``None`` otherwise.  ``detail`` is
    for logs only.
    """

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        *,
        detail: Optional[str] = None,
    ):
        self.message = message
        self.status_code = status_code
        super().__init__(
            detail or message or f"Ride authority error (status={status_code})"
        )


class RideNotFoundError(AuthorityError):
    """The authority has no ride with the requested id (HTTP 404)."""


class AuthorityUnavailableError(AuthorityError):
    """Network failure or timeout before any response arrived."""


class ParseError(AuthorityError):
    """A response body did not match the expected schema."""
