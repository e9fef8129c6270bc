"""Custom exceptions for rider-side ride operations."""


class ActionNotAllowedError(Exception):
    """Raised when a ride action is attempted in a state that forbids it."""


class RideRequestError(ValueError):
    """Raised when a ride request form does not validate.

    ``errors`` maps each offending field to a user-facing message.
    """

    def __init__(self, errors: dict[str, str]):
        self.errors = errors
        super().__init__("; ".join(f"{k}: {v}" for k, v in errors.items()))
