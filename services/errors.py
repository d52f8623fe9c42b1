"""Error types raised by the service layer and rendered by the API."""


class CostManagerError(Exception):
    """Base class. `status_code` is the HTTP status the API answers with."""
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InputValidationError(CostManagerError):
    """Malformed, missing or out-of-range input."""
    status_code = 400


class UserNotFoundError(CostManagerError):
    status_code = 400

    def __init__(self, message: str = "User not found"):
        super().__init__(message)


class StoreError(CostManagerError):
    """The database failed or is not reachable."""
    status_code = 503
