class ClinicError(Exception):
    status_code = 400

    def __init__(self, reason: str, details: dict = None):
        self.reason = reason
        self.details = details or {}
        super().__init__(reason)


class ValidationError(ClinicError):
    """Malformed or out-of-range input. Nothing was written."""
    status_code = 400


class ConflictError(ClinicError):
    """Slot already booked or a unique key already taken."""
    status_code = 409


class NotFoundError(ClinicError):
    """Referenced entity is absent or not owned by the caller."""
    status_code = 404


class AuthFailure(ClinicError):
    status_code = 401


class InvalidCredentials(AuthFailure):
    def __init__(self, details: dict = None):
        super().__init__("Invalid credentials", details)


class StorageError(ClinicError):
    """The store failed underneath us. The transaction was rolled back."""
    status_code = 503

    def __init__(self, details: dict = None):
        super().__init__("Server error, please try again later", details)


class GateRedirect(Exception):
    """Raised by the lifecycle gate to send the request somewhere else."""

    def __init__(self, location: str, messages: list = None):
        self.location = location
        self.messages = messages or []
        super().__init__(f"Redirect to {location}")
