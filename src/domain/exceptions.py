class ReservationError(ValueError):
    """Base class for errors a request handler turns into a JSON error body."""

    code = "INTERNAL"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message}


class ReservationValidationError(ReservationError):
    code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(ReservationError):
    code = "NOT_FOUND"
    status_code = 404


class ReservationConflictError(ReservationError):
    code = "CONFLICT"
    status_code = 409


class SpotUnavailableError(ReservationError):
    """The spot's cached availability flag is off."""

    code = "PRECONDITION_FAILED"
    status_code = 409


class UnauthorizedError(ReservationError):
    code = "UNAUTHORIZED"
    status_code = 401
