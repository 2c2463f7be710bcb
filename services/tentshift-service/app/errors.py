"""
Domain errors raised by the service layer.

Each error carries the HTTP status and a short machine code; main.py renders
them as {"detail": ..., "code": ...}.
"""


class TentShiftError(Exception):
    status_code = 500
    code = "internal_error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message()
        super().__init__(self.message)

    @classmethod
    def default_message(cls) -> str:
        return cls.__name__


class UnauthorizedError(TentShiftError):
    status_code = 401
    code = "unauthorized"

    @classmethod
    def default_message(cls) -> str:
        return "Unauthorized"


class NoTentError(TentShiftError):
    status_code = 403
    code = "no_tent"

    @classmethod
    def default_message(cls) -> str:
        return "No tent found"


class ForbiddenError(TentShiftError):
    status_code = 403
    code = "forbidden"

    @classmethod
    def default_message(cls) -> str:
        return "Only the tent captain can do this"


class NotFoundError(TentShiftError):
    status_code = 404
    code = "not_found"

    @classmethod
    def default_message(cls) -> str:
        return "Not found"


class ConflictError(TentShiftError):
    status_code = 409
    code = "conflict"


class InvalidRangeError(TentShiftError):
    status_code = 400
    code = "invalid_range"

    @classmethod
    def default_message(cls) -> str:
        return "start_time must be before end_time"


class InvalidStatusError(TentShiftError):
    status_code = 400
    code = "invalid_status"

    @classmethod
    def default_message(cls) -> str:
        return "status must be one of: available, maybe, unavailable"


class TransactionFailure(TentShiftError):
    status_code = 503
    code = "transaction_failure"

    @classmethod
    def default_message(cls) -> str:
        return "The change could not be saved, please try again"
