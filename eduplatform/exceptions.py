"""
Domain exceptions.

Each exception carries the HTTP status the API answers with; the handler in
main.py turns them into {"detail": message} responses.
"""


class PlatformException(Exception):
    """Base exception for the platform backend"""
    status_code: int = 500

    def __init__(self, message: str, status_code: int = None):
        self.message = message
        if status_code:
            self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"detail": self.message}


class NotFoundError(PlatformException):
    status_code = 404

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, self.status_code)


class ScheduleConflictError(PlatformException):
    """Raised when a timetable write would create a hard conflict."""
    status_code = 409

    def __init__(self, conflicts: list, message: str = "Schedule has hard conflicts"):
        self.conflicts = conflicts
        super().__init__(message, self.status_code)

    def to_dict(self) -> dict:
        return {
            "detail": self.message,
            "conflicts": [c.model_dump() for c in self.conflicts],
        }


class JobTransitionError(PlatformException):
    """Raised on a job status change the lifecycle does not allow."""
    status_code = 409

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Invalid job transition: {current} -> {target}", self.status_code)


class RetryLimitError(PlatformException):
    status_code = 400

    def __init__(self, max_retries: int):
        super().__init__(f"Maximum retry attempts ({max_retries}) exceeded", self.status_code)


class ExternalServiceError(PlatformException):
    """An upstream OCR / LLM / storage call failed."""
    status_code = 502

    def __init__(self, message: str):
        super().__init__(message, self.status_code)


class JobTimeoutError(PlatformException):
    status_code = 504

    def __init__(self, message: str):
        super().__init__(message, self.status_code)


class ImportValidationError(PlatformException):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message, self.status_code)
