"""
Domain exceptions.

Each carries the HTTP status and error code it is rendered with by the
handler registered in ``main.py``; the services raising them stay free of
any web framework imports.
"""
from typing import Optional


class TaskifyError(Exception):
    status_code = 500
    error_code = "INTERNAL_ERROR"

    def __init__(self, message: str, error_code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code


class InvalidInputError(TaskifyError):
    status_code = 400
    error_code = "INVALID_INPUT"


class UnauthorizedError(TaskifyError):
    status_code = 401
    error_code = "UNAUTHORIZED"

    def __init__(self, message: str = "Access token is required") -> None:
        super().__init__(message)


class NotFoundError(TaskifyError):
    """Absent records and records owned by someone else look the same."""

    status_code = 404
    error_code = "NOT_FOUND"

    def __init__(self, resource: str) -> None:
        super().__init__(f"{resource} not found")
        self.resource = resource


class PlanAlreadyExecutedError(TaskifyError):
    status_code = 409
    error_code = "PLAN_ALREADY_EXECUTED"

    def __init__(self, plan_id: str) -> None:
        super().__init__("Plan already executed")
        self.plan_id = plan_id


class InvalidStateTransition(TaskifyError):
    status_code = 409
    error_code = "INVALID_STATE_TRANSITION"


class GenerationError(TaskifyError):
    """The completion service returned text we could not turn into the expected JSON."""

    status_code = 502
    error_code = "GENERATION_FAILED"


class PlanGenerationError(GenerationError):
    error_code = "PLAN_GENERATION_FAILED"

    def __init__(self, message: str = "Failed to generate plan") -> None:
        super().__init__(message)


class ResourceApiError(TaskifyError):
    status_code = 502
    error_code = "RESOURCE_API_ERROR"

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status
