class TripPlannerError(Exception):
    """Base class for errors the API turns into JSON responses."""

    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFoundError(TripPlannerError):
    status_code = 404


class ConflictError(TripPlannerError):
    status_code = 409


class PermissionDeniedError(TripPlannerError):
    status_code = 403


class AuthenticationError(TripPlannerError):
    status_code = 401


class ValidationFailedError(TripPlannerError):
    status_code = 400


class PlanGenerationError(TripPlannerError):
    status_code = 500
