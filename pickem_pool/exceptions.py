"""
Application exceptions.

Service functions raise these; the handlers registered in
``register_error_handlers`` turn them into JSON error responses.
"""


class PickemError(Exception):
    """Base class for errors surfaced to API callers"""

    status_code = 400

    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.payload = payload or {}

    def to_dict(self):
        data = dict(self.payload)
        data["error"] = self.message
        return data


class ValidationError(PickemError):
    status_code = 400


class PicksLockedError(ValidationError):
    """Raised when a pick is created, changed or removed after kickoff"""


class PermissionDeniedError(PickemError):
    status_code = 403


class NotFoundError(PickemError):
    status_code = 404


class ScoringError(PickemError):
    """Score recalculation failed and was rolled back"""

    status_code = 500

    def __init__(self, message="Failed to calculate scores", payload=None):
        super().__init__(message, payload=payload)
