"""
Cycle count error taxonomy.

Each error carries a user-visible message and the HTTP status the API
layer answers with.
"""


class CycleCountError(Exception):
    """Base class for cycle count engine errors."""
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(CycleCountError):
    """Count or part does not exist."""
    status_code = 404


class InvalidStateError(CycleCountError):
    """Requested transition is not allowed from the current status."""
    status_code = 409


class AlreadyReconciledError(CycleCountError):
    """The count's variance has already been applied to stock."""
    status_code = 409


class ValidationError(CycleCountError):
    """Input rejected, e.g. a negative counted quantity."""
    status_code = 422


class BatchTimeoutError(CycleCountError):
    """A batch job exceeded its time limit; it is safe to run again."""
    status_code = 503
