"""Error taxonomy shared by the progression engine and the API layer."""


class ProgressionError(Exception):
    """Base class for errors surfaced by the progression core."""

    status_code = 500


class NotFound(ProgressionError):
    """Referenced child does not exist."""

    status_code = 404

    def __init__(self, message: str = "Child not found"):
        super().__init__(message)


class ValidationError(ProgressionError):
    """Malformed game result, rejected before anything is persisted."""

    status_code = 400


class StorageFailure(ProgressionError):
    """A persistence operation failed. Not retried here."""

    status_code = 500
