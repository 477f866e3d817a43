"""
Error taxonomy shared by the lifecycle manager and the HTTP layer.
"""


class BoardError(Exception):
    """Base class for errors surfaced to callers."""
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ValidationError(BoardError):
    """Bad input shape, size or bounds."""
    status_code = 400


class NotFoundError(BoardError):
    """Post or room is absent or already expired."""
    status_code = 404


class ForbiddenError(BoardError):
    """Delete token mismatch."""
    status_code = 403


class StorageIOError(BoardError):
    """Snapshot or media I/O failure."""
    status_code = 500
