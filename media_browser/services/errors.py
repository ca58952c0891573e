from __future__ import annotations


class MediaLibraryError(Exception):
    """Base class for failures raised by the library services."""


class ConfinementError(MediaLibraryError):
    """The requested path escapes the media root."""


class RangeError(MediaLibraryError):
    """The Range header is not a single well-formed byte span."""


class UnsatisfiableRangeError(MediaLibraryError):
    def __init__(self, size: int, message: str = 'Requested range not satisfiable'):
        super().__init__(message)
        self.size = size


class NotFoundError(MediaLibraryError):
    pass


class ValidationError(MediaLibraryError):
    pass


class StorageError(MediaLibraryError):
    """A filesystem call failed after the request was validated."""
