"""
mediashelf - Failure taxonomy

Every failure the core can report has its own exception class so the HTTP
layer can translate it into a status code without inspecting messages.
"""


class MediaLibraryError(Exception):
    """Base class for all failures raised by the mediashelf core."""

    status_code = 500

    def __init__(self, message: str = ""):
        self.message = message or (self.__class__.__doc__ or "").strip()
        super().__init__(self.message)


class PathRejected(MediaLibraryError):
    """Path is outside the configured root."""

    status_code = 403


class NotFound(MediaLibraryError):
    """Requested directory, file or playlist does not exist."""

    status_code = 404


class AlreadyExists(MediaLibraryError):
    """Target playlist already exists."""

    status_code = 409


class OutOfRange(MediaLibraryError):
    """Track index is out of range."""

    status_code = 400


class InvalidArgument(MediaLibraryError, ValueError):
    """Malformed argument."""

    status_code = 400
