"""
Error taxonomy for media and record requests.

Normalization and candidate resolution report failures as plain return values;
these exceptions are raised by the request handlers and turned into JSON error
responses by the blueprint error handlers.
"""


class MediaError(Exception):
    """Base exception carrying the HTTP status it maps to."""

    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {'error': self.message}


class InputError(MediaError):
    """Missing or malformed client input."""
    status_code = 400


class NotFoundError(MediaError):
    """No record or storage object matched the request."""
    status_code = 404


class UpstreamError(MediaError):
    """The object store or record store failed."""
    status_code = 502


class UnsupportedError(MediaError):
    """The configured storage backend cannot perform the operation."""
    status_code = 501


class InternalError(MediaError):
    """Unexpected failure."""
    status_code = 500
