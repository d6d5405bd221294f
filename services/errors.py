"""
Failures raised by the caption services.

Every generation failure is terminal for the request that hit it; nothing in
this package retries.
"""


class CaptionError(Exception):
    """Base class for generation failures surfaced to the caller."""

    status_code = 500

    def __init__(self, message, raw=None):
        super().__init__(message)
        self.message = message
        self.raw = raw

    def to_dict(self, include_raw=False):
        body = {'error': self.message}
        if include_raw and self.raw is not None:
            body['raw'] = self.raw
        return body


class ValidationError(CaptionError):
    """A required request field is missing or holds an unknown value."""

    status_code = 400


class UpstreamFetchError(CaptionError):
    """The image URL could not be fetched or did not return an image."""


class UpstreamGenerationError(CaptionError):
    """The generation API call failed or returned no text."""


class ResponseParseError(CaptionError):
    """The model's text is not valid JSON after fence stripping."""


class SchemaValidationError(CaptionError):
    """The model's JSON does not match the caption result schema."""

    def __init__(self, message, raw=None, reason=None):
        super().__init__(message, raw=raw)
        self.reason = reason


class BackendError(Exception):
    """A call to the hosted backend (database, storage) failed."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AuthError(BackendError):
    """Sign in, sign up or token lookup was rejected."""


class SessionExpired(Exception):
    """The user's access token was rejected and could not be refreshed."""

    def __init__(self, message='Your session has expired. Please log in again.'):
        super().__init__(message)
        self.message = message
