# File: media_server/core/errors.py

from typing import Any, Dict, Optional


class MediaServerError(Exception):
    """
    Base class for every failure that is reported to HTTP callers.
    Carries the status code and a machine-readable reason.
    """
    status_code: int = 500
    reason: str = "internal_error"

    def __init__(self, message: str, extra: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.extra = extra or {}

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.message, "reason": self.reason, **self.extra}


# --- Validation errors (4xx, never retried) ---

class BadRequestError(MediaServerError):
    status_code = 400
    reason = "bad_request"


class UnsupportedMediaTypeError(MediaServerError):
    status_code = 400
    reason = "unsupported_type"


class AuthenticationError(MediaServerError):
    status_code = 401
    reason = "missing_credentials"


class ForbiddenError(AuthenticationError):
    status_code = 403
    reason = "invalid_api_key"


class FileNotFoundInStorageError(MediaServerError):
    status_code = 404
    reason = "not_found"


class FileTooLargeError(MediaServerError):
    status_code = 413
    reason = "file_too_large"


class MetadataExtractionError(MediaServerError):
    status_code = 422
    reason = "metadata_extraction_failed"


class RateLimitedError(MediaServerError):
    status_code = 429
    reason = "rate_limited"

    def __init__(self, message: str, retry_after: float):
        super().__init__(message)
        self.retry_after = retry_after


# --- Tooling / persistence errors ---

class StorageIOError(MediaServerError):
    status_code = 500
    reason = "io_error"


class TranscodeError(MediaServerError):
    status_code = 502
    reason = "transcode_failed"


# --- Resource errors (caller may retry later) ---

class InsufficientStorageError(MediaServerError):
    status_code = 507
    reason = "insufficient_storage"
