# src/s3_file_compressor/exceptions.py

"""
Shared custom exceptions for the S3 File Compressor service.

Centralizing exception definitions in a separate module prevents circular
import errors between other modules that need to raise or catch them.

Exception Hierarchy:
- S3FileCompressorError (base)
  - RetryableError (can be retried)
    - MemoryLimitError
  - NonRetryableError (should not be retried)
    - ValidationError
      - InvalidS3EventError
    - ConfigurationError
  - S3Error (retryable only when the store reported a transient condition)
    - SourceReadError
      - S3ObjectNotFoundError
    - UploadInitiationError
    - PartUploadError
    - UploadCompletionError
    - UploadAbortError
    - DeleteError
"""

from typing import Any, Dict, Optional


class S3FileCompressorError(Exception):
    """Base exception for all S3 File Compressor service errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        correlation_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.context = dict(context) if context else {}  # Copy context to prevent mutation
        self.correlation_id = correlation_id

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
            "correlation_id": self.correlation_id,
            "retryable": is_retryable_error(self),
        }


class RetryableError(S3FileCompressorError):
    """Base class for errors that can be retried."""
    pass


class NonRetryableError(S3FileCompressorError):
    """Base class for errors that should not be retried."""
    pass


# === Validation Errors ===

class ValidationError(NonRetryableError):
    """Base class for validation errors."""
    pass


class InvalidS3EventError(ValidationError):
    """Raised when S3 event structure is invalid."""

    def __init__(self, message: str, **kwargs):
        # Don't override error_code if it's already provided in kwargs
        if "error_code" not in kwargs:
            kwargs["error_code"] = "INVALID_S3_EVENT"
        super().__init__(message, **kwargs)


# === Configuration Errors ===

class ConfigurationError(NonRetryableError):
    """
    Raised when a single configuration value cannot be parsed.

    Configuration loading catches this internally and falls back to the
    default value, so it never escapes `AppConfig.from_mapping`.
    """

    def __init__(self, variable: str, value: Any = None, **kwargs):
        message = f"Invalid value for configuration variable {variable}: {value!r}"
        context = {"variable": variable, "value": str(value) if value is not None else None}
        super().__init__(message, error_code="CONFIGURATION_ERROR", context=context, **kwargs)


# === Processing Errors ===

class MemoryLimitError(RetryableError):
    """Raised when memory limit is exceeded."""

    def __init__(self, operation: str, **kwargs):
        message = f"Memory limit exceeded during: {operation}"
        context = {"operation": operation}
        if "context" in kwargs:
            context.update(kwargs.pop("context"))
        super().__init__(message, error_code="MEMORY_LIMIT_EXCEEDED", context=context, **kwargs)


# === S3-Related Errors ===

class S3Error(S3FileCompressorError):
    """
    Base class for failures of a single S3 operation.

    `transient` marks conditions (throttling, timeouts, dropped connections)
    that the hosting environment may retry.
    """

    default_error_code = "S3_ERROR"

    def __init__(
        self,
        message: str,
        bucket: str,
        key: str,
        transient: bool = False,
        **kwargs,
    ):
        context = {"bucket": bucket, "key": key}
        if "context" in kwargs:
            context.update(kwargs.pop("context"))
        kwargs.setdefault("error_code", self.default_error_code)
        super().__init__(message, context=context, **kwargs)
        self.bucket = bucket
        self.key = key
        self.transient = transient


class SourceReadError(S3Error):
    """Raised when the source object or its metadata cannot be read."""

    default_error_code = "SOURCE_READ_FAILED"


class S3ObjectNotFoundError(SourceReadError, NonRetryableError):
    """Raised when a requested S3 object does not exist."""

    def __init__(self, bucket: str, key: str, **kwargs):
        message = f"S3 object not found: s3://{bucket}/{key}"
        super().__init__(
            message, bucket, key, error_code="S3_OBJECT_NOT_FOUND", **kwargs
        )


class UploadInitiationError(S3Error):
    """Raised when the store refuses to create a multipart upload."""

    default_error_code = "UPLOAD_INITIATION_FAILED"


class PartUploadError(S3Error):
    """Raised when a single part of a multipart upload fails."""

    default_error_code = "PART_UPLOAD_FAILED"

    def __init__(self, message: str, bucket: str, key: str, part_number: int, **kwargs):
        context = {"part_number": part_number}
        if "context" in kwargs:
            context.update(kwargs.pop("context"))
        super().__init__(message, bucket, key, context=context, **kwargs)
        self.part_number = part_number


class UploadCompletionError(S3Error):
    """Raised when a multipart upload cannot be finalized."""

    default_error_code = "UPLOAD_COMPLETION_FAILED"


class UploadAbortError(S3Error):
    """Raised when an incomplete multipart upload cannot be aborted."""

    default_error_code = "UPLOAD_ABORT_FAILED"


class DeleteError(S3Error):
    """Raised when the source object cannot be deleted after compression."""

    default_error_code = "SOURCE_DELETE_FAILED"


# === Utility Functions ===

def is_retryable_error(error: Exception) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, NonRetryableError):
        return False
    if isinstance(error, RetryableError):
        return True
    return bool(getattr(error, "transient", False))


def get_error_context(error: Exception) -> Dict[str, Any]:
    """Extract error context for logging."""
    if isinstance(error, S3FileCompressorError):
        return error.to_dict()
    else:
        return {
            "error_type": error.__class__.__name__,
            "message": str(error),
            "retryable": False,  # Unknown errors default to non-retryable
        }
