"""Error taxonomy for the analysis pipeline."""

from enum import StrEnum


class ErrorKind(StrEnum):
    """Kinds of failures surfaced by the pipeline."""

    NO_CREDENTIAL = "no_credential"
    INVALID_CREDENTIAL = "invalid_credential"
    RATE_LIMITED = "rate_limited"
    QUOTA_EXCEEDED = "quota_exceeded"
    SCHEMA_VALIDATION_FAILED = "schema_validation_failed"
    TRANSIENT_BACKEND = "transient_backend"
    INVALID_IMAGE = "invalid_image"
    FORMATTING_FAILED = "formatting_failed"
    PIPELINE_EXHAUSTED = "pipeline_exhausted"


class AnalysisError(Exception):
    """Base class for pipeline failures.

    ``retryable`` decides whether a retry loop may absorb the error;
    ``code`` and ``user_message`` are what callers show to the user.
    """

    kind: ErrorKind = ErrorKind.TRANSIENT_BACKEND
    retryable: bool = False
    code: str = "UNKNOWN"
    user_message: str = "An unexpected error occurred while analyzing food."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.user_message)


class NoCredentialError(AnalysisError):
    """The user has not configured a key for the selected backend."""

    kind = ErrorKind.NO_CREDENTIAL
    code = "NO_API_KEY"
    user_message = "Please add your API key in Settings to use AI features."

    def __init__(self, provider: str | None = None) -> None:
        self.provider = provider
        message = (
            f"No API key configured for provider '{provider}'"
            if provider
            else "No API key configured"
        )
        super().__init__(message)


class InvalidCredentialError(AnalysisError):
    """The backend rejected the configured key."""

    kind = ErrorKind.INVALID_CREDENTIAL
    code = "INVALID_KEY"
    user_message = (
        "Your API key is invalid or has been revoked. Please update it in Settings."
    )


class RateLimitedError(AnalysisError):
    """The backend throttled the request."""

    kind = ErrorKind.RATE_LIMITED
    retryable = True
    code = "RATE_LIMIT"
    user_message = "Rate limit exceeded. Please wait a moment and try again."


class QuotaExceededError(AnalysisError):
    """The backend account has run out of credits."""

    kind = ErrorKind.QUOTA_EXCEEDED
    code = "QUOTA_EXCEEDED"
    user_message = (
        "Your AI provider account has run out of credits. Please add more credits."
    )


class SchemaValidationError(AnalysisError):
    """A response did not match the required shape."""

    kind = ErrorKind.SCHEMA_VALIDATION_FAILED
    retryable = True
    code = "SCHEMA_INVALID"
    user_message = "The AI response could not be understood. Please try again."


class TransientBackendError(AnalysisError):
    """Network or unknown backend failure."""

    kind = ErrorKind.TRANSIENT_BACKEND
    retryable = True
    code = "BACKEND_ERROR"
    user_message = "Unable to reach the AI provider. Please try again."


class InvalidImageError(AnalysisError, ValueError):
    """A caller-supplied image reference cannot be used."""

    kind = ErrorKind.INVALID_IMAGE
    code = "INVALID_IMAGE"
    user_message = "One of the images could not be read. Please use a photo."


class FormattingFailedError(AnalysisError):
    """The formatting stage exhausted its attempts."""

    kind = ErrorKind.FORMATTING_FAILED
    retryable = True
    code = "FORMATTING_FAILED"
    user_message = "Failed to format the nutrition analysis. Please try again."

    def __init__(self, attempts: int, last_error: BaseException | None) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Formatting failed after {attempts} attempts: {last_error or 'unknown'}"
        )


class PipelineExhaustedError(AnalysisError):
    """All pipeline attempts, and the fallback when enabled, failed."""

    kind = ErrorKind.PIPELINE_EXHAUSTED
    code = "PIPELINE_EXHAUSTED"
    user_message = "Failed to analyze food. Please try again later."

    def __init__(
        self,
        attempts: int,
        last_error: BaseException | None,
        fallback_error: BaseException | None = None,
    ) -> None:
        self.attempts = attempts
        self.last_error = last_error
        self.fallback_error = fallback_error
        message = (
            f"Failed to analyze food after {attempts} attempts. "
            f"Last error: {last_error or 'unknown'}"
        )
        if fallback_error is not None:
            message += f"; fallback error: {fallback_error}"
        super().__init__(message)
