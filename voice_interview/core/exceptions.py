"""
Voice Interview - Custom Exceptions.

Defines a hierarchy of domain-specific exceptions for clean error handling.
The ``message`` of every exception below is safe to show to the candidate.
"""


class InterviewAIError(Exception):
    """Base exception for all Voice Interview errors."""

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


# -----------------------------------------------------------------------------
# Configuration Errors
# -----------------------------------------------------------------------------

class ConfigurationError(InterviewAIError):
    """Raised when configuration is invalid or missing."""
    pass


class MissingAPIKeyError(ConfigurationError):
    """Raised when a required API key is missing."""

    def __init__(self, key_name: str):
        super().__init__(
            message=f"Missing required API key: {key_name}",
            details="Please set this in your .env file or environment variables",
        )


# -----------------------------------------------------------------------------
# LLM Errors
# -----------------------------------------------------------------------------

class LLMError(InterviewAIError):
    """Base exception for LLM-related errors."""
    pass


class LLMConnectionError(LLMError):
    """Raised when unable to connect to the LLM service."""

    def __init__(self, service: str, reason: str):
        super().__init__(
            message=f"Failed to connect to {service}",
            details=reason,
        )


class LLMRateLimitError(LLMError):
    """Raised when rate limited by the LLM service."""

    def __init__(self, service: str, retry_after: int | None = None):
        self.retry_after = retry_after
        super().__init__(
            message=f"Rate limited by {service}",
            details=f"Retry after {retry_after}s" if retry_after else None,
        )


class LLMResponseError(LLMError):
    """Raised when the LLM returns an invalid, empty or blocked response."""
    pass


# -----------------------------------------------------------------------------
# Speech Errors
# -----------------------------------------------------------------------------

class SpeechError(InterviewAIError):
    """Base exception for speech processing errors."""
    pass


class SttConnectionError(SpeechError):
    """Raised when the upstream streaming STT connection cannot be opened."""

    def __init__(self, reason: str):
        super().__init__(
            message="Failed to connect to speech recognition service",
            details=reason,
        )


class AudioChunkError(SpeechError):
    """Raised when an inbound audio frame cannot be turned into bytes."""
    pass


# -----------------------------------------------------------------------------
# Authentication Errors
# -----------------------------------------------------------------------------

class AuthenticationError(InterviewAIError):
    """Raised when an operation requires a resolved candidate identity."""

    def __init__(self, message: str = "Candidate not authenticated. Please log in first."):
        super().__init__(message=message)


# -----------------------------------------------------------------------------
# Persistence Errors
# -----------------------------------------------------------------------------

class PersistenceError(InterviewAIError):
    """Raised when a durable store read or update fails."""
    pass


class RecordNotFoundError(PersistenceError):
    """Raised when an update targets a record that does not exist."""
    pass


# -----------------------------------------------------------------------------
# Interview Session Errors
# -----------------------------------------------------------------------------

class SessionError(InterviewAIError):
    """Base exception for interview session errors."""
    pass


class ValidationError(SessionError):
    """Raised when an inbound event payload is missing required fields."""
    pass


class SessionNotFoundError(SessionError):
    """Raised when no session state exists for the candidate."""

    def __init__(self, message: str = "Candidate interview not found. Please upload your resume first."):
        super().__init__(message=message)


class ResumeNotFoundError(SessionError):
    """Raised when the session state carries no resume text."""

    def __init__(self):
        super().__init__(message="Resume text not found")


class EmptyTranscriptError(SessionError):
    """Raised when an interview is ended before anything was said."""

    def __init__(self):
        super().__init__(message="transcript is empty")
