"""
Custom exception classes for the ThreadForge API.

Services raise these exceptions; the API layer (``threadforge.api.errors``)
maps each one to a fixed HTTP status and a static, client-safe message.

Hierarchy:
    Exception
    +-- ThreadForgeError (base for all service-level errors)
    |   +-- ChatCompletionError
    |   +-- GenerationError
    |   +-- ProfileAnalysisError
    |   +-- TweetImprovementError
    |   +-- WebSearchError
    |   +-- NotFoundError
    |   +-- RateLimitExceededError
    +-- ValidationError (ValueError)
    +-- DatabaseError
    +-- ConfigurationError
    +-- RetryExhaustedError
"""

from typing import List, Optional


# =============================================================================
# BASE EXCEPTION
# =============================================================================


class ThreadForgeError(Exception):
    """Base exception for all ThreadForge service errors."""

    pass


# =============================================================================
# CORE EXCEPTIONS
# =============================================================================


class ValidationError(ValueError):
    """Raised when request validation fails.

    Attributes:
        errors: Optional list of individual validation problems. The
            exception message is always the first (or only) problem.
    """

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        self.errors = errors
        super().__init__(message)


class DatabaseError(Exception):
    """Raised when database operations fail."""

    pass


class ConfigurationError(Exception):
    """Raised when system configuration is invalid."""

    pass


class RetryExhaustedError(Exception):
    """Raised when all retry attempts have been exhausted.

    Attributes:
        operation: Name of the operation that was retried.
        attempts: Total number of attempts made.
        last_error: The last exception raised before giving up.
    """

    def __init__(self, operation: str, attempts: int, last_error: Exception):
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"{operation} failed after {attempts} attempts. "
            f"Last error: {last_error}"
        )


# =============================================================================
# EXTERNAL API EXCEPTIONS
# =============================================================================


class ChatCompletionError(ThreadForgeError):
    """Raised when the chat-completion endpoint fails or returns garbage.

    Attributes:
        status_code: HTTP status returned by the provider, if any.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class WebSearchError(ThreadForgeError):
    """Raised when web research cannot be completed."""

    pass


# =============================================================================
# SERVICE EXCEPTIONS
# =============================================================================


class GenerationError(ThreadForgeError):
    """Raised when thread or tweet generation fails."""

    pass


class ProfileAnalysisError(ThreadForgeError):
    """Raised when a profile cannot be turned into a brand description."""

    pass


class TweetImprovementError(ThreadForgeError):
    """Raised when an improved tweet cannot be produced."""

    pass


class NotFoundError(ThreadForgeError):
    """Raised when a requested record does not exist."""

    pass


class RateLimitExceededError(ThreadForgeError):
    """Raised when a client exhausts its fixed-window quota.

    Attributes:
        policy: Name of the rate-limit policy that rejected the request.
        retry_after: Seconds until the current window resets.
    """

    def __init__(self, policy: str, retry_after: int):
        self.policy = policy
        self.retry_after = retry_after
        super().__init__(
            f"Rate limit '{policy}' exceeded. Retry after {retry_after} seconds"
        )


# =============================================================================
# PUBLIC API
# =============================================================================

__all__ = [
    # Base
    "ThreadForgeError",
    # Core
    "ValidationError",
    "DatabaseError",
    "ConfigurationError",
    "RetryExhaustedError",
    # External APIs
    "ChatCompletionError",
    "WebSearchError",
    # Services
    "GenerationError",
    "ProfileAnalysisError",
    "TweetImprovementError",
    "NotFoundError",
    "RateLimitExceededError",
]
