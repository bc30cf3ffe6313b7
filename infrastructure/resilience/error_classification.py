"""
Failure classification for text-generation calls.

Decides which failures are worth retrying and which ones say something about the
health of the model that produced them.
"""

from typing import Optional, Union
import openai


# Define which errors should trigger retries (transient errors)
RETRIABLE_ERRORS = (
    openai.RateLimitError,
    openai.APIConnectionError,   # includes APITimeoutError
    openai.InternalServerError,  # Server-side issues
)

# Define which errors should NOT be retried (permanent errors)
NON_RETRIABLE_ERRORS = (
    openai.AuthenticationError,    # API key issues
    openai.PermissionDeniedError,
    openai.BadRequestError,        # Prompt issues
    openai.NotFoundError,          # Unknown model
    openai.ContentFilterFinishReasonError,
)

ErrorCode = Union[int, str]


class TextGenerationError(Exception):
    """Failure raised by the text-generation client itself"""

    def __init__(self, message: str, code: Optional[ErrorCode] = None):
        self.message = message
        self.code = code
        super().__init__(message)


class EmptyResponseError(TextGenerationError):
    """The endpoint answered successfully but without any text"""

    def __init__(self, model: str):
        super().__init__(f"Empty response received from model {model}", code="empty_response")
        self.model = model


def get_status_code(error: Exception) -> Optional[int]:
    """HTTP status carried by the error, if any"""
    status = getattr(error, "status_code", None)
    if isinstance(status, int):
        return status
    response = getattr(error, "response", None)
    status = getattr(response, "status_code", None)
    return status if isinstance(status, int) else None


def get_error_code(error: Exception) -> ErrorCode:
    """
    Classifier recorded against a model when a call fails

    Returns:
        The HTTP status code when known, otherwise a short category string
    """
    status = get_status_code(error)
    if status is not None:
        return status
    if isinstance(error, openai.APITimeoutError):
        return "timeout"
    if isinstance(error, openai.APIConnectionError):
        return "network"
    if isinstance(error, TextGenerationError) and error.code is not None:
        return error.code
    return error.__class__.__name__


def is_retriable_error(error: Exception) -> bool:
    """
    Default retry predicate for text-generation calls

    Network failures, timeouts, empty responses, rate limits (429) and server
    errors (5xx) are retried; any other client error (4xx) is permanent.
    """
    if isinstance(error, RETRIABLE_ERRORS):
        return True
    if isinstance(error, NON_RETRIABLE_ERRORS):
        return False

    status = get_status_code(error)
    if status is None:
        return True
    if status >= 500 or status == 429:
        return True
    if 400 <= status < 500:
        return False
    return True


def counts_against_resource(error: Exception) -> bool:
    """
    Whether a failure should be reported to the availability registry

    A 400 says the request was bad, not the model; a 404 means the model
    itself cannot be served.
    """
    return is_retriable_error(error) or get_status_code(error) == 404
