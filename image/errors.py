"""Failure taxonomy for ingestion, generation and session transitions."""
from typing import Optional

from common.error_messages import ErrorCode, ERROR_MESSAGES, get_error_response


class GenerationError(Exception):
    """Base class for every failure the studio reports to the user."""

    code: ErrorCode = ErrorCode.UNKNOWN_ERROR

    def __init__(self, message: Optional[str] = None):
        self.message = message or ERROR_MESSAGES[self.code]
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return get_error_response(self.code, self.message)[1]


class DecodeError(GenerationError):
    """The uploaded file could not be read as an image."""
    code = ErrorCode.INVALID_IMAGE_DATA


class EmptyPromptError(GenerationError):
    code = ErrorCode.MISSING_PROMPT


class EmptyResponseError(GenerationError):
    """The model answered without any content parts."""
    code = ErrorCode.NO_CONTENT_GENERATED


class ModelRefusalError(GenerationError):
    """The model answered with text only; the text is kept verbatim."""
    code = ErrorCode.MODEL_REFUSAL


class NoImageDataError(GenerationError):
    code = ErrorCode.NO_IMAGE_DATA


class TransportError(GenerationError):
    """Network, authentication or malformed-response failure."""
    code = ErrorCode.GEMINI_API_ERROR


class GenerationTimeoutError(TransportError):
    code = ErrorCode.GEMINI_TIMEOUT

    def __init__(self, timeout: Optional[float] = None):
        message = None
        if timeout is not None:
            message = f"Image generation timed out after {timeout:g} seconds"
        super().__init__(message)


class RequestInFlightError(GenerationError):
    code = ErrorCode.REQUEST_IN_FLIGHT


class InvalidTransitionError(GenerationError):
    code = ErrorCode.INVALID_STATE
