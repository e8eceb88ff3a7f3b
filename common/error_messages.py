"""
User-facing error messages and status codes.

This module keeps the default message and HTTP status for every failure the
studio can surface, so routes and exceptions agree on both.
"""
from typing import Tuple, Optional
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for different types of failures."""

    # Input errors (400, 413)
    MISSING_PROMPT = "MISSING_PROMPT"
    INVALID_IMAGE_DATA = "INVALID_IMAGE_DATA"
    UNSUPPORTED_FILE_TYPE = "UNSUPPORTED_FILE_TYPE"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"

    # Session state errors (404, 409)
    REQUEST_IN_FLIGHT = "REQUEST_IN_FLIGHT"
    INVALID_STATE = "INVALID_STATE"
    NO_RESULT = "NO_RESULT"

    # Model response errors (422, 502)
    NO_CONTENT_GENERATED = "NO_CONTENT_GENERATED"
    MODEL_REFUSAL = "MODEL_REFUSAL"
    NO_IMAGE_DATA = "NO_IMAGE_DATA"

    # External API errors (502, 504)
    GEMINI_API_ERROR = "GEMINI_API_ERROR"
    GEMINI_TIMEOUT = "GEMINI_TIMEOUT"

    # Configuration errors (500)
    MISSING_API_KEY = "MISSING_API_KEY"

    # Generic errors
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


ERROR_MESSAGES = {
    ErrorCode.MISSING_PROMPT: "Please enter a prompt describing what you want to generate or edit.",
    ErrorCode.INVALID_IMAGE_DATA: "Failed to parse file data",
    ErrorCode.UNSUPPORTED_FILE_TYPE: "File must be an image.",
    ErrorCode.FILE_TOO_LARGE: "The uploaded file is too large.",

    ErrorCode.REQUEST_IN_FLIGHT: "A generation is already in progress. Please wait for it to finish.",
    ErrorCode.INVALID_STATE: "That action is not available right now.",
    ErrorCode.NO_RESULT: "There is no generated image to download.",

    ErrorCode.NO_CONTENT_GENERATED: "No content generated",
    ErrorCode.MODEL_REFUSAL: "Model returned text instead of an image.",
    ErrorCode.NO_IMAGE_DATA: "No image data found in response",

    ErrorCode.GEMINI_API_ERROR: "Failed to generate image",
    ErrorCode.GEMINI_TIMEOUT: "The image service took too long to respond. Please try again.",

    ErrorCode.MISSING_API_KEY: "The service is not properly configured. Please contact support.",

    ErrorCode.UNKNOWN_ERROR: "Something went wrong. Please try again.",
}


ERROR_STATUS_CODES = {
    ErrorCode.MISSING_PROMPT: 400,
    ErrorCode.INVALID_IMAGE_DATA: 400,
    ErrorCode.UNSUPPORTED_FILE_TYPE: 400,
    ErrorCode.FILE_TOO_LARGE: 413,

    ErrorCode.REQUEST_IN_FLIGHT: 409,
    ErrorCode.INVALID_STATE: 409,
    ErrorCode.NO_RESULT: 404,

    ErrorCode.NO_CONTENT_GENERATED: 502,
    ErrorCode.MODEL_REFUSAL: 422,
    ErrorCode.NO_IMAGE_DATA: 502,

    ErrorCode.GEMINI_API_ERROR: 502,
    ErrorCode.GEMINI_TIMEOUT: 504,

    ErrorCode.MISSING_API_KEY: 500,

    ErrorCode.UNKNOWN_ERROR: 500,
}


def get_error_response(
    error_code: ErrorCode,
    custom_message: Optional[str] = None
) -> Tuple[str, int]:
    """
    Get the user-facing message and HTTP status code for an error code.

    Args:
        error_code: The error code enum
        custom_message: Replaces the default message when given

    Returns:
        Tuple of (error_message, status_code)
    """
    message = custom_message or ERROR_MESSAGES.get(error_code, ERROR_MESSAGES[ErrorCode.UNKNOWN_ERROR])
    status_code = ERROR_STATUS_CODES.get(error_code, 500)
    return message, status_code
