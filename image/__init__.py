"""Image generation module."""
from image.errors import (
    GenerationError,
    DecodeError,
    EmptyPromptError,
    EmptyResponseError,
    ModelRefusalError,
    NoImageDataError,
    TransportError,
    GenerationTimeoutError,
    RequestInFlightError,
    InvalidTransitionError
)
from image.models import (
    AppStatus,
    EncodedImage,
    GenerationRequest,
    GeneratedImage,
    GenerationResult,
    InlineImageSegment,
    TextSegment
)
from image.ingest import process_file, encode_image, ingest_data_url, parse_data_url
from image.services import GeminiImageClient, create_image_client, build_segments, parse_segments
from image.session import GenerationSession

__all__ = [
    "GenerationError",
    "DecodeError",
    "EmptyPromptError",
    "EmptyResponseError",
    "ModelRefusalError",
    "NoImageDataError",
    "TransportError",
    "GenerationTimeoutError",
    "RequestInFlightError",
    "InvalidTransitionError",
    "AppStatus",
    "EncodedImage",
    "GenerationRequest",
    "GeneratedImage",
    "GenerationResult",
    "InlineImageSegment",
    "TextSegment",
    "process_file",
    "encode_image",
    "ingest_data_url",
    "parse_data_url",
    "GeminiImageClient",
    "create_image_client",
    "build_segments",
    "parse_segments",
    "GenerationSession"
]
