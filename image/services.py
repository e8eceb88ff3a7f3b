"""Image generation services - Gemini integration."""
import asyncio
import base64
from typing import Any, List, Optional, Tuple

from google import genai
from google.genai import types

from image.errors import (
    GenerationError,
    GenerationTimeoutError,
    EmptyResponseError,
    ModelRefusalError,
    NoImageDataError,
    TransportError,
)
from image.models import (
    DEFAULT_IMAGE_MIME_TYPE,
    GeneratedImage,
    GenerationRequest,
    InlineImageSegment,
    Segment,
    TextSegment,
)
from utils.logger import get_logger

logger = get_logger("image.services")

DEFAULT_MODEL = "gemini-2.5-flash-image"


def build_segments(request: GenerationRequest) -> List[Segment]:
    """
    Build the ordered request body.

    With a source image the image comes first and the prompt second, so the
    model treats the image as the subject and the text as the instruction.
    """
    segments: List[Segment] = []
    if request.source_image is not None:
        segments.append(InlineImageSegment(
            mime_type=request.source_image.mime_type,
            data=request.source_image.data,
        ))
    segments.append(TextSegment(text=request.prompt))
    return segments


def to_gemini_parts(segments: List[Segment]) -> List[types.Part]:
    parts = []
    for segment in segments:
        if isinstance(segment, InlineImageSegment):
            parts.append(types.Part(
                inline_data=types.Blob(
                    mime_type=segment.mime_type,
                    data=base64.b64decode(segment.data)
                )
            ))
        else:
            parts.append(types.Part.from_text(text=segment.text))
    return parts


def segments_from_response(response: Any) -> Optional[List[Segment]]:
    """
    Convert a generate_content response into segments.

    Returns None when the response carries no candidate content at all; an
    empty parts list counts as no content. Parts that are neither inline data
    nor text are skipped, so the result may be an empty list.
    """
    candidates = response.candidates
    if not candidates:
        return None
    content = candidates[0].content
    if content is None or not content.parts:
        return None

    segments: List[Segment] = []
    for part in content.parts:
        inline = getattr(part, "inline_data", None)
        if inline is not None and getattr(inline, "data", None):
            data = inline.data
            if isinstance(data, str):
                # Some transports hand back base64 text rather than bytes
                encoded = data
            else:
                encoded = base64.b64encode(data).decode("ascii")
            segments.append(InlineImageSegment(
                mime_type=inline.mime_type or DEFAULT_IMAGE_MIME_TYPE,
                data=encoded
            ))
            continue
        text = getattr(part, "text", None)
        if text:
            segments.append(TextSegment(text=text))
    return segments


def parse_segments(segments: Optional[List[Segment]]) -> Tuple[str, str]:
    """
    Pick the image out of the response segments.

    Returns:
        (mime_type, base64 payload) of the first inline image

    Raises:
        EmptyResponseError: no content at all
        ModelRefusalError: no image, but the model explained itself in text
        NoImageDataError: neither an image nor any text
    """
    if segments is None:
        raise EmptyResponseError()

    images = [s for s in segments if isinstance(s, InlineImageSegment)]
    if images:
        if len(images) > 1:
            logger.warning(f"Response carried {len(images)} images; keeping the first")
        return images[0].mime_type, images[0].data

    for segment in segments:
        if isinstance(segment, TextSegment):
            raise ModelRefusalError(segment.text)

    raise NoImageDataError()


class GeminiImageClient:
    """
    Single-call client for Gemini image generation and editing.

    The API key is passed in explicitly; nothing is read from the environment
    here. Each ``generate`` call is independent and holds no state.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_MODEL,
        timeout: Optional[float] = None,
        client: Optional[Any] = None
    ):
        if client is None:
            if not api_key:
                raise ValueError("A Gemini API key is required")
            client = genai.Client(api_key=api_key)
        self._client = client
        self.model = model
        self.timeout = timeout

    async def _call_model(self, segments: List[Segment]) -> Any:
        contents = types.Content(role="user", parts=to_gemini_parts(segments))
        return await self._client.aio.models.generate_content(
            model=self.model,
            contents=contents,
        )

    async def generate(self, request: GenerationRequest) -> GeneratedImage:
        """
        Generate (or edit) an image for the request.

        Raises:
            GenerationError: every failure, transport problems included, is
                             raised as a subclass of GenerationError
        """
        segments = build_segments(request)
        mode = "edit" if request.is_edit else "generate"
        logger.info(f"Calling {self.model} ({mode}, {len(segments)} segment(s)) with prompt: {request.prompt[:50]}")

        try:
            if self.timeout:
                response = await asyncio.wait_for(self._call_model(segments), timeout=self.timeout)
            else:
                response = await self._call_model(segments)
            mime_type, data = parse_segments(segments_from_response(response))
        except GenerationError as e:
            logger.warning(f"Gemini returned no usable image: {e.message}")
            raise
        except asyncio.TimeoutError as e:
            logger.error(f"Gemini call timed out after {self.timeout}s")
            raise GenerationTimeoutError(self.timeout) from e
        except Exception as e:
            logger.error(f"Gemini API Error: {e}")
            raise TransportError(str(e) or None) from e

        logger.info(f"Received {mime_type} image ({len(data)} base64 chars)")
        return GeneratedImage(mime_type=mime_type, data=data, prompt=request.prompt)


def create_image_client(api_key: str, model: str = DEFAULT_MODEL, timeout: Optional[float] = None) -> GeminiImageClient:
    return GeminiImageClient(api_key=api_key, model=model, timeout=timeout)
