"""Image generation Pydantic models."""
import base64
import mimetypes
import time
from enum import Enum
from typing import Annotated, Optional, List, Union, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from common.error_messages import ErrorCode

DEFAULT_IMAGE_MIME_TYPE = "image/png"
DOWNLOAD_PREFIX = "banana-edit"


def now_ms() -> int:
    return int(time.time() * 1000)


def to_data_url(data: str, mime_type: str = DEFAULT_IMAGE_MIME_TYPE) -> str:
    return f"data:{mime_type};base64,{data}"


def extension_for(mime_type: str) -> str:
    """File extension for a MIME type, with the usual jpeg fix-up."""
    extension = mimetypes.guess_extension(mime_type) or ".png"
    if extension in (".jpe", ".jpeg"):
        extension = ".jpg"
    return extension


class AppStatus(str, Enum):
    """UI status of one session."""
    IDLE = "IDLE"
    LOADING = "LOADING"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


class EncodedImage(BaseModel):
    """A user-supplied image, ready to be sent to the model."""
    mime_type: str = Field(..., description="Image MIME type (e.g., image/png, image/jpeg)")
    data: str = Field(..., description="Base64-encoded image bytes")
    preview_url: str = Field(..., description="data: URL the page can display directly")
    filename: Optional[str] = Field(None, description="Original file name, if known")
    size_bytes: int = Field(0, ge=0, description="Size of the decoded image")

    def raw_bytes(self) -> bytes:
        return base64.b64decode(self.data)


class InlineImageSegment(BaseModel):
    kind: Literal["inline_image"] = "inline_image"
    mime_type: str = DEFAULT_IMAGE_MIME_TYPE
    data: str = Field(..., description="Base64-encoded image bytes")


class TextSegment(BaseModel):
    kind: Literal["text"] = "text"
    text: str


Segment = Annotated[Union[InlineImageSegment, TextSegment], Field(discriminator="kind")]


class GenerationRequest(BaseModel):
    prompt: str = Field(..., min_length=1)
    source_image: Optional[EncodedImage] = None

    @field_validator("prompt")
    @classmethod
    def prompt_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("prompt must not be blank")
        return value

    @property
    def is_edit(self) -> bool:
        return self.source_image is not None


class GeneratedImage(BaseModel):
    """A successfully generated image."""
    mime_type: str = DEFAULT_IMAGE_MIME_TYPE
    data: str = Field(..., description="Base64-encoded image bytes")
    prompt: str = ""
    timestamp: int = Field(default_factory=now_ms, description="Creation time in epoch milliseconds")

    @property
    def data_url(self) -> str:
        return to_data_url(self.data, self.mime_type)

    @property
    def download_filename(self) -> str:
        return f"{DOWNLOAD_PREFIX}-{self.timestamp}{extension_for(self.mime_type)}"

    def raw_bytes(self) -> bytes:
        return base64.b64decode(self.data)


class GenerationResult(BaseModel):
    """Outcome of one request: either an image or an error, never both."""
    image: Optional[GeneratedImage] = None
    error: Optional[str] = None
    error_code: Optional[ErrorCode] = None

    @model_validator(mode="after")
    def exactly_one_outcome(self):
        if (self.image is None) == (self.error is None):
            raise ValueError("GenerationResult needs exactly one of image or error")
        return self

    @property
    def ok(self) -> bool:
        return self.image is not None

    @classmethod
    def success(cls, image: GeneratedImage) -> "GenerationResult":
        return cls(image=image)

    @classmethod
    def failure(cls, message: str, code: ErrorCode = ErrorCode.UNKNOWN_ERROR) -> "GenerationResult":
        return cls(error=message, error_code=code)


# ---------- API payloads ----------

class GenerateRequest(BaseModel):
    prompt: str = Field("", description="What to generate, or how to edit the source image")


class DataUrlUpload(BaseModel):
    data_url: str = Field(..., description="data:<mime>;base64,<payload>")
    filename: Optional[str] = None


class SourceImageView(BaseModel):
    mime_type: str
    preview_url: str
    filename: Optional[str] = None
    size_bytes: int = 0

    @classmethod
    def from_encoded(cls, image: EncodedImage) -> "SourceImageView":
        return cls(
            mime_type=image.mime_type,
            preview_url=image.preview_url,
            filename=image.filename,
            size_bytes=image.size_bytes,
        )


class ResultView(BaseModel):
    ok: bool
    image_url: Optional[str] = None
    mime_type: Optional[str] = None
    prompt: Optional[str] = None
    timestamp: Optional[int] = None
    download_filename: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[ErrorCode] = None

    @classmethod
    def from_result(cls, result: GenerationResult) -> "ResultView":
        if result.image is None:
            return cls(ok=False, error=result.error, error_code=result.error_code)
        image = result.image
        return cls(
            ok=True,
            image_url=image.data_url,
            mime_type=image.mime_type,
            prompt=image.prompt,
            timestamp=image.timestamp,
            download_filename=image.download_filename,
        )


class SessionState(BaseModel):
    status: AppStatus
    has_source_image: bool = False
    source_image: Optional[SourceImageView] = None
    result: Optional[ResultView] = None
    prompt: Optional[str] = None


class SuggestionsResponse(BaseModel):
    mode: Literal["edit", "generate"]
    suggestions: List[str]
