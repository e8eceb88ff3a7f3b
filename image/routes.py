"""Studio routes: source image, generation, result and session state."""
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Request, Response, UploadFile

from common.error_messages import ErrorCode, get_error_response
from common.prompts import get_suggestions
from config import Config
from database import SessionStore, sessions
from image.errors import DecodeError, GenerationError, InvalidTransitionError
from image.ingest import ingest_data_url, process_file
from image.models import (
    DataUrlUpload,
    GenerateRequest,
    ResultView,
    SessionState,
    SourceImageView,
    SuggestionsResponse,
)
from image.services import GeminiImageClient, create_image_client
from image.session import GenerationSession
from utils.logger import get_logger

logger = get_logger("image")
router = APIRouter(prefix="/api", tags=["image"])

_image_client: Optional[GeminiImageClient] = None


def get_session_store() -> SessionStore:
    return sessions


def get_image_client() -> GeminiImageClient:
    """Lazily build the shared Gemini client from configuration."""
    global _image_client
    if _image_client is None:
        try:
            api_key = Config.get_gemini_api_key()
        except ValueError as e:
            logger.error(f"Cannot create Gemini client: {e}")
            message, status_code = get_error_response(ErrorCode.MISSING_API_KEY)
            raise HTTPException(status_code=status_code, detail=message)
        _image_client = create_image_client(
            api_key,
            model=Config.GEMINI_IMAGE_MODEL,
            timeout=Config.GENERATION_TIMEOUT_SECONDS
        )
        logger.info(f"Gemini client ready (model={Config.GEMINI_IMAGE_MODEL})")
    return _image_client


def get_session(request: Request, store: SessionStore = Depends(get_session_store)) -> GenerationSession:
    """
    Resolve the caller's session.

    The id comes from the session cookie, or on first contact from the id the
    session-cookie middleware assigned to this request.
    """
    session_id = request.cookies.get(Config.SESSION_COOKIE_NAME) or getattr(request.state, "session_id", None)
    return store.get_or_create(session_id)


def _http_error(error: GenerationError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.message)


def _too_large_error() -> HTTPException:
    message, status_code = get_error_response(
        ErrorCode.FILE_TOO_LARGE,
        f"File size exceeds {Config.MAX_UPLOAD_MB}MB limit"
    )
    return HTTPException(status_code=status_code, detail=message)


@router.get("/state", response_model=SessionState)
def get_state(session: GenerationSession = Depends(get_session)):
    """Current status, source image and result for this browser."""
    return session.snapshot()


@router.get("/suggestions", response_model=SuggestionsResponse)
def suggestions(session: GenerationSession = Depends(get_session)):
    has_image = session.source_image is not None
    return SuggestionsResponse(
        mode="edit" if has_image else "generate",
        suggestions=get_suggestions(has_image)
    )


@router.post("/source-image", response_model=SourceImageView)
async def upload_source_image(
    file: UploadFile = File(...),
    session: GenerationSession = Depends(get_session)
):
    """
    Select the image to edit (multipart/form-data).

    A later selection replaces this one; an upload that finishes after a newer
    one has started is rejected with 409.
    """
    if not file.content_type or not file.content_type.startswith("image/"):
        message, status_code = get_error_response(ErrorCode.UNSUPPORTED_FILE_TYPE)
        raise HTTPException(status_code=status_code, detail=message)

    if file.size is not None and file.size > Config.max_upload_bytes():
        raise _too_large_error()

    ticket = session.begin_ingest()
    try:
        image = await process_file(file)
    except DecodeError as e:
        raise _http_error(e)
    if image.size_bytes > Config.max_upload_bytes():
        raise _too_large_error()

    if not session.finish_ingest(ticket, image):
        raise _http_error(InvalidTransitionError("This upload was replaced by a newer selection"))
    return SourceImageView.from_encoded(image)


@router.post("/source-image/data-url", response_model=SourceImageView)
async def upload_source_data_url(payload: DataUrlUpload, session: GenerationSession = Depends(get_session)):
    """Select the image to edit from a pasted ``data:`` URL."""
    # 4 base64 characters carry 3 bytes
    encoded = payload.data_url.partition(",")[2]
    if len(encoded) * 3 // 4 > Config.max_upload_bytes():
        raise _too_large_error()

    ticket = session.begin_ingest()
    try:
        image = ingest_data_url(payload.data_url, filename=payload.filename)
    except DecodeError as e:
        raise _http_error(e)

    if not session.finish_ingest(ticket, image):
        raise _http_error(InvalidTransitionError("This upload was replaced by a newer selection"))
    return SourceImageView.from_encoded(image)


@router.post("/generate", response_model=ResultView)
async def generate(
    req: GenerateRequest,
    session: GenerationSession = Depends(get_session),
    client: GeminiImageClient = Depends(get_image_client)
):
    """
    Generate an image from the prompt, or edit the selected source image.

    Accepts:
      { prompt: "..." }

    Failures come back as HTTP errors whose ``detail`` is the message to show;
    the session is left in the ERROR state until dismissed.
    """
    try:
        result = await session.submit(req.prompt, client)
    except GenerationError as e:
        raise _http_error(e)

    if not result.ok:
        _, status_code = get_error_response(result.error_code or ErrorCode.UNKNOWN_ERROR)
        raise HTTPException(status_code=status_code, detail=result.error)
    return ResultView.from_result(result)


@router.post("/dismiss", response_model=SessionState)
async def dismiss(session: GenerationSession = Depends(get_session)):
    try:
        session.dismiss()
    except GenerationError as e:
        raise _http_error(e)
    return session.snapshot()


@router.post("/clear", response_model=SessionState)
async def clear(session: GenerationSession = Depends(get_session)):
    """Remove the source image and result. The prompt is kept for reuse."""
    session.clear()
    return session.snapshot()


@router.get("/result/download")
def download_result(session: GenerationSession = Depends(get_session)):
    """Download the current result as a file named after its timestamp."""
    result = session.result
    if result is None or result.image is None:
        message, status_code = get_error_response(ErrorCode.NO_RESULT)
        raise HTTPException(status_code=status_code, detail=message)

    image = result.image
    return Response(
        content=image.raw_bytes(),
        media_type=image.mime_type,
        headers={"Content-Disposition": f'attachment; filename="{image.download_filename}"'}
    )
