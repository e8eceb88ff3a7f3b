"""
FastAPI application for Nano Banana Studio.

Features:
- Single-page UI for generating images from a prompt or editing an uploaded one
- Gemini image model integration (one call per request, no retries)
- In-memory per-browser sessions with an explicit status state machine
- Download of the current result
"""
import json
import os
import time
from typing import Any

import uvicorn
from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles

from config import Config
from database import SessionStore
from image.routes import router as image_router
from utils.logger import get_logger
from common.error_messages import ErrorCode, get_error_response

logger = get_logger("main")

STATIC_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "static")

# Fields masked in logs: credentials, and image payloads that would flood them
SENSITIVE_FIELDS = {
    'api_key', 'secret', 'authorization', 'token',
    'data_url', 'data', 'preview_url', 'image_url'
}


def mask_sensitive_data(data: Any, mask_value: str = "***MASKED***") -> Any:
    """Replace credential and image-payload fields with ``mask_value`` at any depth.

    JSON text is parsed, masked and serialised again; other strings pass through.
    """
    if isinstance(data, str):
        try:
            parsed = json.loads(data)
        except ValueError:
            return data
        if not isinstance(parsed, (dict, list)):
            return data
        return json.dumps(mask_sensitive_data(parsed, mask_value))
    if isinstance(data, list):
        return [mask_sensitive_data(item, mask_value) for item in data]
    if isinstance(data, dict):
        return {
            key: mask_value if str(key).lower() in SENSITIVE_FIELDS else mask_sensitive_data(value, mask_value)
            for key, value in data.items()
        }
    return data


try:
    Config.validate()
    logger.info("Configuration validated successfully")
except ValueError as e:
    logger.error(f"Configuration error: {e}")
    logger.error("Please set required environment variables in .env file")

app = FastAPI(
    title="Nano Banana Studio",
    description="Generate images from a prompt, or edit an uploaded image, with Gemini.",
    version="1.0.0"
)

# CORS middleware - added first so it also covers error responses
app.add_middleware(
    CORSMiddleware,
    allow_origins=Config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions globally."""
    if isinstance(exc, HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail}
        )

    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    message, status_code = get_error_response(ErrorCode.UNKNOWN_ERROR)
    return JSONResponse(
        status_code=status_code,
        content={"detail": message}
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log API requests with timing. JSON bodies are logged masked and truncated."""
    start_time = time.time()
    path = request.url.path

    if not path.startswith("/api/"):
        return await call_next(request)

    request_body = None
    content_type = request.headers.get("content-type", "")
    if request.method in ["POST", "PUT", "PATCH"] and content_type.startswith("application/json"):
        try:
            body_bytes = await request.body()
            if body_bytes:
                masked_body = mask_sensitive_data(body_bytes.decode("utf-8"))
                if len(masked_body) > 2000:
                    masked_body = masked_body[:2000] + "... [truncated]"
                request_body = masked_body
        except UnicodeDecodeError as e:
            request_body = f"[Error reading body: {str(e)}]"

    log_msg = f"→ {request.method} {path} - Client: {request.client.host if request.client else 'unknown'}"
    if request_body:
        log_msg += f"\n  Request Body: {request_body}"
    logger.info(log_msg)

    try:
        response = await call_next(request)
    except Exception as e:
        process_time = (time.time() - start_time) * 1000
        logger.error(f"← {request.method} {path} - Error: {str(e)} - Time: {process_time:.2f}ms")
        raise

    process_time = (time.time() - start_time) * 1000
    logger.info(f"← {request.method} {path} - Status: {response.status_code} - Time: {process_time:.2f}ms")
    return response


@app.middleware("http")
async def session_cookie(request: Request, call_next):
    """Issue the session cookie on first contact, error responses included."""
    if not request.url.path.startswith("/api/") or request.cookies.get(Config.SESSION_COOKIE_NAME):
        return await call_next(request)

    request.state.session_id = SessionStore.new_id()
    response = await call_next(request)
    response.set_cookie(
        Config.SESSION_COOKIE_NAME,
        request.state.session_id,
        httponly=True,
        samesite="lax",
        secure=Config.SESSION_COOKIE_SECURE,
    )
    return response


app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")
app.include_router(image_router)
logger.info("Image router included")


@app.on_event("startup")
async def startup_event():
    logger.info("=" * 80)
    logger.info("Nano Banana Studio starting up")
    logger.info(f"Model: {Config.GEMINI_IMAGE_MODEL} (timeout {Config.GENERATION_TIMEOUT_SECONDS:g}s)")
    logger.info(f"Host: {Config.HOST}:{Config.PORT}")
    logger.info("=" * 80)


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Nano Banana Studio shutting down")


@app.get("/", include_in_schema=False)
def index():
    """Serve the single-page UI."""
    return FileResponse(os.path.join(STATIC_DIR, "index.html"))


@app.get("/healthz")
def health():
    """Health check endpoint."""
    return {"status": "ok"}


if __name__ == "__main__":
    logger.info(f"Starting server on {Config.HOST}:{Config.PORT}")
    uvicorn.run(
        "app:app",
        host=Config.HOST,
        port=Config.PORT,
        reload=True,
        log_level="info"
    )
