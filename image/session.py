"""Per-browser studio session: source image, status and the current result."""
import time
from typing import Dict, FrozenSet, Optional

from image.errors import (
    EmptyPromptError,
    GenerationError,
    InvalidTransitionError,
    RequestInFlightError,
    TransportError,
)
from image.models import (
    AppStatus,
    EncodedImage,
    GenerationRequest,
    GenerationResult,
    ResultView,
    SessionState,
    SourceImageView,
)
from utils.logger import get_logger

logger = get_logger("image.session")

ALLOWED_TRANSITIONS: Dict[AppStatus, FrozenSet[AppStatus]] = {
    AppStatus.IDLE: frozenset({AppStatus.LOADING}),
    AppStatus.LOADING: frozenset({AppStatus.SUCCESS, AppStatus.ERROR, AppStatus.IDLE}),
    AppStatus.SUCCESS: frozenset({AppStatus.LOADING, AppStatus.IDLE}),
    AppStatus.ERROR: frozenset({AppStatus.LOADING, AppStatus.IDLE}),
}


class GenerationSession:
    """
    State of one browser session.

    Status moves IDLE -> LOADING -> SUCCESS/ERROR and back to IDLE on
    dismiss or clear. Each submission gets an increasing id; a response that
    resolves after a newer submission or a clear is discarded.
    """

    def __init__(self, session_id: str):
        self.session_id = session_id
        self.status = AppStatus.IDLE
        self.source_image: Optional[EncodedImage] = None
        self.result: Optional[GenerationResult] = None
        self.prompt: Optional[str] = None
        self.last_active = time.monotonic()
        self._submission_id = 0
        self._ingest_ticket = 0

    def touch(self) -> None:
        self.last_active = time.monotonic()

    def _transition(self, target: AppStatus) -> None:
        if target not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransitionError(f"Cannot move from {self.status.value} to {target.value}")
        logger.debug(f"Session {self.session_id[:8]}: {self.status.value} -> {target.value}")
        self.status = target

    # ---------- source image ----------

    def begin_ingest(self) -> int:
        """Reserve a ticket for a new file selection; newer tickets win."""
        self._ingest_ticket += 1
        return self._ingest_ticket

    def finish_ingest(self, ticket: int, image: EncodedImage) -> bool:
        """Store an ingested image unless a newer selection has started since."""
        if ticket != self._ingest_ticket:
            logger.info(f"Session {self.session_id[:8]}: dropping superseded upload (ticket {ticket})")
            return False
        self.source_image = image
        self.touch()
        return True

    # ---------- generation ----------

    async def submit(self, prompt: Optional[str], client) -> GenerationResult:
        """
        Run one generation through ``client`` and record its outcome.

        Raises:
            EmptyPromptError: blank prompt; the status is left unchanged
            RequestInFlightError: a request for this session is still running
        """
        prompt = (prompt or "").strip()
        if not prompt:
            raise EmptyPromptError()
        if self.status == AppStatus.LOADING:
            raise RequestInFlightError()

        self._transition(AppStatus.LOADING)
        self._submission_id += 1
        submission_id = self._submission_id
        self.result = None
        self.prompt = prompt
        self.touch()

        try:
            image = await client.generate(GenerationRequest(prompt=prompt, source_image=self.source_image))
            result = GenerationResult.success(image)
        except GenerationError as e:
            result = GenerationResult.failure(e.message, e.code)
        except Exception as e:
            logger.error(f"Session {self.session_id[:8]}: generation client failed: {e}", exc_info=True)
            error = TransportError()
            result = GenerationResult.failure(error.message, error.code)
        except BaseException:
            # Cancelled; record an error so the session does not stay in LOADING
            self._abandon(submission_id)
            raise

        if not self._is_current(submission_id):
            logger.info(f"Session {self.session_id[:8]}: discarding stale result for submission {submission_id}")
            return result

        self.result = result
        self._transition(AppStatus.SUCCESS if result.ok else AppStatus.ERROR)
        self.touch()
        return result

    def _is_current(self, submission_id: int) -> bool:
        return submission_id == self._submission_id and self.status == AppStatus.LOADING

    def _abandon(self, submission_id: int) -> None:
        if not self._is_current(submission_id):
            return
        logger.warning(f"Session {self.session_id[:8]}: submission {submission_id} was cancelled")
        error = TransportError("Image generation was interrupted. Please try again.")
        self.result = GenerationResult.failure(error.message, error.code)
        self._transition(AppStatus.ERROR)
        self.touch()

    def dismiss(self) -> None:
        """Return to IDLE from SUCCESS or ERROR, dropping the result."""
        if self.status == AppStatus.IDLE:
            return
        if self.status == AppStatus.LOADING:
            raise InvalidTransitionError("Cannot dismiss while a generation is running")
        self._transition(AppStatus.IDLE)
        self.result = None
        self.touch()

    def clear(self) -> None:
        """Drop the source image and result; any in-flight submission becomes stale."""
        self._submission_id += 1
        self._ingest_ticket += 1
        self.source_image = None
        self.result = None
        if self.status != AppStatus.IDLE:
            self._transition(AppStatus.IDLE)
        self.touch()

    def snapshot(self) -> SessionState:
        return SessionState(
            status=self.status,
            has_source_image=self.source_image is not None,
            source_image=SourceImageView.from_encoded(self.source_image) if self.source_image else None,
            result=ResultView.from_result(self.result) if self.result else None,
            prompt=self.prompt,
        )
