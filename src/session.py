"""
Session state transitions and the perfect-label notice.

The UI layer owns a SessionState and replaces it with the value returned by
each transition; nothing here mutates state in place.
"""
import logging
import time
from dataclasses import replace
from typing import Callable, Optional

from src import config, defect_stats
from src.errors import InferenceError
from src.inference import InferenceClient
from src.models import DetectionResult, SessionState

logger = logging.getLogger(__name__)


def start_processing(state: SessionState, image_bytes: bytes) -> SessionState:
    """Enter the processing state for a freshly read upload."""
    if state.processing:
        raise RuntimeError("An analysis is already in progress")
    return replace(state, processing=True, pending_image=image_bytes, error=None)


def apply_result(state: SessionState, result: DetectionResult) -> SessionState:
    """Commit a detection result for the pending image."""
    total, stats = defect_stats.update(state.total_analyzed, state.stats, result.detections)
    new_state = replace(
        state,
        total_analyzed=total,
        stats=stats,
        confidence=result.confidence,
        image_bytes=state.pending_image if state.pending_image is not None else state.image_bytes,
        detections=tuple(result.detections),
        processing=False,
        pending_image=None,
        result_id=state.result_id + 1,
        error=None,
    )
    logger.info("Result %d committed: %d detections, confidence %.1f, perfect=%s, %d analyzed",
                new_state.result_id, len(result.detections), result.confidence,
                result.is_perfect, total)
    return new_state


def apply_failure(state: SessionState, message: str) -> SessionState:
    """Leave processing after a failed analysis, keeping the last good result."""
    return replace(state, processing=False, pending_image=None, error=message)


def run_analysis(state: SessionState, client: InferenceClient,
                 filename: str = 'image.png') -> SessionState:
    """
    Analyze the pending image with the given client.

    Inference failures are folded into the returned state instead of being
    raised, so one bad upload never ends the session.
    """
    if not state.processing or state.pending_image is None:
        return state
    try:
        result = client.analyze(state.pending_image, filename)
    except InferenceError as e:
        logger.warning("Analysis of %s failed: %s", filename, e)
        message = f"{e} Please try again." if e.retryable else str(e)
        return apply_failure(state, message)
    return apply_result(state, result)


class PerfectLabelNotice:
    """
    "Perfect Label!" notice shown for a fixed time after a clean result.

    Each showing is tied to the result_id that triggered it. A newer result
    replaces the pending hide, and a hide for an older result is ignored.
    """

    def __init__(self, duration: float = config.NOTIFICATION_DURATION,
                 clock: Callable[[], float] = time.monotonic):
        self.duration = duration
        self.clock = clock
        self._result_id: Optional[int] = None
        self._deadline: Optional[float] = None

    def on_state(self, state: SessionState) -> bool:
        """
        React to a new session state. Returns True if the notice was shown.
        """
        if state.result_id == self._result_id:
            return False
        self.cancel()
        if state.is_perfect and not state.processing and state.has_image and state.result_id > 0:
            self._result_id = state.result_id
            self._deadline = self.clock() + self.duration
            return True
        return False

    def hide(self, result_id: int) -> None:
        """Scheduled hide; ignored when a newer result owns the notice."""
        if result_id == self._result_id:
            self._deadline = None

    def cancel(self) -> None:
        self._result_id = None
        self._deadline = None

    @property
    def visible(self) -> bool:
        return self._deadline is not None and self.clock() < self._deadline

    @property
    def remaining(self) -> float:
        if not self.visible:
            return 0.0
        return self._deadline - self.clock()

    @property
    def result_id(self) -> Optional[int]:
        return self._result_id
