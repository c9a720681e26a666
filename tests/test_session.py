"""
Tests for session state transitions and the perfect-label notice.

Tests cover:
- Processing lifecycle and immutability of SessionState
- Result commit and statistics update
- Failure handling that keeps the previous result visible
- Notice timing, cancellation and stale hides (fake clock)
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.errors import InferenceError, InvalidResponseError
from src.inference import InferenceClient
from src.models import Detection, DetectionResult, SessionState
from src.session import (
    PerfectLabelNotice,
    apply_failure,
    apply_result,
    run_analysis,
    start_processing,
)

TYPE1_RESULT = DetectionResult((Detection(1, 0.7109375, 0.51171875, 0.11953125, 0.10390625),), 82.4)
CLEAN_RESULT = DetectionResult((Detection(0, 0.315625, 0.57578125, 0.35390625, 0.5234375),), 79.1)
EMPTY_RESULT = DetectionResult((), 97.5)


class FakeClient(InferenceClient):
    """Returns queued results or raises queued errors."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def analyze(self, image_bytes, filename='image.png'):
        self.calls.append((image_bytes, filename))
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def values(state):
    return [s.value for s in state.stats]


def analyzed(state, result, image=b'img'):
    return apply_result(start_processing(state, image), result)


class TestStartProcessing:

    def test_enters_processing(self):
        state = start_processing(SessionState(), b'img')
        assert state.processing
        assert state.pending_image == b'img'
        assert not state.has_image

    def test_original_state_unchanged(self):
        original = SessionState()
        start_processing(original, b'img')
        assert not original.processing

    def test_rejects_second_submission(self):
        state = start_processing(SessionState(), b'one')
        with pytest.raises(RuntimeError):
            start_processing(state, b'two')

    def test_clears_previous_error(self):
        state = apply_failure(start_processing(SessionState(), b'x'), "boom")
        assert start_processing(state, b'y').error is None


class TestApplyResult:

    def test_commits_image_and_detections(self):
        state = analyzed(SessionState(), TYPE1_RESULT, b'label')
        assert state.image_bytes == b'label'
        assert state.detections == TYPE1_RESULT.detections
        assert state.confidence == 82.4
        assert not state.processing
        assert state.pending_image is None

    def test_type1_result_stats(self):
        state = analyzed(SessionState(), TYPE1_RESULT)
        assert state.total_analyzed == 1
        assert values(state) == [0, 1, 0]

    def test_clean_result_stats(self):
        state = analyzed(SessionState(), CLEAN_RESULT)
        assert values(state) == [1, 0, 0]
        assert state.is_perfect

    def test_result_id_increases(self):
        state = analyzed(SessionState(), TYPE1_RESULT)
        state = analyzed(state, EMPTY_RESULT)
        assert state.result_id == 2

    def test_new_upload_replaces_previous(self):
        state = analyzed(SessionState(), TYPE1_RESULT, b'first')
        state = analyzed(state, EMPTY_RESULT, b'second')
        assert state.image_bytes == b'second'
        assert state.detections == ()
        assert state.confidence == 97.5

    def test_n_uploads(self):
        state = SessionState()
        results = [TYPE1_RESULT, CLEAN_RESULT, EMPTY_RESULT, TYPE1_RESULT]
        for result in results:
            state = analyzed(state, result)
        assert state.total_analyzed == len(results)
        assert sum(values(state)) == len(results)


class TestRunAnalysis:

    def test_success(self):
        client = FakeClient(TYPE1_RESULT)
        state = run_analysis(start_processing(SessionState(), b'img'), client, 'label.jpg')
        assert client.calls == [(b'img', 'label.jpg')]
        assert state.total_analyzed == 1
        assert not state.processing

    def test_not_processing_is_a_no_op(self):
        client = FakeClient()
        state = SessionState()
        assert run_analysis(state, client) is state
        assert client.calls == []

    def test_failure_keeps_previous_result(self):
        state = analyzed(SessionState(), TYPE1_RESULT, b'first')
        client = FakeClient(InferenceError("Detection service unavailable: refused"))

        state = run_analysis(start_processing(state, b'second'), client)

        assert not state.processing
        assert state.image_bytes == b'first'
        assert state.detections == TYPE1_RESULT.detections
        assert state.total_analyzed == 1
        assert "try again" in state.error

    def test_non_retryable_failure_has_no_retry_hint(self):
        error = InferenceError("Detection service rejected the image")
        error.retryable = False
        state = run_analysis(start_processing(SessionState(), b'img'), FakeClient(error))
        assert state.error == "Detection service rejected the image"

    def test_invalid_response_is_recoverable(self):
        client = FakeClient(InvalidResponseError("bad payload"), EMPTY_RESULT)
        state = run_analysis(start_processing(SessionState(), b'img'), client)
        assert state.error is not None

        state = run_analysis(start_processing(state, b'img'), client)
        assert state.error is None
        assert state.total_analyzed == 1


class TestPerfectLabelNotice:

    def test_shown_for_perfect_result(self):
        clock = FakeClock()
        notice = PerfectLabelNotice(clock=clock)
        assert notice.on_state(analyzed(SessionState(), EMPTY_RESULT))
        assert notice.visible

    def test_shown_for_clean_region_result(self):
        notice = PerfectLabelNotice(clock=FakeClock())
        notice.on_state(analyzed(SessionState(), CLEAN_RESULT))
        assert notice.visible

    def test_not_shown_for_defect(self):
        notice = PerfectLabelNotice(clock=FakeClock())
        assert not notice.on_state(analyzed(SessionState(), TYPE1_RESULT))
        assert not notice.visible

    def test_not_shown_without_image(self):
        notice = PerfectLabelNotice(clock=FakeClock())
        assert not notice.on_state(SessionState())

    def test_not_shown_while_processing(self):
        notice = PerfectLabelNotice(clock=FakeClock())
        assert not notice.on_state(start_processing(SessionState(), b'img'))

    def test_visible_for_exactly_two_seconds(self):
        clock = FakeClock()
        notice = PerfectLabelNotice(clock=clock)
        notice.on_state(analyzed(SessionState(), EMPTY_RESULT))

        clock.now = 101.999
        assert notice.visible
        assert notice.remaining == pytest.approx(0.001)

        clock.now = 102.0
        assert not notice.visible
        assert notice.remaining == 0.0

    def test_same_result_does_not_reshow(self):
        clock = FakeClock()
        notice = PerfectLabelNotice(clock=clock)
        state = analyzed(SessionState(), EMPTY_RESULT)
        notice.on_state(state)
        clock.now += 5
        assert not notice.on_state(state)
        assert not notice.visible

    def test_new_result_restarts_the_notice(self):
        clock = FakeClock()
        notice = PerfectLabelNotice(clock=clock)
        first = analyzed(SessionState(), EMPTY_RESULT)
        notice.on_state(first)

        clock.now += 1.5
        second = analyzed(first, CLEAN_RESULT)
        notice.on_state(second)
        assert notice.result_id == second.result_id

        clock.now += 1.0
        assert notice.visible

    def test_stale_hide_is_ignored(self):
        notice = PerfectLabelNotice(clock=FakeClock())
        first = analyzed(SessionState(), EMPTY_RESULT)
        notice.on_state(first)
        second = analyzed(first, EMPTY_RESULT)
        notice.on_state(second)

        notice.hide(first.result_id)
        assert notice.visible

        notice.hide(second.result_id)
        assert not notice.visible

    def test_defect_result_cancels_pending_notice(self):
        notice = PerfectLabelNotice(clock=FakeClock())
        first = analyzed(SessionState(), EMPTY_RESULT)
        notice.on_state(first)
        notice.on_state(analyzed(first, TYPE1_RESULT))
        assert not notice.visible
        assert notice.result_id is None
