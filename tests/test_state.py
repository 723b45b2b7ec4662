"""
Tests for the job state machine.
"""

import pytest

from cascade_ocr.state import (
    STAGE_LAYOUT,
    STAGE_OUTPUT,
    STAGE_RECOGNITION,
    STAGE_STARTING,
    JobStateMachine,
    OCRStatus,
)


class TestJobStateMachine:
    def test_initial_state(self):
        machine = JobStateMachine()
        assert machine.status == OCRStatus.IDLE
        assert machine.state.stage_progress == 0.0

    def test_model_loading(self):
        machine = JobStateMachine()
        machine.update_loading("loading_models", 0.3, "Loading...", {"layout": 0.5})
        state = machine.state
        assert state.status == OCRStatus.LOADING_MODEL
        assert state.model_progress == {"layout": 0.5}
        machine.models_ready()
        assert machine.status == OCRStatus.IDLE

    def test_job_lifecycle(self):
        machine = JobStateMachine()
        machine.begin_job("page.png", 1, 2)
        assert machine.state.stage == STAGE_STARTING
        machine.update_stage(STAGE_LAYOUT, 0.1, "Detecting...")
        machine.update_stage(STAGE_RECOGNITION, 0.4)
        machine.update_stage(STAGE_OUTPUT, 0.9)
        machine.complete()
        state = machine.state
        assert state.status == OCRStatus.DONE
        assert state.stage_progress == 1.0
        assert (state.current_file, state.current_index, state.total_files) == ("page.png", 1, 2)

    def test_progress_monotonic_within_stage(self):
        machine = JobStateMachine()
        machine.begin_job("p", 1, 1)
        machine.update_stage(STAGE_LAYOUT, 0.3)
        machine.update_stage(STAGE_LAYOUT, 0.2)
        assert machine.state.stage_progress == pytest.approx(0.3)
        machine.update_stage(STAGE_RECOGNITION, 1.7)
        assert machine.state.stage_progress == 1.0

    def test_invalid_transitions(self):
        machine = JobStateMachine()
        with pytest.raises(ValueError):
            machine.update_stage(STAGE_LAYOUT, 0.1)
        with pytest.raises(ValueError):
            machine.complete()

        machine.update_loading("loading_models", 0.1, "")
        with pytest.raises(ValueError):
            machine.begin_job("p", 1, 1)

        machine.models_ready()
        machine.begin_job("p", 1, 1)
        with pytest.raises(ValueError):
            machine.update_stage("thinking", 0.5)
        with pytest.raises(ValueError):
            machine.update_loading("loading_models", 0.5, "")

    def test_fail_from_any_state(self):
        machine = JobStateMachine()
        machine.fail("boom")
        assert machine.status == OCRStatus.ERROR
        assert machine.state.error_message == "boom"

        machine.begin_job("p", 1, 1)
        machine.fail("again")
        assert machine.status == OCRStatus.ERROR

    def test_reset(self):
        machine = JobStateMachine()
        machine.begin_job("p", 1, 1)
        machine.fail("boom")
        machine.reset()
        assert machine.status == OCRStatus.IDLE
        assert machine.state.error_message is None

    def test_observers_receive_snapshots(self):
        machine = JobStateMachine()
        seen = []
        machine.subscribe(seen.append)
        machine.begin_job("p", 1, 1)
        machine.update_stage(STAGE_LAYOUT, 0.2)
        machine.complete()
        assert [s.status for s in seen] == [OCRStatus.PROCESSING, OCRStatus.PROCESSING, OCRStatus.DONE]
        seen[0].stage = "mutated"
        assert machine.state.stage == STAGE_LAYOUT
