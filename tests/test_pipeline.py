"""
End-to-end tests: pipeline, OCR worker, and client with fake sessions.
"""

import time

import numpy as np
import pytest

from cascade_ocr.client import OCRClient
from cascade_ocr.errors import NotInitializedError, WorkerFaultError
from cascade_ocr.pipeline import OCRPipeline
from cascade_ocr.settings import Settings
from cascade_ocr.state import OCRStatus
from cascade_ocr.workers import OCRWorker
from cascade_ocr.workers.messages import Complete, Error, Initialize, Process, Progress, Terminate

from fakes import FakeLoader, SessionFactory, detections

# two horizontal lines on a 400x400 page, top line short, bottom line long
TWO_LINES = detections([2, 2], [[100, 100, 300, 140], [100, 300, 300, 340]], [0.9, 0.8], [3, 1])


class BrokenContext:
    def recognize_job(self, job):
        raise RuntimeError("recognizer crashed")


def _page():
    return np.full((400, 400, 3), 255, dtype=np.uint8)


def _pipeline(tmp_path, workers=0, layout_outputs=None, **kwargs):
    settings = Settings(cache_dir=tmp_path, workers=workers)
    return OCRPipeline(
        settings,
        loader=FakeLoader(),
        session_factory=SessionFactory(layout_outputs),
        **kwargs,
    )


def _drain(outbox, until_id):
    """Collect worker events up to and including the terminal event for ``until_id``."""
    events = []
    while True:
        event = outbox.get(timeout=10)
        events.append(event)
        if isinstance(event, (Complete, Error)) and event.id == until_id:
            return events


class TestOCRPipeline:
    def test_requires_initialize(self, tmp_path):
        with pytest.raises(NotInitializedError):
            _pipeline(tmp_path).process("job", _page())

    def test_initialize_progress(self, tmp_path):
        pipeline = _pipeline(tmp_path)
        events = []
        pipeline.initialize(events.append)
        assert events[0].stage == "initializing"
        assert events[-1] == Progress("initialized", 1.0, "Ready")
        loading = [e for e in events if e.stage == "loading_models"]
        assert loading[-1].progress == pytest.approx(0.75)
        assert set(loading[-1].model_progress) == {"layout", "recognition30", "recognition50", "recognition100"}

    def test_blank_page(self, tmp_path):
        pipeline = _pipeline(tmp_path)
        pipeline.initialize()
        result = pipeline.process("job-1", _page(), time.time())
        assert result.blocks == []
        assert result.full_text == ""
        assert result.id == "job-1"

    @pytest.mark.parametrize("workers", [0, 2])
    def test_lines_in_reading_order(self, tmp_path, workers):
        pipeline = _pipeline(tmp_path, workers=workers, layout_outputs=TWO_LINES)
        pipeline.initialize()
        try:
            events = []
            result = pipeline.process("job-1", _page(), time.time(), events.append, "page.png")
        finally:
            pipeline.shutdown()

        assert result.full_text == "ef\nef"
        assert [b.reading_order for b in result.blocks] == [1, 2]
        assert [b.y for b in result.blocks] == [50, 150]
        assert result.source_name == "page.png"

        stages = [e.stage for e in events]
        assert stages[0] == "layout_detection"
        assert stages[-1] == "generating_output"
        assert all(e.id == "job-1" for e in events)
        assert [e.progress for e in events] == sorted(e.progress for e in events)

    def test_empty_texts_are_not_joined(self, tmp_path):
        pipeline = _pipeline(tmp_path, layout_outputs=TWO_LINES)
        pipeline.session_factory.text_indices = [0]
        pipeline.initialize()
        result = pipeline.process("job-1", _page())
        assert len(result.blocks) == 2
        assert result.full_text == ""

    def test_does_not_modify_page(self, tmp_path):
        pipeline = _pipeline(tmp_path, layout_outputs=TWO_LINES)
        pipeline.initialize()
        page = _page()
        pipeline.process("job-1", page)
        assert page.min() == 255


class TestOCRWorker:
    def test_completes_job(self, tmp_path):
        worker = OCRWorker(_pipeline(tmp_path, layout_outputs=TWO_LINES))
        worker.start()
        worker.send(Initialize())
        worker.send(Process(id="a", image=_page(), start_time=time.time()))
        events = _drain(worker.outbox, "a")
        worker.send(Terminate())
        worker.join(10)

        assert isinstance(events[-1], Complete)
        assert events[-1].full_text == "ef\nef"
        assert all(isinstance(e, Progress) for e in events[:-1])
        assert not worker.is_alive()

    def test_worker_fault_fails_page(self, tmp_path):
        pipeline = _pipeline(tmp_path, workers=2, layout_outputs=TWO_LINES,
                             context_factory=lambda worker_id: BrokenContext())
        worker = OCRWorker(pipeline)
        worker.start()
        worker.send(Process(id="a", image=_page(), start_time=time.time()))
        events = _drain(worker.outbox, "a")
        worker.send(Terminate())
        worker.join(10)

        assert isinstance(events[-1], Error)
        assert events[-1].error_type == "WorkerFaultError"
        assert not any(isinstance(e, Complete) for e in events)

    def test_initialization_error(self, tmp_path):
        pipeline = _pipeline(tmp_path)
        pipeline.loader.load_models = lambda names, on_progress=None: {}
        worker = OCRWorker(pipeline)
        worker.start()
        worker.send(Initialize())
        while True:
            event = worker.outbox.get(timeout=10)
            if isinstance(event, Error):
                break
        worker.send(Terminate())
        worker.join(10)
        assert event.stage == "initialization"
        assert event.error_type == "KeyError"

    def test_unknown_message(self, tmp_path):
        worker = OCRWorker(_pipeline(tmp_path))
        worker.start()
        worker.send(object())
        event = worker.outbox.get(timeout=10)
        worker.send(Terminate())
        worker.join(10)
        assert isinstance(event, Error)
        assert event.error_type == "TypeError"


class TestOCRClient:
    def test_blank_page_reaches_done(self, tmp_path):
        with OCRClient(_pipeline(tmp_path)) as client:
            statuses = []
            client.subscribe(lambda state: statuses.append(state.status))
            result = client.process_image(_page(), "blank.png")

        assert result.full_text == ""
        assert result.source_name == "blank.png"
        assert client.state.status == OCRStatus.DONE
        assert OCRStatus.LOADING_MODEL in statuses
        assert statuses[-1] == OCRStatus.DONE

    def test_failed_page_raises_taxonomy_error(self, tmp_path):
        pipeline = _pipeline(tmp_path, workers=2, layout_outputs=TWO_LINES,
                             context_factory=lambda worker_id: BrokenContext())
        with OCRClient(pipeline) as client:
            with pytest.raises(WorkerFaultError):
                client.process_image(_page(), "page.png")
            assert client.state.status == OCRStatus.ERROR
            assert "recognizer crashed" in client.state.error_message

    def test_batch_continues_past_failures(self, tmp_path):
        with OCRClient(_pipeline(tmp_path, layout_outputs=TWO_LINES)) as client:
            outcomes = client.process_batch([
                ("one.png", _page()),
                ("bad.png", np.zeros((4, 4, 2), dtype=np.uint8)),
                ("three.png", _page()),
            ])

        assert [o.source_name for o in outcomes] == ["one.png", "bad.png", "three.png"]
        assert [o.ok for o in outcomes] == [True, False, True]
        assert outcomes[1].error
        assert outcomes[2].result.full_text == "ef\nef"

    def test_reuse_after_close(self, tmp_path):
        client = OCRClient(_pipeline(tmp_path, layout_outputs=TWO_LINES))
        try:
            assert client.process_image(_page(), "first.png").full_text == "ef\nef"
            client.close()
            assert client.state.status == OCRStatus.DONE

            outcomes = client.process_batch([("second.png", _page())])
            assert outcomes[0].ok
            assert outcomes[0].result.full_text == "ef\nef"
            assert client.state.status == OCRStatus.DONE
        finally:
            client.close()

    def test_sequential_job_ids_are_unique(self, tmp_path):
        with OCRClient(_pipeline(tmp_path)) as client:
            first = client.process_image(_page())
            second = client.process_image(_page())
        assert first.id != second.id
