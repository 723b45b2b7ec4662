"""
Tests for the layout detector and the cascade recognizers.
"""

from unittest.mock import patch

import numpy as np
import pytest

from cascade_ocr.errors import NotInitializedError
from cascade_ocr.libs.line_ocr import CharsetConfig
from cascade_ocr.modules.layout import LayoutDetector
from cascade_ocr.modules.text import CascadeRecognizer, TextRecognizer
from cascade_ocr.schemas import RecognitionJob

from fakes import CHARSET, FakeSession, detections, empty_detections, one_hot_logits

MODELS = {name: name.encode() for name in CascadeRecognizer.MODEL_NAMES}


def _page(h=400, w=400):
    return np.full((h, w, 3), 255, dtype=np.uint8)


class TestLayoutDetector:
    def _detector(self, outputs, input_names=("images", "orig_target_sizes")):
        session = FakeSession(outputs, input_names=input_names)
        detector = LayoutDetector(session_factory=lambda model_bytes: session)
        detector.initialize(b"layout")
        return detector, session

    def test_requires_initialize(self):
        with pytest.raises(NotInitializedError):
            LayoutDetector(session_factory=FakeSession).detect(_page())

    def test_detects_regions(self):
        outputs = detections([2, 2], [[100, 100, 300, 140], [100, 300, 300, 340]], [0.9, 0.8], [3, 1])
        detector, _ = self._detector(outputs)
        regions = detector.detect(_page())
        assert [(r.x, r.y, r.width) for r in regions] == [(50, 50, 100), (50, 150, 100)]
        assert [r.char_count_category for r in regions] == [3, 1]

    def test_feeds_shape_hint_when_declared(self):
        detector, session = self._detector(empty_detections())
        detector.detect(_page())
        feed = session.feeds[0]
        assert feed["images"].shape == (1, 3, 800, 800)
        assert feed["orig_target_sizes"].tolist() == [[800, 800]]

    def test_single_input_model(self):
        detector, session = self._detector(empty_detections(), input_names=("images",))
        detector.detect(_page())
        assert list(session.feeds[0]) == ["images"]

    def test_progress_sequence(self):
        detector, _ = self._detector(empty_detections())
        progress = []
        detector.detect(_page(), progress.append)
        assert progress == [0.1, 0.5, 0.8, 1.0]

    def test_postprocess_failure_yields_no_regions(self):
        bad = [np.array([[2, 2]]), np.zeros((1, 1, 4)), np.array([[0.9]])]
        detector, _ = self._detector(bad)
        assert detector.detect(_page()) == []

    def test_initialize_is_idempotent(self):
        created = []

        def factory(model_bytes):
            created.append(model_bytes)
            return FakeSession(empty_detections())

        detector = LayoutDetector(session_factory=factory)
        detector.initialize(b"layout")
        detector.initialize(b"layout")
        assert created == [b"layout"]


class TestTextRecognizer:
    def test_requires_initialize(self):
        with pytest.raises(NotInitializedError):
            TextRecognizer(256).recognize(_page(16, 64))

    def test_recognizes_line(self):
        session = FakeSession([one_hot_logits([5, 6, 0])], input_names=("x",))
        recognizer = TextRecognizer(384, session_factory=lambda b: session)
        recognizer.initialize(b"rec", CharsetConfig(char_list=list(CHARSET)))
        assert recognizer.recognize(_page(16, 64)) == ("ef", pytest.approx(0.9))
        assert session.feeds[0]["x"].shape == (1, 3, 16, 384)

    def test_inference_failure_gives_empty_text(self):
        def broken(feed):
            raise RuntimeError("engine failure")

        recognizer = TextRecognizer(256, session_factory=lambda b: FakeSession(broken))
        recognizer.initialize(b"rec", CharsetConfig(char_list=list(CHARSET)))
        assert recognizer.recognize(_page(16, 64)) == ("", 0.0)

    def test_dispose_releases_session(self):
        session = FakeSession([one_hot_logits([0])])
        recognizer = TextRecognizer(256, session_factory=lambda b: session)
        recognizer.initialize(b"rec")
        recognizer.dispose()
        assert session.released
        assert not recognizer.initialized


class TestCascadeRecognizer:
    def _cascade(self):
        sessions = {}

        def factory(model_bytes):
            sessions[model_bytes] = FakeSession([one_hot_logits([5, 0])], input_names=("x",))
            return sessions[model_bytes]

        cascade = CascadeRecognizer(factory)
        cascade.initialize(MODELS, CharsetConfig(char_list=list(CHARSET)))
        return cascade, sessions

    def test_select_by_category(self):
        cascade, _ = self._cascade()
        assert cascade.select(3) is cascade.narrow
        assert cascade.select(2) is cascade.medium
        assert cascade.select(1) is cascade.wide
        assert cascade.select(None) is cascade.wide

    def test_widths(self):
        cascade, sessions = self._cascade()
        for category, name, width in ((3, b"recognition30", 256), (2, b"recognition50", 384),
                                      (1, b"recognition100", 768)):
            cascade.recognize(_page(16, 64), category)
            assert sessions[name].feeds[-1]["x"].shape == (1, 3, 16, width)

    def test_routes_to_selected_recognizer(self):
        cascade, _ = self._cascade()
        with patch.object(cascade.narrow, "recognize", return_value=("narrow", 0.9)) as narrow, \
                patch.object(cascade.wide, "recognize", return_value=("wide", 0.9)) as wide:
            assert cascade.recognize(_page(16, 64), 3) == ("narrow", 0.9)
            assert cascade.recognize(_page(16, 64), None) == ("wide", 0.9)
        narrow.assert_called_once()
        wide.assert_called_once()

    def test_recognize_job(self):
        cascade, _ = self._cascade()
        result = cascade.recognize_job(RecognitionJob(id=7, pixels=_page(16, 64), char_count_category=2))
        assert (result.id, result.text) == (7, "e")

