"""
Text Recognition Module
Cascade of PARSeq recognizers sized by expected line length
"""

import logging
from typing import Callable, Dict, Optional, Tuple

import numpy as np

from ...errors import NotInitializedError
from ...libs.line_ocr import CharsetConfig, GreedyTokenDecode, recognition_input
from ...libs.onnx_engine import create_session
from ...models.config import RECOGNITION, RECOGNITION_30, RECOGNITION_50, RECOGNITION_100
from ...schemas import CATEGORY_MEDIUM, CATEGORY_SHORT, RecognitionJob, RecognitionResult

logger = logging.getLogger(__name__)


class TextRecognizer:
    """
    One recognizer bound to a fixed input width

    Takes a cropped line image and returns (text, confidence). Failures
    for a single line are absorbed and reported as ("", 0.0).
    """

    def __init__(self, input_width: int, session_factory: Callable = create_session):
        self.input_width = input_width
        self.session_factory = session_factory
        self.session = None
        self.config = None
        self.postprocess_op = None

    @property
    def initialized(self) -> bool:
        return self.session is not None

    def initialize(self, model_bytes: bytes, charset: Optional[CharsetConfig] = None) -> None:
        if self.initialized:
            return
        charset = charset or CharsetConfig()
        self.config = charset.recognizer_config(self.input_width)
        self.postprocess_op = GreedyTokenDecode(
            charset.char_list, nominal_confidence=self.config.nominal_confidence
        )
        self.session = self.session_factory(model_bytes)
        logger.info("Text recognizer initialized: input %s", self.config.input_shape)

    def recognize(self, image: np.ndarray) -> Tuple[str, float]:
        """
        Recognize a single cropped line

        Args:
            image: Line image (H, W, 3) RGB; vertical lines are rotated

        Returns:
            (text, confidence)
        """
        if not self.initialized:
            raise NotInitializedError("Text recognizer not initialized")

        try:
            tensor = recognition_input(image, self.config)
            outputs = self.session.run({self.session.input_names[0]: tensor})
            return self.postprocess_op(outputs[0])
        except Exception:
            logger.exception("Text recognition failed")
            return "", 0.0

    def dispose(self) -> None:
        if self.session is not None and hasattr(self.session, "release"):
            self.session.release()
        self.session = None

    def __repr__(self):
        return f"TextRecognizer(width={self.input_width})"


class CascadeRecognizer:
    """
    The three recognizers owned by one worker

    Selection by character-count category:
        3 -> narrow (<= 30 characters)
        2 -> medium (<= 50 characters)
        anything else -> wide (<= 100 characters)
    """

    MODEL_NAMES = tuple(RECOGNITION.names)

    def __init__(self, session_factory: Callable = create_session):
        self.narrow = TextRecognizer(RECOGNITION_30.input_width, session_factory)
        self.medium = TextRecognizer(RECOGNITION_50.input_width, session_factory)
        self.wide = TextRecognizer(RECOGNITION_100.input_width, session_factory)

    def initialize(self, models: Dict[str, bytes], charset: Optional[CharsetConfig] = None) -> None:
        # Session construction is not reentrant; build one at a time
        self.narrow.initialize(models[RECOGNITION_30.name], charset)
        self.medium.initialize(models[RECOGNITION_50.name], charset)
        self.wide.initialize(models[RECOGNITION_100.name], charset)

    def select(self, char_count_category: Optional[int]) -> TextRecognizer:
        if char_count_category == CATEGORY_SHORT:
            return self.narrow
        if char_count_category == CATEGORY_MEDIUM:
            return self.medium
        return self.wide

    def recognize(self, image: np.ndarray, char_count_category: Optional[int] = None) -> Tuple[str, float]:
        return self.select(char_count_category).recognize(image)

    def recognize_job(self, job: RecognitionJob) -> RecognitionResult:
        text, confidence = self.recognize(job.pixels, job.char_count_category)
        return RecognitionResult(id=job.id, text=text, confidence=confidence)

    def dispose(self) -> None:
        for recognizer in (self.narrow, self.medium, self.wide):
            recognizer.dispose()

    def __repr__(self):
        return f"CascadeRecognizer({self.narrow}, {self.medium}, {self.wide})"
