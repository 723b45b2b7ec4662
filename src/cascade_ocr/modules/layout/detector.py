"""
Layout Detection Module
Finds text line regions with a DEIM detector
"""

import logging
from typing import Callable, List, Optional

import numpy as np

from ...errors import NotInitializedError
from ...libs.line_ocr import DetectorConfig, LinePostProcess, ensure_rgb, layout_input
from ...libs.line_ocr.preprocess import shape_hint
from ...libs.onnx_engine import create_session
from ...schemas import TextRegion

logger = logging.getLogger(__name__)


class LayoutDetector:
    """
    Text line detection

    Output regions are in suppression order (confidence first), not in
    reading order.
    """

    def __init__(
        self,
        config: Optional[DetectorConfig] = None,
        session_factory: Callable = create_session,
    ):
        """
        Args:
            config: Detector configuration (uses defaults if None)
            session_factory: Builds an inference session from model bytes
        """
        self.config = config or DetectorConfig()
        self.session_factory = session_factory
        self.session = None
        self.postprocess_op = LinePostProcess(self.config)

    @property
    def initialized(self) -> bool:
        return self.session is not None

    def initialize(self, model_bytes: bytes) -> None:
        if self.initialized:
            return
        self.session = self.session_factory(model_bytes)
        in_w, in_h = self.config.input_size
        logger.info("Layout detector initialized: input %dx%d", in_w, in_h)

    def detect(
        self,
        image: np.ndarray,
        on_progress: Optional[Callable[[float], None]] = None,
    ) -> List[TextRegion]:
        """
        Detect text lines in an image

        Args:
            image: Page image (H, W, 3) RGB
            on_progress: receives the stage fraction in [0, 1]

        Returns:
            Regions in original-image coordinates
        """
        if not self.initialized:
            raise NotInitializedError("Layout detector not initialized")

        report = on_progress or (lambda p: None)
        report(0.1)

        tensor, meta = layout_input(ensure_rgb(image), self.config)
        input_names = self.session.input_names
        feed = {input_names[0]: tensor}
        if len(input_names) > 1:
            feed[input_names[1]] = shape_hint(self.config)
        report(0.5)

        outputs = self.session.run(feed)
        report(0.8)

        try:
            regions = self.postprocess_op(outputs, meta)
        except Exception:
            logger.exception("Error in layout postprocessing")
            regions = []

        report(1.0)
        logger.info("%d line regions detected", len(regions))
        return regions

    def dispose(self) -> None:
        if self.session is not None and hasattr(self.session, "release"):
            self.session.release()
        self.session = None

    def __repr__(self):
        return f"LayoutDetector(input={self.config.input_size})"
