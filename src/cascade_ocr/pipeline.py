"""
Main Pipeline for page OCR
Orchestrates layout detection, cascade recognition, and reading order
"""

import functools
import logging
import threading
import time
from typing import Callable, Dict, List, Optional, Sequence

import numpy as np

from .errors import NotInitializedError
from .libs.line_ocr import CharsetConfig, crop_region, ensure_rgb, load_charset_config
from .libs.onnx_engine import create_session
from .models import ALL_ARTIFACTS, LAYOUT, ModelLoader
from .modules.layout import LayoutDetector
from .modules.reading_order import ReadingOrderAssembler
from .modules.text import CascadeRecognizer
from .schemas import OCRResult, RecognitionJob, RecognitionResult, TextBlock, TextRegion
from .settings import Settings
from .state import STAGE_LAYOUT, STAGE_OUTPUT, STAGE_READING_ORDER, STAGE_RECOGNITION
from .workers.messages import Progress
from .workers.pool import RecognitionPool
from .workers.recognition import recognize_jobs

logger = logging.getLogger(__name__)

Emit = Callable[[Progress], None]


def _discard(event: Progress) -> None:
    pass


def cascade_context_factory(models: Dict[str, bytes], charset: CharsetConfig,
                            session_factory: Callable) -> Callable[[int], CascadeRecognizer]:
    """Build per-worker recognition contexts from already loaded model bytes."""

    def factory(worker_id: int) -> CascadeRecognizer:
        cascade = CascadeRecognizer(session_factory)
        cascade.initialize(models, charset)
        logger.debug("Worker %d cascade ready", worker_id)
        return cascade

    return factory


class OCRPipeline:
    """
    Complete pipeline for one page image

    Workflow:
    1. Layout Detection (DEIM) - find text lines and their length category
    2. Text Recognition (PARSeq cascade) - in-process or across a worker pool
    3. Reading Order (XY-cut) - linearize the recognized lines
    4. Output - join non-empty lines with newlines

    Progress is reported through ``emit`` as ``Progress`` events; the
    result is the return value.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        loader: Optional[ModelLoader] = None,
        session_factory: Optional[Callable] = None,
        context_factory: Optional[Callable] = None,
    ):
        """
        Args:
            settings: Runtime settings (defaults from the environment)
            loader: Model loader (built from settings if None)
            session_factory: Builds inference sessions from model bytes
            context_factory: Overrides how pool workers build their
                recognition context, ``context_factory(worker_id)``
        """
        self.settings = settings or Settings.from_env()
        self.loader = loader or ModelLoader.from_settings(self.settings)
        self.session_factory = session_factory or functools.partial(
            create_session, use_gpu=self.settings.use_gpu
        )
        self.context_factory = context_factory

        self.detector = LayoutDetector(session_factory=self.session_factory)
        self.assembler = ReadingOrderAssembler(self.settings.direction)
        self.cascade: Optional[CascadeRecognizer] = None
        self.pool: Optional[RecognitionPool] = None
        self.initialized = False

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def initialize(self, emit: Emit = _discard) -> None:
        """Download (or read from cache) all models and build the sessions."""
        if self.initialized:
            emit(Progress("initialized", 1.0, "Ready"))
            return

        emit(Progress("initializing", 0.02, "Initializing..."))

        progresses = dict.fromkeys(ALL_ARTIFACTS, 0.0)
        lock = threading.Lock()

        def report(name, p):
            with lock:
                progresses[name] = p
                avg = sum(progresses.values()) / len(progresses)
                emit(Progress(
                    "loading_models",
                    0.02 + avg * 0.73,
                    f"Loading models... {round(avg * 100)}%",
                    model_progress=dict(progresses),
                ))

        models = self.loader.load_models(ALL_ARTIFACTS, report)
        charset = load_charset_config(self.loader.fetch_text, self.settings.charset)

        emit(Progress("initializing_models", 0.76, "Preparing layout model..."))
        self.detector.initialize(models[LAYOUT.name])

        workers = self.settings.worker_count
        if workers == 0:
            self.cascade = CascadeRecognizer(self.session_factory)
            for progress, recognizer, name in (
                (0.83, self.cascade.narrow, "recognition30"),
                (0.90, self.cascade.medium, "recognition50"),
                (0.96, self.cascade.wide, "recognition100"),
            ):
                emit(Progress("initializing_models", progress, f"Preparing recognition model ({name})..."))
                recognizer.initialize(models[name], charset)
        else:
            emit(Progress("initializing_models", 0.83, f"Starting {workers} recognition workers..."))
            rec_models = {name: models[name] for name in CascadeRecognizer.MODEL_NAMES}
            factory = self.context_factory or cascade_context_factory(
                rec_models, charset, self.session_factory
            )
            self.pool = RecognitionPool(workers, factory)
            self.pool.start()

        self.initialized = True
        emit(Progress("initialized", 1.0, "Ready"))

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    def process(
        self,
        job_id: str,
        image: np.ndarray,
        start_time: Optional[float] = None,
        emit: Emit = _discard,
        source_name: str = "",
    ) -> OCRResult:
        """
        Run all stages on one page

        Args:
            job_id: Identifier echoed on every progress event
            image: Page image (H, W, 3) RGB; not modified
            start_time: ``time.time()`` when the caller submitted the page
            emit: Progress event channel
            source_name: Display name carried into the result

        Returns:
            OCRResult with blocks in reading order
        """
        if not self.initialized:
            raise NotInitializedError("Pipeline not initialized")
        start_time = start_time if start_time is not None else time.time()
        image = ensure_rgb(image)

        # Stage 1: layout detection
        emit(Progress(STAGE_LAYOUT, 0.1, "Detecting text regions...", id=job_id))
        regions = self.detector.detect(
            image,
            lambda p: emit(Progress(
                STAGE_LAYOUT, 0.1 + p * 0.3, f"Detecting regions... {round(p * 100)}%", id=job_id
            )),
        )

        # Stage 2: cascade recognition
        total = len(regions)
        emit(Progress(STAGE_RECOGNITION, 0.4, f"Recognizing text in {total} regions...", id=job_id))
        blocks = self.recognize_regions(
            image,
            regions,
            lambda f: emit(Progress(
                STAGE_RECOGNITION, 0.4 + f * 0.4, f"Recognized {round(f * total)}/{total} regions", id=job_id
            )),
        )

        # Stage 3: reading order
        emit(Progress(STAGE_READING_ORDER, 0.8, "Processing reading order...", id=job_id))
        ordered = self.assembler.process(blocks)

        # Stage 4: output
        emit(Progress(STAGE_OUTPUT, 0.9, "Generating output...", id=job_id))
        full_text = "\n".join(b.text for b in ordered if b.text)

        return OCRResult(
            id=job_id,
            blocks=ordered,
            full_text=full_text,
            elapsed_ms=int((time.time() - start_time) * 1000),
            source_name=source_name,
        )

    def recognize_regions(
        self,
        image: np.ndarray,
        regions: Sequence[TextRegion],
        on_progress: Optional[Callable[[float], None]] = None,
    ) -> List[TextBlock]:
        """
        Recognize every region, one block per region in detection order

        Results are matched back to regions by job id; a missing result
        gives an empty text.
        """
        jobs = [
            RecognitionJob(id=i, pixels=crop_region(image, region),
                           char_count_category=region.char_count_category)
            for i, region in enumerate(regions)
        ]

        if self.pool is not None:
            results = self.pool.recognize(jobs, on_progress)
        elif self.cascade is not None:
            results = {r.id: r for r in recognize_jobs(self.cascade, jobs, on_progress)}
        else:
            raise NotInitializedError("No recognizer available")
        # crops now belong to the recognizers
        del jobs

        blocks = []
        for i, region in enumerate(regions):
            result: Optional[RecognitionResult] = results.get(i)
            blocks.append(TextBlock.from_region(region, result.text if result else "", i + 1))
        return blocks

    def shutdown(self) -> None:
        if self.pool is not None:
            self.pool.shutdown()
            self.pool = None
        if self.cascade is not None:
            self.cascade.dispose()
            self.cascade = None
        self.detector.dispose()
        self.initialized = False

    def __repr__(self):
        return (
            f"OCRPipeline(\n"
            f"  layout={self.detector},\n"
            f"  recognition={self.pool or self.cascade},\n"
            f"  reading_order={self.assembler}\n"
            f")"
        )
