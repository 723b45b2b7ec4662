"""
Caller-side driver for the OCR worker.

Usage:
    with OCRClient() as client:
        result = client.process_image(page, "scan.png")
        outcomes = client.process_batch([("p1", page1), ("p2", page2)])
"""

import itertools
import logging
import time
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Tuple

import numpy as np

from .errors import CascadeOCRError, error_from_name
from .pipeline import OCRPipeline
from .schemas import OCRResult
from .settings import Settings
from .state import JobStateMachine, PipelineJobState
from .workers.messages import Complete, Error, Initialize, Process, Progress, Terminate
from .workers.ocr import OCRWorker

logger = logging.getLogger(__name__)


@dataclass
class PageOutcome:
    """Result of one page in a batch: either ``result`` or ``error`` is set."""
    source_name: str
    result: Optional[OCRResult] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.result is not None


class OCRClient:
    """
    Submits pages to an ``OCRWorker`` one at a time and tracks job state.

    Pages are processed strictly sequentially: a page's pipeline finishes,
    successfully or not, before the next page is dispatched.
    """

    def __init__(self, pipeline: Optional[OCRPipeline] = None, settings: Optional[Settings] = None):
        self.pipeline = pipeline or OCRPipeline(settings)
        self.state_machine = JobStateMachine()
        self.worker: Optional[OCRWorker] = None
        self.ready = False
        self._seq = itertools.count()

    @property
    def state(self) -> PipelineJobState:
        return self.state_machine.state

    def subscribe(self, observer: Callable[[PipelineJobState], None]) -> None:
        """Register a callback that receives a state snapshot on every change."""
        self.state_machine.subscribe(observer)

    def start(self) -> None:
        """Start the worker and block until all models are ready."""
        if self.ready:
            return
        # A previous session may have left the machine in done or error
        self.state_machine.reset()
        if self.worker is None:
            self.worker = OCRWorker(self.pipeline)
            self.worker.start()
        self.worker.send(Initialize())

        while True:
            message = self.worker.outbox.get()
            if isinstance(message, Progress):
                if message.stage == "initialized":
                    self.state_machine.models_ready()
                    self.ready = True
                    return
                self.state_machine.update_loading(
                    message.stage, message.progress, message.message, message.model_progress
                )
            elif isinstance(message, Error):
                self.state_machine.fail(message.message)
                raise error_from_name(message.error_type, message.message)

    def process_image(
        self,
        image: np.ndarray,
        source_name: str = "",
        index: int = 0,
        total: int = 1,
    ) -> OCRResult:
        """
        OCR one page

        The caller keeps ownership of ``image``; it is not modified.

        Raises:
            CascadeOCRError (or a subclass) when the page fails
        """
        self.start()

        job_id = f"{int(time.time() * 1000)}-{next(self._seq)}"
        self.state_machine.begin_job(source_name, index + 1, total)
        self.worker.send(Process(id=job_id, image=image, start_time=time.time(), source_name=source_name))

        while True:
            message = self.worker.outbox.get()
            if message.id is not None and message.id != job_id:
                continue

            if isinstance(message, Progress):
                self.state_machine.update_stage(message.stage, message.progress, message.message)
            elif isinstance(message, Complete):
                self.state_machine.complete()
                return OCRResult(
                    id=message.id,
                    blocks=list(message.blocks),
                    full_text=message.full_text,
                    elapsed_ms=message.elapsed_ms,
                    source_name=message.source_name,
                )
            elif isinstance(message, Error):
                self.state_machine.fail(message.message)
                raise error_from_name(message.error_type, message.message)
            else:
                raise TypeError(f"Unhandled OCR worker message: {message!r}")

    def process_batch(self, pages: Iterable[Tuple[str, np.ndarray]]) -> List[PageOutcome]:
        """OCR pages in order, continuing past pages that fail."""
        pages = list(pages)
        outcomes = []
        for i, (name, image) in enumerate(pages):
            try:
                result = self.process_image(image, name, index=i, total=len(pages))
            except CascadeOCRError as e:
                logger.warning("Page %s failed: %s", name, e)
                outcomes.append(PageOutcome(name, error=str(e)))
            else:
                outcomes.append(PageOutcome(name, result=result))
        return outcomes

    def reset(self) -> None:
        self.state_machine.reset()

    def close(self) -> None:
        if self.worker is not None:
            self.worker.send(Terminate())
            self.worker.join()
            self.worker = None
        self.ready = False

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
