"""OCR worker: hosts the pipeline on its own thread and speaks the job protocol."""

import logging
import queue
import threading

from .messages import Complete, Error, Initialize, Process, Terminate

logger = logging.getLogger(__name__)


class OCRWorker(threading.Thread):
    """
    Background OCR worker.

    Inbound messages go to ``inbox``; progress, completion, and error events
    come out of ``outbox``. Every progress event of a job is emitted before
    that job's ``Complete`` or ``Error``.
    """

    def __init__(self, pipeline):
        super().__init__(name="ocr-worker", daemon=True)
        self.pipeline = pipeline
        self.inbox: queue.Queue = queue.Queue()
        self.outbox: queue.Queue = queue.Queue()

    def send(self, message) -> None:
        self.inbox.put(message)

    def run(self) -> None:
        while True:
            message = self.inbox.get()
            if isinstance(message, Terminate):
                self.pipeline.shutdown()
                return
            if isinstance(message, Initialize):
                self._initialize()
            elif isinstance(message, Process):
                self._process(message)
            else:
                self.outbox.put(Error(f"Unhandled OCR worker message: {message!r}", error_type="TypeError"))

    def _initialize(self) -> None:
        try:
            self.pipeline.initialize(self.outbox.put)
        except Exception as e:
            logger.exception("Pipeline initialization failed")
            self.outbox.put(Error(str(e), stage="initialization", error_type=type(e).__name__))

    def _process(self, message: Process) -> None:
        try:
            if not self.pipeline.initialized:
                self.pipeline.initialize(self.outbox.put)
            result = self.pipeline.process(
                message.id,
                message.image,
                start_time=message.start_time,
                emit=self.outbox.put,
                source_name=message.source_name,
            )
        except Exception as e:
            logger.exception("OCR job %s failed", message.id)
            self.outbox.put(Error(str(e), id=message.id, error_type=type(e).__name__))
            return

        self.outbox.put(Complete(
            id=result.id,
            blocks=tuple(result.blocks),
            full_text=result.full_text,
            elapsed_ms=result.elapsed_ms,
            source_name=result.source_name,
        ))
