"""Recognition worker: a thread that owns one cascade of recognizers."""

import logging
import queue
import threading
from typing import Callable, List, Optional, Sequence

from ..schemas import RecognitionJob, RecognitionResult
from .messages import (
    RecComplete,
    RecError,
    RecInit,
    RecProcess,
    RecProgress,
    RecReady,
    RecTerminate,
)

logger = logging.getLogger(__name__)


def recognize_jobs(
    context,
    jobs: Sequence[RecognitionJob],
    on_progress: Optional[Callable[[float], None]] = None,
) -> List[RecognitionResult]:
    """Run jobs strictly in the order given.

    ``context`` is anything with ``recognize_job(job) -> RecognitionResult``,
    normally a ``CascadeRecognizer``.
    """
    results = []
    total = len(jobs)
    for i, job in enumerate(jobs):
        results.append(context.recognize_job(job))
        if on_progress:
            on_progress((i + 1) / total)
    return results


class RecognitionWorker(threading.Thread):
    """
    Persistent recognition worker.

    The recognition context is created by ``context_factory(worker_id)`` when
    ``RecInit`` arrives and lives until ``RecTerminate``. Messages are handled
    one at a time in arrival order, so a terminate request takes effect
    before any job queued after it.
    """

    def __init__(self, worker_id: int, context_factory: Callable, outbox: queue.Queue):
        super().__init__(name=f"recognition-worker-{worker_id}", daemon=True)
        self.worker_id = worker_id
        self.context_factory = context_factory
        self.outbox = outbox
        self.inbox: queue.Queue = queue.Queue()
        self.context = None

    def send(self, message) -> None:
        self.inbox.put(message)

    def run(self) -> None:
        while True:
            message = self.inbox.get()
            if isinstance(message, RecTerminate):
                self._dispose()
                logger.debug("Worker %d terminated", self.worker_id)
                return
            self._handle(message)

    def _handle(self, message) -> None:
        if isinstance(message, RecInit):
            self._initialize()
        elif isinstance(message, RecProcess):
            self._process(message)
        else:
            self.outbox.put(RecError(self.worker_id, f"Unhandled recognition message: {message!r}"))

    def _initialize(self) -> None:
        if self.context is not None:
            self.outbox.put(RecReady(self.worker_id))
            return
        try:
            self.context = self.context_factory(self.worker_id)
        except Exception as e:
            logger.exception("Worker %d failed to initialize", self.worker_id)
            self.outbox.put(RecError(self.worker_id, str(e)))
            return
        self.outbox.put(RecReady(self.worker_id))

    def _process(self, message: RecProcess) -> None:
        if self.context is None:
            self.outbox.put(RecError(self.worker_id, "Recognition worker not initialized", message.batch_id))
            return

        def report(fraction):
            self.outbox.put(RecProgress(self.worker_id, message.batch_id, fraction))

        try:
            results = recognize_jobs(self.context, message.jobs, report)
        except Exception as e:
            logger.exception("Worker %d failed on batch %d", self.worker_id, message.batch_id)
            self.outbox.put(RecError(self.worker_id, str(e), message.batch_id))
            return
        self.outbox.put(RecComplete(self.worker_id, message.batch_id, tuple(results)))

    def _dispose(self) -> None:
        if self.context is not None and hasattr(self.context, "dispose"):
            self.context.dispose()
        self.context = None
