"""
Recognition worker pool.

Fans one page's recognition jobs out to N persistent workers and merges
the replies by job id, so the result does not depend on which worker
finishes first.
"""

import itertools
import logging
import queue
from typing import Callable, Dict, List, Optional, Sequence

from ..errors import WorkerFaultError
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
from .recognition import RecognitionWorker

logger = logging.getLogger(__name__)


def partition(jobs: Sequence[RecognitionJob], n: int) -> List[List[RecognitionJob]]:
    """Round-robin assignment: job i goes to worker i mod n."""
    lists: List[List[RecognitionJob]] = [[] for _ in range(n)]
    for i, job in enumerate(jobs):
        lists[i % n].append(job)
    return lists


class RecognitionPool:
    """
    N recognition workers, each with its own cascade of recognizers.

    Usage:
        with RecognitionPool(4, context_factory) as pool:
            results = pool.recognize(jobs)   # {job id: RecognitionResult}
    """

    def __init__(self, size: int, context_factory: Callable):
        """
        Args:
            size: Number of workers (>= 1)
            context_factory: ``context_factory(worker_id)`` builds the
                recognition context inside the worker thread
        """
        if size < 1:
            raise ValueError(f"Pool size must be at least 1, got {size}")
        self.size = size
        self.context_factory = context_factory
        self._outbox: queue.Queue = queue.Queue()
        self._workers: List[RecognitionWorker] = []
        self._batch_ids = itertools.count(1)

    @property
    def started(self) -> bool:
        return bool(self._workers)

    def start(self) -> None:
        """Start the workers and wait until every one reports ready."""
        if self.started:
            return
        self._workers = [
            RecognitionWorker(i, self.context_factory, self._outbox) for i in range(self.size)
        ]
        for worker in self._workers:
            worker.start()
            worker.send(RecInit())

        pending = set(range(self.size))
        while pending:
            message = self._outbox.get()
            if isinstance(message, RecReady):
                pending.discard(message.worker_id)
            elif isinstance(message, RecError):
                self.shutdown()
                raise WorkerFaultError(
                    f"Recognition worker {message.worker_id} failed to initialize: {message.message}"
                )
        logger.info("Recognition pool ready with %d workers", self.size)

    def recognize(
        self,
        jobs: Sequence[RecognitionJob],
        on_progress: Optional[Callable[[float], None]] = None,
    ) -> Dict[int, RecognitionResult]:
        """
        Recognize one page's jobs across the pool.

        Args:
            jobs: Jobs with unique ids; their pixel buffers move to the workers
            on_progress: receives the overall fraction of finished jobs

        Returns:
            Mapping from job id to result

        Raises:
            WorkerFaultError: any worker failed; partial results are discarded
        """
        if not self.started:
            self.start()

        batch_id = next(self._batch_ids)
        job_lists = partition(jobs, self.size)
        total = len(jobs)
        pending = set()

        for worker, job_list in zip(self._workers, job_lists):
            # Workers without jobs resolve immediately with no results
            if job_list:
                worker.send(RecProcess(batch_id=batch_id, jobs=job_list))
                pending.add(worker.worker_id)

        fractions = dict.fromkeys(pending, 0.0)
        results: List[RecognitionResult] = []

        while pending:
            message = self._outbox.get()
            if getattr(message, "batch_id", batch_id) != batch_id:
                logger.debug("Ignoring stale message %r", message)
                continue

            if isinstance(message, RecProgress):
                fractions[message.worker_id] = message.fraction
                if on_progress and total:
                    done = sum(fractions[w] * len(job_lists[w]) for w in fractions)
                    on_progress(done / total)
            elif isinstance(message, RecComplete):
                pending.discard(message.worker_id)
                results.extend(message.results)
            elif isinstance(message, RecError):
                raise WorkerFaultError(
                    f"Recognition worker {message.worker_id} failed: {message.message}"
                )
            elif isinstance(message, RecReady):
                continue
            else:
                raise TypeError(f"Unhandled recognition message: {message!r}")

        return {result.id: result for result in results}

    def shutdown(self, timeout: Optional[float] = None) -> None:
        """Ask every worker to stop and wait for in-flight work to finish."""
        for worker in self._workers:
            worker.send(RecTerminate())
        for worker in self._workers:
            worker.join(timeout)
        self._workers = []
        # Replies still queued belong to the stopped workers
        self._outbox = queue.Queue()

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *exc):
        self.shutdown()

    def __repr__(self):
        return f"RecognitionPool(size={self.size}, started={self.started})"
