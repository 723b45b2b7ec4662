"""
Worker message protocols.

Two closed sets of message types, one per direction, for each worker kind:

    OCR worker          in:  Initialize, Process, Terminate
                        out: Progress, Complete, Error
    Recognition worker  in:  RecInit, RecProcess, RecTerminate
                        out: RecReady, RecProgress, RecComplete, RecError

Handlers match on the concrete class and answer anything outside the set
with an error message. Pixel buffers inside a message belong to the receiver
once the message is put on a queue.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

import numpy as np

from ..schemas import RecognitionJob, RecognitionResult, TextBlock


# ---------------------------------------------------------------------------
# OCR worker: inbound
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class Initialize:
    pass


@dataclass(frozen=True, eq=False)
class Process:
    id: str
    image: np.ndarray = field(repr=False)
    start_time: float
    source_name: str = ""


@dataclass(frozen=True)
class Terminate:
    pass


# ---------------------------------------------------------------------------
# OCR worker: outbound
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class Progress:
    stage: str
    progress: float
    message: str
    id: Optional[str] = None
    model_progress: Optional[Dict[str, float]] = None


@dataclass(frozen=True)
class Complete:
    id: str
    blocks: Tuple[TextBlock, ...]
    full_text: str
    elapsed_ms: int
    source_name: str = ""


@dataclass(frozen=True)
class Error:
    message: str
    id: Optional[str] = None
    stage: Optional[str] = None
    error_type: Optional[str] = None


WorkerInMessage = Union[Initialize, Process, Terminate]
WorkerOutMessage = Union[Progress, Complete, Error]


# ---------------------------------------------------------------------------
# Recognition worker: inbound
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class RecInit:
    pass


@dataclass(frozen=True, eq=False)
class RecProcess:
    batch_id: int
    jobs: List[RecognitionJob]


@dataclass(frozen=True)
class RecTerminate:
    pass


# ---------------------------------------------------------------------------
# Recognition worker: outbound (tagged with the sending worker)
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class RecReady:
    worker_id: int


@dataclass(frozen=True)
class RecProgress:
    worker_id: int
    batch_id: int
    fraction: float


@dataclass(frozen=True)
class RecComplete:
    worker_id: int
    batch_id: int
    results: Tuple[RecognitionResult, ...]


@dataclass(frozen=True)
class RecError:
    worker_id: int
    message: str
    batch_id: Optional[int] = None


RecWorkerInMessage = Union[RecInit, RecProcess, RecTerminate]
RecWorkerOutMessage = Union[RecReady, RecProgress, RecComplete, RecError]
