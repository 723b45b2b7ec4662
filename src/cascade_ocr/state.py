"""
Job state tracking for the caller.

    idle -> loading_model -> idle
    idle -> processing{layout_detection -> text_recognition -> reading_order
                       -> generating_output} -> done
    any  -> error

``done`` and ``error`` are terminal for a job; the next job starts from a
fresh state via ``begin_job`` (or ``reset``).
"""

import copy
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional


class OCRStatus(str, Enum):
    IDLE = "idle"
    LOADING_MODEL = "loading_model"
    PROCESSING = "processing"
    DONE = "done"
    ERROR = "error"


STAGE_STARTING = "starting"
STAGE_LAYOUT = "layout_detection"
STAGE_RECOGNITION = "text_recognition"
STAGE_READING_ORDER = "reading_order"
STAGE_OUTPUT = "generating_output"
PROCESSING_STAGES = (STAGE_STARTING, STAGE_LAYOUT, STAGE_RECOGNITION, STAGE_READING_ORDER, STAGE_OUTPUT)


@dataclass
class PipelineJobState:
    status: OCRStatus = OCRStatus.IDLE
    stage: str = ""
    stage_progress: float = 0.0
    message: str = ""
    error_message: Optional[str] = None
    model_progress: Optional[Dict[str, float]] = None
    current_file: str = ""
    current_index: int = 0
    total_files: int = 0


class JobStateMachine:
    """Owns the current ``PipelineJobState`` and notifies observers on change."""

    def __init__(self):
        self._state = PipelineJobState()
        self._observers: List[Callable[[PipelineJobState], None]] = []

    @property
    def state(self) -> PipelineJobState:
        return copy.deepcopy(self._state)

    @property
    def status(self) -> OCRStatus:
        return self._state.status

    def subscribe(self, observer: Callable[[PipelineJobState], None]) -> None:
        self._observers.append(observer)

    # ------------------------------------------------------------------
    # Model loading
    # ------------------------------------------------------------------

    def update_loading(self, stage: str, progress: float, message: str,
                       model_progress: Optional[Dict[str, float]] = None) -> None:
        self._require(OCRStatus.IDLE, OCRStatus.LOADING_MODEL)
        self._state.status = OCRStatus.LOADING_MODEL
        self._set_progress(stage, progress)
        self._state.message = message
        if model_progress is not None:
            self._state.model_progress = dict(model_progress)
        self._notify()

    def models_ready(self) -> None:
        self._require(OCRStatus.IDLE, OCRStatus.LOADING_MODEL)
        self._state = PipelineJobState()
        self._notify()

    # ------------------------------------------------------------------
    # Page processing
    # ------------------------------------------------------------------

    def begin_job(self, current_file: str, current_index: int, total_files: int) -> None:
        if self._state.status == OCRStatus.LOADING_MODEL:
            raise ValueError("Cannot start a job while models are loading")
        self._state = PipelineJobState(
            status=OCRStatus.PROCESSING,
            stage=STAGE_STARTING,
            current_file=current_file,
            current_index=current_index,
            total_files=total_files,
        )
        self._notify()

    def update_stage(self, stage: str, progress: float, message: str = "") -> None:
        self._require(OCRStatus.PROCESSING)
        if stage not in PROCESSING_STAGES:
            raise ValueError(f"Unknown processing stage '{stage}'")
        self._set_progress(stage, progress)
        self._state.message = message
        self._notify()

    def complete(self) -> None:
        self._require(OCRStatus.PROCESSING)
        self._state.status = OCRStatus.DONE
        self._state.stage_progress = 1.0
        self._notify()

    def fail(self, error_message: str) -> None:
        self._state.status = OCRStatus.ERROR
        self._state.error_message = error_message
        self._notify()

    def reset(self) -> None:
        self._state = PipelineJobState()
        self._notify()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require(self, *allowed: OCRStatus) -> None:
        if self._state.status not in allowed:
            names = ", ".join(s.value for s in allowed)
            raise ValueError(f"Invalid transition from '{self._state.status.value}' (expected {names})")

    def _set_progress(self, stage: str, progress: float) -> None:
        progress = min(1.0, max(0.0, float(progress)))
        # never move backwards within a stage
        if stage == self._state.stage:
            progress = max(progress, self._state.stage_progress)
        self._state.stage = stage
        self._state.stage_progress = progress

    def _notify(self) -> None:
        snapshot = self.state
        for observer in self._observers:
            observer(snapshot)
