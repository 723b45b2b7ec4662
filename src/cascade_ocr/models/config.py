"""
Model definitions: artifact names, paths, and the expected cache version.

Single source of truth for every model artifact used by the pipeline.
Paths are relative to the configured base URL (or HuggingFace repo).
"""

from dataclasses import dataclass
from typing import Dict, List


# ---------------------------------------------------------------------------
# Bump when any artifact below changes; stale cache entries are re-downloaded
# ---------------------------------------------------------------------------
MODEL_VERSION = "1.0.0"


@dataclass(frozen=True)
class ModelArtifact:
    """A single downloadable model file."""
    name: str
    path: str              # relative path, e.g. "models/parseq-ndl-30.onnx"
    description: str = ""
    input_width: int = 0   # recognition models only


@dataclass(frozen=True)
class ModelGroup:
    """A logical group of artifacts that are loaded together."""
    name: str
    description: str
    artifacts: Dict[str, ModelArtifact]

    @property
    def names(self) -> List[str]:
        return list(self.artifacts)


# ---------------------------------------------------------------------------
# DEIM: text line layout detection
# ---------------------------------------------------------------------------
LAYOUT = ModelArtifact(
    name="layout",
    path="models/deim-s-1024x1024.onnx",
    description="DEIMv2 text-line detector (800x800 input)",
)

# ---------------------------------------------------------------------------
# PARSeq: cascade text recognition, one model per character-count category
# ---------------------------------------------------------------------------
RECOGNITION_30 = ModelArtifact(
    name="recognition30",
    path="models/parseq-ndl-30.onnx",
    description="Recognizer for lines of up to 30 characters [1,3,16,256]",
    input_width=256,
)
RECOGNITION_50 = ModelArtifact(
    name="recognition50",
    path="models/parseq-ndl-50.onnx",
    description="Recognizer for lines of up to 50 characters [1,3,16,384]",
    input_width=384,
)
RECOGNITION_100 = ModelArtifact(
    name="recognition100",
    path="models/parseq-ndl-100.onnx",
    description="Recognizer for lines of up to 100 characters [1,3,16,768]",
    input_width=768,
)

RECOGNITION = ModelGroup(
    name="recognition",
    description="PARSeq cascade recognizers",
    artifacts={
        a.name: a for a in (RECOGNITION_30, RECOGNITION_50, RECOGNITION_100)
    },
)

# ---------------------------------------------------------------------------
# Master table
# ---------------------------------------------------------------------------
ALL_ARTIFACTS: Dict[str, ModelArtifact] = {
    a.name: a for a in (LAYOUT, RECOGNITION_30, RECOGNITION_50, RECOGNITION_100)
}
