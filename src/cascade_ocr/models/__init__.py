"""
Model artifact management for cascade_ocr.

Usage:
    from cascade_ocr.models import ModelLoader

    loader = ModelLoader.from_settings(settings)
    data = loader.load_model("recognition30")
    print(loader.cache.status())
"""

from .cache import ModelCacheStore
from .config import (
    ALL_ARTIFACTS,
    LAYOUT,
    MODEL_VERSION,
    RECOGNITION,
    RECOGNITION_30,
    RECOGNITION_50,
    RECOGNITION_100,
    ModelArtifact,
)
from .loader import ModelLoader

__all__ = [
    "ModelCacheStore",
    "ModelLoader",
    "ModelArtifact",
    "ALL_ARTIFACTS",
    "MODEL_VERSION",
    "LAYOUT",
    "RECOGNITION",
    "RECOGNITION_30",
    "RECOGNITION_50",
    "RECOGNITION_100",
]
