"""
Cascade OCR Library
Line-level OCR for page images with ONNX layout and recognition models
"""

from .client import OCRClient, PageOutcome
from .errors import (
    CascadeOCRError,
    InferenceError,
    ModelFetchError,
    ModelNotFoundError,
    NotInitializedError,
    WorkerFaultError,
)
from .modules.layout import LayoutDetector
from .modules.reading_order import ReadingOrderAssembler
from .modules.text import CascadeRecognizer, TextRecognizer
from .pipeline import OCRPipeline
from .schemas import BoundingBox, OCRResult, TextBlock, TextRegion
from .settings import Settings

__version__ = "0.1.0"
__all__ = [
    'OCRClient',
    'PageOutcome',
    'OCRPipeline',
    'Settings',
    'LayoutDetector',
    'TextRecognizer',
    'CascadeRecognizer',
    'ReadingOrderAssembler',
    'BoundingBox',
    'TextRegion',
    'TextBlock',
    'OCRResult',
    'CascadeOCRError',
    'ModelFetchError',
    'ModelNotFoundError',
    'NotInitializedError',
    'InferenceError',
    'WorkerFaultError',
]
