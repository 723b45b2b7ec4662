"""
Tensor pre/post-processing for text line OCR.

- preprocess: letterbox + normalization for the detector, orientation
  and [-1, 1] scaling for the recognizers
- postprocess: detector output decoding, NMS, greedy token decoding
"""

from .config import CharsetConfig, DetectorConfig, RecognizerConfig, load_charset_config
from .postprocess import GreedyTokenDecode, LinePostProcess, nms
from .preprocess import ensure_rgb, layout_input, recognition_input
from .utils import crop_region

__all__ = [
    "CharsetConfig",
    "DetectorConfig",
    "RecognizerConfig",
    "load_charset_config",
    "GreedyTokenDecode",
    "LinePostProcess",
    "nms",
    "ensure_rgb",
    "layout_input",
    "recognition_input",
    "crop_region",
]
