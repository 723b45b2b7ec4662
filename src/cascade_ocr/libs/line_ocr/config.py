"""Configuration classes for the layout and recognition stages."""

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)


@dataclass
class DetectorConfig:
    """Configuration for text line detection."""
    input_size: Tuple[int, int] = (800, 800)  # (width, height) of the model input
    mean: Tuple[float, float, float] = (123.675, 116.28, 103.53)
    std: Tuple[float, float, float] = (58.395, 57.12, 57.375)
    score_thresh: float = 0.3  # Minimum detection confidence
    nms_iou_thresh: float = 0.5  # Overlap above which the weaker box is dropped
    min_box_size: int = 10  # Minimum width/height in original pixels
    vertical_expand_ratio: float = 0.02  # Expansion of top and bottom edges
    # 0-indexed line classes: line_main, line_caption, line_ad, line_note,
    # line_note_tochu, line_title
    line_class_ids: Tuple[int, ...] = (1, 2, 3, 4, 5, 16)


@dataclass
class RecognizerConfig:
    """Configuration for one cascade recognizer instance."""
    input_width: int = 768
    input_height: int = 16
    channels: int = 3
    nominal_confidence: float = 0.9

    @property
    def input_shape(self) -> List[int]:
        return [1, self.channels, self.input_height, self.input_width]


@dataclass
class CharsetConfig:
    """Character vocabulary shared by the cascade recognizers."""
    char_list: List[str] = field(default_factory=list)
    input_height: int = 16
    channels: int = 3
    max_length: int = 25

    @classmethod
    def from_yaml(cls, text: str) -> "CharsetConfig":
        """Parse the charset YAML.

        Recognized keys:
            model.charset_train           string of characters
            text_recognition.input_shape  [N, C, H, W]
            text_recognition.max_length   int
        """
        config = cls()
        data = yaml.safe_load(text) or {}

        rec = data.get("text_recognition") or {}
        shape = rec.get("input_shape")
        if shape:
            config.channels = int(shape[1])
            config.input_height = int(shape[2])
        if rec.get("max_length"):
            config.max_length = int(rec["max_length"])

        charset = (data.get("model") or {}).get("charset_train")
        if charset:
            config.char_list = list(str(charset))
        return config

    def recognizer_config(self, input_width: int) -> RecognizerConfig:
        return RecognizerConfig(
            input_width=input_width,
            input_height=self.input_height,
            channels=self.channels,
        )


def load_charset_config(fetch: Optional[Callable[[str], str]], path: str) -> CharsetConfig:
    """Load the charset resource, falling back to defaults when unavailable."""
    if fetch is None:
        return CharsetConfig()
    try:
        config = CharsetConfig.from_yaml(fetch(path))
    except Exception as e:
        logger.warning("Failed to load charset config %s, using defaults: %s", path, e)
        return CharsetConfig()
    logger.info("Character list loaded: %d characters", len(config.char_list))
    return config
