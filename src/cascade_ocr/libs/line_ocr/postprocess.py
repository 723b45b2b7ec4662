"""Postprocessing: detector output decoding, box suppression, token decoding."""

import math
from typing import List, Optional, Sequence, Tuple

import numpy as np

from ...schemas import CATEGORIES, CATEGORY_LONG, TextRegion
from .config import DetectorConfig
from .preprocess import LetterboxMeta


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class LinePostProcess:
    """Convert raw detector outputs into text line regions.

    Expected outputs, in order: class_ids (1-indexed), boxes (x1, y1, x2, y2
    in model input pixels), scores, and optionally char-count categories.
    """

    def __init__(self, config: DetectorConfig):
        self.config = config
        self.line_class_ids = frozenset(config.line_class_ids)

    def __call__(self, outputs: Sequence[np.ndarray], meta: LetterboxMeta) -> List[TextRegion]:
        class_ids = np.asarray(outputs[0]).reshape(-1)
        boxes = np.asarray(outputs[1], dtype=np.float64).reshape(-1, 4)
        scores = np.asarray(outputs[2], dtype=np.float64).reshape(-1)
        char_counts = np.asarray(outputs[3]).reshape(-1) if len(outputs) > 3 else None

        if not (len(class_ids) == len(boxes) == len(scores)):
            raise ValueError(
                f"Mismatched detector outputs: {len(class_ids)} ids, "
                f"{len(boxes)} boxes, {len(scores)} scores"
            )

        # boxes are in [0, input] space; the padded square is max_wh wide
        scale_x = meta.max_wh / float(meta.input_width)
        scale_y = meta.max_wh / float(meta.input_height)

        regions = []
        for i in range(len(scores)):
            score = float(scores[i])
            if score < self.config.score_thresh:
                continue

            class_id = int(class_ids[i]) - 1
            if class_id not in self.line_class_ids:
                continue

            x1, y1, x2, y2 = boxes[i]
            x1, x2 = x1 * scale_x, x2 * scale_x
            y1, y2 = y1 * scale_y, y2 * scale_y

            delta_h = (y2 - y1) * self.config.vertical_expand_ratio

            fx1 = max(0, round_half_up(x1))
            fy1 = max(0, round_half_up(y1 - delta_h))
            fx2 = min(meta.original_width, round_half_up(x2))
            fy2 = min(meta.original_height, round_half_up(y2 + delta_h))

            width, height = fx2 - fx1, fy2 - fy1
            if width < self.config.min_box_size or height < self.config.min_box_size:
                continue

            regions.append(TextRegion(
                x=fx1,
                y=fy1,
                width=width,
                height=height,
                confidence=score,
                class_id=class_id,
                char_count_category=self._category(char_counts, i),
            ))

        return nms(regions, self.config.nms_iou_thresh)

    @staticmethod
    def _category(char_counts: Optional[np.ndarray], index: int) -> int:
        if char_counts is None or index >= len(char_counts):
            return CATEGORY_LONG
        value = float(char_counts[index])
        # Non-integral counts fall through to the wide recognizer
        if not value.is_integer():
            return CATEGORY_LONG
        category = int(value)
        return category if category in CATEGORIES else CATEGORY_LONG


def nms(regions: Sequence[TextRegion], iou_thresh: float = 0.5) -> List[TextRegion]:
    """Greedy non-maximum suppression, highest confidence first."""
    ordered = sorted(regions, key=lambda r: r.confidence, reverse=True)
    keep: List[TextRegion] = []
    for region in ordered:
        if all(k.iou(region) < iou_thresh for k in keep):
            keep.append(region)
    return keep


class GreedyTokenDecode:
    """Greedy arg-max decoding for the cascade recognizers.

    Token 0 ends the sequence, tokens 1-3 (<s>, </s>, <pad>) are skipped,
    and token ``t`` maps to ``char_list[t - 1]``. Consecutive repeats are
    collapsed before characters are emitted.
    """

    EOS = 0
    NUM_SPECIAL = 4

    def __init__(self, char_list: Sequence[str], nominal_confidence: float = 0.9):
        self.char_list = list(char_list)
        self.nominal_confidence = nominal_confidence

    def __call__(self, logits: np.ndarray) -> Tuple[str, float]:
        """Decode a [1, seq_len, vocab] logits tensor into (text, confidence)."""
        logits = np.asarray(logits)
        if logits.ndim == 3:
            logits = logits[0]
        if logits.ndim != 2:
            raise ValueError(f"Expected [1, seq_len, vocab] logits, got {logits.shape}")
        return self.decode(logits.argmax(axis=-1)), self.nominal_confidence

    def decode(self, indices: Sequence[int]) -> str:
        class_ids = []
        for index in indices:
            index = int(index)
            if index == self.EOS:
                break
            if index < self.NUM_SPECIAL:
                continue
            class_ids.append(index - 1)

        chars = []
        prev = -1
        for class_id in class_ids:
            if class_id != prev and class_id < len(self.char_list):
                chars.append(self.char_list[class_id])
                prev = class_id
        return "".join(chars).strip()
