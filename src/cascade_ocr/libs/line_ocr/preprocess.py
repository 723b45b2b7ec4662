"""Preprocessing: image normalization into model input tensors."""

from dataclasses import dataclass
from typing import Tuple, Union

import cv2
import numpy as np
from PIL import Image

from .config import DetectorConfig, RecognizerConfig


@dataclass(frozen=True)
class LetterboxMeta:
    """Geometry needed to map detections back to the original image."""
    original_width: int
    original_height: int
    max_wh: int
    input_width: int
    input_height: int


def ensure_rgb(image: Union[np.ndarray, Image.Image]) -> np.ndarray:
    """Return an (H, W, 3) uint8 RGB array.

    Accepts PIL images, grayscale arrays, and RGBA arrays (alpha dropped).
    """
    if isinstance(image, Image.Image):
        return np.array(image.convert("RGB"))

    img = np.asarray(image)
    if img.ndim == 2:
        img = np.stack([img] * 3, axis=-1)
    elif img.ndim == 3 and img.shape[2] == 1:
        img = np.concatenate([img] * 3, axis=-1)
    elif img.ndim == 3 and img.shape[2] == 4:
        img = img[:, :, :3]
    if img.ndim != 3 or img.shape[2] != 3:
        raise ValueError(f"Unsupported image shape: {img.shape}")
    if img.dtype != np.uint8:
        img = np.clip(img, 0, 255).astype(np.uint8)
    return img


def letterbox(image: np.ndarray) -> np.ndarray:
    """Embed the image at the top-left of a black max(W, H) square."""
    h, w = image.shape[:2]
    max_wh = max(h, w)
    square = np.zeros((max_wh, max_wh, image.shape[2]), dtype=image.dtype)
    square[:h, :w] = image
    return square


def layout_input(image: np.ndarray, config: DetectorConfig) -> Tuple[np.ndarray, LetterboxMeta]:
    """Build the (1, 3, H, W) float32 detector input.

    Args:
        image: RGB image (H, W, 3)
        config: Detector configuration

    Returns:
        Tuple of (tensor, letterbox metadata)
    """
    h, w = image.shape[:2]
    in_w, in_h = config.input_size

    square = letterbox(image)
    resized = cv2.resize(square, (in_w, in_h), interpolation=cv2.INTER_LINEAR)

    mean = np.array(config.mean, dtype=np.float32).reshape((1, 1, 3))
    std = np.array(config.std, dtype=np.float32).reshape((1, 1, 3))
    normalized = (resized.astype(np.float32) - mean) / std

    tensor = normalized.transpose((2, 0, 1))[np.newaxis, :].astype(np.float32)
    meta = LetterboxMeta(
        original_width=w,
        original_height=h,
        max_wh=max(h, w),
        input_width=in_w,
        input_height=in_h,
    )
    return np.ascontiguousarray(tensor), meta


def shape_hint(config: DetectorConfig) -> np.ndarray:
    """Auxiliary int64 [[H, W]] input declared by two-input detectors."""
    in_w, in_h = config.input_size
    return np.array([[in_h, in_w]], dtype=np.int64)


def normalize_orientation(image: np.ndarray) -> np.ndarray:
    """Rotate vertical lines 90 degrees counter-clockwise so they read horizontally."""
    h, w = image.shape[:2]
    if h > w:
        return cv2.rotate(image, cv2.ROTATE_90_COUNTERCLOCKWISE)
    return image


def recognition_input(image: np.ndarray, config: RecognizerConfig) -> np.ndarray:
    """Build the (1, C, H, W) float32 recognizer input with values in [-1, 1]."""
    img = normalize_orientation(ensure_rgb(image))
    resized = cv2.resize(
        img, (config.input_width, config.input_height), interpolation=cv2.INTER_LINEAR
    )
    resized = resized[:, :, :config.channels].astype(np.float32)
    resized = resized.transpose((2, 0, 1)) / 255.0
    resized -= 0.5
    resized *= 2.0
    return np.ascontiguousarray(resized[np.newaxis, :], dtype=np.float32)
