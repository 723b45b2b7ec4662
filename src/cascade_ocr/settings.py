"""
Runtime settings.

Every value except the model source has a default. Models need either
``base_url`` or ``hf_repo``; with neither set, loading raises
``ModelFetchError``. ``Settings.from_env()`` reads ``CASCADE_OCR_*`` variables:

    CASCADE_OCR_CACHE_DIR   model cache directory
    CASCADE_OCR_BASE_URL    base URL or local directory that artifact paths are resolved against
    CASCADE_OCR_HF_REPO     HuggingFace repo to resolve artifacts from instead
    CASCADE_OCR_CHARSET     local path or relative URL of the charset YAML
    CASCADE_OCR_WORKERS     recognition workers (0 = in-process, unset = auto)
    CASCADE_OCR_USE_GPU     "1"/"true" to request the CUDA provider
    CASCADE_OCR_DIRECTION   vertical_rl | horizontal_ltr
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


DEFAULT_CHARSET = "config/NDLmoji.yaml"
MIN_WORKERS = 2
MAX_WORKERS = 8


def _default_cache_dir() -> Path:
    root = os.environ.get("XDG_CACHE_HOME") or os.path.join(os.path.expanduser("~"), ".cache")
    return Path(root) / "cascade_ocr" / "models"


def default_worker_count() -> int:
    """Worker count derived from available parallelism, clamped to [2, 8]."""
    return max(MIN_WORKERS, min(MAX_WORKERS, os.cpu_count() or MIN_WORKERS))


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    cache_dir: Path = field(default_factory=_default_cache_dir)
    base_url: Optional[str] = None
    hf_repo: Optional[str] = None
    charset: str = DEFAULT_CHARSET
    workers: Optional[int] = None  # None = auto, 0 = recognize in-process
    use_gpu: bool = False
    direction: str = "vertical_rl"
    show_download_progress: bool = False

    @property
    def worker_count(self) -> int:
        if self.workers is None:
            return default_worker_count()
        return max(0, self.workers)

    @classmethod
    def from_env(cls, **overrides) -> "Settings":
        env = os.environ
        values = {}
        if env.get("CASCADE_OCR_CACHE_DIR"):
            values["cache_dir"] = Path(env["CASCADE_OCR_CACHE_DIR"])
        if env.get("CASCADE_OCR_BASE_URL"):
            values["base_url"] = env["CASCADE_OCR_BASE_URL"]
        if env.get("CASCADE_OCR_HF_REPO"):
            values["hf_repo"] = env["CASCADE_OCR_HF_REPO"]
        if env.get("CASCADE_OCR_CHARSET"):
            values["charset"] = env["CASCADE_OCR_CHARSET"]
        if env.get("CASCADE_OCR_WORKERS"):
            values["workers"] = int(env["CASCADE_OCR_WORKERS"])
        if env.get("CASCADE_OCR_USE_GPU"):
            values["use_gpu"] = _as_bool(env["CASCADE_OCR_USE_GPU"])
        if env.get("CASCADE_OCR_DIRECTION"):
            values["direction"] = env["CASCADE_OCR_DIRECTION"]
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
