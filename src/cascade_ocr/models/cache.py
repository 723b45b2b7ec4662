"""
Versioned on-disk cache for model artifacts.

Each entry is two files inside the cache directory:

    <name>.bin    raw artifact bytes
    <name>.json   {"name", "version", "cached_at"}

An entry is only served when its version matches the store's expected
version; anything else is a miss.
"""

import json
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Optional, Union

from ..schemas import ModelCacheEntry
from .config import ALL_ARTIFACTS, MODEL_VERSION

logger = logging.getLogger(__name__)


class ModelCacheStore:
    """Persistent key-versioned blob store."""

    def __init__(self, cache_dir: Union[str, Path], version: str = MODEL_VERSION):
        self._dir = Path(cache_dir)
        self._version = version

    @property
    def cache_dir(self) -> Path:
        return self._dir

    @property
    def version(self) -> str:
        return self._version

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self, name: str) -> Optional[bytes]:
        """Return the cached payload, or None on a miss or version mismatch."""
        entry = self.entry(name)
        if entry is None:
            return None
        if entry.version_tag != self._version:
            logger.info(
                "Cached %s has version %s, expected %s", name, entry.version_tag, self._version
            )
            return None
        return entry.payload

    def entry(self, name: str) -> Optional[ModelCacheEntry]:
        """Return the raw entry regardless of version."""
        meta_path, data_path = self._paths(name)
        if not meta_path.is_file() or not data_path.is_file():
            return None
        try:
            meta = json.loads(meta_path.read_text(encoding="utf-8"))
            payload = data_path.read_bytes()
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable cache entry %s: %s", name, e)
            return None
        return ModelCacheEntry(
            name=meta.get("name", name),
            version_tag=str(meta.get("version", "")),
            payload=payload,
            cached_at=float(meta.get("cached_at", 0.0)),
        )

    def put(self, name: str, payload: bytes) -> None:
        """Store payload under the current version.

        The payload is written before the metadata, each through a temp
        file and ``os.replace``, so readers never see a partial entry.
        """
        self._dir.mkdir(parents=True, exist_ok=True)
        meta_path, data_path = self._paths(name)
        meta = {"name": name, "version": self._version, "cached_at": time.time()}
        self._atomic_write(data_path, payload)
        self._atomic_write(meta_path, json.dumps(meta).encode("utf-8"))

    def clear(self) -> None:
        """Remove every cached entry."""
        if not self._dir.is_dir():
            return
        for path in self._dir.iterdir():
            if path.suffix in (".bin", ".json"):
                path.unlink()

    def status(self) -> str:
        """Return a human-readable status report."""
        lines = [
            "Model Cache Status",
            f"Directory: {self._dir}",
            f"Expected version: {self._version}",
            "=" * 60,
        ]
        for name in ALL_ARTIFACTS:
            entry = self.entry(name)
            if entry is None:
                mark, detail = "MISSING", ""
            elif entry.version_tag != self._version:
                mark, detail = "STALE", f"version {entry.version_tag}"
            else:
                mark = "OK"
                detail = f"{len(entry.payload) / (1024 * 1024):.1f} MiB"
            lines.append(f"  [{mark:>7}]  {name:<16} {detail}")
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _paths(self, name: str):
        return self._dir / f"{name}.json", self._dir / f"{name}.bin"

    def _atomic_write(self, path: Path, data: bytes) -> None:
        fd, tmp = tempfile.mkstemp(dir=str(self._dir), prefix=f".{path.name}.")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp, path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise
