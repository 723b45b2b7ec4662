"""
Model loader: cache-or-download for the four pipeline artifacts.

Usage:
    from cascade_ocr.models import ModelLoader

    loader = ModelLoader.from_settings(settings)
    data = loader.load_model("layout", on_progress=print)
    models = loader.load_models(["recognition30", "recognition50"])
"""

import io
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional
from urllib.parse import urljoin

import requests
import tqdm

from ..errors import ModelFetchError, ModelNotFoundError
from .cache import ModelCacheStore
from .config import ALL_ARTIFACTS, MODEL_VERSION, ModelArtifact

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


class ModelLoader:
    """Fetch model bytes from the versioned cache, downloading on a miss."""

    def __init__(
        self,
        cache: ModelCacheStore,
        base_url: Optional[str],
        hf_repo: Optional[str] = None,
        http: Optional[requests.Session] = None,
        show_progress: bool = False,
    ):
        self._cache = cache
        self._base_url = base_url
        self._hf_repo = hf_repo
        self._http = http or requests.Session()
        self._show_progress = show_progress

    @classmethod
    def from_settings(cls, settings, version: str = MODEL_VERSION) -> "ModelLoader":
        return cls(
            cache=ModelCacheStore(settings.cache_dir, version=version),
            base_url=settings.base_url,
            hf_repo=settings.hf_repo,
            show_progress=settings.show_download_progress,
        )

    @property
    def cache(self) -> ModelCacheStore:
        return self._cache

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def load_model(self, name: str, on_progress: Optional[ProgressCallback] = None) -> bytes:
        """Return the bytes of a named artifact.

        Args:
            name: one of "layout", "recognition30", "recognition50", "recognition100"
            on_progress: receives the downloaded fraction in [0, 1]

        Raises:
            KeyError: unknown artifact name
            ModelFetchError: network failure or non-success HTTP status
            ModelNotFoundError: the server answered with an HTML page
        """
        artifact = self._resolve(name)

        cached = self._cache.get(name)
        if cached is not None:
            logger.info("Model %s loaded from cache", name)
            if on_progress:
                on_progress(1.0)
            return cached

        location = self.location_of(artifact)
        logger.info("Downloading model %s from %s", name, location)
        data = self._fetch(location, name, on_progress)

        try:
            self._cache.put(name, data)
            logger.info("Model %s cached successfully", name)
        except OSError as e:
            logger.warning("Could not cache model %s: %s", name, e)
        return data

    def load_models(
        self,
        names: Iterable[str],
        on_progress: Optional[Callable[[str, float], None]] = None,
    ) -> Dict[str, bytes]:
        """Load several artifacts concurrently.

        ``on_progress`` is called as ``on_progress(name, fraction)``; calls
        may arrive from the download threads.
        """
        names = list(names)
        for name in names:
            self._resolve(name)

        def _load(name):
            callback = (lambda p: on_progress(name, p)) if on_progress else None
            return self.load_model(name, callback)

        with ThreadPoolExecutor(max_workers=max(1, len(names))) as executor:
            futures = {name: executor.submit(_load, name) for name in names}
            return {name: future.result() for name, future in futures.items()}

    def fetch_text(self, path: str) -> str:
        """Fetch a small text resource (no caching).

        ``path`` is a local file path or a path relative to the model source.
        """
        local = Path(path)
        if local.is_file():
            return local.read_text(encoding="utf-8")
        return self._fetch(self._locate(path), path, None).decode("utf-8")

    def location_of(self, artifact: ModelArtifact) -> str:
        return self._locate(artifact.path)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _resolve(name: str) -> ModelArtifact:
        if name not in ALL_ARTIFACTS:
            available = ", ".join(ALL_ARTIFACTS)
            raise KeyError(f"Unknown model type '{name}'. Available: {available}")
        return ALL_ARTIFACTS[name]

    def _locate(self, path: str) -> str:
        if self._hf_repo:
            from huggingface_hub import hf_hub_url

            return hf_hub_url(self._hf_repo, path)
        if not self._base_url:
            raise ModelFetchError(
                "No model source configured; set CASCADE_OCR_BASE_URL or CASCADE_OCR_HF_REPO"
            )
        return self._join(path)

    def _join(self, path: str) -> str:
        base = self._base_url
        if not base.startswith(("http://", "https://")):
            return str(Path(base) / path)
        if not base.endswith("/"):
            base += "/"
        return urljoin(base, path)

    def _fetch(self, location: str, name: str, on_progress: Optional[ProgressCallback]) -> bytes:
        if not location.startswith(("http://", "https://")):
            return self._read_local(location, on_progress)

        try:
            resp = self._http.get(location, stream=True, allow_redirects=True)
        except requests.RequestException as e:
            raise ModelFetchError(f"Failed to download {name}: {e}") from e

        try:
            if not resp.ok:
                raise ModelFetchError(f"HTTP error! status: {resp.status_code} ({location})")

            # An HTML body means the server fell back to an index page
            content_type = resp.headers.get("content-type", "")
            if "text/html" in content_type:
                raise ModelNotFoundError(f"Model file not found (HTML returned): {location}")

            return self._download_with_progress(resp, name, on_progress)
        except requests.RequestException as e:
            raise ModelFetchError(f"Failed to download {name}: {e}") from e
        finally:
            resp.close()

    def _download_with_progress(self, resp, name: str, on_progress: Optional[ProgressCallback]) -> bytes:
        total = int(resp.headers.get("content-length", 0) or 0)
        received = 0
        bio = io.BytesIO()

        with tqdm.tqdm(
            desc=name,
            total=total or None,
            unit="b",
            unit_scale=True,
            unit_divisor=1024,
            disable=not self._show_progress,
        ) as bar:
            for chunk in resp.iter_content(chunk_size=65536):
                if not chunk:
                    continue
                bio.write(chunk)
                received += len(chunk)
                bar.update(len(chunk))
                if on_progress and total > 0:
                    on_progress(min(1.0, received / total))

        # Without Content-Length only completion can be reported
        if on_progress and total <= 0:
            on_progress(1.0)
        return bio.getvalue()

    @staticmethod
    def _read_local(location: str, on_progress: Optional[ProgressCallback]) -> bytes:
        path = Path(location)
        if not path.is_file():
            raise ModelNotFoundError(f"Model file not found: {location}")
        try:
            data = path.read_bytes()
        except OSError as e:
            raise ModelFetchError(f"Failed to read {location}: {e}") from e
        if on_progress:
            on_progress(1.0)
        return data
