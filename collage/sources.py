"""Image source resolution: inline data URIs and remote URLs."""

from __future__ import annotations

import base64
import binascii
import io
import logging
from concurrent.futures import ThreadPoolExecutor

import httpx
from PIL import Image

from collage.config import Settings
from collage.errors import SourceError

logger = logging.getLogger(__name__)

DATA_URI_PREFIX = "data:image/"


def decode_data_uri(src: str) -> bytes:
    """Return the payload bytes of a ``data:image/...;base64,`` URI."""
    _, sep, payload = src.partition(",")
    if not sep:
        raise SourceError("Malformed data URI: missing ',' separator")
    try:
        return base64.b64decode(payload.strip())
    except (binascii.Error, ValueError) as exc:
        raise SourceError(f"Malformed data URI: {exc}") from exc


def decode_image(data: bytes, label: str = "image") -> Image.Image:
    """Decode encoded image bytes into an RGBA Pillow image."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            return img.convert("RGBA")
    except (OSError, Image.DecompressionBombError) as exc:
        raise SourceError(f"Could not decode {label}: {exc}") from exc


class SourceResolver:
    """Fetches and decodes image sources, optionally many at once.

    Owns an ``httpx.Client`` unless one is passed in. Use as a context
    manager, or call :meth:`close`, to release it.
    """

    def __init__(self, settings: Settings | None = None, client: httpx.Client | None = None) -> None:
        self.settings = settings or Settings()
        self._owns_client = client is None
        self.client = client or httpx.Client(
            timeout=self.settings.fetch_timeout_s,
            follow_redirects=True,
            headers={"User-Agent": self.settings.user_agent},
        )

    def __enter__(self) -> SourceResolver:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def fetch_bytes(self, src: str) -> bytes:
        if not src or not isinstance(src, str):
            raise SourceError("image src required")
        if src.startswith(DATA_URI_PREFIX):
            return decode_data_uri(src)

        logger.debug("Fetching image source %s", src)
        try:
            resp = self.client.get(src)
        except httpx.HTTPError as exc:
            raise SourceError(f"Fetch failed for {src}: {exc}") from exc
        if not resp.is_success:
            raise SourceError(f"Fetch {resp.status_code} for {src}")
        return resp.content

    def load(self, src: str) -> Image.Image:
        label = "inline image" if src.startswith(DATA_URI_PREFIX) else src
        return decode_image(self.fetch_bytes(src), label=label)

    def load_many(self, srcs: list[str]) -> list[Image.Image]:
        """Resolve every source concurrently; results keep the input order.

        The first failing source, in input order, is re-raised after the pool
        has shut down.
        """
        if not srcs:
            return []
        workers = max(1, min(self.settings.max_workers, len(srcs)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(self.load, src) for src in srcs]
            return [future.result() for future in futures]
