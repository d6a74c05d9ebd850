"""Image download adapter used by image authenticity verification."""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from requests import Session

from config.defaults import IMAGE_FETCH_TIMEOUT, IMAGE_MAX_BYTES
from crisisfusion.clients.http import build_session, fetch
from crisisfusion.errors import ProviderError

logger = logging.getLogger(__name__)

_DEFAULT_MEDIA_TYPE = "image/jpeg"
_CHUNK_SIZE = 64 * 1024


class ImageFetcher:
    """Download an image with a bounded timeout and size cap.

    Args:
        request_timeout: HTTP timeout in seconds.
        max_bytes: Largest accepted body; larger downloads raise ProviderError.
        session: Optional pre-built requests Session.
    """

    name = "image_fetch"

    def __init__(
        self,
        request_timeout: float = IMAGE_FETCH_TIMEOUT,
        max_bytes: int = IMAGE_MAX_BYTES,
        session: Optional[Session] = None,
    ) -> None:
        self.request_timeout = request_timeout
        self.max_bytes = max_bytes
        self._session = session or build_session()

    def fetch(self, image_url: str) -> Tuple[bytes, str]:
        """Download image_url.

        Returns:
            (image bytes, media type). The media type comes from Content-Type
            when it names an image, else defaults to image/jpeg.
        """
        resp = fetch(self._session, self.name, image_url, self.request_timeout, stream=True)

        chunks = []
        total = 0
        for chunk in resp.iter_content(chunk_size=_CHUNK_SIZE):
            total += len(chunk)
            if total > self.max_bytes:
                resp.close()
                raise ProviderError(self.name, f"image exceeds {self.max_bytes} bytes")
            chunks.append(chunk)
        if total == 0:
            raise ProviderError(self.name, "empty image body")

        content_type = (resp.headers.get("Content-Type") or "").split(";")[0].strip().lower()
        media_type = content_type if content_type.startswith("image/") else _DEFAULT_MEDIA_TYPE
        logger.debug("Fetched %d image bytes (%s) from %s", total, media_type, image_url)
        return b"".join(chunks), media_type
