"""Metadata publisher — primary low-latency backend with IPFS fallback.

  1. Primary (bounded ~3s total):
     - raw image bytes and no hosted URL -> POST bytes to image host, get URL
     - POST JSON metadata to the primary backend -> {"metadataUri": ...}
  2. Secondary (only if primary failed, ~15s):
     - POST multipart form to pump.fun IPFS endpoint with the image as
       `file` (a hosted URL is downloaded first) -> {"metadataUri": ...}

No retries beyond the single fallback. The returned MetadataRecord always
names the backend that produced the URI.
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from src.launcher.exceptions import MetadataPublishError
from src.launcher.fallback import first_success
from src.launcher.models import LaunchRequest, MetadataRecord

PUMP_IPFS_URL = "https://pump.fun/api/ipfs"

PRIMARY = "primary"
SECONDARY = "secondary"

DEFAULT_PRIMARY_TIMEOUT_SEC = 3.0
DEFAULT_SECONDARY_TIMEOUT_SEC = 15.0


def sniff_image_type(data: bytes) -> tuple[str, str]:
    """(filename, content type) from magic bytes. PNG if unknown."""
    if data.startswith(b"\xff\xd8\xff"):
        return "image.jpg", "image/jpeg"
    if data.startswith(b"GIF87a") or data.startswith(b"GIF89a"):
        return "image.gif", "image/gif"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image.webp", "image/webp"
    return "image.png", "image/png"


class MetadataPublisher:
    """Uploads token metadata (and image) and returns a resolvable URI."""

    def __init__(
        self,
        *,
        primary_url: str = "",
        secondary_url: str = PUMP_IPFS_URL,
        image_host_url: str = "",
        primary_timeout_sec: float = DEFAULT_PRIMARY_TIMEOUT_SEC,
        secondary_timeout_sec: float = DEFAULT_SECONDARY_TIMEOUT_SEC,
    ) -> None:
        self._primary_url = primary_url
        self._secondary_url = secondary_url
        self._image_host_url = image_host_url
        self._primary_timeout = primary_timeout_sec
        self._secondary_timeout = secondary_timeout_sec
        self._http = httpx.AsyncClient(timeout=secondary_timeout_sec)

    async def publish(self, request: LaunchRequest) -> MetadataRecord:
        """Publish metadata; raises MetadataPublishError only if both backends fail."""
        first, second = await first_success(
            (PRIMARY, lambda: self._publish_primary(request), self._primary_timeout),
            (SECONDARY, lambda: self._publish_secondary(request), self._secondary_timeout),
        )
        winner = first if first.ok else second

        if winner is None or not winner.ok:
            causes = "; ".join(a.describe_error() for a in (first, second) if a is not None)
            logger.error(f"[META] Both backends failed for {request.symbol}: {causes}")
            raise MetadataPublishError(f"Metadata upload failed ({causes})")

        if winner is second:
            logger.warning(
                f"[META] Primary failed ({first.describe_error()}), "
                f"used secondary in {winner.latency_ms:.0f}ms"
            )

        uri, image_url = winner.value
        logger.info(f"[META] {request.symbol} metadata via {winner.source}: {uri}")
        return MetadataRecord(
            uri=uri,
            backend=winner.source,
            latency_ms=first.latency_ms + (second.latency_ms if second else 0.0),
            image_url=image_url,
        )

    # ─── Primary ─────────────────────────────────────────────────────

    async def _publish_primary(self, request: LaunchRequest) -> tuple[str, str | None]:
        if not self._primary_url:
            raise MetadataPublishError("primary backend not configured")

        image_url = request.image_url
        if image_url is None and request.image_data:
            image_url = await self._upload_image(request.image_data)

        payload = _metadata_fields(request)
        payload["showName"] = True
        if image_url:
            payload["image"] = image_url

        resp = await self._http.post(
            self._primary_url, json=payload, timeout=self._primary_timeout
        )
        return _parse_metadata_uri(resp, PRIMARY), image_url

    async def _upload_image(self, data: bytes) -> str:
        if not self._image_host_url:
            raise MetadataPublishError("image host not configured")
        _filename, content_type = sniff_image_type(data)
        resp = await self._http.post(
            self._image_host_url,
            content=data,
            headers={"Content-Type": content_type},
            timeout=self._primary_timeout,
        )
        if resp.status_code not in (200, 201):
            raise MetadataPublishError(f"image host HTTP {resp.status_code}")
        url = resp.text.strip()
        if not url.startswith(("http://", "https://", "ipfs://")):
            raise MetadataPublishError(f"image host returned non-URL: {url[:80]!r}")
        logger.debug(f"[META] Image hosted at {url}")
        return url

    # ─── Secondary ───────────────────────────────────────────────────

    async def _publish_secondary(self, request: LaunchRequest) -> tuple[str, str | None]:
        fields = _metadata_fields(request)
        fields["showName"] = "true"
        if request.image_url:
            fields["image"] = request.image_url

        # (None, value) parts keep the body multipart even without a file
        parts: list[tuple[str, Any]] = [(k, (None, str(v))) for k, v in fields.items()]
        image_data = request.image_data
        if request.image_url and not image_data:
            image_data = await self._download_image(request.image_url)
        if image_data:
            filename, content_type = sniff_image_type(image_data)
            parts.append(("file", (filename, image_data, content_type)))

        resp = await self._http.post(
            self._secondary_url, files=parts, timeout=self._secondary_timeout
        )
        return _parse_metadata_uri(resp, SECONDARY), request.image_url

    async def _download_image(self, url: str) -> bytes:
        """Fetch a hosted image; the IPFS endpoint only pins uploaded files."""
        try:
            resp = await self._http.get(url, timeout=self._secondary_timeout)
        except httpx.HTTPError as e:
            raise MetadataPublishError(f"image download failed: {type(e).__name__}") from e
        if resp.status_code != 200:
            raise MetadataPublishError(f"image download HTTP {resp.status_code}")
        if not resp.content:
            raise MetadataPublishError("image download returned no content")
        logger.debug(f"[META] Downloaded {len(resp.content)}B image from {url}")
        return resp.content

    async def close(self) -> None:
        await self._http.aclose()


def _metadata_fields(request: LaunchRequest) -> dict[str, Any]:
    return {
        "name": request.name,
        "symbol": request.symbol,
        "description": request.resolved_description,
        "twitter": request.twitter,
        "telegram": request.telegram,
        "website": request.website,
    }


def _parse_metadata_uri(resp: httpx.Response, backend: str) -> str:
    if resp.status_code not in (200, 201):
        raise MetadataPublishError(f"{backend} HTTP {resp.status_code}")
    try:
        data = resp.json()
    except ValueError as e:
        raise MetadataPublishError(f"{backend} returned invalid JSON") from e
    uri = data.get("metadataUri") if isinstance(data, dict) else None
    if not uri or not isinstance(uri, str):
        raise MetadataPublishError(f"{backend} response has no metadataUri")
    return uri
