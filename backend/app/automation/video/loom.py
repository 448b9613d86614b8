"""
Loom video source.

URL checks, video id extraction and oEmbed metadata lookup for Loom
share links.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Sequence
from urllib.parse import urlparse

import httpx

from ..core.retry import exponential_backoff, is_transient_network_error, with_retry
from ..errors import AnalysisError, InvalidVideoUrlError, TransientNetworkError, UpstreamError

# Configure logging
logger = logging.getLogger(__name__)

LOOM_EMBED_BASE = "https://www.loom.com/embed/"
VIDEO_PATH_PREFIXES = ("share", "embed", "v")
_VIDEO_ID_PATTERN = re.compile(r"^[a-zA-Z0-9]+$")


def validate_video_url(url: Optional[str], allowed_domains: Sequence[str] = ("loom.com",)) -> str:
    """
    Check that a URL points at an allowed video host.

    Raises:
        InvalidVideoUrlError
    """
    if not url or not isinstance(url, str) or not url.strip():
        raise InvalidVideoUrlError("A video URL is required")

    url = url.strip()
    parsed = urlparse(url)
    host = (parsed.hostname or "").lower()

    if parsed.scheme not in ("http", "https") or not host:
        raise InvalidVideoUrlError(f"Invalid video URL: {url}")

    if not any(host == domain or host.endswith("." + domain) for domain in allowed_domains):
        raise InvalidVideoUrlError(
            f"Invalid video URL: {url} is not on an allowed domain ({', '.join(allowed_domains)})"
        )
    return url


def extract_video_id(url: str) -> Optional[str]:
    """Video id from /share/<id>, /embed/<id> or /v/<id> URLs"""
    parsed = urlparse(url)
    parts = [p for p in parsed.path.split("/") if p]

    if len(parts) >= 2 and parts[0] in VIDEO_PATH_PREFIXES:
        return parts[1]

    # Bare ids or unusual paths: accept a long alphanumeric last segment
    candidate = parts[-1] if parts else url.rstrip("/").split("/")[-1]
    if candidate and _VIDEO_ID_PATTERN.match(candidate) and len(candidate) > 10:
        return candidate
    return None


def embed_url(video_id: str) -> str:
    return f"{LOOM_EMBED_BASE}{video_id}"


@dataclass
class VideoMetadata:
    """What the provider reports about a video"""
    title: Optional[str] = None
    duration_seconds: Optional[float] = None
    thumbnail_url: Optional[str] = None


def _is_retryable(error: BaseException) -> bool:
    # Provider answers (4xx/5xx, bad payloads) are final
    if isinstance(error, AnalysisError):
        return False
    return is_transient_network_error(error)


def _parse_metadata(data: Dict[str, Any]) -> VideoMetadata:
    duration = data.get("duration")
    try:
        duration = float(duration) if duration is not None else None
    except (TypeError, ValueError):
        duration = None
    if duration is not None and duration <= 0:
        duration = None
    return VideoMetadata(
        title=data.get("title"),
        duration_seconds=duration,
        thumbnail_url=data.get("thumbnail_url")
    )


class LoomClient:
    """Fetches video metadata from Loom's oEmbed endpoint with retries"""

    def __init__(
        self,
        oembed_url: str = "https://www.loom.com/v1/oembed",
        timeout: float = 10.0,
        max_attempts: int = 3,
        backoff_base: float = 1.0,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.oembed_url = oembed_url
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.backoff = exponential_backoff(base=backoff_base)
        self._client = client
        self._sleep = sleep

    async def fetch_metadata(self, video_url: str) -> VideoMetadata:
        """
        Raises:
            UpstreamError: the provider answered with an error or bad payload
            TransientNetworkError: the provider stayed unreachable after retries
        """
        try:
            return await with_retry(
                lambda: self._fetch_once(video_url),
                max_attempts=self.max_attempts,
                backoff=self.backoff,
                is_retryable=_is_retryable,
                sleep=self._sleep
            )
        except AnalysisError:
            raise
        except Exception as e:
            if is_transient_network_error(e):
                raise TransientNetworkError(
                    f"Video provider unreachable after {self.max_attempts} attempt(s): {e}"
                ) from e
            raise UpstreamError(f"Video metadata lookup failed: {e}") from e

    async def _fetch_once(self, video_url: str) -> VideoMetadata:
        if self._client is not None:
            return await self._request(self._client, video_url)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await self._request(client, video_url)

    async def _request(self, client: httpx.AsyncClient, video_url: str) -> VideoMetadata:
        logger.info(f"Fetching video metadata for {video_url}")
        response = await client.get(self.oembed_url, params={"url": video_url})
        if response.status_code >= 400:
            raise UpstreamError(
                f"Video provider returned HTTP {response.status_code}",
                status_code=response.status_code
            )
        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError(f"Video provider returned invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise UpstreamError("Video provider returned an unexpected payload")
        return _parse_metadata(data)
