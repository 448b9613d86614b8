"""
Video analysis: validate the URL, look up the video's duration and
segment it into chunks.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..chunks import Chunk
from ..config import EngineConfig
from ..errors import InvalidVideoUrlError
from .loom import LoomClient, embed_url, extract_video_id, validate_video_url
from .segmenter import segment

# Configure logging
logger = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
    video_url: str
    video_id: str
    embed_url: str
    duration_seconds: float
    chunks: List[Chunk] = field(default_factory=list)
    title: Optional[str] = None
    duration_source: str = "provider"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "videoUrl": self.video_url,
            "videoId": self.video_id,
            "embedUrl": self.embed_url,
            "title": self.title,
            "durationSeconds": self.duration_seconds,
            "durationSource": self.duration_source,
            "chunks": [chunk.to_dict() for chunk in self.chunks],
        }


class VideoAnalyzer:
    """Turns a video URL into ordered chunks"""

    def __init__(self, config: Optional[EngineConfig] = None, loom_client: Optional[LoomClient] = None):
        self.config = config or EngineConfig()
        self.loom_client = loom_client or LoomClient(
            oembed_url=self.config.loom_oembed_url,
            timeout=self.config.analysis_timeout_seconds,
            max_attempts=self.config.analysis_max_attempts,
            backoff_base=self.config.analysis_backoff_base_seconds
        )

    async def analyze(self, video_url: str) -> AnalysisResult:
        """
        Raises:
            InvalidVideoUrlError: not a usable video URL (do not retry)
            UpstreamError / TransientNetworkError: metadata lookup failed
        """
        url = validate_video_url(video_url, self.config.allowed_video_domains)
        video_id = extract_video_id(url)
        if not video_id:
            raise InvalidVideoUrlError(f"Could not extract a video id from {url}")

        logger.info(f"Analyzing video {video_id}")
        metadata = await self.loom_client.fetch_metadata(url)

        duration = metadata.duration_seconds
        duration_source = "provider"
        if duration is None:
            duration = self.config.default_video_duration_seconds
            duration_source = "default"
            logger.info(f"No duration reported for {video_id}; using default of {duration}s")

        chunks = segment(duration, start_url=self.config.placeholder_url)
        logger.info(f"Segmented {video_id} ({duration}s) into {len(chunks)} chunk(s)")

        return AnalysisResult(
            video_url=url,
            video_id=video_id,
            embed_url=embed_url(video_id),
            duration_seconds=duration,
            chunks=chunks,
            title=metadata.title,
            duration_source=duration_source
        )
