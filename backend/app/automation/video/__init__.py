"""
Video Module

Video URL handling, metadata lookup and time-based segmentation.
"""

from .segmenter import segment, chunk_boundaries, format_timestamp
from .loom import LoomClient, VideoMetadata, validate_video_url, extract_video_id, embed_url
from .analyzer import VideoAnalyzer, AnalysisResult

__all__ = [
    "segment",
    "chunk_boundaries",
    "format_timestamp",
    "LoomClient",
    "VideoMetadata",
    "validate_video_url",
    "extract_video_id",
    "embed_url",
    "VideoAnalyzer",
    "AnalysisResult",
]
