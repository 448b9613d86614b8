"""
Video Segmenter

Splits a video's duration into at most six equal, contiguous chunks and
gives each a scenario name and a default action from a fixed rotation.

This is time-interval segmentation only: it does not look at the video's
content and stands in for real scene-change detection. Boundaries are a
pure function of the duration.
"""

import math
from typing import Callable, List, Tuple

from ..actions import Action, ClickAction, FillAction, GotoAction, SelectAction
from ..chunks import Chunk

MAX_CHUNKS = 6
SECONDS_PER_CHUNK = 15

THUMBNAIL_COLORS = ("#4F46E5", "#0EA5E9", "#10B981", "#F59E0B", "#EF4444", "#8B5CF6")


def _scenarios(start_url: str) -> List[Tuple[str, Callable[[], Action]]]:
    return [
        ("Opening Website", lambda: GotoAction(url=start_url)),
        ("Logging In", lambda: FillAction(selector='input[type="email"]', value="user@example.com")),
        ("Navigating Dashboard", lambda: ClickAction(selector="nav a")),
        ("Filling Form", lambda: FillAction(selector='input[name="name"]', value="Jane Doe")),
        ("Selecting Options", lambda: SelectAction(selector="select", value="option-1")),
        ("Submitting Form", lambda: ClickAction(selector='button[type="submit"]')),
    ]


def format_timestamp(seconds: int) -> str:
    """Whole seconds as m:ss (e.g. 75 -> '1:15')"""
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}:{secs:02d}"


def chunk_count(total_duration_seconds: float) -> int:
    return min(MAX_CHUNKS, math.ceil(total_duration_seconds / SECONDS_PER_CHUNK))


def chunk_boundaries(total_duration_seconds: float) -> List[Tuple[int, int]]:
    """
    (start, end) whole-second boundaries for each chunk.

    Boundaries are floored, and the last chunk always ends at
    floor(total_duration_seconds), so ranges are contiguous.
    """
    if not math.isfinite(total_duration_seconds) or total_duration_seconds <= 0:
        raise ValueError(f"Video duration must be a positive number, got {total_duration_seconds!r}")

    count = chunk_count(total_duration_seconds)
    chunk_duration = total_duration_seconds / count
    end_of_video = math.floor(total_duration_seconds)

    def boundary(i: int) -> int:
        if i == count:
            return end_of_video
        return min(math.floor(i * chunk_duration), end_of_video)

    return [(boundary(i), boundary(i + 1)) for i in range(count)]


def segment(total_duration_seconds: float, start_url: str = "https://example.com") -> List[Chunk]:
    """Ordered chunks (order 1..n) covering the whole video"""
    scenarios = _scenarios(start_url)
    chunks = []
    for i, (start, end) in enumerate(chunk_boundaries(total_duration_seconds)):
        name, default_action = scenarios[i % len(scenarios)]
        chunks.append(Chunk(
            id=f"chunk-{i + 1}",
            order=i + 1,
            start_time=format_timestamp(start),
            end_time=format_timestamp(end),
            name=name,
            start_seconds=start,
            end_seconds=end,
            action=default_action(),
            thumbnail_color=THUMBNAIL_COLORS[i % len(THUMBNAIL_COLORS)],
            preview_available=False
        ))
    return chunks
