"""
Chunks

A chunk is one time-bounded segment of a source video, with a name and
the automation inferred or recorded for it. `ChunkStore` holds the chunk
list currently shown to the UI.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Sequence, Union

from .actions import Action, action_to_dict

# Configure logging
logger = logging.getLogger(__name__)

ChunkAction = Union[None, Action, List[Action]]


@dataclass(frozen=True)
class Chunk:
    """One segment of a video"""
    id: str
    order: int
    start_time: str
    end_time: str
    name: str
    start_seconds: int = 0
    end_seconds: int = 0
    action: ChunkAction = None
    thumbnail_color: Optional[str] = None
    preview_available: bool = False

    def actions_for_replay(self) -> List[Action]:
        """The chunk's action(s) as a sequence, empty when none"""
        if self.action is None:
            return []
        if isinstance(self.action, Action):
            return [self.action]
        return list(self.action)

    def to_dict(self) -> Dict[str, Any]:
        if self.action is None:
            action = None
        elif isinstance(self.action, Action):
            action = action_to_dict(self.action)
        else:
            action = [action_to_dict(a) for a in self.action]
        return {
            "id": self.id,
            "order": self.order,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "name": self.name,
            "action": action,
            "thumbnailColor": self.thumbnail_color,
            "previewAvailable": self.preview_available,
        }


class ChunkStore:
    """In-memory chunk list; writers are serialized by a lock"""

    def __init__(self):
        self._chunks: Dict[str, Chunk] = {}
        self._lock = asyncio.Lock()

    async def replace_all(self, chunks: Sequence[Chunk]):
        async with self._lock:
            self._chunks = {chunk.id: chunk for chunk in chunks}

    def list(self) -> List[Chunk]:
        return sorted(self._chunks.values(), key=lambda c: c.order)

    def get(self, chunk_id: str) -> Optional[Chunk]:
        return self._chunks.get(chunk_id)

    async def replace_action(self, chunk_id: str, actions: List[Action]) -> Chunk:
        """
        Swap a chunk's action for a recorded sequence in one step.

        Raises:
            KeyError: unknown chunk
        """
        async with self._lock:
            chunk = self._chunks[chunk_id]
            updated = replace(chunk, action=list(actions))
            self._chunks[chunk_id] = updated
        logger.info(f"Chunk {chunk_id} now has {len(actions)} recorded action(s)")
        return updated
