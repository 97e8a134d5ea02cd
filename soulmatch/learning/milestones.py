"""
Learning milestone stream.

Milestones are advisory events; the learner publishes them here and
consumers (notifications, analytics) drain them at their own pace.
"""

import logging
import queue
from typing import List, Optional

from ..profiles.schema import LearningMilestone

logger = logging.getLogger(__name__)


class MilestoneStream:
    """Thread-safe FIFO of LearningMilestones."""

    def __init__(self, maxsize: int = 0):
        self._queue: "queue.Queue[LearningMilestone]" = queue.Queue(maxsize=maxsize)

    def publish(self, milestone: LearningMilestone) -> None:
        """Append a milestone; drops the oldest entry when a bounded stream is full."""
        while True:
            try:
                self._queue.put_nowait(milestone)
                break
            except queue.Full:
                try:
                    dropped = self._queue.get_nowait()
                    logger.warning(f"Milestone stream full, dropped {dropped.type.value} for {dropped.user_id}")
                except queue.Empty:
                    continue
        logger.info(f"Milestone {milestone.type.value} for {milestone.user_id}: "
                    f"{', '.join(milestone.related_attributes)}")

    def get(self, timeout: Optional[float] = None) -> Optional[LearningMilestone]:
        """Next milestone, or None if none arrives within timeout."""
        try:
            return self._queue.get(timeout=timeout) if timeout else self._queue.get_nowait()
        except queue.Empty:
            return None

    def drain(self) -> List[LearningMilestone]:
        """Remove and return every pending milestone in publish order."""
        items = []
        while True:
            try:
                items.append(self._queue.get_nowait())
            except queue.Empty:
                return items

    def __len__(self) -> int:
        return self._queue.qsize()
