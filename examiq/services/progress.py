"""Request-scoped progress tracking for generation runs."""
import logging
from collections import OrderedDict
from typing import Optional, Set

logger = logging.getLogger(__name__)

MAX_PROGRESS = 100.0


class ProgressTracker:
    """
    Accumulates weighted task completions into a 0-100 value.

    One tracker belongs to one request. Progress never decreases, each task id
    counts once, and the total is capped at 100.
    """

    def __init__(self):
        self._value = 0.0
        self._completed: Set[str] = set()

    def advance(self, task_id: str, weight: float) -> float:
        if weight < 0:
            raise ValueError(f"Progress weight must be non-negative, got {weight}")
        if task_id in self._completed:
            return self._value
        self._completed.add(task_id)
        self._value = min(MAX_PROGRESS, self._value + weight)
        return self._value

    def current(self) -> float:
        # Weights are fractions of 100; round off float noise for display
        return round(self._value, 2)

    def reset(self) -> None:
        self._value = 0.0
        self._completed.clear()


class ProgressRegistry:
    """Keeps recent per-request trackers so clients can poll progress by request id."""

    def __init__(self, retention: int = 256):
        self.retention = retention
        self._trackers: "OrderedDict[str, ProgressTracker]" = OrderedDict()

    def open(self, request_id: str) -> ProgressTracker:
        tracker = ProgressTracker()
        self._trackers[request_id] = tracker
        self._trackers.move_to_end(request_id)
        while len(self._trackers) > self.retention:
            evicted, _ = self._trackers.popitem(last=False)
            logger.debug(f"Evicted progress for request {evicted}")
        return tracker

    def get(self, request_id: str) -> Optional[ProgressTracker]:
        return self._trackers.get(request_id)

