"""
Detection Context and Statistics Tracking

Keeps a bounded rolling history of recent detections for session
continuity, together with running accuracy and latency aggregates. One
tracker belongs to one detector instance; a lock makes every update a
single-writer operation so a detector can be shared across threads.

Author: Quinn Evans
"""

from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import replace
from typing import Callable, Iterable, List

from models import ContextEntry, DetectionStats, ScoredCandidate

CONTEXT_CAPACITY = 10
RECENT_CONTEXT_LIMIT = 5
SNAPSHOT_CHARS = 200
HIGH_CONFIDENCE = 0.7


class ContextTracker:
    """
    Rolling detection history plus running statistics.

    Attributes:
        capacity (int): Maximum number of context entries kept
        history (deque): Newest entry first
        stats (DetectionStats): Running aggregates
    """

    def __init__(self, capacity: int = CONTEXT_CAPACITY, wall_clock: Callable[[], float] = time.time):
        self.capacity = capacity
        self.wall_clock = wall_clock
        self.history: deque[ContextEntry] = deque(maxlen=capacity)
        self.stats = DetectionStats()
        self._lock = threading.Lock()

    def record(self, text: str, results: Iterable[ScoredCandidate], processing_time_ms: float):
        """
        Record one successful detection.

        Args:
            text (str): Text the detection ran over
            results (Iterable[ScoredCandidate]): Reported results
            processing_time_ms (float): Pipeline latency for this call
        """
        results = list(results)
        entry = ContextEntry(
            text_snapshot=text[:SNAPSHOT_CHARS],
            question_count=len(results),
            timestamp_ms=int(self.wall_clock() * 1000),
            types=frozenset(result.type for result in results),
        )

        with self._lock:
            # deque(maxlen) drops the oldest entry from the right
            self.history.appendleft(entry)
            self._update_stats(results, processing_time_ms)

    def _update_stats(self, results: List[ScoredCandidate], processing_time_ms: float):
        stats = self.stats
        stats.total_questions += len(results)
        stats.successful_detections += sum(1 for r in results if r.confidence > HIGH_CONFIDENCE)
        stats.processing_time_ms = (stats.processing_time_ms + processing_time_ms) / 2

        if results:
            batch_mean = sum(r.confidence for r in results) / len(results)
            stats.average_confidence = (stats.average_confidence + batch_mean) / 2

        if stats.total_questions > 0:
            stats.classification_accuracy = stats.successful_detections / stats.total_questions

    def get_stats(self) -> DetectionStats:
        """Copy of the current aggregates."""
        with self._lock:
            return replace(self.stats)

    def recent(self, limit: int = RECENT_CONTEXT_LIMIT) -> List[ContextEntry]:
        """Newest-first slice of the history."""
        with self._lock:
            return list(self.history)[:limit]

    def history_size(self) -> int:
        with self._lock:
            return len(self.history)

    def reset_stats(self):
        """Zero every aggregate. The context history is kept."""
        with self._lock:
            self.stats = DetectionStats()
