"""
Interval Exclusion Engine.

Turns a day's exercise sessions into the minimal set of disjoint windows
whose passive steps must not be attributed to NEAT, since the session's
active energy already includes them.
"""

import logging
from datetime import timedelta
from typing import Iterable, List

from .models import ExclusionWindow, ExerciseInterval, TimeWindow

logger = logging.getLogger(__name__)


def merge_exercise_intervals(
    intervals: Iterable[ExerciseInterval],
) -> List[ExclusionWindow]:
    """
    Merge exercise sessions into sorted, non-overlapping exclusion windows.

    Sessions whose [start, end) ranges overlap or touch collapse into one
    window. Zero-length sessions cover nothing and are dropped.

    Args:
        intervals: Exercise sessions in any order

    Returns:
        Exclusion windows ordered by start; empty when there was no exercise
    """
    ordered = sorted(
        (i for i in intervals if i.end > i.start), key=lambda i: (i.start, i.end)
    )

    merged: List[ExclusionWindow] = []
    for interval in ordered:
        if merged and interval.start <= merged[-1].end:
            last = merged[-1]
            if interval.end > last.end:
                merged[-1] = ExclusionWindow(start=last.start, end=interval.end)
        else:
            merged.append(ExclusionWindow(start=interval.start, end=interval.end))

    logger.debug(
        f"[EXCLUSION] {len(ordered)} session(s) merged into {len(merged)} window(s)"
    )
    return merged


def clip_to_window(
    intervals: Iterable[ExerciseInterval], window: TimeWindow
) -> List[ExerciseInterval]:
    """Restrict sessions to the part that falls inside window."""
    clipped = []
    for interval in intervals:
        if not window.overlaps(interval.start, interval.end):
            continue
        clipped.append(
            interval.model_copy(
                update={
                    "start": max(interval.start, window.start),
                    "end": min(interval.end, window.end),
                }
            )
        )
    return clipped


def covered_duration(windows: Iterable[ExclusionWindow]) -> timedelta:
    """Total time covered by the given windows."""
    return sum((w.duration for w in windows), timedelta())
