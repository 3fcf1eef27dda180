"""Keep-segment planning: the complement of the detected silences."""

from __future__ import annotations

import logging
from typing import Iterable

from trimflow.errors import EmptyKeepSegmentsError
from trimflow.models import KeepSegment, SilenceInterval

logger = logging.getLogger(__name__)

# A stretch of sound between two silences must be longer than this to be kept.
MIN_GAP_S = 0.1
# Content after the last silence must be longer than this to be kept.
MIN_TAIL_S = 0.5


def plan_keep_segments(
    intervals: Iterable[SilenceInterval],
    total_duration: float,
) -> tuple[KeepSegment, ...]:
    """Return the ordered segments to keep between and around *intervals*.

    Intervals are walked in start order and the cursor moves to the end of
    each one, so adjacent or overlapping silences need no merging pass.

    Raises:
        EmptyKeepSegmentsError: if nothing long enough remains.
    """
    ordered = sorted(intervals, key=lambda s: s.start)
    segments: list[KeepSegment] = []
    cursor = 0.0

    for silence in ordered:
        if silence.start - cursor > MIN_GAP_S:
            segments.append(KeepSegment(start=cursor, end=silence.start))
            logger.debug("Keep segment: %.2fs to %.2fs", cursor, silence.start)
        cursor = silence.end

    remaining = total_duration - cursor
    if remaining > MIN_TAIL_S:
        segments.append(KeepSegment(start=cursor, end=total_duration))
        logger.debug("Keep final segment: %.2fs to %.2fs", cursor, total_duration)
    else:
        logger.info("Skipping trailing segment (only %.2fs remaining)", max(remaining, 0.0))

    if not segments:
        raise EmptyKeepSegmentsError(total_duration, len(ordered))
    return tuple(segments)
