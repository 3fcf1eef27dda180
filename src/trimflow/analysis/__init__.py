"""Analysis stages: silence detection, duration probe, keep-segment planning."""
from trimflow.analysis.planner import MIN_GAP_S, MIN_TAIL_S, plan_keep_segments
from trimflow.analysis.probe import probe_duration
from trimflow.analysis.silence import (
    build_detect_command,
    detect_silences,
    iter_silence_intervals,
    parse_silence_intervals,
)

__all__ = [
    "MIN_GAP_S",
    "MIN_TAIL_S",
    "build_detect_command",
    "detect_silences",
    "iter_silence_intervals",
    "parse_silence_intervals",
    "plan_keep_segments",
    "probe_duration",
]
