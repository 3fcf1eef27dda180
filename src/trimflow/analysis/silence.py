"""Silence detection via FFmpeg's ``silencedetect`` audio filter.

The filter writes its report to stderr as lines such as::

    [silencedetect @ 0x55d...] silence_start: 1.504
    [silencedetect @ 0x55d...] silence_end: 3.2 | silence_duration: 1.696

Parsing is kept separate from the FFmpeg call so it can be tested on
captured text.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, Iterator

from trimflow.cancellation import CancellationToken
from trimflow.config.schema import ProcessingRequest, ToolSettings
from trimflow.errors import PipelineCancelled, SilenceDetectionError
from trimflow.models import SilenceInterval
from trimflow.process.runner import ProcessOutcome, run_process

logger = logging.getLogger(__name__)

# A whole float literal: optional sign (negative starts are possible when the
# input has a negative start time), optional exponent (FFmpeg prints %.6g, so
# values near zero look like "2.08333e-05"). A literal that runs straight into
# another digit, point or exponent marker ("1.2.3") does not match at all.
# FFmpeg prints "C" locale numbers, so a comma ends the value.
_FLOAT = r"([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)(?![\d.eE])"
_START_RE = re.compile(r"silence_start:\s*" + _FLOAT)
_END_RE = re.compile(r"silence_end:\s*" + _FLOAT)


def _parse_float(token: str) -> float | None:
    try:
        return float(token)
    except ValueError:
        return None


def iter_silence_intervals(lines: Iterable[str]) -> Iterator[SilenceInterval]:
    """Yield silence intervals from silencedetect report lines, in order.

    Only the most recent unmatched ``silence_start`` is tracked. An end
    marker without an open start is ignored. A start still open when the
    lines run out (silence through end of file) yields nothing.
    """
    open_start: float | None = None
    for line in lines:
        if "silence_start:" in line:
            match = _START_RE.search(line)
            value = _parse_float(match.group(1)) if match else None
            if value is not None:
                open_start = value
        elif "silence_end:" in line and open_start is not None:
            match = _END_RE.search(line)
            end = _parse_float(match.group(1)) if match else None
            if end is not None:
                yield SilenceInterval(start=open_start, end=end, duration=end - open_start)
                open_start = None


def parse_silence_intervals(report: str) -> tuple[SilenceInterval, ...]:
    """Parse a full silencedetect report into an immutable ordered tuple."""
    return tuple(iter_silence_intervals(report.splitlines()))


def _fmt(value: float) -> str:
    # repr-style float formatting is locale independent ("0.5", "-30.0")
    return repr(float(value))


def build_detect_command(input_path: Path, threshold_db: float, min_duration_s: float) -> list[str]:
    """Return the ffmpeg argument vector (without the program) for silence analysis."""
    return [
        "-hide_banner",
        "-nostats",
        "-i", str(input_path),
        "-af", f"silencedetect=noise={_fmt(threshold_db)}dB:d={_fmt(min_duration_s)}",
        "-f", "null",
        "-",
    ]


def detect_silences(
    request: ProcessingRequest,
    settings: ToolSettings,
    cancel_token: CancellationToken | None = None,
) -> tuple[SilenceInterval, ...]:
    """Run silence analysis on ``request.input_path``.

    Raises:
        PipelineCancelled: if cancellation fired while FFmpeg was running.
        SilenceDetectionError: if FFmpeg timed out or exited non-zero.
    """
    input_path = request.input_path
    logger.info(
        "Detecting silences with: %sdB, %ss",
        _fmt(request.silence_threshold_db),
        _fmt(request.min_silence_duration_s),
    )

    result = run_process(
        settings.ffmpeg_path,
        build_detect_command(input_path, request.silence_threshold_db, request.min_silence_duration_s),
        timeout_s=settings.detection_timeout_s,
        cancel_token=cancel_token,
        kill_grace_s=settings.kill_grace_s,
    )

    if result.outcome is ProcessOutcome.CANCELLED:
        raise PipelineCancelled()
    if result.outcome is ProcessOutcome.TIMED_OUT:
        raise SilenceDetectionError(input_path, None, result.diagnostics)
    if result.exit_code != 0:
        raise SilenceDetectionError(input_path, result.exit_code, result.diagnostics)

    logger.debug("FFmpeg detection output length: %d chars", len(result.stderr))
    intervals = parse_silence_intervals(result.stderr)
    for interval in intervals:
        logger.debug(
            "Silence confirmed: %.2fs to %.2fs (duration: %.2fs)",
            interval.start, interval.end, interval.duration,
        )
    return intervals
