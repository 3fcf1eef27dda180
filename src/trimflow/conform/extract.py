"""Per-segment clip extraction.

Each keep segment is re-encoded into its own clip in the workspace. Seeking
happens before ``-i`` (input seeking): much faster than decoding up to the
start point, at the cost of possible drift at the first keyframe.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Sequence

from trimflow.cancellation import CancellationToken
from trimflow.config.schema import ToolSettings
from trimflow.conform.verify import verify_output
from trimflow.conform.workspace import Workspace
from trimflow.errors import (
    PipelineCancelled,
    SegmentExtractionError,
    SegmentExtractionTimeoutError,
)
from trimflow.models import KeepSegment
from trimflow.process.runner import ProcessOutcome, run_process

logger = logging.getLogger(__name__)

# Extraction progress occupies 50%..90%; concatenation owns the rest.
PROGRESS_BASE = 50
PROGRESS_SPAN = 40


def build_extract_command(
    source: Path,
    segment: KeepSegment,
    output_path: Path,
    settings: ToolSettings,
) -> list[str]:
    """Return the ffmpeg argument vector (without the program) for one segment."""
    return [
        "-y",
        "-hide_banner",
        "-ss", f"{segment.start:.3f}",
        "-i", str(source),
        "-t", f"{segment.duration:.3f}",
        "-c:v", settings.video_codec,
        "-preset", settings.preset,
        "-crf", str(settings.crf),
        "-c:a", settings.audio_codec,
        "-b:a", settings.audio_bitrate,
        "-avoid_negative_ts", "make_zero",
        str(output_path),
    ]


def extraction_progress(done: int, total: int) -> int:
    return PROGRESS_BASE + (done * PROGRESS_SPAN) // total


def extract_segments(
    source: Path,
    segments: Sequence[KeepSegment],
    workspace: Workspace,
    settings: ToolSettings,
    cancel_token: CancellationToken | None = None,
    progress_callback: Callable[[int, str], None] | None = None,
) -> list[Path]:
    """Extract every segment of *segments* from *source*, in order.

    Clip paths are appended to ``workspace.clip_paths`` as each one is
    verified. The first failure aborts the loop; later segments are not
    attempted.

    Args:
        source: Input video.
        segments: Ordered keep segments from the planner.
        workspace: Destination for the clips.
        settings: FFmpeg location, encode settings and timeout.
        cancel_token: Checked before each segment and while FFmpeg runs.
        progress_callback: Called as ``(percentage, status)`` after each clip.

    Returns:
        The clip paths in extraction order.

    Raises:
        PipelineCancelled: on cancellation.
        SegmentExtractionTimeoutError: if a segment exceeds the timeout.
        SegmentExtractionError: if FFmpeg exits non-zero.
        OutputVerificationError: if a clip is missing or empty.
    """
    total = len(segments)
    for i, segment in enumerate(segments):
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        clip = workspace.clip_path(i, total)
        logger.info(
            "Extracting segment %d/%d: %.2fs to %.2fs",
            i + 1, total, segment.start, segment.end,
        )
        args = build_extract_command(source, segment, clip, settings)

        result = run_process(
            settings.ffmpeg_path,
            args,
            timeout_s=settings.extraction_timeout_s,
            cancel_token=cancel_token,
            kill_grace_s=settings.kill_grace_s,
        )

        if result.outcome is ProcessOutcome.CANCELLED:
            raise PipelineCancelled()
        if result.outcome is ProcessOutcome.TIMED_OUT:
            logger.warning("Segment %d extraction timed out, process killed", i + 1)
            raise SegmentExtractionTimeoutError(i, settings.extraction_timeout_s)
        if result.exit_code != 0:
            raise SegmentExtractionError(i, result.exit_code, result.diagnostics)

        size = verify_output(clip, index=i)
        workspace.clip_paths.append(clip)
        logger.info("Segment %d extracted successfully (%dKB)", i + 1, size // 1024)

        if progress_callback is not None:
            progress_callback(
                extraction_progress(i + 1, total),
                f"Extracting segments... {i + 1}/{total}",
            )

    return list(workspace.clip_paths)
