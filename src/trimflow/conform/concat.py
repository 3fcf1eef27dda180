"""Lossless join of extracted clips with FFmpeg's concat demuxer."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from trimflow.cancellation import CancellationToken
from trimflow.config.schema import ToolSettings
from trimflow.conform.verify import verify_output
from trimflow.conform.workspace import Workspace
from trimflow.errors import (
    ConcatenationError,
    ConcatenationTimeoutError,
    PipelineCancelled,
)
from trimflow.process.runner import ProcessOutcome, run_process

logger = logging.getLogger(__name__)


def _quote(name: str) -> str:
    # concat list syntax: single-quoted, embedded quotes closed and escaped
    return "'" + name.replace("'", "'\\''") + "'"


def write_manifest(clip_paths: Sequence[Path], workspace: Workspace) -> Path:
    """Write the concat list for *clip_paths*, one line per clip, in the given order.

    Entries are names relative to the workspace; FFmpeg runs with the
    workspace as its working directory.
    """
    lines = [f"file {_quote(p.name)}" for p in clip_paths]
    manifest = workspace.manifest_path
    manifest.write_text("\n".join(lines) + "\n", encoding="utf-8")
    logger.info("Concat file created with %d entries", len(lines))
    return manifest


def build_concat_command(manifest: Path, output_path: Path) -> list[str]:
    return [
        "-y",
        "-hide_banner",
        "-f", "concat",
        "-safe", "0",
        "-i", manifest.name,
        "-c", "copy",
        str(output_path),
    ]


def concatenate_clips(
    clip_paths: Sequence[Path],
    output_path: Path,
    workspace: Workspace,
    settings: ToolSettings,
    cancel_token: CancellationToken | None = None,
) -> Path:
    """Stream-copy *clip_paths*, in order, into *output_path*.

    Returns:
        output_path on success.

    Raises:
        ValueError: if *clip_paths* is empty (programming error).
        PipelineCancelled: on cancellation.
        ConcatenationTimeoutError: if FFmpeg exceeds the concat timeout.
        ConcatenationError: if FFmpeg exits non-zero.
        OutputVerificationError: if the output is missing or empty.
    """
    if not clip_paths:
        raise ValueError("concatenate_clips called with empty clip list")

    manifest = write_manifest(clip_paths, workspace)
    # Relative output paths would resolve against the workspace.
    output_path = output_path.resolve()

    result = run_process(
        settings.ffmpeg_path,
        build_concat_command(manifest, output_path),
        timeout_s=settings.concat_timeout_s,
        cancel_token=cancel_token,
        cwd=workspace.root,
        kill_grace_s=settings.kill_grace_s,
    )

    if result.outcome is ProcessOutcome.CANCELLED:
        raise PipelineCancelled()
    if result.outcome is ProcessOutcome.TIMED_OUT:
        logger.warning("Concatenation timed out, process killed")
        raise ConcatenationTimeoutError(settings.concat_timeout_s)
    if result.exit_code != 0:
        raise ConcatenationError(result.exit_code, result.diagnostics)

    size = verify_output(output_path)
    logger.info("File created successfully: %s (%dMB)", output_path, size // (1024 * 1024))
    return output_path
