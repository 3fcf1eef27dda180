"""Pipeline orchestrator: detect → plan → extract → concatenate, per file and per batch.

``TrimPipeline.run`` is the entry point for front ends. It never raises for
pipeline failures: every outcome ends in exactly one ``Completion`` event,
which is also returned.
"""

from __future__ import annotations

import logging
import shutil
import time
from pathlib import Path
from typing import Callable

from trimflow.analysis.planner import plan_keep_segments
from trimflow.analysis.probe import probe_duration
from trimflow.analysis.silence import detect_silences
from trimflow.cancellation import CancellationToken
from trimflow.config.schema import ProcessingRequest, ToolSettings
from trimflow.conform.concat import concatenate_clips
from trimflow.conform.extract import extract_segments
from trimflow.conform.workspace import Workspace
from trimflow.errors import (
    InputNotFoundError,
    OutputOverwritesInputError,
    PipelineCancelled,
    TrimFlowError,
)
from trimflow.events import Completion, EventSink, Progress, RunState, forward_logs
from trimflow.models import FileResult

logger = logging.getLogger(__name__)

DurationProbe = Callable[[Path], float]


class TrimPipeline:
    """Sequential silence-removal pipeline.

    One instance drives one run (a single file or a batch) at a time; only
    one FFmpeg process is ever in flight.

    Args:
        settings: Resolved tool settings.
        sink: Receives Progress / LogLine / Completion events.
        duration_probe: Returns the media length of a path in seconds.
            Defaults to ffprobe.
        workspace_parent: Where per-file temp workspaces are created.
            Defaults to the system temp directory.
    """

    def __init__(
        self,
        settings: ToolSettings,
        sink: EventSink | None = None,
        duration_probe: DurationProbe | None = None,
        workspace_parent: Path | None = None,
    ) -> None:
        self.settings = settings
        self.sink = sink if sink is not None else EventSink()
        self.token = CancellationToken()
        self.workspace_parent = workspace_parent
        if duration_probe is None:
            duration_probe = lambda path: probe_duration(path, settings)  # noqa: E731
        self._probe = duration_probe

    # ------------------------------------------------------------------
    # Front-end API
    # ------------------------------------------------------------------

    def cancel(self) -> None:
        """Request cancellation. Safe to call from any thread."""
        self.token.cancel()
        logger.info("Cancellation requested")

    def run(self, request: ProcessingRequest) -> Completion:
        """Process *request* and report exactly one Completion."""
        with forward_logs(self.sink):
            try:
                if request.is_batch:
                    self.process_batch(request)
                else:
                    self.process_file(request)
            except PipelineCancelled:
                logger.info("Processing cancelled by user")
                completion = Completion(RunState.CANCELLED, "Processing cancelled")
            except TrimFlowError as exc:
                logger.error("ERROR: %s", str(exc).splitlines()[0])
                completion = Completion(
                    RunState.FAILED,
                    str(exc),
                    diagnostics=getattr(exc, "diagnostics", None),
                )
            except OSError as exc:
                # copying the input or writing the manifest
                logger.error("ERROR: %s", exc)
                completion = Completion(RunState.FAILED, str(exc))
            else:
                completion = Completion(RunState.SUCCEEDED, "Processing completed successfully")

        self.sink.emit(completion)
        return completion

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _progress(self, percentage: int, status: str) -> None:
        self.sink.emit(Progress(percentage, status))

    def process_file(self, request: ProcessingRequest) -> FileResult:
        """Run the single-file flow. Raises the typed errors from ``trimflow.errors``."""
        input_path = request.input_path
        output_path = request.output_path
        result = FileResult(input_path=input_path, output_path=output_path)

        logger.info("Processing: %s", input_path.name)
        self._progress(0, "Analyzing file...")

        if not input_path.is_file():
            raise InputNotFoundError(input_path)
        if output_path.resolve() == input_path.resolve():
            raise OutputOverwritesInputError(input_path)

        self._progress(10, "Detecting silences...")
        intervals = detect_silences(request, self.settings, self.token)
        result.silence_count = len(intervals)
        logger.info("Number of silences detected: %d", len(intervals))

        if not intervals:
            logger.info("No silence detected. Copying file without modification.")
            shutil.copy2(input_path, output_path)
            result.copied_unchanged = True
            self._progress(100, "Completed (no silence detected)")
            return result

        self._progress(50, "Removing silences...")
        total_duration = self._probe(input_path)
        segments = plan_keep_segments(intervals, total_duration)
        result.segment_count = len(segments)
        result.kept_duration_s = sum(s.duration for s in segments)
        logger.info("Creating %d segment(s) to keep", len(segments))

        workspace = Workspace.create(self.workspace_parent)
        try:
            clips = extract_segments(
                input_path,
                segments,
                workspace,
                self.settings,
                cancel_token=self.token,
                progress_callback=self._progress,
            )
            logger.info("All segments extracted, starting concatenation...")
            self._progress(90, "Concatenating segments...")
            concatenate_clips(clips, output_path, workspace, self.settings, self.token)
        finally:
            result.cleanup_ok = self._cleanup(workspace)

        self._progress(100, "Processing completed")
        return result

    def process_batch(self, request: ProcessingRequest) -> list[FileResult]:
        """Process ``request.batch_inputs`` strictly in order; stop at the first failure."""
        inputs = request.batch_inputs
        total = len(inputs)
        logger.info("Batch mode: %d file(s)", total)

        results: list[FileResult] = []
        for i, input_path in enumerate(inputs):
            self.token.raise_if_cancelled()

            item = request.for_batch_item(input_path, self.settings.batch_suffix)
            logger.info("[%d/%d] Processing %s", i + 1, total, input_path.name)
            results.append(self.process_file(item))

            self._progress(((i + 1) * 100) // total, f"File {i + 1}/{total} completed")

        logger.info("Batch processing completed")
        return results

    def _cleanup(self, workspace: Workspace) -> bool:
        # Give just-exited FFmpeg processes a moment to release their handles.
        if self.settings.cleanup_settle_s:
            time.sleep(self.settings.cleanup_settle_s)
        removed = workspace.remove(
            attempts=self.settings.cleanup_attempts,
            backoff_s=self.settings.cleanup_backoff_s,
        )
        if removed:
            logger.info("Temporary files cleaned up")
        else:
            logger.warning("Warning: Some temporary files remain in %s", workspace.root)
        return removed
