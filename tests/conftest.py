"""Shared test fixtures."""

from pathlib import Path

import pytest

from trimflow.config.schema import ToolSettings
from trimflow.process.runner import ProcessOutcome, ProcessResult


@pytest.fixture
def settings() -> ToolSettings:
    """Settings pointing at a fake ffmpeg, with no cleanup delays."""
    return ToolSettings(
        ffmpeg_path=Path("/opt/ffmpeg/bin/ffmpeg"),
        ffprobe_path=Path("/opt/ffmpeg/bin/ffprobe"),
        cleanup_settle_s=0.0,
        cleanup_backoff_s=0.0,
        kill_grace_s=0.5,
    )


@pytest.fixture
def make_result():
    """Factory for ProcessResult values returned by a mocked run_process."""

    def _make(
        exit_code: int | None = 0,
        stderr: str = "",
        outcome: ProcessOutcome = ProcessOutcome.COMPLETED,
    ) -> ProcessResult:
        if outcome is not ProcessOutcome.COMPLETED:
            exit_code = None
        return ProcessResult(
            outcome=outcome,
            exit_code=exit_code,
            stdout="",
            stderr=stderr,
            diagnostics=stderr,
            elapsed_s=0.01,
        )

    return _make
