"""Unit tests for per-segment extraction. FFmpeg is mocked; clips are fake files."""

from pathlib import Path
from unittest.mock import patch

import pytest

from trimflow.cancellation import CancellationToken
from trimflow.conform.extract import build_extract_command, extract_segments, extraction_progress
from trimflow.conform.workspace import Workspace
from trimflow.errors import (
    OutputVerificationError,
    PipelineCancelled,
    SegmentExtractionError,
    SegmentExtractionTimeoutError,
)
from trimflow.models import KeepSegment
from trimflow.process.runner import ProcessOutcome


SEGMENTS = [KeepSegment(0.0, 2.0), KeepSegment(4.0, 10.0), KeepSegment(12.0, 20.0)]


def _writing_ffmpeg(make_result, fail_at=None, outcome=None, exit_code=1, payload=b"\x00" * 2048):
    """side_effect that writes the clip named last in argv, like ffmpeg would."""
    calls = []

    def _run(program, args, **kwargs):
        index = len(calls)
        calls.append(args)
        if index == fail_at:
            if outcome is not None:
                return make_result(outcome=outcome)
            return make_result(exit_code=exit_code, stderr="Conversion failed!")
        Path(args[-1]).write_bytes(payload)
        return make_result()

    _run.calls = calls
    return _run


class TestBuildExtractCommand:
    def test_input_seeking_and_encode_settings(self, settings):
        args = build_extract_command(Path("/in/talk.mp4"), KeepSegment(4.0, 10.5), Path("/ws/segment_001.mp4"), settings)
        assert args.index("-ss") < args.index("-i")
        assert args[args.index("-ss") + 1] == "4.000"
        assert args[args.index("-t") + 1] == "6.500"
        assert args[args.index("-c:v") + 1] == "libx264"
        assert args[args.index("-preset") + 1] == "ultrafast"
        assert args[args.index("-crf") + 1] == "23"
        assert args[args.index("-c:a") + 1] == "aac"
        assert args[args.index("-b:a") + 1] == "192k"
        assert args[args.index("-avoid_negative_ts") + 1] == "make_zero"
        assert args[-1] == "/ws/segment_001.mp4"
        assert args[0] == "-y"


class TestExtractionProgress:
    def test_spans_fifty_to_ninety(self):
        assert extraction_progress(0, 4) == 50
        assert extraction_progress(1, 4) == 60
        assert extraction_progress(4, 4) == 90

    def test_integer_division(self):
        assert extraction_progress(1, 3) == 63
        assert extraction_progress(2, 3) == 76


class TestExtractSegments:
    @patch("trimflow.conform.extract.run_process")
    def test_clips_in_order(self, mock_run, tmp_path, settings, make_result):
        mock_run.side_effect = _writing_ffmpeg(make_result)
        ws = Workspace(tmp_path)

        clips = extract_segments(Path("talk.mp4"), SEGMENTS, ws, settings)

        assert [c.name for c in clips] == ["segment_000.mp4", "segment_001.mp4", "segment_002.mp4"]
        assert ws.clip_paths == clips
        assert mock_run.call_count == 3
        assert mock_run.call_args.kwargs["timeout_s"] == settings.extraction_timeout_s

    @patch("trimflow.conform.extract.run_process")
    def test_progress_reported_after_each_clip(self, mock_run, tmp_path, settings, make_result):
        mock_run.side_effect = _writing_ffmpeg(make_result)
        reported = []

        extract_segments(
            Path("talk.mp4"), SEGMENTS, Workspace(tmp_path), settings,
            progress_callback=lambda pct, status: reported.append((pct, status)),
        )

        assert reported == [
            (63, "Extracting segments... 1/3"),
            (76, "Extracting segments... 2/3"),
            (90, "Extracting segments... 3/3"),
        ]

    @patch("trimflow.conform.extract.run_process")
    def test_timeout_on_last_segment(self, mock_run, tmp_path, settings, make_result):
        fake = _writing_ffmpeg(make_result, fail_at=2, outcome=ProcessOutcome.TIMED_OUT)
        mock_run.side_effect = fake
        ws = Workspace(tmp_path)

        with pytest.raises(SegmentExtractionTimeoutError) as exc_info:
            extract_segments(Path("talk.mp4"), SEGMENTS, ws, settings)

        assert exc_info.value.index == 2
        assert "Segment 3 extraction timed out" in str(exc_info.value)
        assert mock_run.call_count == 3
        assert len(ws.clip_paths) == 2

    @patch("trimflow.conform.extract.run_process")
    def test_failure_stops_remaining_segments(self, mock_run, tmp_path, settings, make_result):
        segments = SEGMENTS + [KeepSegment(22.0, 30.0)]
        mock_run.side_effect = _writing_ffmpeg(make_result, fail_at=2, outcome=ProcessOutcome.TIMED_OUT)

        with pytest.raises(SegmentExtractionTimeoutError):
            extract_segments(Path("talk.mp4"), segments, Workspace(tmp_path), settings)

        assert mock_run.call_count == 3
        assert not (tmp_path / "segment_003.mp4").exists()

    @patch("trimflow.conform.extract.run_process")
    def test_nonzero_exit_raises_with_diagnostics(self, mock_run, tmp_path, settings, make_result):
        mock_run.side_effect = _writing_ffmpeg(make_result, fail_at=1, exit_code=187)

        with pytest.raises(SegmentExtractionError) as exc_info:
            extract_segments(Path("talk.mp4"), SEGMENTS, Workspace(tmp_path), settings)

        err = exc_info.value
        assert err.index == 1
        assert err.exit_code == 187
        assert "Conversion failed!" in err.diagnostics
        assert "Failed to extract segment 2, exit code: 187" in str(err)

    @patch("trimflow.conform.extract.run_process")
    def test_empty_clip_fails_verification(self, mock_run, tmp_path, settings, make_result):
        mock_run.side_effect = _writing_ffmpeg(make_result, payload=b"")

        with pytest.raises(OutputVerificationError) as exc_info:
            extract_segments(Path("talk.mp4"), SEGMENTS, Workspace(tmp_path), settings)

        assert exc_info.value.index == 0
        assert mock_run.call_count == 1

    @patch("trimflow.conform.extract.run_process")
    def test_missing_clip_fails_verification(self, mock_run, tmp_path, settings, make_result):
        mock_run.return_value = make_result()

        with pytest.raises(OutputVerificationError) as exc_info:
            extract_segments(Path("talk.mp4"), SEGMENTS, Workspace(tmp_path), settings)

        assert exc_info.value.detail == "file is missing"

    @patch("trimflow.conform.extract.run_process")
    def test_cancelled_before_first_segment(self, mock_run, tmp_path, settings):
        token = CancellationToken()
        token.cancel()

        with pytest.raises(PipelineCancelled):
            extract_segments(Path("talk.mp4"), SEGMENTS, Workspace(tmp_path), settings, cancel_token=token)

        mock_run.assert_not_called()

    @patch("trimflow.conform.extract.run_process")
    def test_cancelled_while_running(self, mock_run, tmp_path, settings, make_result):
        mock_run.side_effect = _writing_ffmpeg(make_result, fail_at=0, outcome=ProcessOutcome.CANCELLED)

        with pytest.raises(PipelineCancelled):
            extract_segments(Path("talk.mp4"), SEGMENTS, Workspace(tmp_path), settings)

        assert mock_run.call_count == 1
