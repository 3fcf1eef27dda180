"""Tests for the trimflow CLI.

Input checks run before FFmpeg is located, so bad arguments produce Rich
error panels without touching the tools. The pipeline itself is replaced
by a scripted stand-in.
"""

from pathlib import Path
from unittest.mock import patch

from typer.testing import CliRunner

from trimflow.cli import EXIT_CANCELLED, app
from trimflow.config.schema import ToolSettings
from trimflow.errors import SettingsError, ToolNotFoundError
from trimflow.events import Completion, LogLine, Progress, RunState

runner = CliRunner()

READY = ToolSettings(ffmpeg_path=Path("/usr/bin/ffmpeg"), ffprobe_path=Path("/usr/bin/ffprobe"))


class FakePipeline:
    """Records requests and replays a fixed completion through the sink."""

    completion = Completion(RunState.SUCCEEDED, "Processing completed successfully")
    requests: list = []
    settings_seen: list = []

    def __init__(self, settings, sink=None):
        self.settings = settings
        self.sink = sink
        FakePipeline.settings_seen.append(settings)

    def cancel(self):
        pass

    def run(self, request):
        FakePipeline.requests.append(request)
        self.sink.emit(Progress(50, "Removing silences..."))
        self.sink.emit(LogLine("Number of silences detected: 2"))
        self.sink.emit(self.completion)
        return self.completion


def _reset(completion: Completion | None = None) -> None:
    FakePipeline.requests = []
    FakePipeline.settings_seen = []
    FakePipeline.completion = completion or Completion(RunState.SUCCEEDED, "Processing completed successfully")


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------

def test_invalid_video_extension():
    result = runner.invoke(app, ["trim", "lecture.pdf"])
    assert result.exit_code == 1
    assert "Unsupported video format" in result.output


def test_invalid_extension_checked_for_every_batch_input(tmp_path):
    result = runner.invoke(app, ["trim", str(tmp_path / "a.mp4"), str(tmp_path / "b.txt")])
    assert result.exit_code == 1
    assert "Unsupported video format" in result.output


def test_output_rejected_in_batch_mode(tmp_path):
    result = runner.invoke(
        app,
        ["trim", str(tmp_path / "a.mp4"), str(tmp_path / "b.mp4"), "--output", str(tmp_path / "out.mp4")],
    )
    assert result.exit_code == 1
    assert "--output cannot be used" in result.output


def test_threshold_must_not_be_positive(tmp_path):
    result = runner.invoke(app, ["trim", str(tmp_path / "a.mp4"), "--threshold", "5"])
    assert result.exit_code == 2


@patch("trimflow.cli.resolve_settings", side_effect=ToolNotFoundError("ffmpeg"))
def test_missing_ffmpeg(mock_resolve, tmp_path):
    result = runner.invoke(app, ["trim", str(tmp_path / "a.mp4")])
    assert result.exit_code == 1
    assert "Cannot find executable" in result.output


@patch("trimflow.cli.resolve_settings", side_effect=SettingsError(Path("bad.json"), "Expecting value"))
def test_bad_settings_file(mock_resolve, tmp_path):
    result = runner.invoke(app, ["trim", str(tmp_path / "a.mp4")])
    assert result.exit_code == 1
    assert "Cannot load settings file" in result.output


# ---------------------------------------------------------------------------
# Running the pipeline
# ---------------------------------------------------------------------------

@patch("trimflow.cli.TrimPipeline", FakePipeline)
@patch("trimflow.cli.resolve_settings", return_value=READY)
def test_single_file_default_output(mock_resolve, tmp_path):
    _reset()
    video = tmp_path / "talk.mp4"

    result = runner.invoke(app, ["trim", str(video), "-t", "-40", "-d", "1.0"])

    assert result.exit_code == 0, result.output
    request = FakePipeline.requests[0]
    assert not request.is_batch
    assert request.input_path == video
    assert request.output_path == tmp_path / "talk_trimmed.mp4"
    assert request.silence_threshold_db == -40.0
    assert request.min_silence_duration_s == 1.0
    assert "Processing completed successfully" in result.output


@patch("trimflow.cli.TrimPipeline", FakePipeline)
@patch("trimflow.cli.resolve_settings", return_value=READY)
def test_explicit_output(mock_resolve, tmp_path):
    _reset()
    result = runner.invoke(app, ["trim", str(tmp_path / "talk.mp4"), "-o", str(tmp_path / "short.mp4")])
    assert result.exit_code == 0, result.output
    assert FakePipeline.requests[0].output_path == tmp_path / "short.mp4"


@patch("trimflow.cli.TrimPipeline", FakePipeline)
@patch("trimflow.cli.resolve_settings", return_value=READY)
def test_batch_request_and_suffix(mock_resolve, tmp_path):
    _reset()
    videos = [str(tmp_path / "a.mp4"), str(tmp_path / "b.mkv")]

    result = runner.invoke(app, ["trim", *videos, "--suffix", "_cut"])

    assert result.exit_code == 0, result.output
    request = FakePipeline.requests[0]
    assert request.is_batch
    assert request.batch_inputs == (tmp_path / "a.mp4", tmp_path / "b.mkv")
    assert FakePipeline.settings_seen[0].batch_suffix == "_cut"


@patch("trimflow.cli.TrimPipeline", FakePipeline)
@patch("trimflow.cli.resolve_settings", return_value=READY)
def test_tool_overrides_passed_to_resolver(mock_resolve, tmp_path):
    _reset()
    runner.invoke(app, ["trim", str(tmp_path / "a.mp4"), "--ffmpeg", "/opt/ff/ffmpeg"])
    assert mock_resolve.call_args.kwargs["ffmpeg"] == Path("/opt/ff/ffmpeg")


@patch("trimflow.cli.TrimPipeline", FakePipeline)
@patch("trimflow.cli.resolve_settings", return_value=READY)
def test_failed_run_exits_one_with_diagnostics(mock_resolve, tmp_path):
    _reset(Completion(
        RunState.FAILED,
        "Failed to extract segment 2, exit code: 1.",
        diagnostics="frame=  10\nConversion failed!\n",
    ))

    result = runner.invoke(app, ["trim", str(tmp_path / "a.mp4")])

    assert result.exit_code == 1
    assert "Failed to extract segment 2" in result.output
    assert "Conversion failed!" in result.output


@patch("trimflow.cli.TrimPipeline", FakePipeline)
@patch("trimflow.cli.resolve_settings", return_value=READY)
def test_cancelled_run_exit_code(mock_resolve, tmp_path):
    _reset(Completion(RunState.CANCELLED, "Processing cancelled"))

    result = runner.invoke(app, ["trim", str(tmp_path / "a.mp4")])

    assert result.exit_code == EXIT_CANCELLED
    assert "cancelled" in result.output


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------

@patch("trimflow.cli.resolve_settings", return_value=READY)
def test_check_ready(mock_resolve):
    result = runner.invoke(app, ["check"])
    assert result.exit_code == 0
    assert "FFmpeg is ready" in result.output
    assert "/usr/bin/ffprobe" in result.output


@patch("trimflow.cli.resolve_settings", return_value=ToolSettings(ffmpeg_path=Path("/usr/bin/ffmpeg")))
def test_check_without_ffprobe(mock_resolve):
    result = runner.invoke(app, ["check"])
    assert result.exit_code == 1
    assert "not found" in result.output


@patch("trimflow.cli.resolve_settings", side_effect=ToolNotFoundError("ffmpeg"))
def test_check_missing_ffmpeg(mock_resolve):
    result = runner.invoke(app, ["check"])
    assert result.exit_code == 1
    assert "FFmpeg Not Found" in result.output


# ---------------------------------------------------------------------------
# Outputs must never replace the inputs
# ---------------------------------------------------------------------------

@patch("trimflow.cli.TrimPipeline", FakePipeline)
@patch("trimflow.cli.resolve_settings", return_value=READY)
def test_empty_suffix_rejected(mock_resolve, tmp_path):
    _reset()
    videos = [str(tmp_path / "a.mp4"), str(tmp_path / "b.mp4")]

    result = runner.invoke(app, ["trim", *videos, "--suffix", ""])

    assert result.exit_code == 1
    assert "--suffix must not be empty" in result.output
    assert FakePipeline.requests == []


@patch("trimflow.cli.TrimPipeline", FakePipeline)
@patch("trimflow.cli.resolve_settings", return_value=READY)
def test_output_equal_to_input_rejected(mock_resolve, tmp_path):
    _reset()
    video = str(tmp_path / "talk.mp4")

    result = runner.invoke(app, ["trim", video, "-o", video])

    assert result.exit_code == 1
    assert "Output path is the input file" in result.output
    assert FakePipeline.requests == []
