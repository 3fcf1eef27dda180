"""Media duration lookup via ffprobe."""

from __future__ import annotations

import json
import subprocess
from pathlib import Path

from trimflow.config.schema import ToolSettings
from trimflow.errors import DurationProbeError


def probe_duration(source: Path, settings: ToolSettings) -> float:
    """Return the container duration of *source* in seconds.

    Raises
    ------
    DurationProbeError
        If ffprobe is unavailable, fails, or reports no usable duration.
    """
    if settings.ffprobe_path is None:
        raise DurationProbeError(source, "ffprobe not found. Is FFmpeg installed and in PATH?")

    cmd = [
        str(settings.ffprobe_path),
        "-v", "quiet",
        "-print_format", "json",
        "-show_format",
        str(source),
    ]
    try:
        result = subprocess.run(
            cmd,
            check=True,
            capture_output=True,
            text=True,
            timeout=settings.probe_timeout_s,
        )
    except subprocess.CalledProcessError as exc:
        raise DurationProbeError(source, f"ffprobe failed: {(exc.stderr or '').strip()}") from exc
    except subprocess.TimeoutExpired as exc:
        raise DurationProbeError(source, f"ffprobe timed out after {settings.probe_timeout_s:g}s") from exc
    except FileNotFoundError as exc:
        raise DurationProbeError(source, "ffprobe not found. Is FFmpeg installed and in PATH?") from exc

    try:
        duration = float(json.loads(result.stdout)["format"]["duration"])
    except (KeyError, TypeError, ValueError, json.JSONDecodeError) as exc:
        raise DurationProbeError(source, f"Could not parse ffprobe output: {exc}") from exc

    if duration <= 0:
        raise DurationProbeError(source, f"ffprobe reported a non-positive duration ({duration})")
    return duration
