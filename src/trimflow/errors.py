from pathlib import Path

# Only the tail of FFmpeg's stderr is useful in a message; the full text stays
# on the exception's ``diagnostics`` attribute.
_DIAGNOSTICS_TAIL = 500


def _tail(text: str) -> str:
    text = text.strip()
    if len(text) <= _DIAGNOSTICS_TAIL:
        return text
    return "..." + text[-_DIAGNOSTICS_TAIL:]


class TrimFlowError(Exception):
    """Base class for all TrimFlow errors."""


class PipelineCancelled(Exception):
    """Raised at a cancellation checkpoint. Terminal state, not an error."""

    def __init__(self, detail: str = "Processing cancelled") -> None:
        super().__init__(detail)
        self.detail = detail


class ToolNotFoundError(TrimFlowError):
    def __init__(self, program: str | Path) -> None:
        super().__init__(
            f"Cannot find executable '{program}'.\n"
            f"  Check: Is FFmpeg installed and in PATH?\n"
            f"  Tip: Point TRIMFLOW_FFMPEG (or --ffmpeg) at the ffmpeg binary."
        )
        self.program = str(program)


class SettingsError(TrimFlowError):
    def __init__(self, path: Path, detail: str) -> None:
        super().__init__(
            f"Cannot load settings file '{path.name}'.\n"
            f"  Cause: {detail}\n"
            f"  Check: Is the file valid JSON matching the ToolSettings schema?"
        )
        self.path = path
        self.detail = detail


class InputNotFoundError(TrimFlowError):
    def __init__(self, path: Path) -> None:
        super().__init__(
            f"Input file not found: {path}\n"
            f"  Check: Is the path correct and the file accessible?"
        )
        self.path = path


class SilenceDetectionError(TrimFlowError):
    def __init__(self, source: Path, exit_code: int | None, diagnostics: str) -> None:
        cause = "timed out" if exit_code is None else f"exit code {exit_code}"
        super().__init__(
            f"Silence detection failed for '{source.name}' ({cause}).\n"
            f"  Cause: {_tail(diagnostics) or 'no diagnostic output'}\n"
            f"  Check: Does the file contain a readable audio stream?"
        )
        self.source = source
        self.exit_code = exit_code
        self.diagnostics = diagnostics


class DurationProbeError(TrimFlowError):
    def __init__(self, source: Path, detail: str) -> None:
        super().__init__(
            f"Could not determine the duration of '{source.name}'.\n"
            f"  Cause: {detail}\n"
            f"  Tip: Run `ffprobe -show_format '{source}'` to verify the file is readable."
        )
        self.source = source
        self.detail = detail


class EmptyKeepSegmentsError(TrimFlowError):
    def __init__(self, total_duration: float, interval_count: int) -> None:
        super().__init__(
            f"No segments to keep after removing silences.\n"
            f"  Cause: {interval_count} silence interval(s) cover all of the "
            f"{total_duration:.2f}s of media.\n"
            f"  Check: Lower the silence threshold (e.g. -40dB) or raise the minimum silence duration."
        )
        self.total_duration = total_duration
        self.interval_count = interval_count


class SegmentExtractionError(TrimFlowError):
    def __init__(self, index: int, exit_code: int, diagnostics: str) -> None:
        super().__init__(
            f"Failed to extract segment {index + 1}, exit code: {exit_code}.\n"
            f"  Cause: {_tail(diagnostics) or 'no diagnostic output'}\n"
            f"  Tip: Run the FFmpeg command manually with the same arguments to see full output."
        )
        self.index = index
        self.exit_code = exit_code
        self.diagnostics = diagnostics


class SegmentExtractionTimeoutError(TrimFlowError):
    def __init__(self, index: int, timeout_s: float) -> None:
        super().__init__(
            f"Segment {index + 1} extraction timed out after {timeout_s:g}s.\n"
            f"  Cause: FFmpeg did not finish in time and was killed.\n"
            f"  Check: Raise extraction_timeout_s for long segments or slow machines."
        )
        self.index = index
        self.timeout_s = timeout_s


class ConcatenationError(TrimFlowError):
    def __init__(self, exit_code: int, diagnostics: str) -> None:
        super().__init__(
            f"Failed to concatenate segments, exit code: {exit_code}.\n"
            f"  Cause: {_tail(diagnostics) or 'no diagnostic output'}\n"
            f"  Check: Is there enough disk space at the output location?"
        )
        self.exit_code = exit_code
        self.diagnostics = diagnostics


class ConcatenationTimeoutError(TrimFlowError):
    def __init__(self, timeout_s: float) -> None:
        super().__init__(
            f"Concatenation timed out after {timeout_s:g}s.\n"
            f"  Cause: FFmpeg did not finish in time and was killed.\n"
            f"  Check: Raise concat_timeout_s for very long outputs."
        )
        self.timeout_s = timeout_s


class OutputVerificationError(TrimFlowError):
    def __init__(self, path: Path, detail: str, index: int | None = None) -> None:
        what = f"Segment {index + 1} file" if index is not None else f"Output file '{path.name}'"
        super().__init__(
            f"{what} failed verification.\n"
            f"  Cause: {detail}\n"
            f"  Check: Was there sufficient disk space during encoding? Is the source file complete?"
        )
        self.path = path
        self.detail = detail
        self.index = index


class OutputOverwritesInputError(TrimFlowError):
    def __init__(self, path: Path) -> None:
        super().__init__(
            f"Output would overwrite the input file: {path}\n"
            f"  Check: Choose a different --output path or a non-empty --suffix."
        )
        self.path = path
