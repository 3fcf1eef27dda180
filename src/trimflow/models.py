from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class SilenceInterval:
    """A silent stretch reported by FFmpeg's silencedetect filter."""

    start: float      # seconds
    end: float
    duration: float   # end - start, as computed when the interval was closed


@dataclass(frozen=True)
class KeepSegment:
    """A stretch of media to retain in the trimmed output."""

    start: float
    end: float

    @property
    def duration(self) -> float:
        return self.end - self.start


@dataclass
class FileResult:
    """Summary of one processed input file."""

    input_path: Path
    output_path: Path
    silence_count: int = 0
    segment_count: int = 0
    kept_duration_s: float = 0.0
    copied_unchanged: bool = False
    cleanup_ok: bool = True
