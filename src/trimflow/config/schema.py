from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_BATCH_SUFFIX = "_trimmed"


def make_output_path(source: Path, suffix: str = DEFAULT_BATCH_SUFFIX) -> Path:
    """Build the output path for *source*: ``{stem}{suffix}{ext}`` alongside it."""
    return source.with_name(f"{source.stem}{suffix}{source.suffix}")


class ToolSettings(BaseModel):
    """Resolved FFmpeg location plus the knobs of every invocation.

    Built once by the caller (see ``resolve_settings``) and passed into the
    pipeline; nothing in the pipeline mutates it.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    ffmpeg_path: Path = Path("ffmpeg")
    ffprobe_path: Optional[Path] = None

    extraction_timeout_s: float = Field(default=30.0, gt=0.0)
    concat_timeout_s: float = Field(default=60.0, gt=0.0)
    detection_timeout_s: Optional[float] = Field(default=None, gt=0.0)  # None: no deadline
    probe_timeout_s: float = Field(default=30.0, gt=0.0)
    kill_grace_s: float = Field(default=2.0, ge=0.0)

    # Per-segment encode. Segments are re-encoded so every clip starts on a
    # keyframe; the final join is a stream copy.
    video_codec: str = "libx264"
    preset: str = "ultrafast"
    crf: int = Field(default=23, ge=0, le=51)
    audio_codec: str = "aac"
    audio_bitrate: str = "192k"

    batch_suffix: str = Field(default=DEFAULT_BATCH_SUFFIX, min_length=1)

    cleanup_attempts: int = Field(default=3, ge=1)
    cleanup_backoff_s: float = Field(default=0.5, ge=0.0)
    cleanup_settle_s: float = Field(default=0.5, ge=0.0)


class ProcessingRequest(BaseModel):
    """Input to one pipeline run.

    In single-file mode ``input_path`` and ``output_path`` are required. In
    batch mode ``batch_inputs`` lists the files and each one gets its own
    request through :meth:`for_batch_item`.
    """
    model_config = ConfigDict(frozen=True)

    input_path: Optional[Path] = None
    output_path: Optional[Path] = None
    silence_threshold_db: float = Field(default=-30.0, le=0.0)
    min_silence_duration_s: float = Field(default=0.5, gt=0.0)
    batch_inputs: Optional[tuple[Path, ...]] = None

    @model_validator(mode="after")
    def paths_present(self) -> "ProcessingRequest":
        if self.batch_inputs is not None:
            if not self.batch_inputs:
                raise ValueError("No files to process")
            return self
        if self.input_path is None or self.output_path is None:
            raise ValueError("input_path and output_path are required outside batch mode")
        return self

    @property
    def is_batch(self) -> bool:
        return self.batch_inputs is not None

    def for_batch_item(self, input_path: Path, suffix: str = DEFAULT_BATCH_SUFFIX) -> "ProcessingRequest":
        return ProcessingRequest(
            input_path=input_path,
            output_path=make_output_path(input_path, suffix),
            silence_threshold_db=self.silence_threshold_db,
            min_silence_duration_s=self.min_silence_duration_s,
        )
