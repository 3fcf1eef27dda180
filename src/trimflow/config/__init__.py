"""Tool settings and processing requests."""
from trimflow.config.loader import FFMPEG_ENV, FFPROBE_ENV, load_settings, resolve_settings
from trimflow.config.schema import (
    DEFAULT_BATCH_SUFFIX,
    ProcessingRequest,
    ToolSettings,
    make_output_path,
)

__all__ = [
    "DEFAULT_BATCH_SUFFIX",
    "FFMPEG_ENV",
    "FFPROBE_ENV",
    "ProcessingRequest",
    "ToolSettings",
    "load_settings",
    "make_output_path",
    "resolve_settings",
]
