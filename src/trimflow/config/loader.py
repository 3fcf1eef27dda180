import os
import shutil
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from trimflow.config.schema import ToolSettings
from trimflow.errors import SettingsError, ToolNotFoundError

FFMPEG_ENV = "TRIMFLOW_FFMPEG"
FFPROBE_ENV = "TRIMFLOW_FFPROBE"


def load_settings(path: Path) -> ToolSettings:
    """Load and validate a JSON settings file. Raises SettingsError on failure."""
    try:
        return ToolSettings.model_validate_json(path.read_text(encoding="utf-8"))
    except ValidationError as e:
        field_errors = "; ".join(
            f"{' -> '.join(str(x) for x in err['loc'])}: {err['msg']}"
            for err in e.errors()
        )
        raise SettingsError(path, f"Schema validation failed: {field_errors}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise SettingsError(path, str(e)) from e


def _locate(candidate: Path) -> Optional[Path]:
    """Return an executable path for *candidate* (a path or a bare name), or None."""
    found = shutil.which(str(candidate))
    if found is not None:
        return Path(found)
    if candidate.is_file():
        return candidate
    return None


def _sibling_ffprobe(ffmpeg: Path) -> Path:
    return ffmpeg.with_name(ffmpeg.name.replace("ffmpeg", "ffprobe"))


def resolve_settings(
    ffmpeg: Optional[Path] = None,
    ffprobe: Optional[Path] = None,
    config_path: Optional[Path] = None,
) -> ToolSettings:
    """Build the ToolSettings for a run, resolving the FFmpeg executables.

    Precedence for each executable: explicit argument, settings file,
    TRIMFLOW_FFMPEG / TRIMFLOW_FFPROBE, then PATH. ffprobe additionally
    falls back to the binary next to the resolved ffmpeg.

    Raises:
        SettingsError: if *config_path* cannot be loaded.
        ToolNotFoundError: if ffmpeg cannot be found.
    """
    base = load_settings(config_path) if config_path is not None else ToolSettings()
    explicit = base.model_fields_set

    if ffmpeg is None:
        if "ffmpeg_path" in explicit:
            ffmpeg = base.ffmpeg_path
        elif os.environ.get(FFMPEG_ENV):
            ffmpeg = Path(os.environ[FFMPEG_ENV]).expanduser()
        else:
            ffmpeg = Path("ffmpeg")

    ffmpeg_resolved = _locate(ffmpeg)
    if ffmpeg_resolved is None:
        raise ToolNotFoundError(ffmpeg)

    if ffprobe is None:
        if base.ffprobe_path is not None:
            ffprobe = base.ffprobe_path
        elif os.environ.get(FFPROBE_ENV):
            ffprobe = Path(os.environ[FFPROBE_ENV]).expanduser()

    if ffprobe is not None:
        ffprobe_resolved = _locate(ffprobe)
    else:
        sibling = _sibling_ffprobe(ffmpeg_resolved)
        ffprobe_resolved = sibling if sibling.is_file() else _locate(Path("ffprobe"))

    return base.model_copy(update={
        "ffmpeg_path": ffmpeg_resolved,
        "ffprobe_path": ffprobe_resolved,
    })
