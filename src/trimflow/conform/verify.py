from pathlib import Path

from trimflow.errors import OutputVerificationError


def verify_output(path: Path, index: int | None = None) -> int:
    """Check that FFmpeg actually produced *path*. Returns its size in bytes.

    FFmpeg can exit 0 and still leave nothing usable behind, so the exit
    code alone is not trusted.

    Raises:
        OutputVerificationError: if the file is missing or empty.
    """
    if not path.is_file():
        raise OutputVerificationError(path, "file is missing", index=index)
    size = path.stat().st_size
    if size == 0:
        raise OutputVerificationError(path, "file is empty", index=index)
    return size
