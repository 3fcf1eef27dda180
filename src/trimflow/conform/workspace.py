"""Per-file temporary workspace holding extracted clips and the concat manifest."""

from __future__ import annotations

import logging
import shutil
import tempfile
import time
from pathlib import Path

logger = logging.getLogger(__name__)

WORKSPACE_PREFIX = "trimflow_"
CLIP_SUFFIX = ".mp4"
MANIFEST_NAME = "concat.txt"


class Workspace:
    """A uniquely named temp directory owned by one pipeline run.

    ``clip_paths`` records clips in extraction order; the concat manifest is
    written from this list, never from a directory listing.
    """

    def __init__(self, root: Path) -> None:
        self.root = root
        self.clip_paths: list[Path] = []

    @classmethod
    def create(cls, parent: Path | None = None) -> "Workspace":
        root = Path(tempfile.mkdtemp(prefix=WORKSPACE_PREFIX, dir=parent))
        logger.debug("Created workspace %s", root)
        return cls(root)

    @property
    def manifest_path(self) -> Path:
        return self.root / MANIFEST_NAME

    def clip_path(self, index: int, count: int) -> Path:
        """Return the clip path for segment *index* of *count*.

        Indices are zero-padded to at least three digits and to the width of
        the largest index, so name order always equals index order.
        """
        width = max(3, len(str(max(count - 1, 0))))
        return self.root / f"segment_{index:0{width}d}{CLIP_SUFFIX}"

    def remove(self, attempts: int = 3, backoff_s: float = 0.5) -> bool:
        """Delete the workspace, retrying while files are still locked.

        Returns True when the directory is gone.
        """
        for attempt in range(1, attempts + 1):
            if not self.root.exists():
                return True
            try:
                shutil.rmtree(self.root)
                return True
            except OSError as exc:
                logger.debug("Workspace removal attempt %d/%d failed: %s", attempt, attempts, exc)
                if attempt < attempts:
                    time.sleep(backoff_s)
        return not self.root.exists()
