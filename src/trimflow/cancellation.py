"""Cooperative cancellation shared between the pipeline and the process runner."""
import threading

from trimflow.errors import PipelineCancelled


class CancellationToken:
    """Thin wrapper around ``threading.Event``.

    The pipeline checks it at its checkpoints; the process runner polls it
    while waiting on a child so a long FFmpeg call is killed promptly.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise PipelineCancelled()

    def wait(self, timeout: float | None = None) -> bool:
        """Block up to *timeout* seconds; return True if cancellation was requested."""
        return self._event.wait(timeout)
