"""Bounded subprocess execution with streaming output capture.

Both pipes are drained by background threads while the child runs. FFmpeg
writes its whole report to stderr; reading it only after exit (or letting
it go to an unread PIPE) stalls the child once the OS pipe buffer fills.
"""

from __future__ import annotations

import logging
import subprocess
import threading
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import IO, Sequence

from trimflow.cancellation import CancellationToken
from trimflow.errors import ToolNotFoundError
from trimflow.process.tree import kill_process_tree

logger = logging.getLogger(__name__)

# How often the wait loop wakes up to check the deadline and the token.
POLL_INTERVAL_S = 0.1


class ProcessOutcome(str, Enum):
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ProcessResult:
    """Outcome of one child process invocation.

    ``exit_code`` is None unless ``outcome`` is COMPLETED.
    """

    outcome: ProcessOutcome
    exit_code: int | None
    stdout: str
    stderr: str
    diagnostics: str    # stdout and stderr lines interleaved in arrival order
    elapsed_s: float

    @property
    def ok(self) -> bool:
        return self.outcome is ProcessOutcome.COMPLETED and self.exit_code == 0


def _drain(stream: IO[bytes], own: list[str], combined: list[str]) -> None:
    for raw in iter(stream.readline, b""):
        line = raw.decode("utf-8", errors="replace")
        own.append(line)
        combined.append(line)
    stream.close()


def run_process(
    program: str | Path,
    args: Sequence[str],
    timeout_s: float | None = None,
    cancel_token: CancellationToken | None = None,
    cwd: Path | None = None,
    kill_grace_s: float = 2.0,
) -> ProcessResult:
    """Run *program* with *args* and wait for it, its deadline, or cancellation.

    Parameters
    ----------
    program:
        Executable path or name.
    args:
        Argument vector, excluding the program itself.
    timeout_s:
        Deadline in seconds. None waits indefinitely.
    cancel_token:
        When cancelled while the child runs, the child is killed.
    cwd:
        Working directory for the child.
    kill_grace_s:
        How long to wait for the killed process tree and the reader threads
        to wind down.

    Returns
    -------
    ProcessResult
        With outcome TIMED_OUT or CANCELLED the process tree has already been
        force-killed. Nothing is retried here.

    Raises
    ------
    ToolNotFoundError
        If *program* cannot be executed.
    """
    cmd = [str(program), *args]
    logger.debug("Running: %s", subprocess.list2cmdline(cmd))

    try:
        proc = subprocess.Popen(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            cwd=str(cwd) if cwd is not None else None,
        )
    except (FileNotFoundError, PermissionError) as exc:
        raise ToolNotFoundError(program) from exc

    stdout_lines: list[str] = []
    stderr_lines: list[str] = []
    combined: list[str] = []
    readers = [
        threading.Thread(target=_drain, args=(proc.stdout, stdout_lines, combined), daemon=True),
        threading.Thread(target=_drain, args=(proc.stderr, stderr_lines, combined), daemon=True),
    ]
    for reader in readers:
        reader.start()

    started = time.monotonic()
    deadline = started + timeout_s if timeout_s is not None else None
    outcome = ProcessOutcome.COMPLETED
    exit_code: int | None = None

    while True:
        try:
            exit_code = proc.wait(timeout=POLL_INTERVAL_S)
            break
        except subprocess.TimeoutExpired:
            pass
        if cancel_token is not None and cancel_token.is_cancelled:
            outcome = ProcessOutcome.CANCELLED
            break
        if deadline is not None and time.monotonic() >= deadline:
            outcome = ProcessOutcome.TIMED_OUT
            break

    if outcome is not ProcessOutcome.COMPLETED:
        logger.debug("Killing PID %d (%s)", proc.pid, outcome.value)
        kill_process_tree(proc.pid, timeout=kill_grace_s)
        try:
            proc.wait(timeout=kill_grace_s)
        except subprocess.TimeoutExpired:
            logger.warning("PID %d did not exit after kill", proc.pid)
        exit_code = None

    for reader in readers:
        reader.join(timeout=kill_grace_s)

    elapsed = time.monotonic() - started
    return ProcessResult(
        outcome=outcome,
        exit_code=exit_code,
        stdout="".join(stdout_lines),
        stderr="".join(stderr_lines),
        diagnostics="".join(combined),
        elapsed_s=elapsed,
    )
