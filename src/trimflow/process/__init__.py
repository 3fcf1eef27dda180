"""Child process execution: bounded waits, output capture, tree kill."""
from trimflow.process.runner import ProcessOutcome, ProcessResult, run_process
from trimflow.process.tree import kill_process_tree

__all__ = [
    "ProcessOutcome",
    "ProcessResult",
    "run_process",
    "kill_process_tree",
]
