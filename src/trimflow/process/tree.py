"""Process tree termination.

FFmpeg can spawn helpers (hardware encoders, protocol handlers); killing only
the direct child leaves them orphaned and holding file handles in the
workspace, which then cannot be removed.
"""
import logging

import psutil

logger = logging.getLogger(__name__)


def kill_process_tree(pid: int, timeout: float = 2.0) -> list[int]:
    """Force-kill *pid* and all of its descendants.

    Descendants are collected before the parent is killed (once the parent is
    gone they are re-parented and can no longer be found), deepest first.

    Returns
    -------
    list[int]
        PIDs that are still alive after waiting *timeout* seconds. Normally
        empty.
    """
    try:
        parent = psutil.Process(pid)
    except psutil.NoSuchProcess:
        return []

    try:
        children = parent.children(recursive=True)
    except psutil.NoSuchProcess:
        children = []

    procs = list(reversed(children)) + [parent]
    logger.debug("Force-killing process tree: %s", [p.pid for p in procs])

    for proc in procs:
        try:
            proc.kill()
        except psutil.NoSuchProcess:
            pass
        except psutil.AccessDenied:
            logger.warning("Access denied killing PID %d", proc.pid)

    _, alive = psutil.wait_procs(procs, timeout=timeout)
    if alive:
        logger.warning("Processes survived kill: %s", [p.pid for p in alive])
    return [p.pid for p in alive]
