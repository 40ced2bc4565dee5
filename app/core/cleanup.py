"""
Cleanup: delete per-job temp artifacts after completion or failure.
Never raises; a failed deletion is logged and must not replace the
error that caused the cleanup.
"""

import shutil
import logging
from pathlib import Path
from typing import Iterable

logger = logging.getLogger(__name__)

# Leftovers yt-dlp may write next to the target path
_SIDECAR_SUFFIXES = ('.part', '.ytdl')


def remove_file(path: Path) -> bool:
    """Delete one file. Returns True if something was deleted."""
    try:
        path.unlink()
        logger.debug("Deleted: %s", path)
        return True
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.warning("Failed to delete %s: %s", path, e)
        return False


def cleanup_paths(paths: Iterable[Path]) -> int:
    """
    Best-effort deletion of job files and their tool sidecars.
    Returns the number of files deleted.
    """
    deleted = 0
    for path in paths:
        if remove_file(path):
            deleted += 1
        for suffix in _SIDECAR_SUFFIXES:
            if remove_file(path.with_name(path.name + suffix)):
                deleted += 1
    return deleted


def cleanup_workspace(workspace: Path):
    """Delete a per-request work directory and everything in it."""
    if not workspace.exists():
        return
    try:
        shutil.rmtree(workspace)
        logger.debug("Removed workspace: %s", workspace)
    except Exception as e:
        logger.warning("Failed to delete %s: %s", workspace, e)
