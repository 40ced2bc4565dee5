"""
Security utilities for ShortsProcessor.
- Safe subprocess execution (argument arrays only)
- Bounded output capture for chatty tools
- Overlay text sanitisation and ffmpeg filtergraph escaping
"""

import os
import re
import signal
import subprocess
import tempfile
import logging

from app.core.constants import OVERLAY_ALLOWED_CHARS, MAX_OVERLAY_LEN

logger = logging.getLogger(__name__)


class OutputLimitExceeded(Exception):
    """Raised when a subprocess writes more than the allowed output ceiling."""

    def __init__(self, args: list[str], size: int, limit: int):
        self.args_list = list(args)
        self.size = size
        self.limit = limit
        super().__init__(f"Subprocess output {size} bytes exceeds limit of {limit} bytes")


# ── Subprocess safety ─────────────────────────────────────────────────

def _kill_group(proc: subprocess.Popen):
    # the child leads its own session, so its pid is the process group id
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass


def run_subprocess(args: list[str], timeout: float | None = None,
                   **kwargs) -> subprocess.CompletedProcess:
    """
    Execute a subprocess using argument arrays only.
    shell=True is explicitly forbidden.

    The child runs in a new session. On timeout the whole process group is
    killed, including helpers the tool forked (yt-dlp runs ffmpeg), before
    subprocess.TimeoutExpired is raised.
    """
    if not isinstance(args, (list, tuple)):
        raise TypeError("Subprocess args must be a list/tuple, not a string")

    # Force shell=False: drop any caller-supplied value, then set it once
    kwargs.pop('shell', None)
    kwargs.pop('start_new_session', None)

    logger.debug("Running subprocess: %s", ' '.join(str(a) for a in args))
    with subprocess.Popen(args, shell=False, start_new_session=True, **kwargs) as proc:
        try:
            stdout, stderr = proc.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            _kill_group(proc)
            stdout, stderr = proc.communicate()
            logger.warning("Killed process group of %s after %ss", args[0], timeout)
            raise subprocess.TimeoutExpired(proc.args, timeout, output=stdout, stderr=stderr)
        except BaseException:
            _kill_group(proc)
            raise
    return subprocess.CompletedProcess(proc.args, proc.returncode, stdout, stderr)


def run_subprocess_capture(args: list[str], timeout: float = 300,
                           max_output_bytes: int | None = None,
                           **kwargs) -> subprocess.CompletedProcess:
    """
    Run subprocess and capture stdout/stderr.

    With max_output_bytes set, output is spooled to anonymous temp files
    instead of pipes so memory stays bounded however verbose the tool is,
    and OutputLimitExceeded is raised when stdout+stderr exceed the ceiling.
    On timeout the child's process group is killed and
    subprocess.TimeoutExpired propagates.
    """
    if max_output_bytes is None:
        return run_subprocess(
            args,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            timeout=timeout,
            **kwargs,
        )

    with tempfile.TemporaryFile() as out, tempfile.TemporaryFile() as err:
        result = run_subprocess(
            args,
            stdout=out,
            stderr=err,
            timeout=timeout,
            **kwargs,
        )
        size = os.fstat(out.fileno()).st_size + os.fstat(err.fileno()).st_size
        if size > max_output_bytes:
            raise OutputLimitExceeded(args, size, max_output_bytes)

        out.seek(0)
        err.seek(0)
        return subprocess.CompletedProcess(
            result.args,
            result.returncode,
            out.read().decode('utf-8', errors='replace'),
            err.read().decode('utf-8', errors='replace'),
        )


def stderr_tail(text: str | bytes | None, limit: int = 2000) -> str:
    """Last `limit` characters of tool diagnostics; tools print the cause last."""
    if not text:
        return ""
    if isinstance(text, bytes):
        text = text.decode('utf-8', errors='replace')
    return text[-limit:].strip()


# ── Overlay text safety ───────────────────────────────────────────────

def sanitize_overlay_text(text: str) -> str:
    """Keep printable ASCII only and collapse whitespace."""
    if not text:
        return ""
    safe = re.sub(r'\s+', ' ', text)
    safe = re.sub(OVERLAY_ALLOWED_CHARS, '', safe)
    safe = re.sub(r' {2,}', ' ', safe).strip()
    if len(safe) > MAX_OVERLAY_LEN:
        safe = safe[:MAX_OVERLAY_LEN].rstrip()
    return safe


def escape_drawtext(text: str) -> str:
    """
    Escape a value for use as an unquoted drawtext option inside -vf.

    Two levels apply: the filter option level (\\ ' :) and then the
    filtergraph level (\\ ' [ ] , ;). A single quote ends up as \\\\\\'
    so it can never close a quoted section of the graph.
    """
    for ch in ("\\", "'", ":"):
        text = text.replace(ch, "\\" + ch)
    return re.sub(r"([\\'\[\],;])", r"\\\1", text)


def overlay_text(text: str) -> str:
    """Sanitise then escape: the only form overlay text takes in a filtergraph."""
    return escape_drawtext(sanitize_overlay_text(text))
