"""Supervision of the single live ffmpeg subprocess.

At most one subprocess is tracked at a time. On POSIX it is started as the
leader of a new session so that killing its process group also reaches any
helpers it spawned.
"""

import logging
import os
import signal
import subprocess
import threading
from collections.abc import Sequence
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessResult:
    """Exit status and captured output of a finished subprocess."""

    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class ProcessSupervisor:
    """Run subprocesses one at a time and kill the current one on request.

    ``kill()`` may be called from any thread, or from a signal handler on the
    thread running ``run()``; it is a no-op when nothing is running. A kill
    also latches until ``reset()``, so a process started after the kill but
    before the caller noticed it is killed as soon as it is registered.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._process: subprocess.Popen[str] | None = None
        self._cancelled = False

    @property
    def active(self) -> bool:
        """Whether a subprocess is currently running."""
        with self._lock:
            return self._process is not None and self._process.poll() is None

    @property
    def cancelled(self) -> bool:
        """Whether a kill was requested since the last ``reset()``."""
        with self._lock:
            return self._cancelled

    def reset(self) -> None:
        """Clear a pending kill before starting a new attempt."""
        with self._lock:
            self._cancelled = False

    def run(self, cmd: Sequence[str]) -> ProcessResult:
        """Run ``cmd`` to completion and return its result.

        Raises:
            FileNotFoundError: If the executable does not exist.
            RuntimeError: If another subprocess is still being tracked.
        """
        kwargs: dict[str, object] = {}
        if os.name != "nt":
            kwargs["start_new_session"] = True

        logger.debug(f"Running: {' '.join(str(c) for c in cmd)}")
        with self._lock:
            if self._process is not None:
                raise RuntimeError("A subprocess is already running")
            process = subprocess.Popen(
                [str(c) for c in cmd],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                **kwargs,  # type: ignore[arg-type]
            )
            self._process = process
            if self._cancelled:
                logger.debug(f"Kill pending; stopping process {process.pid} at once")
                self._terminate(process)

        try:
            stdout, stderr = process.communicate()
        finally:
            with self._lock:
                self._process = None

        return ProcessResult(process.returncode, stdout or "", stderr or "")

    def kill(self) -> bool:
        """Kill the tracked subprocess and its process group.

        Returns:
            True if a live process was signalled.
        """
        with self._lock:
            self._cancelled = True
            process = self._process
            if process is None or process.poll() is not None:
                return False
            return self._terminate(process)

    def _terminate(self, process: subprocess.Popen[str]) -> bool:
        if os.name != "nt":
            try:
                os.killpg(process.pid, signal.SIGKILL)
                logger.debug(f"Killed process group {process.pid}")
                return True
            except (OSError, AttributeError) as e:
                logger.warning(
                    f"Process group kill failed for {process.pid} ({e}); "
                    "killing the process only"
                )

        try:
            process.kill()
        except OSError as e:
            logger.debug(f"Process {process.pid} already gone: {e}")
            return False
        return True
