"""External commands started on events, optionally restarted when they exit."""

from __future__ import annotations

import os
import shlex
import signal
import subprocess
import threading
from dataclasses import dataclass

RESTART_PAUSE = 5.0
_POLL_INTERVAL = 0.05
_IS_WINDOWS = os.name == "nt"


@dataclass(frozen=True)
class Environment:
    """Values exposed to a command as RTSP_PATH and RTSP_PORT."""

    path: str = ""
    port: str = ""

    def as_variables(self) -> dict[str, str]:
        return {"RTSP_PATH": self.path, "RTSP_PORT": self.port}


def _split_windows(cmdstr: str, env: Environment) -> list[str]:
    # Without a shell, variables are substituted by hand so that commands
    # written for a POSIX shell keep working.
    expanded = cmdstr.replace("$RTSP_PATH", env.path).replace("$RTSP_PORT", env.port)
    return shlex.split(expanded)


class Cmd:
    """A command running in the background until closed."""

    def __init__(self, cmdstr: str, restart: bool, env: Environment) -> None:
        self._cmdstr = cmdstr
        self._restart = restart
        self._env = env
        self._terminate = threading.Event()
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def close(self) -> None:
        """Stop the command and wait for it to exit."""
        self._terminate.set()
        self._thread.join()

    def __enter__(self) -> Cmd:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _run(self) -> None:
        while self._run_inner():
            if not self._restart:
                self._terminate.wait()
                return
            if self._terminate.wait(RESTART_PAUSE):
                return

    def _start(self) -> subprocess.Popen:
        variables = {**os.environ, **self._env.as_variables()}
        if _IS_WINDOWS:
            args = _split_windows(self._cmdstr, self._env)
            if not args:
                raise ValueError("empty command")
            return subprocess.Popen(args, env=variables)
        return subprocess.Popen(["/bin/sh", "-c", "exec " + self._cmdstr], env=variables)

    def _stop(self, proc: subprocess.Popen) -> None:
        try:
            if _IS_WINDOWS:
                proc.kill()
            else:
                os.kill(proc.pid, signal.SIGQUIT)
        except ProcessLookupError:
            pass
        proc.wait()

    def _run_inner(self) -> bool:
        """Run the command once; return False when asked to terminate."""
        try:
            proc = self._start()
        except (OSError, ValueError):
            return True

        while proc.poll() is None:
            if self._terminate.wait(_POLL_INTERVAL):
                self._stop(proc)
                return False
        return True