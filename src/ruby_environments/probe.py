from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import platform
import shlex
import signal
from dataclasses import dataclass
from pathlib import Path

from ruby_environments.exceptions import ProbeInvocationError, ProbeTimeoutError
from ruby_environments.internal_config import (
    ACTIVATION_SCRIPT,
    PROBE_TIMEOUT_SECONDS,
    RUBY_PROBE_FLAGS,
)

logger: logging.Logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProbeOutput:
    stdout: str
    stderr: str


def is_windows() -> bool:
    return platform.system().lower() == "windows"


def resolve_user_shell(configured: str | None = None) -> str | None:
    """Return the shell used to launch the probe, or None for the platform default.

    Windows always uses the default shell. Elsewhere an explicitly configured
    shell wins over $SHELL.
    """
    if is_windows():
        return None
    shell = configured if configured is not None else os.environ.get("SHELL", "")
    shell = shell.strip()
    return shell or None


def _kill(process: asyncio.subprocess.Process) -> None:
    with contextlib.suppress(ProcessLookupError):
        if is_windows():
            process.kill()
        else:
            os.killpg(process.pid, signal.SIGKILL)


def build_probe_command(executable: str, script: Path = ACTIVATION_SCRIPT) -> str:
    """Return the shell command line that runs activation.rb with *executable*."""
    if is_windows():
        quoted_script = f'"{script}"'
    else:
        quoted_script = shlex.quote(str(script))
    return " ".join([executable, *RUBY_PROBE_FLAGS, quoted_script])


class ProbeInvoker(object):
    """Run activation.rb through the user's shell and capture its output."""

    shell: str | None = None
    timeout: float = PROBE_TIMEOUT_SECONDS
    script: Path = ACTIVATION_SCRIPT

    def __init__(
        self,
        shell: str | None = None,
        timeout: float = PROBE_TIMEOUT_SECONDS,
        script: Path = ACTIVATION_SCRIPT,
    ) -> None:
        self.shell = shell
        self.timeout = timeout
        self.script = script

    async def run(
        self,
        executable: str,
        cwd: Path,
        timeout: float | None = None,
    ) -> ProbeOutput:
        """Execute one probe. Raises ProbeInvocationError on any failure."""
        command = build_probe_command(executable, self.script)
        shell = resolve_user_shell(self.shell)
        limit = self.timeout if timeout is None else timeout

        logger.debug(f"Executing command: {command}")
        logger.debug(f"Using shell: {shell}" if shell else "Using default shell")
        logger.debug(f"Working directory: {cwd}")

        try:
            process = await asyncio.create_subprocess_shell(
                command,
                cwd=str(cwd),
                # keep PATH customizations of the current process
                env=os.environ.copy(),
                executable=shell,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                # own process group so a timeout also stops rc file children
                start_new_session=not is_windows(),
            )
        except OSError as exc:
            raise ProbeInvocationError(f"Failed to spawn '{command}': {exc}") from exc

        try:
            raw_stdout, raw_stderr = await asyncio.wait_for(
                process.communicate(), timeout=limit
            )
        except asyncio.TimeoutError as exc:
            raise ProbeTimeoutError(
                f"'{command}' did not finish within {limit} seconds"
            ) from exc
        finally:
            if process.returncode is None:
                _kill(process)
                await process.wait()

        stdout = raw_stdout.decode("utf-8", errors="replace")
        stderr = raw_stderr.decode("utf-8", errors="replace")

        logger.debug(f"Command stdout length: {len(stdout)}")
        logger.debug(f"Command stderr length: {len(stderr)}")

        if process.returncode != 0:
            raise ProbeInvocationError(
                f"'{command}' exited with status {process.returncode}",
                returncode=process.returncode,
                stdout=stdout,
                stderr=stderr,
            )

        return ProbeOutput(stdout=stdout, stderr=stderr)
