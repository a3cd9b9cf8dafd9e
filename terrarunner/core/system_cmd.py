"""
Process execution for Terraform commands.

SystemCmd runs a command in a working directory with extra environment
variables, captures stdout/stderr line by line, optionally logs each
line, and reports the outcome as an immutable CommandResult.
"""

import logging
import os
import shlex
import subprocess
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..security.redactor import OutputRedactor
from ..utils import subprocess_creation_flags

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Result of a Terraform command execution."""
    success: bool
    stdout: str
    stderr: str
    exit_code: int = 0
    command: str = ""  # printable command line


class SystemCmd:
    """
    Runs external commands synchronously.

    - shell=False always (arguments are passed as a list)
    - stderr is drained on a helper thread so neither pipe blocks
    - child environment is os.environ overlaid with the given env
    - captured and logged output pass through the OutputRedactor
    """

    def __init__(self, redactor: Optional[OutputRedactor] = None):
        self._redactor = redactor or OutputRedactor()

    @property
    def redactor(self) -> OutputRedactor:
        return self._redactor

    def set_redactor(self, redactor: OutputRedactor):
        """Configure output redaction for sensitive values."""
        self._redactor = redactor

    def execute(
        self,
        cmd: List[str],
        working_dir: str,
        log_output: bool = True,
        env: Optional[Dict[str, str]] = None,
    ) -> CommandResult:
        """
        Execute a command and capture its output.

        Args:
            cmd: Program and arguments
            working_dir: Directory the command runs in
            log_output: Log each stdout/stderr line as it arrives
            env: Variables added on top of the current process environment

        Returns:
            CommandResult; a process that cannot be started yields
            success=False and exit_code=-1 with the OS error as stderr.
        """
        command_line = shlex.join(cmd)
        child_env = dict(os.environ)
        child_env.update(env or {})

        stdout_lines: List[str] = []
        stderr_lines: List[str] = []

        logger.info(f"Executing command: {command_line} (cwd={working_dir})")

        try:
            process = subprocess.Popen(
                cmd,
                cwd=working_dir,
                env=child_env,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                shell=False,
                creationflags=subprocess_creation_flags(),
            )
        except OSError as e:
            logger.error(f"Failed to start command {command_line}: {e}")
            return CommandResult(
                success=False,
                stdout="",
                stderr=str(e),
                exit_code=-1,
                command=command_line,
            )

        def _read_stderr():
            assert process.stderr is not None
            for line in process.stderr:
                redacted = self._redactor.redact(line.rstrip("\n"))
                stderr_lines.append(redacted)
                if log_output:
                    logger.warning(redacted)

        stderr_thread = threading.Thread(target=_read_stderr, daemon=True)
        stderr_thread.start()

        finished = False
        try:
            assert process.stdout is not None
            for line in process.stdout:
                redacted = self._redactor.redact(line.rstrip("\n"))
                stdout_lines.append(redacted)
                if log_output:
                    logger.info(redacted)

            stderr_thread.join()
            exit_code = process.wait()
            finished = True
        finally:
            if not finished:
                logger.error(f"Reading output of {command_line} failed, killing process")
                process.kill()
                process.wait()
                stderr_thread.join()

        logger.debug(f"Command {command_line} exited with code {exit_code}")

        return CommandResult(
            success=exit_code == 0,
            stdout="\n".join(stdout_lines),
            stderr="\n".join(stderr_lines),
            exit_code=exit_code,
            command=command_line,
        )
