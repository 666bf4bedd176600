"""Thin wrappers around ``subprocess`` used by the drivers and state checks."""

import logging
import os
import subprocess
from typing import Optional, Sequence

from getoai.errors import ExternalProcessFailure
from getoai.models import CommandResult
from getoai.ui import print_command

logger = logging.getLogger("getoai.process")


def _merged_env(env: Optional[dict]) -> Optional[dict]:
    if not env:
        return None
    return {**os.environ, **env}


def is_root() -> bool:
    geteuid = getattr(os, "geteuid", None)
    return geteuid is not None and geteuid() == 0


def privileged(cmd: Sequence[str]) -> list[str]:
    """Prefix a command with sudo unless already running as root"""
    if is_root():
        return list(cmd)
    return ["sudo", *cmd]


def run(
    cmd: Sequence[str],
    env: Optional[dict] = None,
    cwd: Optional[str] = None,
    hint: str = "",
):
    """Run a command with output streamed to the terminal.

    Raises ``ExternalProcessFailure`` when the command exits non-zero or
    cannot be started.
    """
    cmd = [str(c) for c in cmd]
    print_command(cmd)
    logger.debug("run: %s (cwd=%s)", cmd, cwd)
    try:
        result = subprocess.run(cmd, env=_merged_env(env), cwd=cwd, check=False)
    except FileNotFoundError:
        raise ExternalProcessFailure(
            cmd, 127, message=f"Command not found: {cmd[0]}", hint=hint
        )
    if result.returncode != 0:
        raise ExternalProcessFailure(cmd, result.returncode, hint=hint)


def run_captured(
    cmd: Sequence[str], env: Optional[dict] = None, cwd: Optional[str] = None
) -> CommandResult:
    """Run a command silently, returning combined stdout/stderr"""
    cmd = [str(c) for c in cmd]
    logger.debug("run (captured): %s", cmd)
    try:
        result = subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            stdin=subprocess.DEVNULL,
            text=True,
            env=_merged_env(env),
            cwd=cwd,
            check=False,
        )
    except OSError as e:
        logger.debug("Cannot run %s: %s", cmd[0], e)
        return CommandResult(success=False, output=str(e))
    return CommandResult(success=result.returncode == 0, output=result.stdout or "")


def run_pipe(fetch_cmd: Sequence[str], shell_cmd: Sequence[str], hint: str = ""):
    """Stream the output of ``fetch_cmd`` into ``shell_cmd``'s stdin.

    Both processes must exit zero; the shell's failure is reported first.
    """
    fetch_cmd = [str(c) for c in fetch_cmd]
    shell_cmd = [str(c) for c in shell_cmd]
    print_command([*fetch_cmd, "|", *shell_cmd])
    logger.debug("pipe: %s | %s", fetch_cmd, shell_cmd)
    try:
        fetch = subprocess.Popen(fetch_cmd, stdout=subprocess.PIPE)
    except FileNotFoundError:
        raise ExternalProcessFailure(
            fetch_cmd, 127, message=f"Command not found: {fetch_cmd[0]}", hint=hint
        )
    try:
        shell = subprocess.run(shell_cmd, stdin=fetch.stdout, check=False)
    except FileNotFoundError:
        raise ExternalProcessFailure(
            shell_cmd, 127, message=f"Command not found: {shell_cmd[0]}", hint=hint
        )
    finally:
        # Let the fetcher see SIGPIPE if the shell exits early
        fetch.stdout.close()
        fetch_rc = fetch.wait()
    if shell.returncode != 0:
        raise ExternalProcessFailure(shell_cmd, shell.returncode, hint=hint)
    if fetch_rc != 0:
        raise ExternalProcessFailure(fetch_cmd, fetch_rc, hint=hint)
