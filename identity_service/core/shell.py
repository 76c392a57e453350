"""Subprocess helper for the docker and git command lines."""
from __future__ import annotations
import logging
import subprocess
from pathlib import Path
from typing import Iterable, Optional, Sequence, Union

logger = logging.getLogger(__name__)

MASK = "****"
COMMAND_TIMEOUT = 900


class CommandError(RuntimeError):
    """A command exited with a non-zero status.

    Attributes:
        command: Command line with secrets masked
        returncode: Exit status
        output: Combined stdout/stderr with secrets masked
    """

    def __init__(self, command: str, returncode: int, output: str):
        self.command = command
        self.returncode = returncode
        self.output = output
        detail = output.strip().splitlines()[-1] if output.strip() else "no output"
        super().__init__(f"Command failed ({returncode}): {command}: {detail}")


def mask(text: str, secrets: Iterable[str]) -> str:
    """Replace every secret occurring in text."""
    for secret in secrets:
        if secret:
            text = text.replace(secret, MASK)
    return text


def run_command(
    args: Sequence[str],
    cwd: Optional[Union[str, Path]] = None,
    input: Optional[str] = None,
    secrets: Iterable[str] = (),
    timeout: int = COMMAND_TIMEOUT,
) -> subprocess.CompletedProcess:
    """Run a command to completion and return the completed process.

    stderr is merged into stdout. Secrets are masked in logs and errors,
    never in the arguments passed to the process.

    Raises:
        CommandError: On non-zero exit, missing executable or timeout
    """
    secrets = [secret for secret in secrets if secret]
    display = mask(" ".join(args), secrets)
    logger.debug("[shell] $ %s (cwd=%s)", display, cwd or ".")

    try:
        result = subprocess.run(
            list(args),
            cwd=str(cwd) if cwd is not None else None,
            input=input,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as exc:
        raise CommandError(display, 127, f"executable not found: {exc.filename or args[0]}") from exc
    except subprocess.TimeoutExpired as exc:
        raise CommandError(display, -1, f"timed out after {timeout}s") from exc

    output = mask(result.stdout or "", secrets)
    if result.returncode != 0:
        logger.warning("[shell] Command failed (%s): %s", result.returncode, display)
        raise CommandError(display, result.returncode, output)
    return result
