"""
External command execution

Runs forge and helper scripts to completion, buffering their output. There is
no streaming, no timeout and no cancellation: a hung command blocks the
pipeline.
"""

import logging
import subprocess
from typing import Iterable, Mapping, Optional, Sequence

from .common import run_sync
from .exceptions import CommandError, ErrorCodes

LOG = logging.getLogger(__name__)

REDACTED = "****"


def format_command(args: Sequence[str], redact: Iterable[str] = ()) -> str:
    """Render `args` for logging with secret values masked"""
    secrets = {s for s in redact if s}
    return " ".join(REDACTED if arg in secrets else arg for arg in args)


async def run_command(
    args: Sequence[str],
    cwd: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    redact: Iterable[str] = ()
) -> str:
    """
    Run a command and return its stdout.

    Args:
        args: Program and arguments (no shell interpolation)
        cwd: Working directory
        env: Full environment for the child, inherited when None
        redact: Values to mask when logging the command line

    Returns:
        Captured stdout

    Raises:
        CommandError: Non-zero exit status or missing executable
    """
    args = [str(a) for a in args]
    printable = format_command(args, redact)
    LOG.info(f"Executing: {printable}")

    try:
        result = await run_sync(
            subprocess.run,
            args,
            cwd=cwd,
            env=dict(env) if env is not None else None,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError as e:
        raise CommandError(
            f"Executable not found: {args[0]}",
            code=ErrorCodes.COMMAND_NOT_FOUND,
            cause=e
        )
    except OSError as e:
        raise CommandError(f"Failed to start {args[0]}: {e}", cause=e)

    if result.returncode != 0:
        LOG.error(f"Command failed with exit code {result.returncode}:\n{result.stderr}")
        raise CommandError(
            f"Command failed with exit code {result.returncode}: {printable}",
            returncode=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr
        )

    if result.stderr:
        LOG.info(f"stderr: {result.stderr}")
    LOG.debug(f"stdout: {result.stdout}")
    return result.stdout
