"""
Shell command runner — execute one program and capture its output.

Every PostgreSQL utility invocation goes through ``run_command``. Output
is decoded as text; a non-zero exit becomes CommandError carrying both
streams, a timeout becomes CommandTimeoutError.

Timeouts terminate the direct child only. Processes it spawned (the
postmaster behind ``pg_ctl start``) are not guaranteed to be killed.
"""

from __future__ import annotations

import logging
import os
import subprocess
import time
from collections.abc import Mapping, Sequence
from pathlib import Path

from pg_embedded.core.errors import CommandError, CommandTimeoutError

logger = logging.getLogger(__name__)


def run_command(
    argv: Sequence[str],
    env: Mapping[str, str] | None = None,
    timeout: float | None = None,
    capture: bool = True,
) -> tuple[str, str]:
    """Run ``argv`` and return ``(stdout, stderr)``.

    Args:
        argv: Program path followed by its arguments.
        env: Extra environment variables, layered over ``os.environ``.
        timeout: Seconds before giving up; None waits forever.
        capture: When False the child inherits our stdout/stderr and the
            returned strings are empty.

    Raises:
        CommandError: Non-zero exit status, or the program cannot be run.
        CommandTimeoutError: ``timeout`` elapsed.
    """
    program = Path(argv[0]).name
    logger.debug("Executing: %s", " ".join(argv))
    start = time.monotonic()

    try:
        result = subprocess.run(
            list(argv),
            env={**os.environ, **env} if env else None,
            capture_output=capture,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise CommandTimeoutError(program, timeout or 0) from e
    except OSError as e:
        raise CommandError(program, -1, stderr=str(e)) from e

    elapsed_ms = int((time.monotonic() - start) * 1000)
    stdout = result.stdout or ""
    stderr = result.stderr or ""
    logger.debug("%s exited with %d in %dms", program, result.returncode, elapsed_ms)

    if result.returncode != 0:
        raise CommandError(program, result.returncode, stdout, stderr)
    return stdout, stderr
