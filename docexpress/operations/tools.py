"""Helpers for operations that shell out to external tools."""

import logging
import shutil
import subprocess
from typing import List, Optional

from docexpress.core.config import settings
from docexpress.core.errors import ProcessingError

logger = logging.getLogger(__name__)


def find_binary(name: str) -> Optional[str]:
    """Full path of an executable, or None when it is not installed."""
    return shutil.which(name)


def run_command(args: List[str], tool: str, timeout: Optional[int] = None) -> subprocess.CompletedProcess:
    """
    Run an external tool to completion.

    Args:
        args: Command line, program first
        tool: Human-readable tool name for error messages
        timeout: Seconds before the process is killed

    Raises:
        ProcessingError: If the tool is missing, times out or exits non-zero
    """
    binary = find_binary(args[0])
    if binary is None:
        raise ProcessingError(f"{tool} is not available on this server")

    timeout = timeout or settings.operation_timeout_seconds
    logger.debug(f"Running {tool}: {' '.join(args)}")

    try:
        result = subprocess.run(
            [binary, *args[1:]],
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired:
        raise ProcessingError(f"{tool} timed out after {timeout}s") from None

    if result.returncode != 0:
        stderr_tail = (result.stderr or "").strip().splitlines()[-5:]
        logger.error(f"{tool} exited with {result.returncode}: {' | '.join(stderr_tail)}")
        raise ProcessingError(f"{tool} failed with exit code {result.returncode}")

    return result
