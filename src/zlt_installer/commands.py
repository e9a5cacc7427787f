"""Thin wrapper around the external tools the installer drives."""

import logging
import subprocess
from typing import Optional, Sequence

from .errors import ServiceManagerError

logger = logging.getLogger(__name__)


def run(
    args: Sequence[str],
    timeout: Optional[float] = None,
    check: bool = True,
) -> subprocess.CompletedProcess:
    """Run a command and capture its output.

    A missing executable or a non-zero exit (when ``check`` is set) raises
    ``ServiceManagerError``. A timeout propagates as
    ``subprocess.TimeoutExpired`` so callers can decide whether it matters.
    """
    args = [str(a) for a in args]
    logger.debug(f"Running: {' '.join(args)}")
    try:
        result = subprocess.run(args, capture_output=True, text=True, timeout=timeout)
    except FileNotFoundError:
        raise ServiceManagerError(args, message=f"{args[0]} not found on this system")

    if result.stdout:
        logger.debug(result.stdout.rstrip())
    if result.stderr:
        logger.debug(result.stderr.rstrip())

    if check and result.returncode != 0:
        raise ServiceManagerError(args, result.returncode, result.stderr)
    return result


def succeeds(args: Sequence[str], timeout: Optional[float] = None) -> bool:
    """Return True if the command exists, finishes in time and exits 0."""
    try:
        return run(args, timeout=timeout, check=False).returncode == 0
    except (ServiceManagerError, subprocess.TimeoutExpired):
        return False
