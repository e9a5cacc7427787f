"""Errors raised while installing or removing the service."""

from typing import Optional, Sequence


class InstallerError(Exception):
    """Base class for every failure the CLI reports to the operator."""

    exit_code = 1


class UnsupportedPlatformError(InstallerError):
    """The host is neither Linux nor macOS, or the scope is unavailable."""


class PrivilegeError(InstallerError):
    """The operation needs root and the process does not have it."""


class MissingArtifactError(InstallerError):
    """The binary to install does not exist or is not executable."""


class ArtifactIOError(InstallerError):
    """Copying the binary or preparing its directories failed."""

    def __init__(self, message: str, cause: Optional[OSError] = None):
        if cause is not None:
            message = f"{message}: {cause.strerror or cause}"
        super().__init__(message)
        self.cause = cause


class ServiceManagerError(InstallerError):
    """A systemctl/launchctl (or account/process tool) call failed."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: Optional[int] = None,
        stderr: str = "",
        message: Optional[str] = None,
    ):
        self.command = list(command)
        self.returncode = returncode
        self.stderr = (stderr or "").strip()
        if message is None:
            message = f"'{' '.join(self.command)}' failed"
            if returncode is not None:
                message += f" with exit code {returncode}"
            if self.stderr:
                message += f": {self.stderr}"
        super().__init__(message)


class IdentityError(InstallerError):
    """The service account could not be created or removed."""
