"""Descriptors shared by every installation step."""

import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple


class Platform(enum.Enum):
    LINUX = "linux"
    MACOS = "macos"


class Scope(enum.Enum):
    SYSTEM = "system"
    USER = "user"


class InstallState(enum.IntEnum):
    """Progress of an installation, ordered from nothing to running."""

    ABSENT = 0
    IDENTITY_READY = 1
    ARTIFACT_PLACED = 2
    REGISTERED = 3
    RUNNING = 4

    @property
    def label(self) -> str:
        return self.name.replace("_", " ").title()


@dataclass(frozen=True)
class InstallTarget:
    """Everything one run needs to know about where things go.

    Resolved once from the environment and configuration, then handed to
    every step unchanged. Install and uninstall derive all their paths from
    this object, so teardown finds exactly what creation produced.
    """

    platform: Platform
    scope: Scope
    binary_path: Path
    destination_path: Path
    service_name: str
    service_identity_name: Optional[str]
    data_directory: Path
    log_paths: Tuple[Path, ...] = ()
    launchd_label: str = "com.zlt.service"
    root: Path = Path("/")
    home: Path = field(default_factory=Path.home)

    @property
    def is_system(self) -> bool:
        return self.scope is Scope.SYSTEM

    def system_path(self, path: str) -> Path:
        """Place an absolute system path under the configured install root."""
        return self.root / path.lstrip("/")

    def describe(self) -> str:
        lines = [
            f"Platform:    {self.platform.value}",
            f"Scope:       {self.scope.value}",
            f"Source:      {self.binary_path}",
            f"Binary:      {self.destination_path}",
            f"Data:        {self.data_directory}",
        ]
        if self.service_identity_name:
            lines.append(f"Identity:    {self.service_identity_name}")
        for log_path in self.log_paths:
            lines.append(f"Log:         {log_path}")
        return "\n".join(lines)


@dataclass(frozen=True)
class ServiceIdentity:
    """The non-login account a system install runs as."""

    name: str
    uid: int
    gid: int
    created: bool = False


@dataclass(frozen=True)
class ServiceRegistration:
    """Where the service manager keeps its record of the service."""

    path: Path
    instance: Optional[str] = None
