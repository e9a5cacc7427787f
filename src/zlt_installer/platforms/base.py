"""Base install layout."""

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

from ..target import InstallTarget, Platform, Scope

logger = logging.getLogger(__name__)


class BaseLayout(ABC):
    """Maps a scope to concrete paths and names on one operating system."""

    platform: Platform

    def __init__(self, config):
        """Initialize the layout."""
        self.config = config
        self.root = Path(config["install_root"])
        self.service_name = config["service_name"]

    @property
    def identity_name(self) -> str:
        return self.config["identity_name"]

    def default_source(self, scope: Scope) -> Path:
        """Where the binary is expected when neither CLI nor config name one."""
        if scope is Scope.SYSTEM:
            return Path("target") / "release" / self.service_name
        return Path(self.service_name)

    def source_path(self, scope: Scope, binary_source=None) -> Path:
        source = binary_source or self.config.get("binary_source") or self.default_source(scope)
        return Path(source).expanduser().absolute()

    def system_path(self, path: str) -> Path:
        return self.root / path.lstrip("/")

    def resolve(
        self, scope: Scope, binary_source: Optional[Union[str, Path]] = None
    ) -> InstallTarget:
        source = self.source_path(scope, binary_source)
        if scope is Scope.SYSTEM:
            target = self.system_target(source)
        else:
            target = self.user_target(source)
        logger.debug(f"Resolved install target:\n{target.describe()}")
        return target

    @abstractmethod
    def system_target(self, source: Path) -> InstallTarget:
        """Describe a machine-wide install."""

    def user_target(self, source: Path) -> InstallTarget:
        """Describe a per-user install following the XDG base directories."""
        home = Path.home()
        data_home = Path(os.environ.get("XDG_DATA_HOME") or home / ".local" / "share")
        return InstallTarget(
            platform=self.platform,
            scope=Scope.USER,
            binary_path=source,
            destination_path=home / ".local" / "bin" / self.service_name,
            service_name=self.service_name,
            service_identity_name=None,
            data_directory=data_home / self.service_name,
            log_paths=(),
            launchd_label=self.config["launchd_label"],
            root=self.root,
            home=home,
        )
