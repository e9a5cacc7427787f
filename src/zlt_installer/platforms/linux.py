"""Linux install layout."""

from pathlib import Path

from ..target import InstallTarget, Platform, Scope
from .base import BaseLayout


class LinuxLayout(BaseLayout):
    """FHS paths for a systemd host."""

    platform = Platform.LINUX

    def system_target(self, source: Path) -> InstallTarget:
        log_dir = self.system_path(f"/var/log/{self.service_name}")
        return InstallTarget(
            platform=self.platform,
            scope=Scope.SYSTEM,
            binary_path=source,
            destination_path=self.system_path(f"/usr/local/bin/{self.service_name}"),
            service_name=self.service_name,
            service_identity_name=self.identity_name,
            data_directory=self.system_path(f"/var/lib/{self.service_name}"),
            log_paths=(
                log_dir / f"{self.service_name}.out",
                log_dir / f"{self.service_name}.err",
            ),
            launchd_label=self.config["launchd_label"],
            root=self.root,
            home=Path.home(),
        )
