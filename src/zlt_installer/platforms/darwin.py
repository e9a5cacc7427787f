"""macOS install layout."""

from pathlib import Path

from ..errors import UnsupportedPlatformError
from ..target import InstallTarget, Platform, Scope
from .base import BaseLayout


class DarwinLayout(BaseLayout):
    """Homebrew-style /usr/local paths for a launchd host."""

    platform = Platform.MACOS

    @property
    def identity_name(self) -> str:
        # Role accounts on macOS are conventionally underscore-prefixed
        name = self.config["identity_name"]
        return name if name.startswith("_") else f"_{name}"

    def system_target(self, source: Path) -> InstallTarget:
        log_dir = self.system_path("/usr/local/var/log")
        return InstallTarget(
            platform=self.platform,
            scope=Scope.SYSTEM,
            binary_path=source,
            destination_path=self.system_path(f"/usr/local/bin/{self.service_name}"),
            service_name=self.service_name,
            service_identity_name=self.identity_name,
            data_directory=self.system_path(f"/usr/local/var/{self.service_name}"),
            log_paths=(
                log_dir / f"{self.service_name}.out",
                log_dir / f"{self.service_name}.err",
            ),
            launchd_label=self.config["launchd_label"],
            root=self.root,
            home=Path.home(),
        )

    def user_target(self, source: Path) -> InstallTarget:
        raise UnsupportedPlatformError(
            "User-level autostart needs an XDG desktop session; "
            "on macOS install system-wide with sudo"
        )
