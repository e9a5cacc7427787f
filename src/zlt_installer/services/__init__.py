"""Service registration with systemd, launchd or the desktop session."""

from ..errors import UnsupportedPlatformError
from ..target import InstallTarget, Platform, Scope
from .base import ServiceRegistrar


def get_registrar(target: InstallTarget, config) -> ServiceRegistrar:
    """Pick the registrar for the target's platform and scope."""
    if target.scope is Scope.USER:
        if target.platform is not Platform.LINUX:
            raise UnsupportedPlatformError("User-level autostart is only supported on Linux")
        from .autostart import AutostartRegistrar

        return AutostartRegistrar(config)
    elif target.platform is Platform.LINUX:
        from .systemd import SystemdRegistrar

        return SystemdRegistrar(config)
    elif target.platform is Platform.MACOS:
        from .launchd import LaunchdRegistrar

        return LaunchdRegistrar(config)
    else:
        raise UnsupportedPlatformError(f"Unsupported platform: {target.platform}")


__all__ = ["ServiceRegistrar", "get_registrar"]
