"""Platform detection and per-platform install layouts."""

import logging
import os
import platform
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Union

from ..errors import UnsupportedPlatformError
from ..target import InstallTarget, Scope

if TYPE_CHECKING:
    from ..config import Config
    from .base import BaseLayout

logger = logging.getLogger(__name__)


def is_privileged() -> bool:
    """True when running with root's effective user id."""
    geteuid = getattr(os, "geteuid", None)
    return geteuid is not None and geteuid() == 0


def get_layout(config: "Config") -> "BaseLayout":
    """Get the layout for the current operating system."""
    system = platform.system()

    if system == "Linux":
        from .linux import LinuxLayout

        return LinuxLayout(config)
    elif system == "Darwin":
        from .darwin import DarwinLayout

        return DarwinLayout(config)
    else:
        raise UnsupportedPlatformError(
            f"Unsupported platform: {system or 'unknown'} (only Linux and macOS are supported)"
        )


def detect(
    config: "Config",
    scope: Optional[Scope] = None,
    binary_source: Optional[Union[str, Path]] = None,
) -> InstallTarget:
    """Resolve the install target for this host.

    Without an explicit scope, root gets a system install and everyone else
    a user install. Nothing on the host is modified.
    """
    layout = get_layout(config)
    if scope is None:
        scope = Scope.SYSTEM if is_privileged() else Scope.USER
        logger.debug(f"Scope resolved from privilege: {scope.value}")

    return layout.resolve(scope, binary_source)
