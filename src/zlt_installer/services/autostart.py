"""Per-user XDG autostart entry for graphical sessions."""

import configparser
import logging
import os
import shlex
import subprocess
import time
from pathlib import Path
from typing import List, Optional

from .. import commands, console
from ..errors import ServiceManagerError
from ..fileops import write_atomic
from ..target import InstallTarget, ServiceRegistration
from .base import ServiceRegistrar

logger = logging.getLogger(__name__)

DESKTOP_ENTRY_TEMPLATE = """[Desktop Entry]
Type=Application
Name={display_name}
Comment={display_name} file server
Exec={exec_line}
Path={working_dir}
Terminal=false
X-GNOME-Autostart-enabled=true
StartupNotify=false
Icon=network-server
Categories=Network;FileTransfer;
StartupWMClass={name}
"""

PROFILE_PATH_LINE = 'export PATH="$HOME/.local/bin:$PATH"'

# Characters that force quoting of an Exec argument
_RESERVED = set(' \t\n"\'\\><~|&;$*?#()`')


def quote_exec_argument(argument: str) -> str:
    if not any(c in _RESERVED for c in argument):
        return argument
    escaped = "".join("\\" + c if c in '"`$\\' else c for c in argument)
    return f'"{escaped}"'


def read_desktop_entry(path: Path) -> configparser.SectionProxy:
    parser = configparser.ConfigParser(interpolation=None, strict=False)
    parser.optionxform = str
    parser.read(path, encoding="utf-8")
    return parser["Desktop Entry"]


def autostart_dir(target: InstallTarget) -> Path:
    config_home = os.environ.get("XDG_CONFIG_HOME") or target.home / ".config"
    return Path(config_home) / "autostart"


def launch_autostart_entry(path: Path) -> Optional[subprocess.Popen]:
    """Start an autostart entry the way a session manager does at login.

    Returns None if the entry is hidden or disabled.
    """
    entry = read_desktop_entry(path)
    if entry.get("Hidden", "false").lower() == "true":
        return None
    if entry.get("X-GNOME-Autostart-enabled", "true").lower() == "false":
        return None

    args = shlex.split(entry["Exec"])
    working_dir = entry.get("Path") or None
    if working_dir and not Path(working_dir).is_dir():
        working_dir = None
    logger.debug(f"Launching {args} from {path}")
    return subprocess.Popen(
        args,
        cwd=working_dir,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        start_new_session=True,
    )


class AutostartRegistrar(ServiceRegistrar):
    """Desktop entry started by the next graphical login, not right away."""

    def registration(self, target: InstallTarget) -> ServiceRegistration:
        return ServiceRegistration(path=autostart_dir(target) / f"{target.service_name}.desktop")

    def render(self, target: InstallTarget) -> str:
        return DESKTOP_ENTRY_TEMPLATE.format(
            display_name=target.service_name.upper(),
            name=target.service_name,
            exec_line=quote_exec_argument(str(target.destination_path)),
            working_dir=target.data_directory,
        )

    def register(self, target: InstallTarget) -> None:
        path = self.registration(target).path
        console.status(f"Writing autostart entry {path}")
        write_atomic(path, self.render(target), mode=0o700)

        if self.config["update_profile"]:
            self.ensure_profile_path(target)

        console.status(f"{target.service_name} will start automatically on your next login")
        console.status(f"To start it now, run: {target.destination_path}")

    def ensure_profile_path(self, target: InstallTarget) -> bool:
        """Put ~/.local/bin on PATH for login shells. Returns True if ~/.profile changed."""
        profile = target.home / ".profile"
        if profile.exists() and ".local/bin" in profile.read_text(encoding="utf-8"):
            return False
        console.status(f"Adding ~/.local/bin to PATH in {profile}")
        with open(profile, "a", encoding="utf-8") as f:
            f.write(f"\n{PROFILE_PATH_LINE}\n")
        return True

    def start_now(self, target: InstallTarget) -> Optional[subprocess.Popen]:
        path = self.registration(target).path
        if self.is_active(target):
            console.status(f"{target.service_name} is already running")
            return None
        console.status(f"Starting {target.service_name} from {path}...")
        return launch_autostart_entry(path)

    def _own_processes(self, target: InstallTarget) -> List[str]:
        """Match arguments limiting pgrep/pkill to this user's instances."""
        return ["-u", str(os.getuid()), "-x", target.service_name]

    def is_active(self, target: InstallTarget) -> bool:
        return commands.succeeds(["pgrep", *self._own_processes(target)], timeout=self.timeout)

    def stop(self, target: InstallTarget) -> None:
        """Ask running instances to exit, then force the stragglers.

        Raises ServiceManagerError if an instance survives the forced kill.
        """
        name = target.service_name
        if not self.is_active(target):
            console.status(f"No running {name} process found")
            return

        console.status(f"Stopping {name}...")
        commands.run(["pkill", "-TERM", *self._own_processes(target)], timeout=self.timeout, check=False)
        time.sleep(self.stop_grace_period)
        if self.is_active(target):
            console.warning(f"{name} still running, forcing it to stop")
            command = ["pkill", "-KILL", *self._own_processes(target)]
            result = commands.run(command, timeout=self.timeout, check=False)
            time.sleep(self.stop_grace_period)
            if self.is_active(target):
                reason = result.stderr.strip() or "kill had no effect"
                raise ServiceManagerError(
                    command,
                    result.returncode,
                    result.stderr,
                    message=f"{name} is still running after a forced stop: {reason}",
                )
        console.status(f"{name} process stopped")

    def unregister(self, target: InstallTarget) -> List[str]:
        path = self.registration(target).path
        failures: List[str] = []

        self.best_effort(failures, f"Stopping {target.service_name}", self.stop, target)

        if path.exists():
            console.status(f"Removing autostart entry {path}...")
            self.best_effort(failures, "Removing autostart entry", path.unlink)
        else:
            console.status("No autostart entry found")
        return failures
