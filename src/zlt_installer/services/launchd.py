"""macOS launchd service installation."""

import logging
import subprocess
from typing import List, Optional
from xml.sax.saxutils import escape

from .. import commands, console
from ..errors import ServiceManagerError
from ..fileops import write_atomic
from ..target import InstallTarget, ServiceRegistration
from .base import ServiceRegistrar

logger = logging.getLogger(__name__)

LAUNCHD_PLIST_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE plist PUBLIC "-//Apple//DTD PLIST 1.0//EN" "http://www.apple.com/DTDs/PropertyList-1.0.dtd">
<plist version="1.0">
<dict>
    <key>Label</key>
    <string>{label}</string>
    <key>ProgramArguments</key>
    <array>
        <string>{exec_path}</string>
    </array>
    <key>UserName</key>
    <string>{user}</string>
    <key>WorkingDirectory</key>
    <string>{working_dir}</string>
    <key>RunAtLoad</key>
    <true/>
    <key>KeepAlive</key>
    <true/>
    <key>StandardOutPath</key>
    <string>{log_path}</string>
    <key>StandardErrorPath</key>
    <string>{error_log_path}</string>
</dict>
</plist>
"""


class LaunchdRegistrar(ServiceRegistrar):
    """System daemon under /Library/LaunchDaemons, loaded at boot."""

    def registration(self, target: InstallTarget) -> ServiceRegistration:
        return ServiceRegistration(
            path=target.system_path(f"/Library/LaunchDaemons/{target.launchd_label}.plist"),
        )

    def render(self, target: InstallTarget) -> str:
        log_path, error_log_path = target.log_paths
        return LAUNCHD_PLIST_TEMPLATE.format(
            label=escape(target.launchd_label),
            exec_path=escape(str(target.destination_path)),
            user=escape(target.service_identity_name or "root"),
            working_dir=escape(str(target.data_directory)),
            log_path=escape(str(log_path)),
            error_log_path=escape(str(error_log_path)),
        )

    def _launchctl(self, *args: str) -> Optional[subprocess.CompletedProcess]:
        """Run launchctl; a timeout is a warning, a failure raises."""
        try:
            return commands.run(["launchctl", *args], timeout=self.timeout)
        except subprocess.TimeoutExpired:
            console.warning(f"launchctl {' '.join(args)} did not finish within {self.timeout:g}s")
            return None

    def is_loaded(self, target: InstallTarget) -> bool:
        return commands.succeeds(["launchctl", "list", target.launchd_label], timeout=self.timeout)

    def is_active(self, target: InstallTarget) -> bool:
        """Loaded and reporting a PID."""
        try:
            result = commands.run(
                ["launchctl", "list", target.launchd_label], timeout=self.timeout, check=False
            )
        except (ServiceManagerError, subprocess.TimeoutExpired):
            return False
        if result.returncode != 0:
            return False
        return '"PID" =' in result.stdout

    def status(self, target: InstallTarget) -> str:
        try:
            result = commands.run(
                ["launchctl", "list", target.launchd_label], timeout=self.timeout, check=False
            )
        except (ServiceManagerError, subprocess.TimeoutExpired) as e:
            return f"Status unavailable: {e}"
        if result.returncode != 0:
            return f"{target.launchd_label} is not loaded"
        return result.stdout.rstrip()

    def register(self, target: InstallTarget) -> None:
        path = self.registration(target).path

        # launchd ignores a rewritten plist until the job is unloaded
        if self.is_loaded(target):
            console.status(f"Unloading previous {target.launchd_label}...")
            self._launchctl("unload", str(path))

        console.status(f"Installing launchd daemon to {path}")
        write_atomic(path, self.render(target), mode=0o644, uid=0, gid=0)

        console.status(f"Loading {target.launchd_label}...")
        self._launchctl("load", "-w", str(path))

        if self.wait_for(lambda: self.is_active(target), f"{target.launchd_label} to start"):
            console.status(f"{target.launchd_label} is running. Service status:")
        else:
            console.warning(f"{target.launchd_label} is not confirmed running. Service status:")
        print(self.status(target))

    def stop(self, target: InstallTarget) -> None:
        path = self.registration(target).path
        console.status(f"Unloading {target.launchd_label}...")
        self._launchctl("unload", str(path))
        self.wait_for(lambda: not self.is_loaded(target), f"{target.launchd_label} to unload")

    def unregister(self, target: InstallTarget) -> List[str]:
        path = self.registration(target).path
        failures: List[str] = []

        if self.is_loaded(target):
            self.best_effort(failures, f"Unloading {target.launchd_label}", self.stop, target)
        else:
            console.status(f"{target.launchd_label} is not loaded")

        if path.exists():
            console.status(f"Removing LaunchDaemon {path}...")
            self.best_effort(failures, "Removing LaunchDaemon", path.unlink)
        else:
            console.status(f"LaunchDaemon not found at {path}")
        return failures
