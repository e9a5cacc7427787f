"""Linux systemd service installation."""

import logging
import subprocess
from typing import List, Optional

from .. import commands, console
from ..errors import ServiceManagerError
from ..fileops import write_atomic
from ..target import InstallTarget, ServiceRegistration
from .base import ServiceRegistrar

logger = logging.getLogger(__name__)

# Templated unit: the instance name is the account the service runs as
SYSTEMD_SERVICE_TEMPLATE = """[Unit]
Description={name} file server (%i)
After=network-online.target
Wants=network-online.target

[Service]
Type=simple
User=%i
Group=%i
WorkingDirectory={working_dir}
ExecStart={exec_path}
Restart=on-failure
RestartSec=10
StandardOutput=append:{log_path}
StandardError=append:{error_log_path}

[Install]
WantedBy=multi-user.target
"""


class SystemdRegistrar(ServiceRegistrar):
    """System-wide unit under /etc/systemd/system, enabled at boot."""

    def registration(self, target: InstallTarget) -> ServiceRegistration:
        name = target.service_name
        return ServiceRegistration(
            path=target.system_path(f"/etc/systemd/system/{name}@.service"),
            instance=f"{name}@{target.service_identity_name}.service",
        )

    def render(self, target: InstallTarget) -> str:
        log_path, error_log_path = target.log_paths
        return SYSTEMD_SERVICE_TEMPLATE.format(
            name=target.service_name.upper(),
            working_dir=target.data_directory,
            exec_path=target.destination_path,
            log_path=log_path,
            error_log_path=error_log_path,
        )

    def _systemctl(self, *args: str) -> Optional[subprocess.CompletedProcess]:
        """Run systemctl; a timeout is a warning, a failure raises."""
        try:
            return commands.run(["systemctl", *args], timeout=self.timeout)
        except subprocess.TimeoutExpired:
            console.warning(f"systemctl {' '.join(args)} did not finish within {self.timeout:g}s")
            return None

    def register(self, target: InstallTarget) -> None:
        registration = self.registration(target)
        instance = registration.instance

        console.status(f"Installing systemd unit to {registration.path}")
        write_atomic(registration.path, self.render(target), mode=0o644, uid=0, gid=0)

        self._systemctl("daemon-reload")
        console.status(f"Enabling {instance}...")
        self._systemctl("enable", instance)
        console.status(f"Starting {instance}...")
        self._systemctl("start", instance)

        if self.wait_for(lambda: self.is_active(target), f"{instance} to become active"):
            console.status(f"{instance} is active. Service status:")
        else:
            console.warning(f"{instance} is not confirmed active. Service status:")
        print(self.status(target))

    def status(self, target: InstallTarget) -> str:
        instance = self.registration(target).instance
        try:
            result = commands.run(
                ["systemctl", "status", "--no-pager", instance],
                timeout=self.timeout,
                check=False,
            )
        except (subprocess.TimeoutExpired, ServiceManagerError) as e:
            return f"Status unavailable: {e}"
        return (result.stdout or result.stderr).rstrip()

    def is_active(self, target: InstallTarget) -> bool:
        instance = self.registration(target).instance
        return commands.succeeds(
            ["systemctl", "is-active", "--quiet", instance], timeout=self.timeout
        )

    def is_enabled(self, target: InstallTarget) -> bool:
        instance = self.registration(target).instance
        return commands.succeeds(
            ["systemctl", "is-enabled", "--quiet", instance], timeout=self.timeout
        )

    def stop(self, target: InstallTarget) -> None:
        instance = self.registration(target).instance
        console.status(f"Stopping {instance}...")
        self._systemctl("stop", instance)
        self.wait_for(lambda: not self.is_active(target), f"{instance} to stop")

    def discard(self, target: InstallTarget) -> List[str]:
        """Undo a failed register: disable the instance and drop the unit file."""
        registration = self.registration(target)
        failures: List[str] = []
        if self.is_enabled(target):
            self.best_effort(
                failures, f"Disabling {registration.instance}", self._systemctl, "disable", registration.instance
            )
        failures.extend(super().discard(target))
        self.best_effort(failures, "Reloading systemd", self._systemctl, "daemon-reload")
        return failures

    def unregister(self, target: InstallTarget) -> List[str]:
        registration = self.registration(target)
        instance = registration.instance
        failures: List[str] = []

        if self.is_active(target):
            self.best_effort(failures, f"Stopping {instance}", self.stop, target)
        else:
            console.status(f"{instance} is not running")

        if self.is_enabled(target):
            console.status(f"Disabling {instance}...")
            self.best_effort(failures, f"Disabling {instance}", self._systemctl, "disable", instance)

        if registration.path.exists():
            console.status(f"Removing service file {registration.path}...")
            self.best_effort(failures, "Removing service file", registration.path.unlink)
            self.best_effort(failures, "Reloading systemd", self._systemctl, "daemon-reload")
        else:
            console.status(f"Service file not found at {registration.path}")
        return failures
