"""Install and uninstall orchestration."""

import logging
from typing import List, Optional

from . import artifact, console, identity
from .errors import IdentityError, InstallerError, PrivilegeError
from .platforms import is_privileged
from .services import ServiceRegistrar, get_registrar
from .services.base import TEARDOWN_ERRORS
from .target import InstallState, InstallTarget

logger = logging.getLogger(__name__)

SYSTEM_BINARY_PATH = "/usr/local/bin"


class LifecycleController:
    """Drives the identity, artifact and registration steps in order.

    Install moves forward through the states and stops at the first fatal
    error. Uninstall walks backwards, recording failures and carrying on so
    as much as possible is cleaned up.
    """

    def __init__(
        self,
        target: InstallTarget,
        config,
        registrar: Optional[ServiceRegistrar] = None,
    ):
        self.target = target
        self.config = config
        self.registrar = registrar or get_registrar(target, config)
        self.timeout = float(config["service_timeout"])

    def _require_privilege(self, action: str):
        if self.target.is_system and not is_privileged():
            raise PrivilegeError(f"{action} system-wide requires root (use sudo)")

    def probe_state(self) -> InstallState:
        """Work out how far an installation got by looking at the host."""
        target = self.target
        if self.registrar.is_registered(target):
            if self.registrar.is_active(target):
                return InstallState.RUNNING
            return InstallState.REGISTERED
        if target.destination_path.exists():
            return InstallState.ARTIFACT_PLACED
        if target.service_identity_name and identity.lookup_identity(
            target.service_identity_name
        ):
            return InstallState.IDENTITY_READY
        return InstallState.ABSENT

    def preflight(self):
        """Check everything that would make install fail before touching the host."""
        self._require_privilege("Installing")
        artifact.check_source(self.target)

    def install(self, start_now: bool = False) -> InstallState:
        target = self.target
        self.preflight()
        console.status(
            f"Installing {target.service_name} ({target.scope.value}, {target.platform.value})..."
        )

        # A running instance is stopped first so the binary swap is clean
        was_running = self.registrar.is_registered(target) and self.registrar.is_active(target)
        if was_running:
            console.status(f"{target.service_name} is running, stopping it for the upgrade")
            self.registrar.stop(target)

        account = identity.ensure_identity(target, timeout=self.timeout)
        artifact.install_artifact(target, account)

        try:
            self.registrar.register(target)
        except (InstallerError, OSError):
            self._rollback_registration()
            raise

        # System registrars start the service themselves in register()
        if (start_now or was_running) and not target.is_system:
            self.registrar.start_now(target)

        state = self.probe_state()
        console.status(f"{target.service_name} has been installed ({state.label})")
        return state

    def _rollback_registration(self):
        console.error("Registering the service failed, removing the partial registration")
        failures = self.registrar.discard(self.target)
        for failure in failures:
            logger.warning(f"Rollback: {failure}")

    def uninstall(self) -> List[str]:
        """Remove everything install created; return the steps that failed.

        Nothing found is not a failure. The service account, the system data
        directory and the log files are only removed after confirmation.
        """
        target = self.target
        self._require_privilege("Removing")
        assume = self.config.assume_answer
        console.status(
            f"Uninstalling {target.service_name} ({target.scope.value}, {target.platform.value})..."
        )

        failures = list(self.registrar.unregister(target))
        self._step(failures, "Removing binary", artifact.remove_artifact, target)

        if target.is_system:
            if target.data_directory.exists() and console.confirm(
                f"Remove data directory {target.data_directory}?", assume
            ):
                self._step(failures, "Removing data directory", artifact.remove_data_directory, target)
            elif target.data_directory.exists():
                console.status(f"Data directory {target.data_directory} preserved")

            if artifact.existing_logs(target) and console.confirm(
                f"Remove {target.service_name} log files?", assume
            ):
                self._step(failures, "Removing log files", artifact.remove_logs, target)

            name = target.service_identity_name
            if name and identity.lookup_identity(name) and console.confirm(
                f"Remove the '{name}' user?", assume
            ):
                self._step(failures, "Removing service account", identity.remove_identity, target)
        else:
            system_binary = target.system_path(SYSTEM_BINARY_PATH) / target.service_name
            if system_binary.exists():
                console.warning(
                    f"A system-wide installation remains at {system_binary}; "
                    "remove it with: sudo zlt-uninstall --system"
                )

        if failures:
            console.warning(
                f"{target.service_name} was uninstalled with {len(failures)} problem(s):"
            )
            for failure in failures:
                console.warning(f"  {failure}")
        else:
            console.status(f"{target.service_name} has been uninstalled")
        return failures

    def _step(self, failures: List[str], description: str, func, *args):
        try:
            func(*args)
        except (IdentityError,) + TEARDOWN_ERRORS as e:
            message = f"{description} failed: {e}"
            logger.warning(message)
            console.warning(message)
            failures.append(message)
