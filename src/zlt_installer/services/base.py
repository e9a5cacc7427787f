"""Common behaviour of the service registrars."""

import logging
import subprocess
import time
from abc import ABC, abstractmethod
from typing import Callable, List

from .. import console
from ..errors import ServiceManagerError
from ..target import InstallTarget, ServiceRegistration

logger = logging.getLogger(__name__)

# Failures tolerated by best-effort teardown
TEARDOWN_ERRORS = (ServiceManagerError, OSError, subprocess.TimeoutExpired)


class ServiceRegistrar(ABC):
    """Registers the installed binary with whatever starts it."""

    def __init__(self, config):
        self.config = config
        self.timeout = float(config["service_timeout"])
        self.poll_interval = float(config["poll_interval"])
        self.stop_grace_period = float(config["stop_grace_period"])

    @abstractmethod
    def registration(self, target: InstallTarget) -> ServiceRegistration:
        """Where this registrar keeps its record of the service."""

    @abstractmethod
    def render(self, target: InstallTarget) -> str:
        """Contents of the registration file."""

    @abstractmethod
    def register(self, target: InstallTarget) -> None:
        """Write the registration and arrange for the service to start."""

    @abstractmethod
    def unregister(self, target: InstallTarget) -> List[str]:
        """Undo ``register`` as far as possible; return the steps that failed."""

    @abstractmethod
    def is_active(self, target: InstallTarget) -> bool:
        """Whether the service is running right now."""

    @abstractmethod
    def stop(self, target: InstallTarget) -> None:
        """Stop a running instance without removing its registration."""

    def is_registered(self, target: InstallTarget) -> bool:
        return self.registration(target).path.exists()

    def discard(self, target: InstallTarget) -> List[str]:
        """Delete a freshly written registration file and nothing else.

        Used to undo a failed ``register``; running instances are left alone.
        """
        path = self.registration(target).path
        failures: List[str] = []
        if path.exists():
            console.status(f"Removing registration {path}...")
            self.best_effort(failures, "Removing registration", path.unlink)
        return failures

    def status(self, target: InstallTarget) -> str:
        return "running" if self.is_active(target) else "not running"

    def wait_for(self, predicate: Callable[[], bool], description: str) -> bool:
        """Poll ``predicate`` for up to the service timeout.

        Running out of time is reported as a warning, never raised.
        """
        deadline = time.monotonic() + self.timeout
        while True:
            if predicate():
                return True
            if time.monotonic() >= deadline:
                console.warning(f"Timed out after {self.timeout:g}s waiting for {description}")
                return False
            time.sleep(self.poll_interval)

    def best_effort(self, failures: List[str], description: str, func, *args) -> None:
        """Run one teardown step, recording instead of raising its failure."""
        try:
            func(*args)
        except TEARDOWN_ERRORS as e:
            message = f"{description} failed: {e}"
            logger.warning(message)
            console.warning(message)
            failures.append(message)
