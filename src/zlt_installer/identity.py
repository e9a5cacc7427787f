"""Dedicated service account for system installs."""

import logging
import pwd
import subprocess
from typing import Optional

from . import commands, console
from .errors import IdentityError, PrivilegeError, ServiceManagerError
from .platforms import is_privileged
from .target import InstallTarget, Platform, ServiceIdentity

logger = logging.getLogger(__name__)

# sysadminctl only accepts role accounts inside this uid range
MACOS_ROLE_UID_RANGE = range(300, 401)

NO_LOGIN_SHELL = "/bin/false"


def lookup_identity(name: str) -> Optional[ServiceIdentity]:
    """Return the account if it exists in the user database."""
    try:
        entry = pwd.getpwnam(name)
    except KeyError:
        return None
    return ServiceIdentity(name=name, uid=entry.pw_uid, gid=entry.pw_gid)


def _free_role_uid() -> int:
    taken = {entry.pw_uid for entry in pwd.getpwall()}
    for uid in MACOS_ROLE_UID_RANGE:
        if uid not in taken:
            return uid
    raise IdentityError("No free uid left for a macOS role account")


def _create_command(target: InstallTarget) -> list:
    name = target.service_identity_name
    if target.platform is Platform.MACOS:
        return [
            "sysadminctl",
            "-addUser",
            name,
            "-fullName",
            f"{target.service_name} service",
            "-UID",
            str(_free_role_uid()),
            "-roleAccount",
        ]
    return ["useradd", "--system", "--no-create-home", "--shell", NO_LOGIN_SHELL, name]


def _delete_command(target: InstallTarget) -> list:
    if target.platform is Platform.MACOS:
        return ["sysadminctl", "-deleteUser", target.service_identity_name]
    return ["userdel", target.service_identity_name]


def ensure_identity(target: InstallTarget, timeout: float = 30) -> Optional[ServiceIdentity]:
    """Make sure the service account exists; user installs have none."""
    if not target.is_system or not target.service_identity_name:
        return None

    if not is_privileged():
        raise PrivilegeError("Creating the service account requires root (use sudo)")

    name = target.service_identity_name
    identity = lookup_identity(name)
    if identity is not None:
        console.status(f"Service account '{name}' already exists")
        return identity

    console.status(f"Creating service account '{name}'...")
    try:
        commands.run(_create_command(target), timeout=timeout)
    except (ServiceManagerError, subprocess.TimeoutExpired) as e:
        raise IdentityError(f"Could not create service account '{name}': {e}") from e

    identity = lookup_identity(name)
    if identity is None:
        raise IdentityError(f"Service account '{name}' missing after creation")
    logger.info(f"Created service account {name} (uid {identity.uid})")
    return ServiceIdentity(name=name, uid=identity.uid, gid=identity.gid, created=True)


def remove_identity(target: InstallTarget, timeout: float = 30) -> bool:
    """Delete the service account. Returns False if there was none."""
    name = target.service_identity_name
    if not name or lookup_identity(name) is None:
        return False

    console.status(f"Removing service account '{name}'...")
    try:
        commands.run(_delete_command(target), timeout=timeout)
    except (ServiceManagerError, subprocess.TimeoutExpired) as e:
        raise IdentityError(f"Could not remove service account '{name}': {e}") from e
    return True
