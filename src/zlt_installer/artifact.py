"""Placing and removing the service binary and its directories."""

import logging
import os
import shutil
from pathlib import Path
from typing import List, Optional

from . import console
from .errors import ArtifactIOError, MissingArtifactError
from .fileops import copy_atomic
from .target import InstallTarget, ServiceIdentity

logger = logging.getLogger(__name__)

ROOT_UID = 0
ROOT_GID = 0


def check_source(target: InstallTarget) -> Path:
    """Fail unless the binary to install is an executable file."""
    source = target.binary_path
    if not source.is_file():
        raise MissingArtifactError(
            f"{target.service_name} binary not found at {source}. "
            "Build it first (cargo build --release) or pass --binary PATH"
        )
    if not os.access(source, os.X_OK):
        raise MissingArtifactError(f"{source} is not executable (chmod +x it first)")
    return source


def install_artifact(target: InstallTarget, identity: Optional[ServiceIdentity] = None) -> None:
    """Create the directories and copy the binary over any previous version.

    On system installs root keeps ownership of the binary while the data
    and log directories belong to the service account.
    """
    source = check_source(target)
    destination = target.destination_path

    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        target.data_directory.mkdir(parents=True, exist_ok=True)
        for log_dir in sorted({path.parent for path in target.log_paths}):
            log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ArtifactIOError("Could not create install directories", e) from e

    console.status(f"Copying {source} to {destination}...")
    try:
        copy_atomic(source, destination, mode=0o755)
    except OSError as e:
        raise ArtifactIOError(f"Could not copy binary to {destination}", e) from e

    if not target.is_system:
        return

    try:
        os.chown(destination, ROOT_UID, ROOT_GID)
        if identity is not None:
            os.chown(target.data_directory, identity.uid, identity.gid)
            os.chmod(target.data_directory, 0o755)
            for log_path in target.log_paths:
                if log_path.parent.name == target.service_name:
                    os.chown(log_path.parent, identity.uid, identity.gid)
                    os.chmod(log_path.parent, 0o755)
                else:
                    # Shared log directory: hand over just our own files
                    log_path.touch(exist_ok=True)
                    os.chown(log_path, identity.uid, identity.gid)
            logger.info(f"Data directory {target.data_directory} owned by {identity.name}")
    except OSError as e:
        raise ArtifactIOError("Could not set ownership", e) from e


def remove_artifact(target: InstallTarget) -> bool:
    """Delete the installed binary; user installs also lose their data directory.

    Returns False when there was nothing to delete.
    """
    removed = False
    destination = target.destination_path
    if destination.exists() or destination.is_symlink():
        console.status(f"Removing {target.service_name} binary {destination}...")
        destination.unlink()
        removed = True
    else:
        console.status(f"Binary not found at {destination}")

    if not target.is_system and target.data_directory.exists():
        console.status(f"Removing data directory {target.data_directory}...")
        shutil.rmtree(target.data_directory)
        removed = True

    return removed


def remove_data_directory(target: InstallTarget) -> bool:
    """Delete the system data directory. Returns False if it was already gone."""
    if not target.data_directory.exists():
        return False
    console.status(f"Removing data directory {target.data_directory}...")
    shutil.rmtree(target.data_directory)
    return True


def existing_logs(target: InstallTarget) -> List[Path]:
    """Log files of this service that are present on disk."""
    return [path for path in target.log_paths if path.exists()]


def remove_logs(target: InstallTarget) -> bool:
    """Delete the log files, and their directory when it belongs to this service only.

    Returns False when no log file was found.
    """
    logs = existing_logs(target)
    for path in logs:
        console.status(f"Removing log file {path}...")
        path.unlink()
    for log_dir in {path.parent for path in target.log_paths}:
        # Only directories dedicated to this service are removed
        if log_dir.name == target.service_name and log_dir.exists() and not any(log_dir.iterdir()):
            log_dir.rmdir()
    return bool(logs)
