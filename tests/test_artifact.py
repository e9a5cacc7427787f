"""Tests for placing and removing the binary."""

import os

import pytest

from conftest import make_binary
from zlt_installer import artifact
from zlt_installer.errors import ArtifactIOError, MissingArtifactError
from zlt_installer.platforms import detect
from zlt_installer.target import Scope, ServiceIdentity


@pytest.fixture
def account():
    return ServiceIdentity(name="zlt", uid=998, gid=997)


def test_system_install_sets_ownership(linux, as_root, config, binary, chowns, account):
    target = detect(config, binary_source=binary)
    artifact.install_artifact(target, account)

    assert target.destination_path.read_bytes() == binary.read_bytes()
    assert os.access(target.destination_path, os.X_OK)
    assert target.data_directory.is_dir()
    assert (str(target.destination_path), 0, 0) in chowns
    assert (str(target.data_directory), 998, 997) in chowns
    assert (str(target.log_paths[0].parent), 998, 997) in chowns


def test_macos_shared_log_dir_is_not_chowned(macos, as_root, config, binary, chowns, account):
    target = detect(config, binary_source=binary)
    artifact.install_artifact(target, account)

    log_dir = str(target.log_paths[0].parent)
    assert not any(path == log_dir for path, _, _ in chowns)
    for log_path in target.log_paths:
        assert log_path.exists()
        assert (str(log_path), 998, 997) in chowns


def test_copy_overwrites_previous_version(linux, as_user, config, tmp_path):
    source = make_binary(tmp_path / "zlt", b"v1")
    target = detect(config, binary_source=source)
    artifact.install_artifact(target)
    make_binary(source, b"v2")
    artifact.install_artifact(target)

    assert target.destination_path.read_bytes() == b"v2"
    leftovers = [p for p in target.destination_path.parent.iterdir() if p.name.startswith(".")]
    assert leftovers == []


def test_missing_source(linux, as_user, config, tmp_path):
    target = detect(config, binary_source=tmp_path / "absent")
    with pytest.raises(MissingArtifactError, match="not found"):
        artifact.install_artifact(target)
    assert not target.destination_path.exists()


def test_source_must_be_executable(linux, as_user, config, tmp_path):
    source = tmp_path / "zlt"
    source.write_bytes(b"data")
    source.chmod(0o644)
    with pytest.raises(MissingArtifactError, match="not executable"):
        artifact.check_source(detect(config, binary_source=source))


def test_copy_failure_is_fatal(linux, as_user, config, binary, monkeypatch):
    def full_disk(*args, **kwargs):
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(artifact, "copy_atomic", full_disk)
    with pytest.raises(ArtifactIOError, match="No space left"):
        artifact.install_artifact(detect(config, binary_source=binary))


def test_user_removal_deletes_data(linux, as_user, config, binary):
    target = detect(config, binary_source=binary)
    artifact.install_artifact(target)
    (target.data_directory / "state.db").write_text("x")

    assert artifact.remove_artifact(target) is True
    assert not target.destination_path.exists()
    assert not target.data_directory.exists()
    assert artifact.remove_artifact(target) is False


def test_system_removal_keeps_data(linux, as_root, config, binary, account):
    target = detect(config, binary_source=binary)
    artifact.install_artifact(target, account)

    artifact.remove_artifact(target)
    assert not target.destination_path.exists()
    assert target.data_directory.exists()

    assert artifact.remove_data_directory(target) is True
    assert not target.data_directory.exists()


def test_remove_logs(linux, as_root, config, binary, account):
    target = detect(config, binary_source=binary)
    artifact.install_artifact(target, account)
    for log_path in target.log_paths:
        log_path.write_text("log")

    assert artifact.remove_logs(target) is True
    assert not target.log_paths[0].parent.exists()
    assert artifact.remove_logs(target) is False


def test_removal_helpers_on_clean_host(linux, as_root, config, binary):
    target = detect(config, binary_source=binary)

    assert artifact.existing_logs(target) == []
    assert artifact.remove_logs(target) is False
    assert artifact.remove_data_directory(target) is False
