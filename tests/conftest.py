"""Shared pytest configuration and fixtures for all tests.

Every external tool the installer drives (systemctl, launchctl, useradd,
sysadminctl, pgrep/pkill) is replaced by ``FakeHost``, which keeps the
service manager, account database and process table in memory. Paths are
redirected under ``tmp_path`` through ``install_root`` and ``HOME``.
"""

import os
import platform
import pwd
import stat
import subprocess
from pathlib import Path
from types import SimpleNamespace

import pytest
import yaml

from zlt_installer.config import Config


class FakeHost:
    """In-memory stand-in for the host's service manager, users and processes."""

    def __init__(self):
        self.calls = []
        self.enabled = set()
        self.active = set()
        self.loaded = set()
        self.users = {}
        self.processes = set()
        self.foreign_processes = set()
        self.reloads = 0
        self.start_fails = False
        self.ignores_term = False
        self.kill_denied = False
        self.missing = set()
        self.next_uid = 998

    # ------------------------------------------------------------ subprocess

    def run(self, args, capture_output=False, text=False, timeout=None, **kwargs):
        args = [str(a) for a in args]
        self.calls.append(args)
        tool = args[0]
        if tool in self.missing:
            raise FileNotFoundError(tool)
        handler = getattr(self, f"_{tool}", None)
        if handler is None:
            raise FileNotFoundError(tool)
        rc, out, err = handler(args[1:])
        return subprocess.CompletedProcess(args, rc, out, err)

    def _systemctl(self, args):
        verb = args[0]
        unit = args[-1]
        if verb == "daemon-reload":
            self.reloads += 1
            return 0, "", ""
        if verb == "enable":
            self.enabled.add(unit)
            return 0, "", ""
        if verb == "disable":
            self.enabled.discard(unit)
            return 0, "", ""
        if verb == "start":
            if self.start_fails:
                return 1, "", f"Job for {unit} failed."
            self.active.add(unit)
            return 0, "", ""
        if verb == "stop":
            self.active.discard(unit)
            return 0, "", ""
        if verb == "is-active":
            return (0 if unit in self.active else 3), "", ""
        if verb == "is-enabled":
            return (0 if unit in self.enabled else 1), "", ""
        if verb == "status":
            state = "active (running)" if unit in self.active else "inactive (dead)"
            return 0, f"* {unit}\n     Active: {state}\n", ""
        return 1, "", f"unknown verb {verb}"

    def _launchctl(self, args):
        verb = args[0]
        if verb == "list":
            label = args[1]
            if label in self.loaded:
                return 0, f'{{\n\t"PID" = 4242;\n\t"Label" = "{label}";\n}};\n', ""
            return 113, "", f'Could not find service "{label}" in domain for system'
        if verb == "load":
            self.loaded.add(Path(args[-1]).stem)
            return 0, "", ""
        if verb == "unload":
            self.loaded.discard(Path(args[-1]).stem)
            return 0, "", ""
        return 1, "", f"unknown verb {verb}"

    def _useradd(self, args):
        self._add_user(args[-1])
        return 0, "", ""

    def _userdel(self, args):
        self.users.pop(args[-1], None)
        return 0, "", ""

    def _sysadminctl(self, args):
        if args[0] == "-addUser":
            self._add_user(args[1])
        elif args[0] == "-deleteUser":
            self.users.pop(args[1], None)
        return 0, "", ""

    def _matching(self, args):
        # Without -u, other users' processes match too
        if "-u" in args:
            return self.processes
        return self.processes | self.foreign_processes

    def _pgrep(self, args):
        return (0 if args[-1] in self._matching(args) else 1), "", ""

    def _pkill(self, args):
        name = args[-1]
        if name not in self._matching(args):
            return 1, "", ""
        if self.kill_denied:
            return 1, "", "pkill: killing pid 4242 failed: Operation not permitted\n"
        if args[0] == "-KILL" or not self.ignores_term:
            self.processes.discard(name)
            self.foreign_processes.discard(name)
        return 0, "", ""

    # ------------------------------------------------------------- accounts

    def _add_user(self, name):
        self.users[name] = SimpleNamespace(
            pw_name=name, pw_uid=self.next_uid, pw_gid=self.next_uid
        )
        self.next_uid -= 1

    def getpwnam(self, name):
        try:
            return self.users[name]
        except KeyError:
            raise KeyError(f"getpwnam(): name not found: '{name}'")

    def getpwall(self):
        return list(self.users.values())

    # ---------------------------------------------------------------- spawn

    def popen(self, args, **kwargs):
        self.calls.append(["<spawn>", *args])
        self.processes.add(Path(args[0]).name)
        return SimpleNamespace(args=args, pid=4242, kwargs=kwargs)

    def ran(self, *prefix):
        """True if a recorded command starts with ``prefix``."""
        return any(call[: len(prefix)] == list(prefix) for call in self.calls)


@pytest.fixture
def host(monkeypatch):
    fake = FakeHost()
    monkeypatch.setattr(subprocess, "run", fake.run)
    monkeypatch.setattr(subprocess, "Popen", fake.popen)
    monkeypatch.setattr(pwd, "getpwnam", fake.getpwnam)
    monkeypatch.setattr(pwd, "getpwall", fake.getpwall)
    return fake


@pytest.fixture
def chowns(monkeypatch):
    """Record ownership changes instead of applying them."""
    recorded = []
    monkeypatch.setattr(os, "chown", lambda path, uid, gid: recorded.append((str(path), uid, gid)))
    return recorded


@pytest.fixture
def home(tmp_path, monkeypatch):
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setenv("HOME", str(home_dir))
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    monkeypatch.delenv("XDG_DATA_HOME", raising=False)
    monkeypatch.delenv("ZLT_INSTALLER_CONFIG", raising=False)
    return home_dir


@pytest.fixture
def install_root(tmp_path):
    root = tmp_path / "root"
    root.mkdir()
    return root


@pytest.fixture
def config_file(tmp_path, install_root):
    path = tmp_path / "installer.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "install_root": str(install_root),
                "service_timeout": 1,
                "poll_interval": 0,
                "stop_grace_period": 0,
            }
        )
    )
    return path


@pytest.fixture
def config(config_file, home):
    return Config(config_file)


@pytest.fixture
def linux(monkeypatch):
    monkeypatch.setattr(platform, "system", lambda: "Linux")


@pytest.fixture
def macos(monkeypatch):
    monkeypatch.setattr(platform, "system", lambda: "Darwin")


@pytest.fixture
def as_root(monkeypatch, chowns):
    monkeypatch.setattr(os, "geteuid", lambda: 0)


@pytest.fixture
def as_user(monkeypatch):
    monkeypatch.setattr(os, "geteuid", lambda: 1000)


def make_binary(path: Path, content: bytes = b"#!/bin/sh\nexec sleep 1000\n") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def binary(tmp_path):
    return make_binary(tmp_path / "build" / "zlt")


def snapshot(directory: Path) -> dict:
    """Map of relative path -> bytes (None for directories) under ``directory``."""
    result = {}
    for path in sorted(directory.rglob("*")):
        rel = str(path.relative_to(directory))
        result[rel] = None if path.is_dir() else path.read_bytes()
    return result
