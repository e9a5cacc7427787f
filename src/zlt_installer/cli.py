from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import yaml

from . import __version__, console
from .config import Config
from .errors import InstallerError
from .lifecycle import LifecycleController
from .platforms import detect
from .target import Scope


def setup_logging(level: str = "INFO", verbose: bool = False):
    """Set up basic logging."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def build_parser(uninstall_only: bool = False) -> argparse.ArgumentParser:
    if uninstall_only:
        p = argparse.ArgumentParser(
            prog="zlt-uninstall",
            description="Stop and remove the ZLT file server from this host.",
        )
    else:
        p = argparse.ArgumentParser(
            prog="zlt-install",
            description=(
                "Install the ZLT file server as a system service (systemd/launchd) "
                "or as a desktop autostart entry for the current user."
            ),
            epilog=(
                "examples:\n"
                "  sudo zlt-install                 install system-wide\n"
                "  sudo zlt-install --uninstall     remove the system-wide install\n"
                "  zlt-install --user --start-now   autostart at login, and start now"
            ),
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        p.add_argument(
            "--uninstall",
            action="store_true",
            help="Remove the installation instead of creating it.",
        )
        p.add_argument(
            "--binary",
            type=Path,
            default=None,
            help="Binary to install (default: target/release/zlt, or ./zlt with --user).",
        )
        p.add_argument(
            "--start-now",
            action="store_true",
            help="With --user, also start the server now instead of at next login.",
        )
        p.add_argument(
            "--create-config",
            action="store_true",
            help="Write a starting config to ~/.config/zlt-installer and exit.",
        )

    scope = p.add_mutually_exclusive_group()
    scope.add_argument(
        "--system",
        dest="scope",
        action="store_const",
        const="system",
        help="Machine-wide service (requires root). This is the default.",
    )
    scope.add_argument(
        "--user",
        dest="scope",
        action="store_const",
        const="user",
        help="Autostart entry for the current user's desktop session.",
    )
    scope.add_argument(
        "--auto",
        dest="scope",
        action="store_const",
        const="auto",
        help="System scope when run as root, user scope otherwise.",
    )

    assume = p.add_mutually_exclusive_group()
    assume.add_argument(
        "--assume-yes",
        dest="assume",
        action="store_const",
        const="yes",
        help="Answer yes to removal prompts (account, data, logs).",
    )
    assume.add_argument(
        "--assume-no",
        dest="assume",
        action="store_const",
        const="no",
        help="Answer no to removal prompts; the answer when no terminal is attached.",
    )

    p.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help="Path to config.yaml. Defaults to $ZLT_INSTALLER_CONFIG or ~/.config/zlt-installer/.",
    )
    p.add_argument(
        "--status",
        action="store_true",
        help="Show where things go and how far the installation got, then exit.",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging.")
    p.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
        help="Show version and exit.",
    )
    return p


def _resolve_scope(value: str) -> Scope | None:
    if value == "auto":
        return None
    return Scope(value)


def run(argv: list[str] | None = None, uninstall_only: bool = False) -> int:
    parser = build_parser(uninstall_only)
    args = parser.parse_args(argv)

    try:
        config = Config(args.config)
    except (OSError, ValueError, yaml.YAMLError) as e:
        console.error(f"Could not load configuration: {e}")
        return 1

    setup_logging(config["log_level"], args.verbose)

    if getattr(args, "create_config", False):
        config_path = Config.create_default_config()
        print(f"Created default configuration at: {config_path}")
        return 0

    if args.scope:
        config["scope"] = args.scope
    if args.assume:
        config["assume"] = args.assume
    uninstall = uninstall_only or args.uninstall

    try:
        target = detect(
            config,
            scope=_resolve_scope(config["scope"]),
            binary_source=getattr(args, "binary", None),
        )
        controller = LifecycleController(target, config)

        if args.status:
            print(target.describe())
            print(f"State:       {controller.probe_state().label}")
            return 0

        if uninstall:
            failures = controller.uninstall()
            return 1 if failures else 0

        controller.install(start_now=getattr(args, "start_now", False))
        return 0

    except InstallerError as e:
        console.error(str(e))
        return e.exit_code
    except OSError as e:
        console.error(f"I/O error: {e}")
        return 1
    except KeyboardInterrupt:
        console.error("Interrupted")
        return 130


def main(argv: list[str] | None = None) -> int:
    """Entry point of zlt-install."""
    return run(argv)


def uninstall_main(argv: list[str] | None = None) -> int:
    """Entry point of zlt-uninstall."""
    return run(argv, uninstall_only=True)


if __name__ == "__main__":
    sys.exit(main())
