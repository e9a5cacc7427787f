"""Operator-facing status lines and confirmation prompts."""

import re
import sys
from typing import Optional

_YES = re.compile(r"^(y|yes)$", re.IGNORECASE)


def status(message: str) -> None:
    """Progress line on stdout."""
    print(f"[*] {message}")


def warning(message: str) -> None:
    """Non-fatal problem on stdout."""
    print(f"[!] {message}")


def error(message: str) -> None:
    """Fatal problem on stderr."""
    print(f"[x] {message}", file=sys.stderr)


def confirm(question: str, assume: Optional[bool] = None) -> bool:
    """Ask a yes/no question whose safe answer is no.

    ``assume`` short-circuits the prompt for unattended runs. Without a
    terminal to ask on, the answer is no.
    """
    if assume is not None:
        warning(f"{question} (y/N) {'yes' if assume else 'no'} (preset)")
        return assume

    if not sys.stdin or not sys.stdin.isatty():
        warning(f"{question} (y/N) no (no terminal)")
        return False

    try:
        response = input(f"[!] {question} (y/N) ")
    except EOFError:
        return False
    return bool(_YES.match(response.strip()))
