#!/usr/bin/env python3
"""Run the ZLT installer from a source checkout (sudo scripts/install-service.py)."""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from zlt_installer.cli import main

if __name__ == "__main__":
    sys.exit(main())
