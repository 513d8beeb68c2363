#!/usr/bin/env python3
"""
Entry point for python -m zoneshot execution.

This module enables running Zoneshot as a Python module:
    python3 -m zoneshot
    python3 -m zoneshot --zone bottom:right --zoom 2
    python3 -m zoneshot --window Firefox

The actual CLI logic is in zoneshot.cli module.
"""

from zoneshot.cli import main
import sys

if __name__ == "__main__":
    sys.exit(main())
