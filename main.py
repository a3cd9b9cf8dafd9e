#!/usr/bin/env python3
"""
terrarunner - Main entry point.

Runs the command-line interface.
"""

import sys

from terrarunner.cli import main


if __name__ == "__main__":
    sys.exit(main())
