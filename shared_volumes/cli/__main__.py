#!/usr/bin/env python3
"""
Entry point for shared-volumes CLI tool.
"""

import sys

from shared_volumes.cli.cli import main

if __name__ == "__main__":
    sys.exit(main())
