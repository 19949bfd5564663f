#!/usr/bin/env python3
"""
routine-timer - Main entry point.
"""

import sys

from routine_timer.cli import main

if __name__ == "__main__":
    sys.exit(main())
