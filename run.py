#!/usr/bin/env python3
"""Convenience runner for the trail coverage tracker.

Usage:
    python run.py --user me analyze activity.json
"""
import logging
import sys

from trail_coverage.main import main

if __name__ == "__main__":
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(level=logging.INFO, format="[%(asctime)s] %(levelname)s %(name)s: %(message)s")
    sys.exit(main())
