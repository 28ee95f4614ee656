#!/usr/bin/env python3
"""
gen_smoke.py - SMOKE generator entry point

Parses C++ headers with clang and writes the SMOKE class stubs and
dispatch tables.

Usage:
    python scripts/gen_smoke.py [-I DIR] [-qt] [-o DIR] header.h [header.h ...]
"""

import os
import sys

# Add scripts directory to path
script_dir = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, script_dir)

from smokegen.cli import main

if __name__ == '__main__':
    sys.exit(main())
