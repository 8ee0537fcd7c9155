#!/usr/bin/env python3
"""Owner Statement Calculator.

This is the main entry point script for the owner statement engine.
It wraps the package CLI for convenient execution.

Usage:
    python run_statements.py calculate --input snapshot.yaml --property 101 --start 2024-06-04 --end 2024-06-10

For full documentation and options:
    python run_statements.py --help
"""

import sys

from owner_statements.cli import main

if __name__ == "__main__":
    sys.exit(main())
