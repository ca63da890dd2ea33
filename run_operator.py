#!/usr/bin/env python3
"""
Wrapper script to run the doodba-operator from a source checkout.

Usage:
    python run_operator.py run [options]
    python run_operator.py crd > crd.yaml

Examples:
    python run_operator.py run --verbose --all-namespaces
    python run_operator.py run -n my-namespace --standalone
"""

from doodba.cli import main

if __name__ == '__main__':
    main(prog_name="doodba-operator")
