#!/usr/bin/env python3
"""
Wrapper script to run the IstioRevisionTag operator with Kopf.

Registers the operator handlers, then launches Kopf's CLI with all
standard arguments. Pods are watched cluster wide, so run it with
--all-namespaces.

Usage:
    python run_operator.py [any kopf run arguments]

Examples:
    python run_operator.py --verbose --all-namespaces
    python run_operator.py --all-namespaces --log-format=json
"""

import sys

if __name__ == '__main__':
    import kopf.cli

    # Import the operator module (which registers handlers via decorators)
    import sailtag.app  # noqa: F401

    # Behave as if the user called: kopf run <args>
    sys.argv.insert(1, 'run')

    sys.exit(kopf.cli.main(prog_name="kopf"))
