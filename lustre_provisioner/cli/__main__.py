#!/usr/bin/env python3
"""
Entry point for lustre-provisioner CLI tool.
"""

import sys

from lustre_provisioner.cli.cli import main

if __name__ == "__main__":
    sys.exit(main())
