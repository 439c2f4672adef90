"""
Main entry point for running the package as a module.

Usage:
    python -m respgen plan -c images.json
    python -m respgen run -c images.json
    python -m respgen verify -c images.json --rebuild
    python -m respgen report -c images.json
"""

import sys
from .cli import main

if __name__ == '__main__':
    sys.exit(main())
