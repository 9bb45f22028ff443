"""
Main entry point for running the package as a module.

Usage:
    python -m thumbnailer run --payload batch.json
    python -m thumbnailer sign a/b.png
"""

import sys
from .cli import main

if __name__ == '__main__':
    sys.exit(main())
