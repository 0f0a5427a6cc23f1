"""
Entry point for module execution (``python -m pyglue``).

This module delegates execution to the CLI handler in ``pyglue.cli.__main__``.
"""

import sys
from pyglue.cli.__main__ import main

if __name__ == "__main__":
  sys.exit(main())
