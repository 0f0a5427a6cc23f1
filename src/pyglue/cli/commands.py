"""
CLI Command Handlers Facade.

Re-exports handlers from `pyglue.cli.handlers` so the dispatcher and tests
have a single place to import (and patch) them from.
"""

from pyglue.cli.handlers.check import handle_check
from pyglue.cli.handlers.convert import handle_convert, _convert_single_file, _print_batch_summary

__all__ = [
  "_convert_single_file",
  "_print_batch_summary",
  "handle_check",
  "handle_convert",
]
