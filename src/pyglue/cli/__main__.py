"""
Main Entry Point for pyglue CLI.

This module handles argument parsing and dispatches to specific command
handlers defined in `pyglue.cli.commands`.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from pyglue.cli import commands
from pyglue import __version__


def main(argv: Optional[List[str]] = None) -> int:
  """
  Main CLI entry point.

  Parses arguments via argparse and calls the appropriate handler function.

  Args:
      argv: Optional list of command line arguments (defaults to sys.argv).

  Returns:
      int: Exit code (0 for success, non-zero for failure).
  """
  parser = argparse.ArgumentParser(description="pyglue: expand @pymodule/@pyfn annotations into extension glue")
  parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

  subparsers = parser.add_subparsers(dest="command", required=True)

  # --- Command: CONVERT ---
  cmd_conv = subparsers.add_parser("convert", help="Expand a Python file or directory")
  cmd_conv.add_argument("path", type=Path, help="Input source file or directory")
  cmd_conv.add_argument("--out", type=Path, help="Output destination (file or dir)")
  cmd_conv.add_argument("--runtime-alias", default=None, help="Name generated code uses for the runtime (default: from toml)")
  cmd_conv.add_argument("--runtime-module", default=None, help="Runtime module to import under the alias")
  cmd_conv.add_argument(
    "--fail-fast",
    action="store_true",
    default=None,
    help="Stop at the first annotation error in each file (Overrides config)",
  )
  cmd_conv.add_argument(
    "--no-init",
    action="store_false",
    dest="emit_init",
    default=None,
    help="Do not generate PyInit_<name> entry points",
  )

  # --- Command: CHECK ---
  cmd_check = subparsers.add_parser("check", help="Report annotation errors and deprecations without writing")
  cmd_check.add_argument("path", type=Path, help="Input source file or directory")
  cmd_check.add_argument("--fail-fast", action="store_true", default=None, help="Report only the first error per file")
  cmd_check.add_argument("--strict", action="store_true", help="Treat deprecation warnings as failures")

  args = parser.parse_args(argv)

  if args.command == "convert":
    return commands.handle_convert(
      args.path, args.out, args.runtime_alias, args.runtime_module, args.fail_fast, args.emit_init
    )

  elif args.command == "check":
    return commands.handle_check(args.path, args.fail_fast, args.strict)

  return 1


if __name__ == "__main__":
  sys.exit(main())
