"""
Check Command Handler.

Runs the expansion without writing anything and reports errors and
deprecation warnings. Intended for CI.
"""

from pathlib import Path
from typing import Optional

from pyglue.cli.handlers.convert import collect_sources, load_config, report_diagnostics
from pyglue.core.engine import GlueEngine
from pyglue.utils.console import log_error, log_success


def handle_check(input_path: Path, fail_fast: Optional[bool] = None, strict: bool = False) -> int:
  """
  Handles the 'check' command execution.

  Args:
      input_path: File or directory to check.
      fail_fast: If True, report only the first error of each file.
      strict: If True, deprecation warnings also fail the check.

  Returns:
      int: Exit code (0 if every file expands, 1 otherwise).
  """
  if not input_path.exists():
    log_error(f"Input not found: {input_path}")
    return 1

  config = load_config(input_path, None, None, fail_fast, None)
  engine = GlueEngine(config=config)
  files = [input_path] if input_path.is_file() else collect_sources(input_path)

  failed = 0
  modules = 0
  for path in files:
    try:
      code = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
      log_error(f"Failed to read {path}: {e}")
      failed += 1
      continue

    result = engine.run(code)
    report_diagnostics(str(path), result)
    modules += len(result.modules)
    if not result.success or (strict and result.has_warnings):
      failed += 1

  if failed:
    log_error(f"{failed} of {len(files)} files have annotation problems.")
    return 1

  log_success(f"Checked {len(files)} files, {modules} modules.")
  return 0
