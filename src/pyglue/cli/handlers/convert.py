"""
Convert Command Handler.

This module implements the logic for the `pyglue convert` command.
It orchestrates:
1. Configuration loading (pyproject.toml plus CLI overrides).
2. Annotation expansion via the Engine.
3. Output writing and diagnostic reporting.
"""

from pathlib import Path
from typing import Dict, List, Optional

from rich.markup import escape
from rich.table import Table

from pyglue.config import RuntimeConfig
from pyglue.core.engine import GlueEngine
from pyglue.core.conversion_result import ConversionResult
from pyglue.utils.console import (
  console,
  log_diagnostic,
  log_error,
  log_info,
  log_success,
  log_warning,
)


def collect_sources(input_path: Path) -> List[Path]:
  """
  Lists the Python files below a directory, in a stable order.

  Args:
      input_path: Directory to scan.

  Returns:
      List[Path]: Sorted ``.py`` files.
  """
  return sorted(input_path.rglob("*.py"))


def load_config(
  input_path: Path,
  runtime_alias: Optional[str],
  runtime_module: Optional[str],
  fail_fast: Optional[bool],
  emit_init: Optional[bool],
) -> RuntimeConfig:
  """Resolves the configuration for ``input_path`` (TOML + CLI overrides)."""
  return RuntimeConfig.load(
    runtime_alias=runtime_alias,
    runtime_module=runtime_module,
    fail_fast=fail_fast,
    emit_init=emit_init,
    search_path=input_path if input_path.is_dir() else input_path.parent,
  )


def report_diagnostics(label: str, result: ConversionResult) -> None:
  """
  Logs the warnings and errors of one result.

  Args:
      label: File name shown as prefix.
      result: The conversion result.
  """
  for warning in result.warnings:
    log_diagnostic(label, warning, is_error=False)
  for error in result.errors:
    log_diagnostic(label, error, is_error=True)


def handle_convert(
  input_path: Path,
  output_path: Optional[Path],
  runtime_alias: Optional[str] = None,
  runtime_module: Optional[str] = None,
  fail_fast: Optional[bool] = None,
  emit_init: Optional[bool] = None,
) -> int:
  """
  Handles the 'convert' command execution.

  Args:
      input_path: Path to the source file or directory to expand.
      output_path: Path where generated code should be saved. Required for directories.
      runtime_alias: Override for the runtime alias used by generated code.
      runtime_module: Override for the runtime module imported by generated code.
      fail_fast: If True, stop at the first annotation error in each file.
      emit_init: If False, skip entry point generation.

  Returns:
      int: Exit code (0 for success, 1 for failure).
  """
  if not input_path.exists():
    log_error(f"Input not found: {input_path}")
    return 1

  config = load_config(input_path, runtime_alias, runtime_module, fail_fast, emit_init)
  engine = GlueEngine(config=config)
  batch_results: Dict[str, ConversionResult] = {}

  if input_path.is_file():
    result = _convert_single_file(input_path, output_path, engine)
    return 0 if result.success else 1

  if not output_path:
    log_error("Directory conversion requires --out destination directory.")
    return 1

  py_files = collect_sources(input_path)
  if not py_files:
    log_warning(f"No .py files found in {input_path}")
    return 0

  log_info(f"Processing {len(py_files)} files from {input_path}...")

  for src_file in py_files:
    rel_path = src_file.relative_to(input_path)
    result = _convert_single_file(src_file, output_path / rel_path, engine)
    batch_results[str(rel_path)] = result

  _print_batch_summary(batch_results)
  return 0 if all(r.success for r in batch_results.values()) else 1


def _convert_single_file(input_path: Path, output_path: Optional[Path], engine: GlueEngine) -> ConversionResult:
  """
  Helper to expand a single file.

  Args:
      input_path: Source file path.
      output_path: Destination file path; the code is printed if None.
      engine: The configured engine.

  Returns:
      ConversionResult: Result object containing status and code.
  """
  try:
    with open(input_path, "rt", encoding="utf-8") as f:
      code = f.read()
  except (OSError, UnicodeDecodeError) as e:
    log_error(f"Failed to read {input_path}: {e}")
    return ConversionResult(success=False, errors=[str(e)])

  result = engine.run(code)
  report_diagnostics(input_path.name, result)

  if not result.success:
    return result

  if output_path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "wt", encoding="utf-8") as f:
      f.write(result.code)
    if result.modules:
      log_success(f"Expanded: [path]{input_path}[/path] -> [path]{output_path}[/path]")
  else:
    print(result.code, end="")

  return result


def _print_batch_summary(results: Dict[str, ConversionResult]) -> None:
  """
  Renders a summary table of conversion results to the console.

  Args:
      results: Dictionary mapping filenames to conversion results.
  """
  total = len(results)
  successes = sum(1 for r in results.values() if r.success and not r.has_warnings)
  issues = total - successes

  if issues == 0:
    log_success(f"Batch Complete: {successes}/{total} files expanded cleanly.")
    return

  table = Table(title="Expansion Report")
  table.add_column("File", style="cyan")
  table.add_column("Status", justify="center")
  table.add_column("Issues", style="red")

  for filename, res in results.items():
    if res.success and not res.has_warnings:
      continue
    status = "❌ Failed" if not res.success else "⚠️ Deprecated"
    details = "; ".join(res.errors or res.warnings) or "Unknown Error"
    table.add_row(escape(filename), status, escape(details))

  console.print(table)
  console.print(f"\n[bold]Summary:[/bold] {successes} Clean, {issues} with Issues.")
