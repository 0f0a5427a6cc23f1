"""
Tests for the ``convert`` and ``check`` commands.

Verifies that:
1. A single file is expanded to ``--out`` or printed to stdout.
2. Directories are mirrored into ``--out`` (which is then mandatory).
3. Annotation errors and deprecations are reported with file and location.
4. Exit codes reflect failures (and warnings under ``check --strict``).
"""

import io

import pytest
from rich.console import Console

from pyglue.cli.__main__ import main
from pyglue.utils.console import reset_console, set_console

GOOD = """\
@pymodule
def demo(py, m):
    @pyfn(m)
    def double(x):
        return 2 * x
"""

LEGACY = """\
@pymodule
def demo(py, m):
    @pyfn(m, "twice")
    def double(x):
        return 2 * x
"""

BAD = """\
@pymodule
def demo(py, m):
    @pyfn(m, nope)
    def double(x):
        return 2 * x
"""


@pytest.fixture
def log_buffer():
  """Routes rich logging into a buffer for inspection."""
  buf = io.StringIO()
  set_console(Console(file=buf, width=200, force_terminal=False))
  yield buf
  reset_console()


def test_cli_convert_file(tmp_path, log_buffer):
  infile = tmp_path / "ext.py"
  infile.write_text(GOOD)
  outfile = tmp_path / "out" / "ext.py"

  assert main(["convert", str(infile), "--out", str(outfile)]) == 0

  content = outfile.read_text()
  assert "def PyInit_demo():" in content
  assert "m.add_function(__pyglue_get_function_double(m))" in content
  assert "Expanded" in log_buffer.getvalue()


def test_cli_convert_prints_without_out(tmp_path, capsys, log_buffer):
  infile = tmp_path / "ext.py"
  infile.write_text(GOOD)

  assert main(["convert", str(infile)]) == 0

  out = capsys.readouterr().out
  assert "def PyInit_demo():" in out


def test_cli_convert_runtime_flags(tmp_path, log_buffer):
  infile = tmp_path / "ext.py"
  infile.write_text(GOOD)
  outfile = tmp_path / "ext_out.py"

  args = ["convert", str(infile), "--out", str(outfile), "--runtime-alias", "rt", "--runtime-module", "pkg.rt", "--no-init"]
  assert main(args) == 0

  content = outfile.read_text()
  assert content.startswith("import pkg.rt as rt\n")
  assert "rt.PyCFunction(" in content
  assert "PyInit_" not in content


def test_cli_convert_error_keeps_output_untouched(tmp_path, log_buffer):
  infile = tmp_path / "ext.py"
  infile.write_text(BAD)
  outfile = tmp_path / "ext_out.py"

  assert main(["convert", str(infile), "--out", str(outfile)]) == 1

  assert not outfile.exists()
  logs = log_buffer.getvalue()
  assert "ext.py:3:" in logs
  assert "unknown option `nope`" in logs


def test_cli_convert_reports_deprecation(tmp_path, log_buffer):
  infile = tmp_path / "ext.py"
  infile.write_text(LEGACY)
  outfile = tmp_path / "ext_out.py"

  assert main(["convert", str(infile), "--out", str(outfile)]) == 0
  assert "deprecated" in log_buffer.getvalue()
  assert "name='twice'" in outfile.read_text()


def test_cli_missing_input(tmp_path, log_buffer):
  assert main(["convert", str(tmp_path / "nope.py")]) == 1
  assert "Input not found" in log_buffer.getvalue()


def test_cli_directory_requires_out(tmp_path, log_buffer):
  (tmp_path / "a.py").write_text(GOOD)
  assert main(["convert", str(tmp_path)]) == 1
  assert "requires --out" in log_buffer.getvalue()


def test_cli_directory_mirrors_tree(tmp_path, log_buffer):
  src = tmp_path / "src"
  (src / "pkg").mkdir(parents=True)
  (src / "top.py").write_text(GOOD)
  (src / "pkg" / "plain.py").write_text("x = 1\n")
  out = tmp_path / "out"

  assert main(["convert", str(src), "--out", str(out)]) == 0

  assert "PyInit_demo" in (out / "top.py").read_text()
  assert (out / "pkg" / "plain.py").read_text() == "x = 1\n"
  assert "Batch Complete: 2/2" in log_buffer.getvalue()


def test_cli_directory_partial_failure(tmp_path, log_buffer):
  src = tmp_path / "src"
  src.mkdir()
  (src / "good.py").write_text(GOOD)
  (src / "bad.py").write_text(BAD)
  out = tmp_path / "out"

  assert main(["convert", str(src), "--out", str(out)]) == 1

  assert (out / "good.py").exists()
  assert not (out / "bad.py").exists()
  assert "Expansion Report" in log_buffer.getvalue()


def test_cli_empty_directory(tmp_path, log_buffer):
  out = tmp_path / "out"
  empty = tmp_path / "empty"
  empty.mkdir()
  assert main(["convert", str(empty), "--out", str(out)]) == 0
  assert "No .py files" in log_buffer.getvalue()


def test_cli_check(tmp_path, log_buffer):
  (tmp_path / "good.py").write_text(GOOD)
  (tmp_path / "legacy.py").write_text(LEGACY)

  assert main(["check", str(tmp_path)]) == 0
  assert "Checked 2 files, 2 modules." in log_buffer.getvalue()


def test_cli_check_strict_fails_on_deprecation(tmp_path, log_buffer):
  infile = tmp_path / "legacy.py"
  infile.write_text(LEGACY)

  assert main(["check", str(infile), "--strict"]) == 1
  assert "deprecated" in log_buffer.getvalue()


def test_cli_check_reports_errors(tmp_path, log_buffer):
  infile = tmp_path / "bad.py"
  infile.write_text(BAD)
  assert main(["check", str(infile)]) == 1
  assert "1 of 1 files" in log_buffer.getvalue()
