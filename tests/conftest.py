"""
Pytest Configuration and Fixtures.

Includes:
- Syspath patching for local imports.
- Helpers to parse source snippets into LibCST functions.
- A snapshot fixture for expanded code.
"""

import sys
import textwrap
from pathlib import Path
from typing import Callable

import libcst as cst
import pytest

# Add src to path so we can import 'pyglue' without installing it
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))


def parse_function(code: str) -> cst.FunctionDef:
  """Parses a snippet whose first statement is a function definition."""
  module = cst.parse_module(textwrap.dedent(code).lstrip())
  return cst.ensure_type(module.body[0], cst.FunctionDef)


@pytest.fixture
def parse_fn() -> Callable[[str], cst.FunctionDef]:
  return parse_function


class SnapshotAssert:
  """
  Compares generated text with a file stored under ``__snapshots__`` next to
  the test module. Missing snapshots are written on first run.
  """

  def __init__(self, request: pytest.FixtureRequest):
    self.directory = Path(request.node.fspath).parent / "__snapshots__"
    self.name = request.node.name
    self.update = request.config.getoption("--update-snapshots")

  def assert_match(self, content: str, extension: str = "txt") -> None:
    path = self.directory / f"{self.name}.{extension}"
    content = content.replace("\r\n", "\n")

    if self.update or not path.exists():
      self.directory.mkdir(parents=True, exist_ok=True)
      path.write_text(content, encoding="utf-8")
      return

    expected = path.read_text(encoding="utf-8").replace("\r\n", "\n")
    assert content == expected, f"{path.name} is stale, rerun with --update-snapshots if the change is intended"


@pytest.fixture
def snapshot(request):
  return SnapshotAssert(request)


def pytest_addoption(parser):
  parser.addoption("--update-snapshots", action="store_true", default=False, help="Rewrite stored snapshots")
