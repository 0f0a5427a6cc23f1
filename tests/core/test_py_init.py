"""
Tests for ``PyInit_<name>`` entry point generation.
"""

import ast
import os
import subprocess
import sys
from pathlib import Path
from types import SimpleNamespace

import libcst as cst
import pytest

from pyglue.core.module import entry_point_name, py_init


def code_of(node):
  return cst.Module(body=[]).code_for_node(node)


def assigned_literal(func, target):
  for stmt in func.body.body:
    if not isinstance(stmt, cst.SimpleStatementLine):
      continue
    small = stmt.body[0]
    if isinstance(small, cst.Assign) and small.targets[0].target.value == target:
      return ast.literal_eval(code_of(small.value))
  raise AssertionError(f"{target} not assigned")


def test_entry_point_name():
  assert entry_point_name("demo") == "PyInit_demo"


def test_signature():
  func = py_init("init_demo", "demo", "hello\0")
  assert func.name.value == "PyInit_demo"
  assert len(func.params.params) == 0
  assert func.get_docstring().startswith("This autogenerated function is called by the python interpreter")


def test_nul_terminated_fields():
  func = py_init("init_demo", "demo", "hello\0")
  assert assigned_literal(func, "NAME") == "demo\0"
  assert assigned_literal(func, "DOC") == "hello\0"


def test_empty_doc():
  func = py_init("init_demo", "demo", "\0")
  assert assigned_literal(func, "DOC") == "\0"


def test_module_def_and_initializer():
  code = code_of(py_init("init_demo", "demo", "\0"))
  assert "cell[\"__pyglue_module_def__\"] = _pyglue.ModuleDef(NAME, DOC)" in code
  assert "return _pyglue.handle_panic(lambda _py: MODULE_DEF.make_module(_py, init_demo))" in code


def test_custom_runtime():
  code = code_of(py_init("f", "m", "\0", runtime="rt"))
  assert "rt.ModuleDef(NAME, DOC)" in code
  assert "rt.handle_panic" in code
  assert "_pyglue." not in code


def test_doc_must_be_nul_terminated():
  with pytest.raises(AssertionError):
    py_init("f", "m", "no terminator")


def test_generated_code_compiles():
  code = code_of(py_init("init_demo", "demo", 'quotes " and \'\n\0'))
  compile(code, "<generated>", "exec")


def test_doc_check_survives_optimize_flag():
  src = Path(__file__).resolve().parents[2] / "src"
  script = (
    "from pyglue.core.module import py_init\n"
    "try:\n"
    "    py_init('f', 'm', 'no terminator')\n"
    "except AssertionError:\n"
    "    print('rejected')\n"
  )
  env = dict(os.environ, PYTHONPATH=os.pathsep.join([str(src), os.environ.get("PYTHONPATH", "")]))
  proc = subprocess.run([sys.executable, "-O", "-c", script], capture_output=True, text=True, env=env)

  assert proc.returncode == 0, proc.stderr
  assert proc.stdout.strip() == "rejected"


def _stub_runtime(created):
  class ModuleDef:
    def __init__(self, name, doc):
      created.append((name, doc))

    def make_module(self, py, initializer):
      return (self, py, initializer)

  return SimpleNamespace(ModuleDef=ModuleDef, handle_panic=lambda body: body("py"))


def test_module_def_constructed_once():
  created = []
  namespace = {"_pyglue": _stub_runtime(created), "init_demo": lambda py, m: None}
  exec(code_of(py_init("init_demo", "demo", "doc\0")), namespace)

  first = namespace["PyInit_demo"]()
  second = namespace["PyInit_demo"]()

  assert created == [("demo\0", "doc\0")]
  assert first[0] is second[0]
  assert first[2] is namespace["init_demo"]


def test_entry_points_have_separate_cells():
  created = []
  namespace = {"_pyglue": _stub_runtime(created), "f": None, "g": None}
  exec(code_of(py_init("f", "a", "\0")), namespace)
  exec(code_of(py_init("g", "b", "\0")), namespace)

  namespace["PyInit_a"]()
  namespace["PyInit_b"]()
  namespace["PyInit_a"]()

  assert [name for name, _ in created] == ["a\0", "b\0"]
