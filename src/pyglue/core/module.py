"""
Module Body Rewriting and Entry Point Generation.

Two code generators for ``@pymodule`` functions:

1.  **process_functions_in_module**: Walks the statements of the module
    function's body. Every nested ``def`` carrying ``@pyfn(...)`` is stripped
    of its annotations and preceded by a registration::

        @pymodule
        def demo(py, m):
            @pyfn(m)
            def add(a, b): ...

    Becomes::

        def demo(py, m):
            def __pyglue_get_function_add(_pyglue_module): ...
            m.add_function(__pyglue_get_function_add(m))
            def add(a, b): ...

    All other statements are carried over as-is (same node objects, same order).
    The input tree is never mutated; a new body is built.

2.  **py_init**: Emits the ``PyInit_<name>`` entry point the interpreter looks
    up when importing the extension.
"""

import textwrap
from dataclasses import dataclass, field
from functools import partial
from typing import Callable, List, Optional, Sequence, Tuple

import libcst as cst

from pyglue.core.attributes import SpanLookup, no_spans
from pyglue.core.deprecations import Deprecations
from pyglue.core.errors import GlueError
from pyglue.core.options import FunctionOptions
from pyglue.core.pyfn import ExportDescriptor, get_pyfn_attr
from pyglue.core.wrapper import wrap_pyfunction

HOST_PREFIX = "PyInit"

# Key of the once-initialized module definition in the entry point's __dict__
MODULE_DEF_CELL = "__pyglue_module_def__"

WrapperBuilder = Callable[[cst.FunctionDef, FunctionOptions], Tuple[str, cst.FunctionDef]]


@dataclass
class ModuleRewrite:
  """
  Outcome of rewriting one module function.

  Attributes:
      function (cst.FunctionDef): The module function with its new body.
      errors (List[GlueError]): Per-statement failures (empty on success).
      deprecations (Deprecations): Deprecated forms seen, including those of
          statements that failed.
  """

  function: cst.FunctionDef
  errors: List[GlueError] = field(default_factory=list)
  deprecations: Deprecations = field(default_factory=Deprecations)


def process_functions_in_module(
  func: cst.FunctionDef,
  span_of: SpanLookup = no_spans,
  builder: Optional[WrapperBuilder] = None,
  runtime: str = "_pyglue",
  fail_fast: bool = False,
) -> ModuleRewrite:
  """
  Splices registrations for ``@pyfn`` functions into a module function's body.

  Args:
      func (cst.FunctionDef): The ``@pymodule`` function.
      span_of (SpanLookup): Position lookup for diagnostics.
      builder (Optional[WrapperBuilder]): Wrapper factory; defaults to
          `wrap_pyfunction` bound to ``runtime``.
      runtime (str): Name the generated code uses for the runtime support object.
      fail_fast (bool): Raise the first error instead of collecting them.

  Returns:
      ModuleRewrite: The rewritten function and collected diagnostics. On error
      the offending statement is kept unchanged.

  Raises:
      GlueError: Only when ``fail_fast`` is set.
  """
  build = builder or partial(wrap_pyfunction, runtime=runtime)
  result = ModuleRewrite(function=func)

  if not isinstance(func.body, cst.IndentedBlock):
    return result

  statements = _rewrite_statements(func.body.body, span_of, build, fail_fast, result)
  result.function = func.with_changes(body=func.body.with_changes(body=statements))
  return result


def _rewrite_statements(
  statements: Sequence[cst.BaseStatement],
  span_of: SpanLookup,
  build: WrapperBuilder,
  fail_fast: bool,
  result: ModuleRewrite,
) -> List[cst.BaseStatement]:
  out: List[cst.BaseStatement] = []

  for stmt in statements:
    if not isinstance(stmt, cst.FunctionDef):
      out.append(stmt)
      continue

    try:
      exported = _export_function(stmt, span_of, build)
    except GlueError as e:
      if e.span is None:
        e.span = span_of(stmt)
      if e.deprecations:
        result.deprecations.extend(e.deprecations)
      if fail_fast:
        # Carry what earlier siblings recorded
        e.deprecations = result.deprecations
        raise
      result.errors.append(e)
      out.append(stmt)
      continue

    if exported is None:
      out.append(stmt)
      continue

    registration, stripped, descriptor = exported
    result.deprecations.extend(descriptor.options.deprecations)
    out.extend(registration)
    out.append(stripped)

  return out


def _export_function(
  stmt: cst.FunctionDef, span_of: SpanLookup, build: WrapperBuilder
) -> Optional[Tuple[List[cst.BaseStatement], cst.FunctionDef, ExportDescriptor]]:
  remaining, descriptor = get_pyfn_attr(stmt.decorators, span_of)
  if descriptor is None:
    return None

  stripped = stmt.with_changes(decorators=remaining)
  ident, wrapped = build(stripped, descriptor.options)
  return registration_statements(descriptor, ident, wrapped), stripped, descriptor


def registration_statements(
  descriptor: ExportDescriptor, ident: str, wrapped: cst.FunctionDef
) -> List[cst.BaseStatement]:
  """
  Builds the statements defining a wrapper and adding it to its module.

  ``<wrapper def>`` followed by ``<path>.add_function(<ident>(<path>))``. A
  failure while registering raises out of the enclosing module function.

  Args:
      descriptor (ExportDescriptor): Carries the target module path.
      ident (str): The wrapper's name.
      wrapped (cst.FunctionDef): The wrapper's definition.

  Returns:
      List[cst.BaseStatement]: The two statements, in execution order.
  """
  module = descriptor.module_path.to_expression()
  add_call = cst.Call(
    func=cst.Attribute(value=module, attr=cst.Name("add_function")),
    args=[cst.Arg(cst.Call(func=cst.Name(ident), args=[cst.Arg(descriptor.module_path.to_expression())]))],
  )
  return [wrapped, cst.SimpleStatementLine(body=[cst.Expr(add_call)])]


def entry_point_name(name: str) -> str:
  return f"{HOST_PREFIX}_{name}"


def py_init(fnname: str, name: str, doc: str, runtime: str = "_pyglue") -> cst.FunctionDef:
  """
  Generates the function called by the interpreter to initialize the module.

  The module definition is the only process-wide state. It lives in a cell on
  the entry point's own ``__dict__``, is constructed from the two NUL-terminated
  fields on the first call and reused afterwards. It is then handed, together
  with the user's initializer, to ``handle_panic``.

  Args:
      fnname (str): The user's module initializer function.
      name (str): The module's external name.
      doc (str): Module docstring. Must end with ``"\\0"``.
      runtime (str): Name the generated code uses for the runtime support object.

  Returns:
      cst.FunctionDef: ``def PyInit_<name>(): ...``.

  Raises:
      AssertionError: If ``doc`` is not NUL-terminated, also under ``python -O``.
  """
  if not doc.endswith("\0"):
    raise AssertionError("module doc string must be NUL-terminated")

  cb_name = entry_point_name(name)
  name_literal = repr(f"{name}\0")
  template = f'''
    def {cb_name}():
        """
        This autogenerated function is called by the python interpreter when importing
        the module.
        """
        NAME = {name_literal}
        DOC = {doc!r}
        cell = {cb_name}.__dict__
        if "{MODULE_DEF_CELL}" not in cell:
            cell["{MODULE_DEF_CELL}"] = {runtime}.ModuleDef(NAME, DOC)
        MODULE_DEF = cell["{MODULE_DEF_CELL}"]
        return {runtime}.handle_panic(lambda _py: MODULE_DEF.make_module(_py, {fnname}))
  '''
  return cst.ensure_type(cst.parse_statement(textwrap.dedent(template).strip() + "\n"), cst.FunctionDef)
