"""
Orchestration Engine for Annotation Expansion.

This module provides the `GlueEngine`, the driver that turns a Python source
file using ``@pymodule`` / ``@pyfn`` annotations into the expanded glue code.

The pipeline consists of:

1.  **Parsing**: The source is parsed into a LibCST tree and wrapped with
    position metadata so diagnostics carry line/column locations.
2.  **Module Expansion**: `ModuleTransformer` visits every ``@pymodule``
    function. It strips the module annotations, derives the module's external
    name and NUL-terminated doc, rewrites the body via
    `process_functions_in_module` and appends the ``PyInit_<name>`` entry point
    produced by `py_init`.
3.  **Runtime Import** (optional): If ``runtime_module`` is configured, an
    ``import <runtime_module> as <runtime_alias>`` is inserted once.
4.  **Reporting**: Per-annotation errors and deprecations are aggregated into a
    `ConversionResult`. Any error marks the result unsuccessful and the
    original code is returned unchanged.
"""

from typing import List, Optional, Union

import libcst as cst
from libcst.metadata import MetadataWrapper, PositionProvider

from pyglue.config import RuntimeConfig
from pyglue.core.attributes import is_attribute_ident, take_attributes
from pyglue.core.conversion_result import ConversionResult
from pyglue.core.deprecations import Deprecations
from pyglue.core.errors import GlueError, GrammarError
from pyglue.core.module import process_functions_in_module, py_init
from pyglue.core.options import FunctionOptions
from pyglue.core.spans import SourceSpan

MODULE_ATTRIBUTE = "pymodule"


class ModuleTransformer(cst.CSTTransformer):
  """
  Expands ``@pymodule`` functions in place.

  Attributes:
      config (RuntimeConfig): Active configuration.
      errors (List[GlueError]): Collected failures (unless ``fail_fast``).
      deprecations (Deprecations): Collected deprecation records.
      modules (List[str]): External names of the expanded modules, in order.
  """

  METADATA_DEPENDENCIES = (PositionProvider,)

  def __init__(self, config: RuntimeConfig) -> None:
    super().__init__()
    self.config = config
    self.errors: List[GlueError] = []
    self.deprecations = Deprecations()
    self.modules: List[str] = []

  def span_of(self, node: cst.CSTNode) -> Optional[SourceSpan]:
    """
    Resolves the location of a node from the original tree.

    Args:
        node (cst.CSTNode): Any node of the tree being visited.

    Returns:
        Optional[SourceSpan]: The node's span, or None for synthesized nodes.
    """
    code_range = self.get_metadata(PositionProvider, node, None)
    if code_range is None:
      return None
    return SourceSpan.from_code_range(code_range)

  def leave_FunctionDef(
    self, original_node: cst.FunctionDef, updated_node: cst.FunctionDef
  ) -> Union[cst.FunctionDef, cst.FlattenSentinel]:
    """
    Expands a module function.

    The original node is rewritten so that position metadata is available for
    every nested annotation.
    """
    if not any(is_attribute_ident(d, MODULE_ATTRIBUTE) for d in original_node.decorators):
      return updated_node

    try:
      stripped, options = self._take_module_attributes(original_node)
    except GlueError as e:
      if self.config.fail_fast:
        raise
      self.errors.append(e)
      return updated_node

    rewrite = process_functions_in_module(
      stripped,
      span_of=self.span_of,
      runtime=self.config.runtime_alias,
      fail_fast=self.config.fail_fast,
    )
    self.errors.extend(rewrite.errors)
    self.deprecations.extend(rewrite.deprecations)

    name = options.python_name or original_node.name.value
    self.modules.append(name)

    if not self.config.emit_init:
      return rewrite.function

    doc = (original_node.get_docstring() or "") + "\0"
    entry_point = py_init(original_node.name.value, name, doc, self.config.runtime_alias)
    entry_point = entry_point.with_changes(leading_lines=[cst.EmptyLine(), cst.EmptyLine()])
    return cst.FlattenSentinel([rewrite.function, entry_point])

  def _take_module_attributes(self, func: cst.FunctionDef):
    """Strips ``@pymodule`` and ``@pyglue(...)``, returning the function and its options."""

    def _extract(decorator: cst.Decorator) -> bool:
      if not is_attribute_ident(decorator, MODULE_ATTRIBUTE):
        return False
      if isinstance(decorator.decorator, cst.Call) and decorator.decorator.args:
        raise GrammarError(
          f'@{MODULE_ATTRIBUTE} takes no arguments, use @pyglue(name = "...") instead', self.span_of(decorator)
        )
      return True

    remaining = take_attributes(func.decorators, _extract)
    options = FunctionOptions()
    remaining = options.take_glue_options(remaining, self.span_of)

    if options.pass_module or options.text_signature is not None:
      raise GrammarError(f"only `name` is supported on @{MODULE_ATTRIBUTE}", self.span_of(func))
    return func.with_changes(decorators=remaining), options


class GlueEngine:
  """
  The main expansion unit.

  Encapsulates the configuration and passes required to expand a single
  source file.
  """

  def __init__(self, config: Optional[RuntimeConfig] = None) -> None:
    """
    Initializes the Engine.

    Args:
        config (RuntimeConfig, optional): The runtime configuration object.
            Loaded from ``pyproject.toml`` if omitted.
    """
    self.config = config or RuntimeConfig.load()

  def parse(self, code: str) -> cst.Module:
    """
    Parses source string into a LibCST Module.

    Args:
        code (str): Python source code.

    Returns:
        cst.Module: The parsed tree.

    Raises:
        libcst.ParserSyntaxError: If the input code is invalid Python.
    """
    return cst.parse_module(code)

  def run(self, code: str) -> ConversionResult:
    """
    Expands every ``@pymodule`` function in ``code``.

    Args:
        code (str): Python source code.

    Returns:
        ConversionResult: Expanded code, or the original code with errors.
    """
    try:
      tree = self.parse(code)
    except cst.ParserSyntaxError as e:
      return ConversionResult(code=code, success=False, errors=[f"Syntax error: {e}"])

    transformer = ModuleTransformer(self.config)
    try:
      new_tree = MetadataWrapper(tree).visit(transformer)
    except GlueError as e:
      deprecations = Deprecations()
      deprecations.extend(transformer.deprecations)
      if e.deprecations:
        deprecations.extend(e.deprecations)
      return ConversionResult(code=code, success=False, errors=[str(e)], warnings=deprecations.messages())

    warnings = transformer.deprecations.messages()
    if transformer.errors:
      return ConversionResult(
        code=code,
        success=False,
        errors=[str(e) for e in transformer.errors],
        warnings=warnings,
        modules=transformer.modules,
      )

    if transformer.modules and self.config.runtime_module:
      new_tree = self._ensure_runtime_import(new_tree)

    return ConversionResult(code=new_tree.code, warnings=warnings, modules=transformer.modules)

  def _ensure_runtime_import(self, tree: cst.Module) -> cst.Module:
    """
    Inserts ``import <runtime_module> as <alias>`` after the module docstring
    and ``__future__`` imports, unless an equivalent import already exists.
    """
    module_path = self.config.runtime_module
    alias = self.config.runtime_alias
    statement = cst.parse_statement(f"import {module_path} as {alias}")

    index = 0
    for i, stmt in enumerate(tree.body):
      if not isinstance(stmt, cst.SimpleStatementLine):
        continue
      if _imports_as(stmt, module_path, alias):
        return tree
      if _is_docstring(stmt, i) or _is_future_import(stmt):
        index = i + 1

    body = list(tree.body)
    body.insert(index, statement)
    return tree.with_changes(body=body)


def _is_docstring(stmt: cst.SimpleStatementLine, index: int) -> bool:
  return (
    index == 0
    and len(stmt.body) == 1
    and isinstance(stmt.body[0], cst.Expr)
    and isinstance(stmt.body[0].value, (cst.SimpleString, cst.ConcatenatedString))
  )


def _is_future_import(stmt: cst.SimpleStatementLine) -> bool:
  return any(
    isinstance(small, cst.ImportFrom) and isinstance(small.module, cst.Name) and small.module.value == "__future__"
    for small in stmt.body
  )


def _dotted_name(node: cst.BaseExpression) -> str:
  if isinstance(node, cst.Name):
    return node.value
  if isinstance(node, cst.Attribute):
    return f"{_dotted_name(node.value)}.{node.attr.value}"
  return ""


def _imports_as(stmt: cst.SimpleStatementLine, module_path: str, alias: str) -> bool:
  for small in stmt.body:
    if not isinstance(small, cst.Import):
      continue
    for name in small.names:
      if name.asname is None or not isinstance(name.asname.name, cst.Name):
        continue
      if _dotted_name(name.name) == module_path and name.asname.name.value == alias:
        return True
  return False
