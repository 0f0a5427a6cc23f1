"""
Function Wrapper Builder.

Turns a plain (annotation-free) function definition into a wrapper factory
that, given the target module object, returns a host-callable function object::

    def __pyglue_get_function_add(_pyglue_module):
        def add(a, b):
            return a + b
        return _pyglue.PyCFunction(add, name='add', module=_pyglue_module)

The wrapper carries its own copy of the function so the registration can run
before the original ``def`` statement executes.
"""

from typing import Tuple

import libcst as cst

from pyglue.core.errors import GrammarError
from pyglue.core.options import FunctionOptions

WRAPPER_PREFIX = "__pyglue_get_function_"
MODULE_PARAM = "_pyglue_module"


def wrapper_ident(func: cst.FunctionDef) -> str:
  return f"{WRAPPER_PREFIX}{func.name.value}"


def wrap_pyfunction(
  func: cst.FunctionDef, options: FunctionOptions, runtime: str = "_pyglue"
) -> Tuple[str, cst.FunctionDef]:
  """
  Builds the wrapper factory for ``func``.

  Args:
      func (cst.FunctionDef): The function with export annotations already removed.
      options (FunctionOptions): Merged export options.
      runtime (str): Name the generated code uses for the runtime support object.

  Returns:
      Tuple[str, cst.FunctionDef]: The wrapper's identifier and definition.

  Raises:
      GrammarError: If ``pass_module`` is set on a function without a
          positional parameter to receive the module.
  """
  fn_name = func.name.value
  python_name = options.python_name or fn_name

  if options.pass_module and not (func.params.posonly_params or func.params.params):
    raise GrammarError(f"expected `{fn_name}` to take the module as its first argument when `pass_module` is set")

  call_args = [fn_name, f"name={python_name!r}", f"module={MODULE_PARAM}"]
  if options.text_signature is not None:
    call_args.append(f"text_signature={options.text_signature.value!r}")
  if options.pass_module:
    call_args.append("pass_module=True")

  call = cst.parse_expression(f"{runtime}.PyCFunction({', '.join(call_args)})")
  ret = cst.SimpleStatementLine(body=[cst.Return(value=call)])
  inner = func.with_changes(leading_lines=[])

  ident = wrapper_ident(func)
  wrapper = cst.FunctionDef(
    name=cst.Name(ident),
    params=cst.Parameters(params=[cst.Param(name=cst.Name(MODULE_PARAM))]),
    body=cst.IndentedBlock(body=[inner, ret]),
  )
  return ident, wrapper
