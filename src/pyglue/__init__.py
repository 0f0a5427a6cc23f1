"""
pyglue Package.

A build-time source transformer that expands ``@pymodule`` / ``@pyfn``
annotations into the glue code an extension module needs at import time:
a ``PyInit_<name>`` entry point per module and an in-place registration for
every exported inner function.

Usage
-----

Simple String Conversion
^^^^^^^^^^^^^^^^^^^^^^^^

.. code-block:: python

    import pyglue
    code = '''
    @pymodule
    def demo(py, m):
        @pyfn(m)
        def double(x):
            return 2 * x
    '''
    print(pyglue.convert(code))

Advanced Usage (Engine)
^^^^^^^^^^^^^^^^^^^^^^^

.. code-block:: python

    from pyglue import GlueEngine, RuntimeConfig

    engine = GlueEngine(config=RuntimeConfig(runtime_module="mypkg.runtime"))
    res = engine.run(code)

    if res.success:
        print(res.code)
    else:
        print(f"Errors: {res.errors}")
"""

from typing import Optional

from pyglue.config import RuntimeConfig
from pyglue.core.engine import GlueEngine
from pyglue.core.conversion_result import ConversionResult

__version__ = "0.1.0"


def convert(
  code: str,
  runtime_alias: str = "_pyglue",
  runtime_module: Optional[str] = None,
  fail_fast: bool = False,
) -> str:
  """
  Expands the annotations of a string of Python code.

  Args:
      code (str): The source code to expand.
      runtime_alias (str): Name generated code uses for the runtime support module.
      runtime_module (str, optional): If given, the runtime is imported under the alias.
      fail_fast (bool): Stop at the first annotation error.

  Returns:
      str: The expanded source code.

  Raises:
      ValueError: If any annotation is malformed.
  """
  config = RuntimeConfig(runtime_alias=runtime_alias, runtime_module=runtime_module, fail_fast=fail_fast)
  result = GlueEngine(config=config).run(code)

  if not result.success:
    error_msg = "\n".join(result.errors)
    raise ValueError(f"Expansion failed:\n{error_msg}")

  return result.code


__all__ = [
  "ConversionResult",
  "GlueEngine",
  "RuntimeConfig",
  "convert",
  "__version__",
]
