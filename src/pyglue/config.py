"""
Runtime Configuration Store.

Settings are read from ``[tool.pyglue]`` in the nearest ``pyproject.toml`` and
can be overridden from the command line.
"""

import sys
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, Field, field_validator

from pyglue.core.attributes import is_identifier

if sys.version_info >= (3, 11):
  import tomllib
else:
  import tomli as tomllib


class RuntimeConfig(BaseModel):
  """
  Global configuration container for the expansion engine.
  """

  runtime_alias: str = Field("_pyglue", description="Name generated code uses for the runtime support module.")
  runtime_module: Optional[str] = Field(
    None, description="If set, 'import <runtime_module> as <runtime_alias>' is added to expanded files."
  )
  fail_fast: bool = Field(False, description="If True, stop at the first annotation error instead of collecting all.")
  emit_init: bool = Field(True, description="If True, emit a PyInit_<name> entry point per @pymodule.")

  @field_validator("runtime_alias")
  @classmethod
  def validate_alias(cls, v: str) -> str:
    """
    Ensures the alias can be used as a Python name.

    Args:
        v (str): The alias to validate.

    Returns:
        str: The stripped alias.

    Raises:
        ValueError: If the alias is not an identifier.
    """
    v_clean = v.strip()
    if not is_identifier(v_clean):
      raise ValueError(f"runtime_alias must be a valid identifier, got '{v}'")
    return v_clean

  @field_validator("runtime_module")
  @classmethod
  def validate_module(cls, v: Optional[str]) -> Optional[str]:
    """
    Ensures the runtime module is a dotted import path.

    Args:
        v (Optional[str]): The module path to validate.

    Returns:
        Optional[str]: The stripped module path, or None.

    Raises:
        ValueError: If any segment is not an identifier.
    """
    if v is None:
      return None
    v_clean = v.strip()
    if not all(is_identifier(part) for part in v_clean.split(".")):
      raise ValueError(f"runtime_module must be a dotted module path, got '{v}'")
    return v_clean

  @classmethod
  def load(
    cls,
    runtime_alias: Optional[str] = None,
    runtime_module: Optional[str] = None,
    fail_fast: Optional[bool] = None,
    emit_init: Optional[bool] = None,
    search_path: Optional[Path] = None,
  ) -> "RuntimeConfig":
    """
    Loads configuration from pyproject.toml and overrides with CLI arguments.

    Args:
        runtime_alias (Optional[str]): Override for the runtime alias.
        runtime_module (Optional[str]): Override for the runtime import path.
        fail_fast (Optional[bool]): Override for fail-fast mode.
        emit_init (Optional[bool]): Override for entry point generation.
        search_path (Optional[Path]): Directory to start searching for TOML config.

    Returns:
        RuntimeConfig: The fully resolved configuration object.
    """
    start_dir = search_path or Path.cwd()
    toml_config, _ = _load_toml_settings(start_dir)

    overrides = {
      "runtime_alias": runtime_alias,
      "runtime_module": runtime_module,
      "fail_fast": fail_fast,
      "emit_init": emit_init,
    }
    values: Dict[str, Any] = {k: v for k, v in toml_config.items() if k in overrides}
    values.update({k: v for k, v in overrides.items() if v is not None})
    return cls(**values)


def _load_toml_settings(start_path: Path) -> Tuple[Dict[str, Any], Optional[Path]]:
  """
  Recursively searches parents for 'pyproject.toml' and extracts config.

  Args:
      start_path (Path): Directory to start search from.

  Returns:
      Tuple[Dict, Optional[Path]]: The config dict and the directory definition was found in.
  """
  current = start_path.resolve()

  for parent in [current, *current.parents]:
    toml_path = parent / "pyproject.toml"
    if toml_path.exists() and toml_path.is_file():
      try:
        with open(toml_path, "rb") as f:
          data = tomllib.load(f)
      except (OSError, tomllib.TOMLDecodeError):
        return {}, None

      tool_section = data.get("tool", {})
      return tool_section.get("pyglue", {}), parent

  return {}, None
