"""
Enumerations for pyglue.

This module defines the enumerations shared across the codebase for
deprecation tracking and lexical categorisation.
"""

from enum import Enum


class DeprecationKind(str, Enum):
  """
  Legacy annotation forms that are still accepted but reported to the user.

  The value doubles as the marker name surfaced in diagnostics.
  """

  PYFN_NAME_ARGUMENT = "PYFN_NAME_ARGUMENT"  # @pyfn(m, "name")

  @property
  def message(self) -> str:
    """
    Human readable explanation of the deprecation.

    Returns:
        str: The message displayed next to the source location.
    """
    return _DEPRECATION_MESSAGES[self]


_DEPRECATION_MESSAGES = {
  DeprecationKind.PYFN_NAME_ARGUMENT: (
    'passing the function name as a positional string to @pyfn is deprecated, use @pyfn(m, name="...") instead'
  ),
}
