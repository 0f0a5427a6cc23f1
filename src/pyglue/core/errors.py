"""
Diagnostic Exceptions.

Every fatal problem found while expanding annotations is raised as a
``GlueError`` subclass. Errors are scoped to the single annotation or statement
that caused them; the caller decides whether to abort or keep collecting.

Hierarchy::

    GlueError (ValueError)
    ├── GrammarError              malformed annotation arguments or options
    │   └── LegacyNameParseError  legacy positional name is not an identifier
    └── DuplicateAnnotationError  @pyfn applied more than once to a function
"""

from typing import TYPE_CHECKING, Optional

from pyglue.core.spans import SourceSpan

if TYPE_CHECKING:
  from pyglue.core.deprecations import Deprecations


class GlueError(ValueError):
  """
  Base class for annotation expansion failures.

  Attributes:
      message (str): Description of the problem.
      span (Optional[SourceSpan]): Location of the offending source, if known.
      deprecations (Optional[Deprecations]): Deprecations recorded before the failure.
  """

  def __init__(
    self,
    message: str,
    span: Optional[SourceSpan] = None,
    deprecations: Optional["Deprecations"] = None,
  ) -> None:
    super().__init__(message)
    self.message = message
    self.span = span
    self.deprecations = deprecations

  def __str__(self) -> str:
    if self.span is None:
      return self.message
    return f"{self.span}: {self.message}"


class GrammarError(GlueError):
  """The annotation's argument list does not follow the expected grammar."""


class LegacyNameParseError(GrammarError):
  """The legacy positional name string is not a valid identifier."""


class DuplicateAnnotationError(GlueError):
  """An annotation that may appear once was applied several times."""
