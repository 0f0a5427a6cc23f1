"""
Source locations attached to tokens, diagnostics and deprecations.
"""

from dataclasses import dataclass
from typing import Optional

from libcst.metadata import CodeRange


@dataclass(frozen=True)
class SourceSpan:
  """
  A region of the input source.

  Lines are 1-based and columns 0-based, matching libcst's ``CodeRange``.

  Attributes:
      line (int): Start line.
      column (int): Start column.
      end_line (int): End line.
      end_column (int): End column (exclusive).
  """

  line: int
  column: int
  end_line: int
  end_column: int

  @classmethod
  def from_code_range(cls, code_range: CodeRange) -> "SourceSpan":
    """
    Converts a libcst position into a span.

    Args:
        code_range (CodeRange): Position metadata from ``PositionProvider``.

    Returns:
        SourceSpan: The equivalent span.
    """
    return cls(
      line=code_range.start.line,
      column=code_range.start.column,
      end_line=code_range.end.line,
      end_column=code_range.end.column,
    )

  def offset(self, origin: Optional["SourceSpan"]) -> "SourceSpan":
    """
    Re-bases a span measured relative to a fragment onto the fragment's origin.

    Args:
        origin (Optional[SourceSpan]): Where the fragment starts in the file.
            If None, the span is returned unchanged.

    Returns:
        SourceSpan: The span in file coordinates.
    """
    if origin is None:
      return self

    def _shift(line: int, column: int):
      if line == 1:
        return origin.line, origin.column + column
      return origin.line + line - 1, column

    start_line, start_col = _shift(self.line, self.column)
    end_line, end_col = _shift(self.end_line, self.end_column)
    return SourceSpan(start_line, start_col, end_line, end_col)

  def __str__(self) -> str:
    return f"{self.line}:{self.column}"
