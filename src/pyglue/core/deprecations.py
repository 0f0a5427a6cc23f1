"""
Deprecation Recorder.

Legacy annotation forms are accepted but every use is recorded as a
``(DeprecationKind, SourceSpan)`` pair. Recording is a side channel: it never
affects the parse result and survives hard errors raised afterwards, so the
caller can display the warning next to the error.
"""

from typing import Iterator, List, Optional, Tuple

from pyglue.core.spans import SourceSpan
from pyglue.enums import DeprecationKind


class Deprecations:
  """
  Ordered, append-only list of deprecation records.
  """

  def __init__(self) -> None:
    self._records: List[Tuple[DeprecationKind, Optional[SourceSpan]]] = []

  def push(self, kind: DeprecationKind, span: Optional[SourceSpan]) -> None:
    """
    Records one use of a deprecated form.

    Args:
        kind (DeprecationKind): Which legacy form was used.
        span (Optional[SourceSpan]): Where it was used.
    """
    self._records.append((kind, span))

  def extend(self, other: "Deprecations") -> None:
    self._records.extend(other)

  def messages(self) -> List[str]:
    """
    Formats the records for display.

    Returns:
        List[str]: ``"<line>:<col>: <message>"`` per record, in order.
    """
    out = []
    for kind, span in self._records:
      prefix = f"{span}: " if span is not None else ""
      out.append(f"{prefix}{kind.message}")
    return out

  def __iter__(self) -> Iterator[Tuple[DeprecationKind, Optional[SourceSpan]]]:
    return iter(self._records)

  def __len__(self) -> int:
    return len(self._records)

  def __bool__(self) -> bool:
    return bool(self._records)

  def __repr__(self) -> str:
    return f"Deprecations({self._records!r})"
