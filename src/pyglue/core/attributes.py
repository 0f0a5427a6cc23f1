"""
Decorator (Attribute) Utilities.

Helpers shared by the annotation parsers:

1.  **Recognition**: deciding whether a decorator is one of ours (`is_attribute_ident`).
2.  **Extraction**: filtering decorators out of a function's decorator list
    (`take_attributes`), leaving unrelated decorators intact and in order.
3.  **Argument Access**: recovering the raw source text of a decorator's
    argument list together with its location (`attribute_arguments`).
4.  **Typed Values**: small value objects for option payloads (`NameAttribute`,
    `TextSignatureAttribute`).
"""

import keyword
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

import libcst as cst

from pyglue.core.errors import GrammarError
from pyglue.core.spans import SourceSpan
from pyglue.core.tokens import Token, TokenType

SpanLookup = Callable[[cst.CSTNode], Optional[SourceSpan]]

# Namespace decorator whose options are folded into the function's export options.
NAMESPACE_ATTRIBUTE = "pyglue"

_EMPTY_MODULE = cst.Module(body=[])


def no_spans(_node: cst.CSTNode) -> Optional[SourceSpan]:
  """Span lookup used when no position metadata is available."""
  return None


def is_identifier(text: str) -> bool:
  return text.isidentifier() and not keyword.iskeyword(text)


@dataclass(frozen=True)
class NameAttribute:
  """
  The Python-visible name of an exported function or module.

  Attributes:
      value (str): A valid identifier.
      span (Optional[SourceSpan]): Where the name was written.
  """

  value: str
  span: Optional[SourceSpan] = None

  @classmethod
  def from_token(cls, token: Token) -> "NameAttribute":
    """
    Builds a name from an identifier or a string literal holding one.

    Args:
        token (Token): An IDENT or STRING token.

    Returns:
        NameAttribute: The validated name.

    Raises:
        GrammarError: If the token does not denote a valid identifier.
    """
    if token.kind == TokenType.IDENT:
      text = token.value
    elif token.kind == TokenType.STRING:
      text = token.string_value()
    else:
      raise GrammarError(f"expected identifier, found `{token.value}`", token.span)

    if not is_identifier(text):
      raise GrammarError(f"expected identifier, found {text!r}", token.span)
    return cls(text, token.span)


@dataclass(frozen=True)
class TextSignatureAttribute:
  """
  Explicit ``__text_signature__`` for an exported function.

  A ``value`` of None disables the signature entirely.
  """

  value: Optional[str]
  span: Optional[SourceSpan] = None


def decorator_name(decorator: cst.Decorator) -> Optional[str]:
  """
  Returns the bare name of a decorator, with or without a call.

  Only single identifiers count: ``@pyfn`` and ``@pyfn(...)`` yield ``"pyfn"``,
  while dotted forms like ``@x.pyfn`` yield None.

  Args:
      decorator (cst.Decorator): The decorator node.

  Returns:
      Optional[str]: The identifier, or None for any other expression.
  """
  expr = decorator.decorator
  if isinstance(expr, cst.Call):
    expr = expr.func
  if isinstance(expr, cst.Name):
    return expr.value
  return None


def is_attribute_ident(decorator: cst.Decorator, name: str) -> bool:
  return decorator_name(decorator) == name


def take_attributes(
  decorators: Sequence[cst.Decorator],
  extractor: Callable[[cst.Decorator], bool],
) -> List[cst.Decorator]:
  """
  Filters decorators through ``extractor``.

  The extractor is called once per decorator in order; returning True means it
  consumed the decorator and it is dropped from the result. Exceptions raised
  by the extractor propagate.

  Args:
      decorators (Sequence[cst.Decorator]): The original decorator list.
      extractor (Callable): Consumer returning True for decorators to remove.

  Returns:
      List[cst.Decorator]: The decorators that were not consumed, in order.
  """
  kept = []
  for decorator in decorators:
    if not extractor(decorator):
      kept.append(decorator)
  return kept


def attribute_arguments(decorator: cst.Decorator, span_of: SpanLookup = no_spans) -> Tuple[str, Optional[SourceSpan]]:
  """
  Recovers the argument list source of a decorator.

  ``@pyfn(m, name = x)`` yields ``("m, name = x", <span of m>)``. A decorator
  without a call, or with empty parentheses, yields an empty string and the
  decorator's own span.

  Args:
      decorator (cst.Decorator): The decorator node.
      span_of (SpanLookup): Position lookup for nodes of the original tree.

  Returns:
      Tuple[str, Optional[SourceSpan]]: The raw argument text and its origin.
  """
  expr = decorator.decorator
  if not isinstance(expr, cst.Call) or not expr.args:
    return "", span_of(decorator)

  text = "".join(_EMPTY_MODULE.code_for_node(arg) for arg in expr.args)
  return text, span_of(expr.args[0])
