"""
Function Export Options.

The keyword option grammar shared by every export path: the trailing options
of ``@pyfn(m, ...)`` and the namespace decorator ``@pyglue(...)`` both feed the
same `FunctionOptions` record.

Grammar::

    options := [option ("," option)* [","]]
    option  := "name" "=" (IDENT | STRING)
             | "text_signature" "=" (STRING | "None")
             | "pass_module" ["=" ("True" | "False")]

Each option may be given at most once per function, across all decorators.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Set

import libcst as cst

from pyglue.core.attributes import (
  NAMESPACE_ATTRIBUTE,
  NameAttribute,
  SpanLookup,
  TextSignatureAttribute,
  attribute_arguments,
  is_attribute_ident,
  no_spans,
  take_attributes,
)
from pyglue.core.deprecations import Deprecations
from pyglue.core.errors import GrammarError
from pyglue.core.tokens import Token, TokenStream, TokenType

KNOWN_OPTIONS = ("name", "text_signature", "pass_module")


@dataclass
class FunctionOptions:
  """
  Export configuration for one function.

  Attributes:
      name (Optional[NameAttribute]): Python-visible name override.
      text_signature (Optional[TextSignatureAttribute]): Explicit text signature.
      pass_module (bool): Whether the module object is passed as first argument.
      deprecations (Deprecations): Legacy forms encountered while parsing.
  """

  name: Optional[NameAttribute] = None
  text_signature: Optional[TextSignatureAttribute] = None
  pass_module: bool = False
  deprecations: Deprecations = field(default_factory=Deprecations)
  _specified: Set[str] = field(default_factory=set, repr=False, compare=False)

  @classmethod
  def parse(cls, stream: TokenStream) -> "FunctionOptions":
    """
    Parses all remaining tokens of ``stream`` as options.

    Args:
        stream (TokenStream): Stream positioned at the first option.

    Returns:
        FunctionOptions: The parsed options (defaults for empty input).

    Raises:
        GrammarError: On unknown, repeated or malformed options.
    """
    options = cls()
    options.parse_into(stream)
    return options

  def parse_into(self, stream: TokenStream) -> None:
    """Parses options from ``stream`` into this record."""
    while not stream.is_empty():
      self._parse_option(stream)
      if stream.is_empty():
        break
      stream.consume(TokenType.COMMA, "`,`")

  def _parse_option(self, stream: TokenStream) -> None:
    key = stream.consume(TokenType.IDENT, "option name")
    if key.value not in KNOWN_OPTIONS:
      expected = ", ".join(f"`{k}`" for k in KNOWN_OPTIONS)
      raise GrammarError(f"unknown option `{key.value}`, expected one of {expected}", key.span)
    self._mark_specified(key)

    if key.value == "pass_module":
      if stream.match(TokenType.EQUALS):
        stream.consume()
        value = stream.consume(TokenType.IDENT, "`True` or `False`")
        if value.value not in ("True", "False"):
          raise GrammarError(f"expected `True` or `False`, found `{value.value}`", value.span)
        self.pass_module = value.value == "True"
      else:
        self.pass_module = True
      return

    stream.consume(TokenType.EQUALS, "`=`")
    if key.value == "name":
      self.name = NameAttribute.from_token(stream.consume(expected="identifier"))
    else:
      self.text_signature = _parse_text_signature(stream.consume(expected="string literal or `None`"))

  def _mark_specified(self, key: Token) -> None:
    if key.value in self._specified:
      raise GrammarError(f"`{key.value}` may only be specified once", key.span)
    self._specified.add(key.value)

  def set_name(self, name: NameAttribute) -> None:
    """
    Sets the name override unconditionally, replacing any earlier value.

    Used for the legacy positional name, which takes precedence over a keyword
    ``name`` given in ``@pyfn`` or ``@pyglue``. Keyword options themselves go
    through the once-only check instead.

    Args:
        name (NameAttribute): The new name.
    """
    self.name = name
    self._specified.add("name")

  def add_attributes(self, decorator: cst.Decorator, span_of: SpanLookup = no_spans) -> None:
    """
    Merges the options of one ``@pyglue(...)`` decorator.

    Args:
        decorator (cst.Decorator): The namespace decorator.
        span_of (SpanLookup): Position lookup for error locations.
    """
    text, origin = attribute_arguments(decorator, span_of)
    self.parse_into(TokenStream.from_source(text, origin))

  def take_glue_options(
    self, decorators: Sequence[cst.Decorator], span_of: SpanLookup = no_spans
  ) -> List[cst.Decorator]:
    """
    Strips every ``@pyglue(...)`` decorator, folding its options into this record.

    Args:
        decorators (Sequence[cst.Decorator]): A function's decorators.
        span_of (SpanLookup): Position lookup for error locations.

    Returns:
        List[cst.Decorator]: The remaining decorators, in order.
    """

    def _extract(decorator: cst.Decorator) -> bool:
      if is_attribute_ident(decorator, NAMESPACE_ATTRIBUTE):
        self.add_attributes(decorator, span_of)
        return True
      return False

    return take_attributes(decorators, _extract)

  @property
  def python_name(self) -> Optional[str]:
    return self.name.value if self.name else None


def _parse_text_signature(token: Token) -> TextSignatureAttribute:
  if token.kind == TokenType.IDENT and token.value == "None":
    return TextSignatureAttribute(None, token.span)
  if token.kind != TokenType.STRING:
    raise GrammarError(f"expected string literal or `None`, found `{token.value}`", token.span)
  return TextSignatureAttribute(token.string_value(), token.span)

