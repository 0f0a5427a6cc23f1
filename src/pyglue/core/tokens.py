"""
Annotation Argument Tokenizer.

Provides a regex-based lexer (`ArgLexer`) that decomposes the raw source text of
a decorator's argument list (e.g. ``m.sub, "legacy", name = other``) into typed
`Token` objects, and a `TokenStream` cursor used by the recursive descent
parsers in ``pyglue.core.pyfn`` and ``pyglue.core.options``.

The lexer never fails: characters outside the annotation grammar become
``OTHER`` tokens so the parser can report them with a precise location.
"""

import ast
import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import Generator, List, Optional, Tuple

from pyglue.core.errors import GrammarError
from pyglue.core.spans import SourceSpan


class TokenType(Enum):
  """Enumeration of annotation token types."""

  IDENT = auto()  # name, m, pass_module
  DOT = auto()  # .
  COMMA = auto()  # ,
  EQUALS = auto()  # =
  STRING = auto()  # "text", r'text', """text"""
  NUMBER = auto()  # 1, 0x10
  OTHER = auto()  # anything else: ( ) * ...


@dataclass(frozen=True)
class Token:
  """
  Represents a lexical unit.

  Attributes:
      kind (TokenType): The type of token.
      value (str): The raw source text.
      span (SourceSpan): Location in file coordinates.
  """

  kind: TokenType
  value: str
  span: SourceSpan

  def string_value(self) -> str:
    """
    Evaluates a STRING token into its Python value.

    Returns:
        str: The literal's contents.

    Raises:
        GrammarError: If the literal is not a plain (non-bytes, non-f) string.
    """
    try:
      value = ast.literal_eval(self.value)
    except (ValueError, SyntaxError):
      raise GrammarError("expected string literal", self.span)
    if not isinstance(value, str):
      raise GrammarError("expected string literal", self.span)
    return value


class ArgLexer:
  """
  Regex-based lexer for decorator argument lists.
  """

  # Order determines priority
  PATTERNS: List[Tuple[TokenType, str]] = [
    # Strings first so prefixes (r, b, f) are not read as identifiers
    (
      TokenType.STRING,
      r"(?i:[rbuf]{0,2})(?:\"\"\"[\s\S]*?\"\"\"|'''[\s\S]*?'''|\"(?:\\.|[^\"\\\n])*\"|'(?:\\.|[^'\\\n])*')",
    ),
    (TokenType.IDENT, r"[^\W\d]\w*"),
    (TokenType.NUMBER, r"\d[\w\.]*"),
    (TokenType.DOT, r"\."),
    (TokenType.COMMA, r","),
    (TokenType.EQUALS, r"="),
    (TokenType.OTHER, r"\S"),
  ]

  _SKIP = re.compile(r"(?:\s+|#[^\n]*|\\\n)+")

  def __init__(self) -> None:
    """Initializes the lexer with compiled patterns."""
    self.regex_pairs = [(kind, re.compile(pattern)) for kind, pattern in self.PATTERNS]

  def tokenize(self, text: str, origin: Optional[SourceSpan] = None) -> Generator[Token, None, None]:
    """
    Tokenizes the input string.

    Args:
        text (str): Raw argument list source, without the enclosing parentheses.
        origin (Optional[SourceSpan]): Location of ``text`` in the file. When
            omitted, spans are relative to ``text`` itself.

    Yields:
        Token: Token objects in source order.
    """
    pos = 0
    length = len(text)

    while pos < length:
      skipped = self._SKIP.match(text, pos)
      if skipped:
        pos = skipped.end()
        continue

      for kind, regex in self.regex_pairs:
        match = regex.match(text, pos)
        if match:
          value = match.group(0)
          span = _span_between(text, pos, match.end()).offset(origin)
          yield Token(kind, value, span)
          pos = match.end()
          break


def _span_between(text: str, start: int, end: int) -> SourceSpan:
  """Computes a relative span for ``text[start:end]``."""
  start_line = text.count("\n", 0, start) + 1
  start_col = start - (text.rfind("\n", 0, start) + 1)
  end_line = text.count("\n", 0, end) + 1
  end_col = end - (text.rfind("\n", 0, end) + 1)
  return SourceSpan(start_line, start_col, end_line, end_col)


class TokenStream:
  """
  Cursor over a token list with one token of lookahead.

  Attributes:
      tokens (List[Token]): The tokens being parsed.
      pos (int): Index of the pending token.
      origin (Optional[SourceSpan]): Span reported for errors on empty input.
  """

  def __init__(self, tokens: List[Token], origin: Optional[SourceSpan] = None) -> None:
    self.tokens = tokens
    self.pos = 0
    self.origin = origin

  @classmethod
  def from_source(cls, text: str, origin: Optional[SourceSpan] = None) -> "TokenStream":
    """
    Lexes ``text`` into a new stream.

    Args:
        text (str): Raw argument list source.
        origin (Optional[SourceSpan]): Location of ``text`` in the file.

    Returns:
        TokenStream: A stream positioned on the first token.
    """
    return cls(list(ArgLexer().tokenize(text, origin)), origin)

  def peek(self, offset: int = 0) -> Optional[Token]:
    """Looks ahead at the pending token."""
    if self.pos + offset < len(self.tokens):
      return self.tokens[self.pos + offset]
    return None

  def is_empty(self) -> bool:
    return self.pos >= len(self.tokens)

  def match(self, kind: TokenType) -> bool:
    """Checks if the pending token is of ``kind``."""
    token = self.peek()
    return token is not None and token.kind == kind

  def consume(self, kind: Optional[TokenType] = None, expected: str = "") -> Token:
    """
    Consumes the pending token.

    Args:
        kind (Optional[TokenType]): Required token type, if any.
        expected (str): Description used in the error message.

    Returns:
        Token: The consumed token.

    Raises:
        GrammarError: At end of input, or if the token is not of ``kind``.
    """
    token = self.peek()
    if token is None:
      raise GrammarError(f"expected {expected or 'more input'}, found end of input", self.current_span())

    if kind and token.kind != kind:
      raise GrammarError(f"expected {expected or kind.name.lower()}, found `{token.value}`", token.span)

    self.pos += 1
    return token

  def current_span(self) -> Optional[SourceSpan]:
    """
    Span to blame for an error at the current position.

    Returns:
        Optional[SourceSpan]: The pending token's span, the last token's span at
        end of input, or the stream origin when there are no tokens at all.
    """
    token = self.peek()
    if token is not None:
      return token.span
    if self.tokens:
      return self.tokens[-1].span
    return self.origin
