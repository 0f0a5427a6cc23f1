"""
``@pyfn`` Annotation Parsing.

Parses the argument list of the export annotation placed on functions nested
in a ``@pymodule`` function::

    @pyfn(m.sub)                          # path only, default options
    @pyfn(m, name = "py_name")            # path plus keyword options
    @pyfn(m, "py_name")                   # legacy positional name (deprecated)
    @pyfn(m, "py_name", pass_module)      # legacy name followed by options

Parsing happens in two steps:

1.  `parse_export_args` walks the token stream: mandatory path, comma, optional
    legacy string literal, comma, then the shared option grammar. The legacy
    literal is returned unmerged.
2.  `merge_legacy_name` folds the legacy literal into the options as the name
    override and records a deprecation for it.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

import libcst as cst

from pyglue.core.attributes import (
  NameAttribute,
  SpanLookup,
  attribute_arguments,
  is_attribute_ident,
  is_identifier,
  no_spans,
  take_attributes,
)
from pyglue.core.errors import DuplicateAnnotationError, GrammarError, LegacyNameParseError
from pyglue.core.options import FunctionOptions
from pyglue.core.spans import SourceSpan
from pyglue.core.tokens import Token, TokenStream, TokenType
from pyglue.enums import DeprecationKind

EXPORT_ATTRIBUTE = "pyfn"


@dataclass(frozen=True)
class ModulePath:
  """
  Dotted reference to the module object a function is registered into.

  Attributes:
      segments (Tuple[str, ...]): Identifiers, e.g. ``("m", "sub")``.
      span (Optional[SourceSpan]): Location of the path.
  """

  segments: Tuple[str, ...]
  span: Optional[SourceSpan] = None

  @property
  def dotted(self) -> str:
    return ".".join(self.segments)

  def to_expression(self) -> Union[cst.Name, cst.Attribute]:
    """
    Builds the CST expression referring to the module.

    Returns:
        Union[cst.Name, cst.Attribute]: ``m`` or ``m.sub``.
    """
    node: Union[cst.Name, cst.Attribute] = cst.Name(self.segments[0])
    for part in self.segments[1:]:
      node = cst.Attribute(value=node, attr=cst.Name(part))
    return node


@dataclass(frozen=True)
class ParsedExportArgs:
  """
  Result of the grammar parser, before the legacy name is merged.
  """

  module_path: ModulePath
  options: FunctionOptions
  legacy_name: Optional[Token] = None


@dataclass(frozen=True)
class ExportDescriptor:
  """
  Everything needed to register one function into a module.

  Attributes:
      module_path (ModulePath): Target module object.
      options (FunctionOptions): Merged export options.
  """

  module_path: ModulePath
  options: FunctionOptions

  @classmethod
  def parse(cls, text: str, origin: Optional[SourceSpan] = None) -> "ExportDescriptor":
    """
    Parses and merges an argument list given as source text.

    Args:
        text (str): Argument list, e.g. ``'m, "legacy", pass_module'``.
        origin (Optional[SourceSpan]): Location of ``text`` in the file.

    Returns:
        ExportDescriptor: The merged descriptor.
    """
    stream = TokenStream.from_source(text, origin)
    return merge_legacy_name(parse_export_args(stream))


def parse_export_args(stream: TokenStream) -> ParsedExportArgs:
  """
  Parses the ``@pyfn`` argument grammar.

  ``Path ["," StringLiteral] ["," Options]``

  Args:
      stream (TokenStream): Tokens of the argument list.

  Returns:
      ParsedExportArgs: Path, options and the unmerged legacy literal.

  Raises:
      GrammarError: If the path is missing or the rest is malformed.
  """
  module_path = _parse_path(stream)

  if stream.is_empty():
    return ParsedExportArgs(module_path, FunctionOptions())

  stream.consume(TokenType.COMMA, "`,`")

  legacy_name = None
  if stream.match(TokenType.STRING):
    legacy_name = stream.consume()
    if not stream.is_empty():
      stream.consume(TokenType.COMMA, "`,`")

  options = FunctionOptions.parse(stream)
  return ParsedExportArgs(module_path, options, legacy_name)


def _parse_path(stream: TokenStream) -> ModulePath:
  message = f"expected module as first argument to @{EXPORT_ATTRIBUTE}()"
  start = stream.current_span()

  segments = []
  while True:
    token = stream.peek()
    if token is None or token.kind != TokenType.IDENT or not is_identifier(token.value):
      raise GrammarError(message, stream.current_span())
    segments.append(stream.consume().value)
    if not stream.match(TokenType.DOT):
      break
    stream.consume()

  end = stream.tokens[stream.pos - 1].span
  span = SourceSpan(start.line, start.column, end.end_line, end.end_column) if start else None
  return ModulePath(tuple(segments), span)


def merge_legacy_name(parsed: ParsedExportArgs) -> ExportDescriptor:
  """
  Folds the legacy positional name into the options.

  The deprecation is recorded before the literal is parsed so that it is
  reported even when the literal turns out to be malformed. The legacy name is
  applied after the keyword options and therefore replaces a keyword ``name``.

  Args:
      parsed (ParsedExportArgs): Output of `parse_export_args`.

  Returns:
      ExportDescriptor: The merged descriptor.

  Raises:
      LegacyNameParseError: If the literal is not a valid identifier.
  """
  options = parsed.options
  literal = parsed.legacy_name
  if literal is None:
    return ExportDescriptor(parsed.module_path, options)

  options.deprecations.push(DeprecationKind.PYFN_NAME_ARGUMENT, literal.span)
  try:
    name = NameAttribute.from_token(literal)
  except GrammarError as e:
    raise LegacyNameParseError(e.message, literal.span, options.deprecations)

  options.set_name(name)
  return ExportDescriptor(parsed.module_path, options)


def get_pyfn_attr(
  decorators: Sequence[cst.Decorator], span_of: SpanLookup = no_spans
) -> Tuple[List[cst.Decorator], Optional[ExportDescriptor]]:
  """
  Extracts the ``@pyfn`` annotation from a function's decorators.

  ``@pyfn`` and any ``@pyglue(...)`` option decorators are removed; the options
  of the latter are merged into the descriptor. Functions without ``@pyfn``
  are left untouched, ``@pyglue`` included.

  Keyword options may appear once across ``@pyfn`` and ``@pyglue``. The legacy
  positional name is not a keyword option: it is merged after both, so it
  replaces a keyword ``name`` from either decorator.

  Args:
      decorators (Sequence[cst.Decorator]): The function's decorators.
      span_of (SpanLookup): Position lookup for error locations.

  Returns:
      Tuple[List[cst.Decorator], Optional[ExportDescriptor]]: The remaining
      decorators and the descriptor, or the original decorators and None.

  Raises:
      DuplicateAnnotationError: If ``@pyfn`` appears more than once.
      GrammarError: If the annotation or the option decorators are malformed.
  """
  annotations = [d for d in decorators if is_attribute_ident(d, EXPORT_ATTRIBUTE)]
  if not annotations:
    return list(decorators), None

  if len(annotations) > 1:
    raise DuplicateAnnotationError(f"`@{EXPORT_ATTRIBUTE}` may only be specified once", span_of(annotations[1]))

  text, origin = attribute_arguments(annotations[0], span_of)
  parsed = parse_export_args(TokenStream.from_source(text, origin or span_of(annotations[0])))

  remaining = take_attributes(decorators, lambda d: d is annotations[0])
  remaining = parsed.options.take_glue_options(remaining, span_of)
  return remaining, merge_legacy_name(parsed)
