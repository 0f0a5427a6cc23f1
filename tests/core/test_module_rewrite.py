"""
Tests for the module body scanner and rewriter.

Verifies that:
1. Bodies without ``@pyfn`` come back structurally identical, node for node.
2. Each annotated function is preceded by exactly one registration (wrapper
   definition plus ``add_function`` call) and loses its annotations.
3. Unrelated statements keep their identity and relative order.
4. Errors are scoped to one statement; siblings are still processed.
"""

import libcst as cst
import pytest

from pyglue.core.attributes import decorator_name
from pyglue.core.errors import DuplicateAnnotationError, GrammarError, LegacyNameParseError
from pyglue.core.module import process_functions_in_module
from pyglue.enums import DeprecationKind


def code_of(node):
  return cst.Module(body=[]).code_for_node(node)


def body_of(func):
  return list(func.body.body)


PLAIN = """
def demo(py, m):
    x = 1

    @staticmethod
    def helper():
        pass

    m.add("y", x)
"""

SINGLE = """
def demo(py, m):
    x = 1

    @pyfn(m)
    def add(a, b):
        return a + b

    y = 2
"""


def test_identity_without_annotations(parse_fn):
  func = parse_fn(PLAIN)
  rewrite = process_functions_in_module(func)

  assert rewrite.errors == []
  assert rewrite.function.deep_equals(func)
  new_body = body_of(rewrite.function)
  assert len(new_body) == len(body_of(func))
  assert all(a is b for a, b in zip(new_body, body_of(func)))


def test_single_annotation_layout(parse_fn):
  func = parse_fn(SINGLE)
  before = body_of(func)
  rewrite = process_functions_in_module(func)
  after = body_of(rewrite.function)

  assert len(after) == len(before) + 2
  assert after[0] is before[0]

  wrapper, registration, original = after[1], after[2], after[3]
  assert isinstance(wrapper, cst.FunctionDef)
  assert wrapper.name.value == "__pyglue_get_function_add"
  assert code_of(registration).strip() == "m.add_function(__pyglue_get_function_add(m))"
  assert isinstance(original, cst.FunctionDef)
  assert original.name.value == "add"
  assert len(original.decorators) == 0

  assert after[4] is before[2]


def test_input_is_not_mutated(parse_fn):
  func = parse_fn(SINGLE)
  snapshot = code_of(func)
  process_functions_in_module(func)
  assert code_of(func) == snapshot
  assert decorator_name(body_of(func)[1].decorators[0]) == "pyfn"


def test_wrapper_contents(parse_fn):
  func = parse_fn(SINGLE)
  wrapper = body_of(process_functions_in_module(func).function)[1]
  wrapper_code = code_of(wrapper)

  assert "def __pyglue_get_function_add(_pyglue_module):" in wrapper_code
  assert "def add(a, b):" in wrapper_code
  assert "return _pyglue.PyCFunction(add, name='add', module=_pyglue_module)" in wrapper_code
  assert "@pyfn" not in wrapper_code


def test_runtime_alias_used_by_default_builder(parse_fn):
  func = parse_fn(SINGLE)
  wrapper = body_of(process_functions_in_module(func, runtime="rt").function)[1]
  assert "rt.PyCFunction(" in code_of(wrapper)


def test_unrelated_decorators_kept(parse_fn):
  func = parse_fn(
    """
    def demo(py, m):
        @functools.wraps(other)
        @pyfn(m)
        @pyglue(name = renamed)
        def f():
            pass
    """
  )
  after = body_of(process_functions_in_module(func).function)
  stripped = after[-1]
  assert [code_of(d.decorator) for d in stripped.decorators] == ["functools.wraps(other)"]
  assert "name='renamed'" in code_of(after[0])


def test_multiple_annotations_keep_order(parse_fn):
  func = parse_fn(
    """
    def demo(py, m):
        @pyfn(m)
        def first():
            pass
        z = 0
        @pyfn(m.sub)
        def second():
            pass
    """
  )
  after = body_of(process_functions_in_module(func).function)
  names = [s.name.value if isinstance(s, cst.FunctionDef) else code_of(s).strip() for s in after]

  assert names == [
    "__pyglue_get_function_first",
    "m.add_function(__pyglue_get_function_first(m))",
    "first",
    "z = 0",
    "__pyglue_get_function_second",
    "m.sub.add_function(__pyglue_get_function_second(m.sub))",
    "second",
  ]


def test_nested_functions_are_not_scanned(parse_fn):
  func = parse_fn(
    """
    def demo(py, m):
        def outer():
            @pyfn(m)
            def inner():
                pass
    """
  )
  rewrite = process_functions_in_module(func)
  assert rewrite.function.deep_equals(func)


def test_one_line_body_is_untouched(parse_fn):
  func = parse_fn("def demo(py, m): pass\n")
  rewrite = process_functions_in_module(func)
  assert rewrite.function is func


def test_duplicate_collected_and_siblings_processed(parse_fn):
  func = parse_fn(
    """
    def demo(py, m):
        @pyfn(m)
        @pyfn(m)
        def bad():
            pass

        @pyfn(m)
        def good():
            pass
    """
  )
  before = body_of(func)
  rewrite = process_functions_in_module(func)
  after = body_of(rewrite.function)

  assert len(rewrite.errors) == 1
  assert isinstance(rewrite.errors[0], DuplicateAnnotationError)
  assert after[0] is before[0]
  assert after[1].name.value == "__pyglue_get_function_good"
  assert after[3].name.value == "good"


def test_fail_fast_raises(parse_fn):
  func = parse_fn(
    """
    def demo(py, m):
        @pyfn()
        def bad():
            pass
    """
  )
  with pytest.raises(GrammarError, match="expected module as first argument"):
    process_functions_in_module(func, fail_fast=True)


def test_deprecations_collected(parse_fn):
  func = parse_fn(
    """
    def demo(py, m):
        @pyfn(m, "legacy")
        def f():
            pass
    """
  )
  rewrite = process_functions_in_module(func)
  assert [kind for kind, _ in rewrite.deprecations] == [DeprecationKind.PYFN_NAME_ARGUMENT]
  assert "name='legacy'" in code_of(body_of(rewrite.function)[0])


def test_deprecation_kept_alongside_legacy_error(parse_fn):
  func = parse_fn(
    """
    def demo(py, m):
        @pyfn(m, "no good")
        def f():
            pass
    """
  )
  rewrite = process_functions_in_module(func)
  assert isinstance(rewrite.errors[0], LegacyNameParseError)
  assert len(rewrite.deprecations) == 1


def test_builder_errors_are_scoped(parse_fn):
  func = parse_fn(
    """
    def demo(py, m):
        @pyfn(m, pass_module)
        def f():
            pass
    """
  )
  rewrite = process_functions_in_module(func)
  assert len(rewrite.errors) == 1
  assert "pass_module" in rewrite.errors[0].message


def test_custom_builder(parse_fn):
  calls = []

  def builder(func, options):
    calls.append((func, options))
    return "make_f", cst.ensure_type(cst.parse_statement("def make_f(mod):\n    return mod\n"), cst.FunctionDef)

  func = parse_fn(
    """
    def demo(py, m):
        @pyfn(m, name = exported)
        def f():
            pass
    """
  )
  after = body_of(process_functions_in_module(func, builder=builder).function)

  assert len(calls) == 1
  passed_func, options = calls[0]
  assert len(passed_func.decorators) == 0
  assert options.python_name == "exported"
  assert after[0].name.value == "make_f"
  assert code_of(after[1]).strip() == "m.add_function(make_f(m))"


def test_fail_fast_error_carries_sibling_deprecations(parse_fn):
  func = parse_fn(
    """
    def demo(py, m):
        @pyfn(m, "old")
        def ok():
            pass

        @pyfn(m, bogus)
        def bad():
            pass
    """
  )
  with pytest.raises(GrammarError) as exc:
    process_functions_in_module(func, fail_fast=True)

  assert [kind for kind, _ in exc.value.deprecations] == [DeprecationKind.PYFN_NAME_ARGUMENT]
