# tests/pml/mixins/test_scanner.py
from __future__ import annotations

import pytest

from pml.mixins.scanner import SourceIndex, findMatching, scanNonCodeSpans


def _body(index: SourceIndex, scope, path) -> str:
    region = index.lookup(scope, path)
    assert region is not None, f"{scope}::{path} not indexed"
    return index.text[region.bodyStart:region.close]


def test_free_function_region():
    text = "function foo(a, b) { return a + b; }"
    index = SourceIndex.build(text)
    region = index.lookup(None, "foo")
    assert region.start == 0
    assert text[region.bodyOpen] == "{"
    assert text[region.close] == "}"
    assert _body(index, None, "foo") == " return a + b; "


def test_braces_inside_strings_comments_and_templates_are_ignored():
    text = (
        "function foo() {\n"
        "  const a = '}';\n"
        '  const b = "{{";\n'
        "  // } stray\n"
        "  /* { */\n"
        "  const c = `x}${ {k: 1}.k }y{`;\n"
        "  return a;\n"
        "}\n"
        "function bar() {}\n"
    )
    index = SourceIndex.build(text)
    region = index.lookup(None, "foo")
    assert text[region.close:region.close + 2] == "}\n"
    assert text.index("function bar") > region.close
    assert index.lookup(None, "bar") is not None


def test_regex_literal_braces_are_ignored():
    text = "function foo(s) { return s.replace(/[{}]/g, \"\"); }\nfunction bar() { return 1 / 2; }"
    index = SourceIndex.build(text)
    assert _body(index, None, "foo").strip() == 'return s.replace(/[{}]/g, "");'
    assert _body(index, None, "bar").strip() == "return 1 / 2;"


def test_scan_spans_cover_string_and_comment():
    text = 'a = "x"; // c\nb'
    spans = scanNonCodeSpans(text)
    assert [text[s:e] for s, e in spans] == ['"x"', "// c"]


def test_find_matching_unbalanced():
    text = "{ ( }"
    spans = scanNonCodeSpans(text)
    assert findMatching(text, 2, spans) == -1


def test_class_methods_get_scoped_ids():
    text = (
        "class GN extends Base {\n"
        "  constructor() { super(); }\n"
        "  init() { return 1; }\n"
        "  static create() { return new GN(); }\n"
        "  get size() { return 2; }\n"
        "  #hidden() { return 3; }\n"
        "  handler = (e) => { return e; };\n"
        "}\n"
    )
    index = SourceIndex.build(text)
    ids = {region.id for region in index.regions}
    assert {
        "GN.prototype::constructor",
        "GN.prototype::init",
        "GN::create",
        "GN.prototype::size",
        "GN.prototype::#hidden",
        "GN.prototype::handler",
    } <= ids
    assert _body(index, "GN.prototype", "init").strip() == "return 1;"
    # A bare class scope falls back to the prototype
    assert index.lookup("GN", "init") == index.lookup("GN.prototype", "init")
    assert index.classRegion("GN").kind == "class"


def test_fields_and_static_blocks_do_not_hide_methods():
    text = (
        "class A {\n"
        "  count = 0;\n"
        "  static { A.ready = true; }\n"
        "  [Symbol.iterator]() { return this; }\n"
        "  run() { return 1; }\n"
        "}\n"
    )
    index = SourceIndex.build(text)
    assert _body(index, "A.prototype", "run").strip() == "return 1;"


def test_prototype_and_static_assignments():
    text = (
        "X.prototype.draw = function (ctx) { ctx.go(); };\n"
        "X.make = function () { return new X(); };\n"
        "helper = (a) => { return a; };\n"
    )
    index = SourceIndex.build(text)
    assert _body(index, "X.prototype", "draw").strip() == "ctx.go();"
    assert _body(index, "X", "make").strip() == "return new X();"
    assert _body(index, None, "helper").strip() == "return a;"


def test_first_occurrence_wins():
    text = "function dup() { return 1; }\nfunction dup() { return 2; }"
    index = SourceIndex.build(text)
    assert _body(index, None, "dup").strip() == "return 1;"


def test_keywords_inside_strings_are_not_indexed():
    text = 'const s = "function ghost() { }";\nfunction real() {}'
    index = SourceIndex.build(text)
    assert index.lookup(None, "ghost") is None
    assert index.lookup(None, "real") is not None


def test_shift_moves_regions_after_splice():
    text = "function a() { x(); }\nfunction b() { y(); }"
    index = SourceIndex.build(text)
    regionA = index.lookup(None, "a")
    regionB = index.lookup(None, "b")

    pos = regionA.bodyStart
    insert = "HEAD();"
    index.shift(text[:pos] + insert + text[pos:], pos, 0, len(insert))

    assert not index.dirty
    assert index.lookup(None, "a").bodyOpen == regionA.bodyOpen
    assert index.lookup(None, "a").close == regionA.close + len(insert)
    assert index.lookup(None, "b").start == regionB.start + len(insert)
    assert _body(index, None, "b").strip() == "y();"
    assert index.builds == 1


def test_shift_across_boundary_marks_dirty_and_rebuilds():
    text = "function a() { x(); }\nfunction b() { y(); }"
    index = SourceIndex.build(text)
    regionA = index.lookup(None, "a")
    # Cut the closing brace of a()
    newText = text[:regionA.close] + text[regionA.close + 1:]
    index.shift(newText, regionA.close, 1, 0)
    assert index.dirty

    index.lookup(None, "b")
    assert not index.dirty
    assert index.builds == 2


@pytest.mark.parametrize("source", [
    "function f() { return `${`${'}'}`}`; }",
    "function f() { const r = /\\//; return r; }",
    "function f() { return a ? /}/ : 1; }",
])
def test_tricky_bodies_still_close(source: str):
    index = SourceIndex.build(source)
    region = index.lookup(None, "f")
    assert region is not None
    assert region.close == len(source) - 1
