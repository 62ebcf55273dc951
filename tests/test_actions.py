import io

import pytest

from zapif.actions import BinaryOp, Simplifier
from zapif.chunk import ChunkTable, Tag, render


def make(normalize=False, interpret_constants=False):
    table = ChunkTable(interpret_constants=interpret_constants)
    for name, value in (("zero", "0"), ("one", "1"), ("two", "2"), ("five", "5")):
        table.define(name, value)
    table.undefine("nil")
    table.undefine("nothing")
    out = io.StringIO()
    return Simplifier(table, out, normalize), out


def word(s, text):
    return s.table.make_text(text)


def sym(s, text):
    return s.expand(word(s, text))


def directive(s, name, trail=" "):
    s.grow_token("#")
    s.grow_token(name)
    if name in ("if", "elif"):
        s.mark_if()
    return s.take_token(trail)


def test_if_else_with_known_true_keeps_then_branch():
    s, out = make()
    nl = word(s, "\n")
    s.if_(directive(s, "if"), sym(s, "one"), nl)
    s.emit_code("yes one\n")
    s.else_(directive(s, "else", ""), nl)
    s.emit_code("no one\n")
    s.endif(directive(s, "endif", ""), nl)
    assert out.getvalue() == "yes one\n"


def test_if_else_with_known_false_keeps_else_branch():
    s, out = make()
    nl = word(s, "\n")
    s.if_(directive(s, "if"), sym(s, "zero"), nl)
    s.emit_code("yes\n")
    s.else_(directive(s, "else", ""), nl)
    s.emit_code("no\n")
    s.endif(directive(s, "endif", ""), nl)
    assert out.getvalue() == "no\n"


def test_unknown_condition_keeps_everything():
    s, out = make()
    nl = word(s, "\n")
    s.if_(directive(s, "if"), sym(s, "foo"), nl)
    s.emit_code("a\n")
    s.else_(directive(s, "else", ""), nl)
    s.emit_code("b\n")
    s.endif(directive(s, "endif", ""), nl)
    assert out.getvalue() == "#if foo\na\n#else\nb\n#endif\n"


def test_elif_zero_then_one_keeps_only_elif_body():
    s, out = make()
    nl = word(s, "\n")
    s.if_(directive(s, "if"), sym(s, "zero"), nl)
    s.emit_code("    eradicate\n")
    s.elif_(directive(s, "elif"), sym(s, "one"), nl)
    s.emit_code("    retain\n")
    s.endif(directive(s, "endif", ""), nl)
    assert out.getvalue() == "    retain\n"


def test_elif_after_unknown_becomes_else():
    s, out = make()
    nl = word(s, "\n")
    s.if_(directive(s, "if"), sym(s, "whatever"), nl)
    s.emit_code("    hedge\n")
    s.elif_(directive(s, "elif"), sym(s, "one"),
            word(s, "/* preserve this comment too */\n"))
    s.emit_code("    retain\n")
    s.endif(directive(s, "endif", ""), nl)
    assert out.getvalue() == (
        "#if whatever\n    hedge\n#else /* preserve this comment too */\n"
        "    retain\n#endif\n"
    )


def test_elif_after_false_becomes_if():
    s, out = make()
    nl = word(s, "\n")
    s.if_(directive(s, "if"), sym(s, "zero"), nl)
    s.emit_code("    remove\n")
    s.elif_(directive(s, "elif"), sym(s, "whatever"), nl)
    s.emit_code("    waffle\n")
    s.endif(directive(s, "endif", ""), nl)
    assert out.getvalue() == "#if whatever\n    waffle\n#endif\n"


def test_ifdef_of_undefined_symbol_and_unknown_symbol():
    s, out = make()
    nl = word(s, "\n")
    s.ifdef(directive(s, "ifdef"), word(s, "nothing"), nl, True)
    s.emit_code("yes nothing\n")
    s.else_(directive(s, "else", ""), nl)
    s.emit_code("no nothing\n")
    s.endif(directive(s, "endif", ""), nl)
    s.ifdef(directive(s, "ifndef"), word(s, "whatever"), nl, False)
    s.emit_code("no whatever\n")
    s.endif(directive(s, "endif", ""), nl)
    assert out.getvalue() == "no nothing\n#ifndef whatever\nno whatever\n#endif\n"


def test_nested_levels_inside_dead_branch_are_erased():
    s, out = make()
    nl = word(s, "\n")
    s.ifdef(directive(s, "ifdef"), word(s, "nil"), nl, True)
    s.if_(directive(s, "if"), sym(s, "unknown"), nl)
    s.emit_code("should be deleted\n")
    s.endif(directive(s, "endif", ""), nl)
    s.endif(directive(s, "endif", ""), nl)
    s.emit_code("keep this line\n")
    assert out.getvalue() == "keep this line\n"


def test_normalize_defined_with_paren():
    s, out = make(normalize=True)
    d = s.defined(word(s, "defined"), word(s, "("), word(s, "A"), word(s, ")"))
    x = s.lor(d, word(s, "||"), sym(s, "zero"))
    s.if_(directive(s, "if"), x, word(s, "/* trailing stuff */\n"))
    assert out.getvalue() == "#ifdef A/* trailing stuff */\n"


def test_normalize_negated_defined_without_paren():
    s, out = make(normalize=True)
    d = s.defined(word(s, "defined "), None, word(s, "D"), None)
    n = s.unary_op(word(s, "!"), d, "!")
    x = s.lor(sym(s, "zero"), word(s, "||"), n)
    s.if_(directive(s, "if"), x, word(s, "\n"))
    assert out.getvalue() == "#ifndef D\n"


def test_normalize_inserts_space_after_keyword():
    s, out = make(normalize=True)
    d = s.defined(word(s, "defined "), None, word(s, "E"), None)
    x = s.paren(word(s, "("), s.lor(d, word(s, "||"), sym(s, "zero")), word(s, ")"))
    s.if_(directive(s, "if", ""), x, word(s, "\n"))
    assert out.getvalue() == "#ifdef E\n"


def test_simplified_parentheses_are_dropped_with_space():
    s, out = make()
    g = word(s, "G")
    s.mark_primary(g)
    x = s.paren(word(s, "("), s.lor(g, word(s, "||"), sym(s, "zero")), word(s, ")"))
    s.if_(directive(s, "if", ""), x, word(s, "\n"))
    assert out.getvalue() == "#if G\n"


def test_unsimplified_parentheses_are_kept():
    s, _ = make()
    a = word(s, "A")
    x = s.paren(word(s, "("), a, word(s, ")"))
    assert render(x) == "(A)"


def test_defined_of_known_symbols():
    s, _ = make()
    op, lp, rp = word(s, "defined"), word(s, "("), word(s, ")")
    assert s.defined(op, lp, word(s, "one"), rp).equals(1)
    assert s.defined(op, lp, word(s, "nil"), rp).equals(0)
    unknown = s.defined(op, lp, word(s, "whatever"), rp)
    assert unknown.has_tag(Tag.DEFINED_WITH_PAREN)
    assert render(unknown) == "defined(whatever)"


def test_defined_with_unbalanced_parentheses_raises():
    s, _ = make()
    with pytest.raises(ValueError):
        s.defined(word(s, "defined"), word(s, "("), word(s, "x"), None)


def test_arithmetic_folding_from_source_cases():
    s, _ = make()
    eq = word(s, " == ")
    q = s.binary_op(word(s, "34"), word(s, " / "), sym(s, "five"), BinaryOp.DIV)
    assert s.binary_op(q, eq, word(s, "6"), BinaryOp.EQUAL).equals(1)
    m = s.binary_op(word(s, "11"), word(s, "*"), sym(s, "five"), BinaryOp.MUL)
    q = s.binary_op(m, word(s, " / "), word(s, "2"), BinaryOp.DIV)
    assert s.binary_op(q, eq, word(s, "27"), BinaryOp.EQUAL).equals(1)
    m = s.binary_op(word(s, "7"), word(s, "*"), sym(s, "five"), BinaryOp.MUL)
    r = s.binary_op(m, word(s, " % "), word(s, "3"), BinaryOp.REM)
    assert s.binary_op(r, eq, word(s, "2"), BinaryOp.EQUAL).equals(1)


def test_shift_folding_from_source_cases():
    s, _ = make()
    left = s.binary_op(sym(s, "one"), word(s, "<<"), sym(s, "two"), BinaryOp.LSHIFT)
    assert left.equals(4)
    x = s.binary_op(sym(s, "one"), word(s, "<<"), word(s, "9"), BinaryOp.LSHIFT)
    x = s.binary_op(x, word(s, ">>"), word(s, "5"), BinaryOp.RSHIFT)
    assert x.equals(16)


@pytest.mark.parametrize("i,j", [(-7, 2), (7, -2), (-7, -2), (7, 2)])
def test_division_truncates_toward_zero(i, j):
    s, _ = make()
    t = s.table
    q = s.binary_op(t.make_int(i), word(s, "/"), t.make_int(j), BinaryOp.DIV).value
    r = s.binary_op(t.make_int(i), word(s, "%"), t.make_int(j), BinaryOp.REM).value
    assert q * j + r == i
    assert abs(r) < abs(j)
    assert r == 0 or (r < 0) == (i < 0)


def test_division_by_zero_is_left_as_text():
    s, _ = make()
    x, op, y = word(s, "4"), word(s, " / "), s.table.make_int(0)
    result = s.binary_op(x, op, y, BinaryOp.DIV)
    assert not result.is_int()
    assert render(result) == render(x) + render(op) + render(y)


def test_bitwise_identities_with_zero():
    s, _ = make()
    foo = word(s, "foo")
    zero = s.table.make_int(0)
    assert s.binary_op(zero, word(s, "|"), foo, BinaryOp.IOR) is foo
    assert s.binary_op(foo, word(s, "^"), zero, BinaryOp.XOR) is foo
    assert s.binary_op(foo, word(s, "&"), zero, BinaryOp.AND) is zero


def test_unknown_operand_keeps_radix_text():
    s, _ = make(interpret_constants=True)
    result = s.binary_op(word(s, "0x100"), word(s, "  &   "), word(s, "foo"), BinaryOp.AND)
    assert render(result) == "0x100  &   foo"


def test_logical_or_and():
    s, _ = make()
    foo, bar = word(s, "foo"), word(s, "bar")
    assert s.lor(sym(s, "zero"), word(s, "||"), foo) is foo
    assert s.lor(foo, word(s, "||"), sym(s, "one")).equals(1)
    assert s.land(foo, word(s, "&&"), sym(s, "zero")).equals(0)
    assert s.land(sym(s, "one"), word(s, "&&"), foo) is foo
    assert render(s.lor(foo, word(s, " || "), bar)) == "foo || bar"


def test_ternary():
    s, _ = make()
    y, z = word(s, "D"), word(s, "E")
    assert s.ternary_op(sym(s, "one"), word(s, "?"), y, word(s, ":"), z) is y
    assert s.ternary_op(sym(s, "zero"), word(s, "?"), y, word(s, ":"), z) is z
    kept = s.ternary_op(word(s, "c"), word(s, "?"), y, word(s, ":"), z)
    assert render(kept) == "c?D:E"


def test_unary_ops():
    s, _ = make()
    assert s.unary_op(word(s, "!"), sym(s, "zero"), "!").equals(1)
    assert s.unary_op(word(s, "!"), sym(s, "one"), "!").equals(0)
    assert s.unary_op(word(s, "-"), sym(s, "five"), "-").equals(-5)
    unknown = s.unary_op(word(s, "!"), word(s, "foo"), "!")
    assert unknown.has_tag(Tag.LNOT)
    with pytest.raises(ValueError):
        s.unary_op(word(s, "?"), sym(s, "one"), "?")


def test_token_buffer_is_emitted_and_cleared():
    s, out = make()
    s.grow_token("a")
    s.emit_code("b")
    tok = s.take_token("c")
    s.emit_code("d")
    assert tok.text == "c"
    assert out.getvalue() == "abd"


def test_mark_if_requires_keyword():
    s, _ = make()
    s.grow_token("#define")
    with pytest.raises(ValueError):
        s.mark_if()


def test_raw_string_delimiters():
    s, _ = make()
    s.stash_raw_string_delimiter('R"abc(')
    assert s.is_raw_string_terminator(')abc"')
    assert not s.is_raw_string_terminator(')ab"')
    with pytest.raises(ValueError):
        s.stash_raw_string_delimiter('"abc(')


def test_long_raw_string_delimiter_warns():
    s, _ = make()
    delimiter = "x" * 17
    with pytest.warns(UserWarning, match="d-char-seq"):
        s.stash_raw_string_delimiter('R"' + delimiter + "(")
    assert s.is_raw_string_terminator(")" + delimiter + '"')


def test_directive_without_if_raises():
    s, _ = make()
    nl = word(s, "\n")
    with pytest.raises(ValueError):
        s.endif(directive(s, "endif", ""), nl)
    with pytest.raises(ValueError):
        s.else_(directive(s, "else", ""), nl)