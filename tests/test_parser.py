"""Tests for lovescript.parser."""

import pytest

from lovescript.ast_nodes import (
    Assign,
    BinOp,
    Call,
    ExprStmt,
    Field,
    FunctionDecl,
    If,
    Import,
    Index,
    Lambda,
    Let,
    Literal,
    Module,
    Name,
    NumericFor,
    Return,
    Table,
    UnaryOp,
    While,
)
from lovescript.diagnostics import INVALID_CHARACTER, UNEXPECTED_TOKEN
from lovescript.errors import ParseError
from lovescript.parser import parse


def _expr(source):
    """Parse ``let x = <source>`` and return the expression."""
    stmt = parse(f"let x = {source}").body[0]
    assert isinstance(stmt, Let)
    return stmt.value


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------

class TestStatements:

    def test_empty_source(self):
        assert parse("") == Module(body=())

    def test_comments_are_ignored(self):
        m = parse("# nothing here\n# at all\n")
        assert m.body == ()

    def test_import_uses_last_part_as_alias(self):
        stmt = parse("import ui.button").body[0]
        assert isinstance(stmt, Import)
        assert stmt.module == "ui.button"
        assert stmt.alias.id == "button"

    def test_import_with_alias(self):
        stmt = parse("import ui.button as btn").body[0]
        assert stmt.module == "ui.button"
        assert stmt.alias.id == "btn"
        assert stmt.line == 1

    def test_let_without_value(self):
        stmt = parse("let x").body[0]
        assert stmt.name.id == "x"
        assert stmt.value is None

    def test_let_name_position(self):
        stmt = parse("\n\nlet speed = 3").body[0]
        assert stmt.line == 3
        assert stmt.name == Name("speed", 3, 5)

    def test_function_declaration(self):
        stmt = parse("fn update(dt, extra) {\n    return dt\n}").body[0]
        assert isinstance(stmt, FunctionDecl)
        assert stmt.dotted == "update"
        assert [p.id for p in stmt.params] == ["dt", "extra"]
        assert isinstance(stmt.body[0], Return)

    def test_dotted_function_declaration(self):
        stmt = parse("fn love.graphics.hook() {}").body[0]
        assert stmt.dotted == "love.graphics.hook"
        assert stmt.params == ()
        assert stmt.body == ()

    def test_if_elif_else(self):
        stmt = parse('''
if a {
    f()
} elif b {
    g()
} elif c {
} else {
    h()
}
''').body[0]
        assert isinstance(stmt, If)
        assert len(stmt.branches) == 3
        assert stmt.branches[1][0] == Name("b", 4, 8)
        assert stmt.branches[2][1] == ()
        assert len(stmt.orelse) == 1

    def test_if_without_else(self):
        stmt = parse("if a { f() }").body[0]
        assert stmt.orelse is None

    def test_while(self):
        stmt = parse("while running { step() }").body[0]
        assert isinstance(stmt, While)
        assert isinstance(stmt.body[0], ExprStmt)

    def test_numeric_for_with_step(self):
        stmt = parse("for i = 10, 1, -1 { print(i) }").body[0]
        assert isinstance(stmt, NumericFor)
        assert stmt.var.id == "i"
        assert stmt.step == UnaryOp("-", Literal("1", 1))

    def test_numeric_for_without_step(self):
        stmt = parse("for i = 1, 3 {}").body[0]
        assert stmt.step is None

    def test_bare_return(self):
        stmt = parse("fn f() { return }").body[0].body[0]
        assert stmt == Return(value=None, line=1)

    def test_assignment_to_field(self):
        stmt = parse("player.score = 0").body[0]
        assert isinstance(stmt, Assign)
        assert isinstance(stmt.target, Field)
        assert stmt.target.name == "score"

    def test_statements_need_no_separator(self):
        m = parse("let a = 1 let b = 2 print(a, b)")
        assert [type(s) for s in m.body] == [Let, Let, ExprStmt]


# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------

class TestExpressions:

    def test_multiplication_binds_tighter(self):
        e = _expr("1 + 2 * 3")
        assert e.op == "+"
        assert isinstance(e.right, BinOp) and e.right.op == "*"

    def test_subtraction_is_left_associative(self):
        e = _expr("a - b - c")
        assert e.op == "-"
        assert isinstance(e.left, BinOp)
        assert e.right.id == "c"

    def test_concat_is_right_associative(self):
        e = _expr("a .. b .. c")
        assert e.op == ".."
        assert e.left.id == "a"
        assert isinstance(e.right, BinOp) and e.right.op == ".."

    def test_not_equal_becomes_lua_operator(self):
        assert _expr("a != b").op == "~="

    def test_not_wraps_comparison(self):
        e = _expr("not a == b")
        assert isinstance(e, UnaryOp) and e.op == "not"
        assert e.operand.op == "=="

    def test_logical_operators(self):
        e = _expr("a or b and c")
        assert e.op == "or"
        assert e.right.op == "and"

    def test_parentheses_group(self):
        e = _expr("(1 + 2) * 3")
        assert e.op == "*"
        assert e.left.op == "+"

    def test_literals(self):
        assert _expr("true") == Literal("true")
        assert _expr("nil") == Literal("nil")
        assert _expr('"hi"').text == '"hi"'
        assert _expr("2.5").text == "2.5"

    def test_postfix_chain(self):
        e = _expr("a.b[1](2)")
        assert isinstance(e, Call)
        assert isinstance(e.func, Index)
        assert isinstance(e.func.obj, Field)
        assert e.args == (Literal("2", 1),)

    def test_call_without_arguments(self):
        assert _expr("f()").args == ()

    def test_table_entries(self):
        e = _expr("{ x: 1, 2, y: 3, }")
        assert isinstance(e, Table)
        assert [entry.key for entry in e.entries] == ["x", None, "y"]

    def test_empty_table(self):
        assert _expr("{}") == Table(entries=())

    def test_lambda(self):
        e = _expr("fn(a, b) { return a + b }")
        assert isinstance(e, Lambda)
        assert [p.id for p in e.params] == ["a", "b"]
        assert isinstance(e.body[0], Return)


# ---------------------------------------------------------------------------
# Module helpers
# ---------------------------------------------------------------------------

class TestModule:

    def test_imports(self, main_source):
        assert parse(main_source).imports == ("player",)

    def test_global_functions_are_top_level_and_undotted(self):
        m = parse('''
fn update() {
    fn helper() {}
}
fn love.draw() {}
fn load() {}
''')
        assert [f.dotted for f in m.global_functions] == ["update", "load"]


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class TestParseErrors:

    def test_invalid_character(self):
        with pytest.raises(ParseError) as exc_info:
            parse("let a = 1\nlet b = $")
        err = exc_info.value
        assert err.code == INVALID_CHARACTER
        assert err.message == "Invalid character '$'."
        assert err.line == 2
        assert err.column == 9

    def test_unexpected_token(self):
        with pytest.raises(ParseError) as exc_info:
            parse("let = 5")
        assert exc_info.value.code == UNEXPECTED_TOKEN
        assert exc_info.value.line == 1

    def test_unexpected_end_of_file(self):
        with pytest.raises(ParseError) as exc_info:
            parse("fn f() {\n    g()\n")
        err = exc_info.value
        assert err.code == UNEXPECTED_TOKEN
        assert err.message == "Unexpected end of file."
        assert err.line >= 1

    def test_error_string_has_location(self):
        with pytest.raises(ParseError) as exc_info:
            parse("let b = @")
        assert "(line 1, col 9)" in str(exc_info.value)
