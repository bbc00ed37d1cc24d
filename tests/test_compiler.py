"""Tests for lovescript.compiler and lovescript.sourcemap."""

import json

from lovescript.parser import parse


def _lua(compiler, source):
    return compiler.compile(parse(source))


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------

class TestStatementOutput:

    def test_empty_module(self, compiler):
        assert _lua(compiler, "") == ""

    def test_let(self, compiler):
        assert _lua(compiler, "let x = 1") == "local x = 1\n"

    def test_let_without_value(self, compiler):
        assert _lua(compiler, "let x") == "local x\n"

    def test_import(self, compiler):
        assert _lua(compiler, "import ui.button as btn") == 'local btn = require("ui.button")\n'

    def test_global_function(self, compiler):
        out = _lua(compiler, "fn update(dt) {\n    t = dt\n}")
        assert out == "function update(dt)\n    t = dt\nend\n"

    def test_dotted_function(self, compiler):
        out = _lua(compiler, "fn love.load() {}")
        assert out == "function love.load()\nend\n"

    def test_nested_function_is_local(self, compiler):
        out = _lua(compiler, "fn outer() {\n    fn inner() {}\n}")
        assert out == "function outer()\n    local function inner()\n    end\nend\n"

    def test_if_elif_else(self, compiler):
        out = _lua(compiler, "if a { f() } elif b { g() } else { h() }")
        assert out == (
            "if a then\n"
            "    f()\n"
            "elseif b then\n"
            "    g()\n"
            "else\n"
            "    h()\n"
            "end\n"
        )

    def test_while(self, compiler):
        out = _lua(compiler, "while alive { tick() }")
        assert out == "while alive do\n    tick()\nend\n"

    def test_numeric_for(self, compiler):
        out = _lua(compiler, "for i = 1, 10, 2 { print(i) }")
        assert out == "for i = 1, 10, 2 do\n    print(i)\nend\n"

    def test_return(self, compiler):
        assert _lua(compiler, "fn f() { return }") == "function f()\n    return\nend\n"

    def test_module_return(self, compiler, player_source):
        out = _lua(compiler, player_source)
        assert out.splitlines() == [
            "local player = {score = 0}",
            "function player.reset()",
            "    player.score = 0",
            "end",
            "return player",
        ]

    def test_output_is_deterministic(self, compiler, main_source):
        assert _lua(compiler, main_source) == _lua(compiler, main_source)


# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------

class TestExpressionOutput:

    def _value(self, compiler, source):
        return _lua(compiler, f"let x = {source}")[len("local x = "):-1]

    def test_not_equal(self, compiler):
        assert self._value(compiler, "a != b") == "a ~= b"

    def test_precedence_keeps_needed_parentheses(self, compiler):
        assert self._value(compiler, "(1 + 2) * 3") == "(1 + 2) * 3"
        assert self._value(compiler, "1 + 2 * 3") == "1 + 2 * 3"

    def test_left_associativity(self, compiler):
        assert self._value(compiler, "1 - 2 - 3") == "1 - 2 - 3"
        assert self._value(compiler, "1 - (2 - 3)") == "1 - (2 - 3)"

    def test_concat_right_associativity(self, compiler):
        assert self._value(compiler, "a .. b .. c") == "a .. b .. c"
        assert self._value(compiler, "(a .. b) .. c") == "(a .. b) .. c"

    def test_not_comparison(self, compiler):
        assert self._value(compiler, "not a == b") == "not (a == b)"

    def test_double_negation(self, compiler):
        assert self._value(compiler, "- -y") == "-(-y)"

    def test_table(self, compiler):
        assert self._value(compiler, "{ x: 1, 2 }") == "{x = 1, 2}"
        assert self._value(compiler, "{}") == "{}"

    def test_index_on_table_literal_is_wrapped(self, compiler):
        assert self._value(compiler, "({1, 2})[1]") == "({1, 2})[1]"

    def test_lambda(self, compiler):
        out = _lua(compiler, "let f = fn(a) { return a }")
        assert out == "local f = function(a)\n    return a\nend\n"

    def test_call_chain(self, compiler):
        assert self._value(compiler, 'love.graphics.print("hi", 1)') == 'love.graphics.print("hi", 1)'


# ---------------------------------------------------------------------------
# Source maps
# ---------------------------------------------------------------------------

class TestSourceMap:

    SOURCE = "let a = 1\n\nfn f() {\n    return a\n}\n"

    def test_maps_statement_lines(self, compiler):
        _, sm = compiler.compile_with_map(parse(self.SOURCE), "main.lvs", "main.lua")
        assert [(m.lua_line, m.source.line) for m in sm.mappings] == [(1, 1), (2, 3), (3, 4)]
        assert sm.source_file == "main.lvs"
        assert sm.output_file == "main.lua"

    def test_json(self, compiler):
        _, sm = compiler.compile_with_map(parse(self.SOURCE), "main.lvs", "main.lua")
        data = json.loads(sm.to_json())
        assert data["version"] == 1
        assert data["mappings"][0] == {"lua_line": 1, "source": {"line": 1, "column": 0}}
