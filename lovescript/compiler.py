"""Compiler: LoveScript AST -> Lua source."""

from __future__ import annotations

from .ast_nodes import (
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
from .sourcemap import Mapping, SourceLocation, SourceMap

INDENT = "    "

# Lua operator precedence, loosest first.
_PRECEDENCE = {
    "or": 1,
    "and": 2,
    "<": 3, ">": 3, "<=": 3, ">=": 3, "==": 3, "~=": 3,
    "..": 4,
    "+": 5, "-": 5,
    "*": 6, "/": 6, "%": 6,
}
_UNARY_PRECEDENCE = 7
_ATOM_PRECEDENCE = 9
_RIGHT_ASSOC = {".."}

# Expressions Lua accepts directly before '.', '[' or '('.
_PREFIX_EXPRS = (Name, Field, Index, Call)


class Compiler:
    """Compiles a parsed LoveScript module to Lua."""

    def compile(self, module: Module) -> str:
        """Return the Lua source for a module."""
        return self.compile_with_map(module)[0]

    def compile_with_map(
        self,
        module: Module,
        source_file: str = "",
        output_file: str = "",
    ) -> tuple[str, SourceMap]:
        """Return Lua source plus a line-level source map."""
        source_map = SourceMap(source_file=source_file, output_file=output_file)
        lines: list[str] = []
        for text, source_line in self._block(module.body, depth=0, top_level=True):
            lines.append(text)
            if source_line:
                source_map.add_mapping(Mapping(
                    lua_line=len(lines),
                    source=SourceLocation(line=source_line),
                ))
        text = "\n".join(lines) + "\n" if lines else ""
        return text, source_map

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def _block(self, body, depth: int, top_level: bool = False) -> list[tuple[str, int]]:
        out: list[tuple[str, int]] = []
        for stmt in body:
            out.extend(self._stmt(stmt, depth, top_level))
        return out

    def _stmt(self, stmt, depth: int, top_level: bool) -> list[tuple[str, int]]:
        pad = INDENT * depth
        line = getattr(stmt, "line", 0)

        if isinstance(stmt, Import):
            head = f'local {stmt.alias.id} = require("{stmt.module}")'
            return _lines(pad + head, line)

        if isinstance(stmt, Let):
            if stmt.value is None:
                return _lines(f"{pad}local {stmt.name.id}", line)
            return _lines(f"{pad}local {stmt.name.id} = {self._expr(stmt.value, depth)}", line)

        if isinstance(stmt, FunctionDecl):
            params = ", ".join(p.id for p in stmt.params)
            if len(stmt.name) == 1 and not top_level:
                head = f"local function {stmt.dotted}({params})"
            else:
                head = f"function {stmt.dotted}({params})"
            return (
                _lines(pad + head, line)
                + self._block(stmt.body, depth + 1)
                + [(pad + "end", 0)]
            )

        if isinstance(stmt, If):
            out: list[tuple[str, int]] = []
            for i, (cond, body) in enumerate(stmt.branches):
                keyword = "if" if i == 0 else "elseif"
                out += _lines(f"{pad}{keyword} {self._expr(cond, depth)} then", line if i == 0 else 0)
                out += self._block(body, depth + 1)
            if stmt.orelse is not None:
                out.append((pad + "else", 0))
                out += self._block(stmt.orelse, depth + 1)
            out.append((pad + "end", 0))
            return out

        if isinstance(stmt, While):
            return (
                _lines(f"{pad}while {self._expr(stmt.cond, depth)} do", line)
                + self._block(stmt.body, depth + 1)
                + [(pad + "end", 0)]
            )

        if isinstance(stmt, NumericFor):
            bounds = [self._expr(stmt.start, depth), self._expr(stmt.stop, depth)]
            if stmt.step is not None:
                bounds.append(self._expr(stmt.step, depth))
            return (
                _lines(f"{pad}for {stmt.var.id} = {', '.join(bounds)} do", line)
                + self._block(stmt.body, depth + 1)
                + [(pad + "end", 0)]
            )

        if isinstance(stmt, Return):
            if stmt.value is None:
                return _lines(pad + "return", line)
            return _lines(f"{pad}return {self._expr(stmt.value, depth)}", line)

        if isinstance(stmt, Assign):
            target = self._expr(stmt.target, depth)
            return _lines(f"{pad}{target} = {self._expr(stmt.value, depth)}", line)

        if isinstance(stmt, ExprStmt):
            return _lines(pad + self._expr(stmt.expr, depth), line)

        raise TypeError(f"Unknown statement type: {type(stmt).__name__}")

    # ------------------------------------------------------------------
    # Expressions
    # ------------------------------------------------------------------

    def _expr(self, expr, depth: int) -> str:
        if isinstance(expr, Name):
            return expr.id
        if isinstance(expr, Literal):
            return expr.text
        if isinstance(expr, Field):
            return f"{self._prefix(expr.obj, depth)}.{expr.name}"
        if isinstance(expr, Index):
            return f"{self._prefix(expr.obj, depth)}[{self._expr(expr.key, depth)}]"
        if isinstance(expr, Call):
            args = ", ".join(self._expr(a, depth) for a in expr.args)
            return f"{self._prefix(expr.func, depth)}({args})"
        if isinstance(expr, BinOp):
            return self._binop(expr, depth)
        if isinstance(expr, UnaryOp):
            operand = self._expr(expr.operand, depth)
            if _precedence(expr.operand) < _UNARY_PRECEDENCE or operand.startswith("-"):
                operand = f"({operand})"
            if expr.op == "not":
                return f"not {operand}"
            return f"-{operand}"
        if isinstance(expr, Table):
            if not expr.entries:
                return "{}"
            parts = []
            for entry in expr.entries:
                value = self._expr(entry.value, depth)
                parts.append(value if entry.key is None else f"{entry.key} = {value}")
            return "{" + ", ".join(parts) + "}"
        if isinstance(expr, Lambda):
            params = ", ".join(p.id for p in expr.params)
            body = [text for text, _ in self._block(expr.body, depth + 1)]
            return "\n".join([f"function({params})", *body, INDENT * depth + "end"])
        raise TypeError(f"Unknown expression type: {type(expr).__name__}")

    def _prefix(self, expr, depth: int) -> str:
        text = self._expr(expr, depth)
        if isinstance(expr, _PREFIX_EXPRS):
            return text
        return f"({text})"

    def _binop(self, expr: BinOp, depth: int) -> str:
        prec = _PRECEDENCE[expr.op]
        right_assoc = expr.op in _RIGHT_ASSOC

        left = self._expr(expr.left, depth)
        left_prec = _precedence(expr.left)
        if left_prec < prec or (left_prec == prec and right_assoc):
            left = f"({left})"

        right = self._expr(expr.right, depth)
        right_prec = _precedence(expr.right)
        if right_prec < prec or (right_prec == prec and not right_assoc):
            right = f"({right})"

        return f"{left} {expr.op} {right}"


def _precedence(expr) -> int:
    if isinstance(expr, BinOp):
        return _PRECEDENCE[expr.op]
    if isinstance(expr, UnaryOp):
        return _UNARY_PRECEDENCE
    return _ATOM_PRECEDENCE


def _lines(text: str, source_line: int) -> list[tuple[str, int]]:
    """Split a possibly multi-line statement, mapping only its first line."""
    parts = text.split("\n")
    return [(parts[0], source_line)] + [(p, 0) for p in parts[1:]]
