"""Lark-based parser for LoveScript: transforms source text into AST."""

from __future__ import annotations

from pathlib import Path as FilePath

from lark import Lark, Token, Transformer, v_args
from lark.exceptions import UnexpectedCharacters, UnexpectedEOF, UnexpectedInput, UnexpectedToken

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
    TableEntry,
    UnaryOp,
    While,
)
from .diagnostics import INVALID_CHARACTER, UNEXPECTED_TOKEN
from .errors import ParseError

# ---------------------------------------------------------------------------
# Grammar loading (cached)
# ---------------------------------------------------------------------------

_GRAMMAR_PATH = FilePath(__file__).parent / "grammar.lark"
_lark_parser: Lark | None = None


def _get_parser() -> Lark:
    global _lark_parser
    if _lark_parser is None:
        grammar_text = _GRAMMAR_PATH.read_text(encoding="utf-8")
        _lark_parser = Lark(
            grammar_text,
            parser="lalr",
            propagate_positions=True,
            maybe_placeholders=True,
        )
    return _lark_parser


# ---------------------------------------------------------------------------
# Transformer: Lark parse tree -> AST nodes
# ---------------------------------------------------------------------------

def _name(token: Token) -> Name:
    return Name(id=str(token), line=token.line or 0, column=token.column or 0)


def _line(meta) -> int:
    return getattr(meta, "line", 0) or 0


def _binary(op: str):
    def handler(self, items):
        return BinOp(op=op, left=items[0], right=items[1])
    return handler


class LoveScriptTransformer(Transformer):
    """Converts the Lark parse tree into a LoveScript Module."""

    # --- Top-level ---

    def start(self, items):
        return Module(body=tuple(items))

    @v_args(meta=True)
    def import_stmt(self, meta, items):
        parts, alias = items
        module = ".".join(p.id for p in parts)
        if alias is None:
            alias = parts[-1]
        else:
            alias = _name(alias)
        return Import(module=module, alias=alias, line=_line(meta), column=getattr(meta, "column", 0))

    @v_args(meta=True)
    def let_stmt(self, meta, items):
        return Let(name=_name(items[0]), value=items[1], line=_line(meta))

    @v_args(meta=True)
    def fn_decl(self, meta, items):
        name, params, body = items
        return FunctionDecl(
            name=tuple(name),
            params=tuple(params or ()),
            body=body,
            line=_line(meta),
        )

    @v_args(meta=True)
    def if_stmt(self, meta, items):
        branches = [(items[0], items[1])]
        orelse = None
        for item in items[2:]:
            if isinstance(item, tuple) and len(item) == 2 and item[0] == "elif":
                branches.append(item[1])
            elif item is not None:
                orelse = item
        return If(branches=tuple(branches), orelse=orelse, line=_line(meta))

    def elif_clause(self, items):
        return ("elif", (items[0], items[1]))

    def else_clause(self, items):
        return items[0]

    @v_args(meta=True)
    def while_stmt(self, meta, items):
        return While(cond=items[0], body=items[1], line=_line(meta))

    @v_args(meta=True)
    def for_stmt(self, meta, items):
        var, start, stop, step, body = items
        return NumericFor(
            var=_name(var),
            start=start,
            stop=stop,
            step=step,
            body=body,
            line=_line(meta),
        )

    @v_args(meta=True)
    def return_stmt(self, meta, items):
        return Return(value=items[0], line=_line(meta))

    @v_args(meta=True)
    def assign_stmt(self, meta, items):
        return Assign(target=items[0], value=items[1], line=_line(meta))

    @v_args(meta=True)
    def expr_stmt(self, meta, items):
        return ExprStmt(expr=items[0], line=_line(meta))

    # --- Shared pieces ---

    def dotted_name(self, items):
        return [_name(tok) for tok in items]

    def params(self, items):
        return [_name(tok) for tok in items]

    def block(self, items):
        return tuple(items)

    def args(self, items):
        return list(items)

    # --- Operators ---

    or_op = _binary("or")
    and_op = _binary("and")
    eq = _binary("==")
    ne = _binary("~=")
    lt = _binary("<")
    le = _binary("<=")
    gt = _binary(">")
    ge = _binary(">=")
    concat_op = _binary("..")
    add = _binary("+")
    sub = _binary("-")
    mul = _binary("*")
    div = _binary("/")
    mod = _binary("%")

    def not_op(self, items):
        return UnaryOp(op="not", operand=items[0])

    def neg(self, items):
        return UnaryOp(op="-", operand=items[0])

    # --- Postfix ---

    def field(self, items):
        obj, name = items
        return Field(obj=obj, name=str(name), line=name.line or 0, column=name.column or 0)

    def index(self, items):
        return Index(obj=items[0], key=items[1])

    @v_args(meta=True)
    def call(self, meta, items):
        func, args = items
        return Call(func=func, args=tuple(args or ()), line=_line(meta))

    # --- Atoms ---

    def number(self, items):
        return Literal(text=str(items[0]), line=items[0].line or 0)

    def string(self, items):
        return Literal(text=str(items[0]), line=items[0].line or 0)

    def true(self, _items):
        return Literal(text="true")

    def false(self, _items):
        return Literal(text="false")

    def nil(self, _items):
        return Literal(text="nil")

    def name(self, items):
        return _name(items[0])

    def table(self, items):
        return Table(entries=tuple(items))

    def keyed_entry(self, items):
        return TableEntry(key=str(items[0]), value=items[1])

    def positional_entry(self, items):
        return TableEntry(key=None, value=items[0])

    @v_args(meta=True)
    def lambda_(self, meta, items):
        params, body = items
        return Lambda(params=tuple(params or ()), body=body, line=_line(meta))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse(source: str) -> Module:
    """Parse LoveScript source code and return a Module AST.

    Raises ParseError on syntax errors; only the first error is reported.
    """
    try:
        tree = _get_parser().parse(source)
    except UnexpectedInput as e:
        message, line, column = _describe(e, source)
        code = INVALID_CHARACTER if isinstance(e, UnexpectedCharacters) else UNEXPECTED_TOKEN
        raise ParseError(message=message, line=line, column=column, code=code) from e
    return LoveScriptTransformer().transform(tree)


def _describe(error: UnexpectedInput, source: str) -> tuple[str, int, int]:
    line = getattr(error, "line", -1)
    column = getattr(error, "column", -1)
    if isinstance(error, UnexpectedCharacters):
        message = f"Invalid character '{error.char}'."
    elif isinstance(error, UnexpectedEOF) or (
        isinstance(error, UnexpectedToken) and error.token.type == "$END"
    ):
        message = "Unexpected end of file."
    elif isinstance(error, UnexpectedToken):
        message = f"Unexpected '{error.token}'."
        expected = sorted(e for e in error.expected if not e.startswith("__"))
        if len(expected) == 1:
            message = f"'{_pretty_terminal(expected[0])}' expected."
    else:
        message = "Syntax error."

    if line is None or line < 1:
        lines = source.splitlines() or [""]
        line = len(lines)
        column = len(lines[-1]) + 1
    return message, line, max(column or 1, 1)


_TERMINAL_TEXT = {
    "LPAR": "(",
    "RPAR": ")",
    "LBRACE": "{",
    "RBRACE": "}",
    "LSQB": "[",
    "RSQB": "]",
    "EQUAL": "=",
    "COMMA": ",",
    "COLON": ":",
    "NAME": "identifier",
}


def _pretty_terminal(name: str) -> str:
    return _TERMINAL_TEXT.get(name, name.lower())
