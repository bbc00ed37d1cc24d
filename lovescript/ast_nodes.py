"""AST node definitions for LoveScript: all frozen (immutable) dataclasses."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union


# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Name:
    """A bare identifier reference."""
    id: str
    line: int = 0
    column: int = 0


@dataclass(frozen=True)
class Literal:
    """A number, string, boolean or nil, kept as its Lua source text."""
    text: str
    line: int = 0


@dataclass(frozen=True)
class Field:
    """Field access: obj.name."""
    obj: Expr
    name: str
    line: int = 0
    column: int = 0


@dataclass(frozen=True)
class Index:
    """Index access: obj[key]."""
    obj: Expr
    key: Expr


@dataclass(frozen=True)
class Call:
    func: Expr
    args: tuple[Expr, ...]
    line: int = 0


@dataclass(frozen=True)
class BinOp:
    """Binary operation; op is the Lua operator text."""
    op: str
    left: Expr
    right: Expr


@dataclass(frozen=True)
class UnaryOp:
    op: str
    operand: Expr


@dataclass(frozen=True)
class TableEntry:
    """A table entry; key is None for positional entries."""
    key: Optional[str]
    value: Expr


@dataclass(frozen=True)
class Table:
    entries: tuple[TableEntry, ...]


@dataclass(frozen=True)
class Lambda:
    """Anonymous function: fn(a, b) { ... }."""
    params: tuple[Name, ...]
    body: tuple[Stmt, ...]
    line: int = 0


Expr = Union[Name, Literal, Field, Index, Call, BinOp, UnaryOp, Table, Lambda]


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Import:
    """import a.b [as c] binds a local to require("a.b")."""
    module: str
    alias: Name
    line: int = 0
    column: int = 0


@dataclass(frozen=True)
class Let:
    name: Name
    value: Optional[Expr] = None
    line: int = 0


@dataclass(frozen=True)
class FunctionDecl:
    """fn name(params) { body }; a dotted name assigns into a table."""
    name: tuple[Name, ...]
    params: tuple[Name, ...]
    body: tuple[Stmt, ...]
    line: int = 0

    @property
    def dotted(self) -> str:
        return ".".join(part.id for part in self.name)


@dataclass(frozen=True)
class If:
    """if/elif chain: branches holds (condition, body) pairs in order."""
    branches: tuple[tuple[Expr, tuple[Stmt, ...]], ...]
    orelse: Optional[tuple[Stmt, ...]] = None
    line: int = 0


@dataclass(frozen=True)
class While:
    cond: Expr
    body: tuple[Stmt, ...]
    line: int = 0


@dataclass(frozen=True)
class NumericFor:
    var: Name
    start: Expr
    stop: Expr
    step: Optional[Expr]
    body: tuple[Stmt, ...]
    line: int = 0


@dataclass(frozen=True)
class Return:
    value: Optional[Expr] = None
    line: int = 0


@dataclass(frozen=True)
class Assign:
    target: Expr
    value: Expr
    line: int = 0


@dataclass(frozen=True)
class ExprStmt:
    expr: Expr
    line: int = 0


Stmt = Union[Import, Let, FunctionDecl, If, While, NumericFor, Return, Assign, ExprStmt]


# ---------------------------------------------------------------------------
# Top-level
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Module:
    """A parsed .lvs source unit."""
    body: tuple[Stmt, ...] = ()

    @property
    def imports(self) -> tuple[str, ...]:
        return tuple(s.module for s in self.body if isinstance(s, Import))

    @property
    def global_functions(self) -> tuple[FunctionDecl, ...]:
        """Top-level undotted function declarations (Lua globals)."""
        return tuple(
            s for s in self.body
            if isinstance(s, FunctionDecl) and len(s.name) == 1
        )
