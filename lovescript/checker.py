"""Semantic checker for LoveScript modules.

Per-unit checks (name resolution, imports, statement shape) produce
SEMANTIC diagnostics; program-wide checks (duplicate globals, missing entry
point) produce GLOBAL diagnostics. Both are returned as data, never raised.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

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
from .diagnostics import (
    CANNOT_FIND_MODULE,
    CANNOT_FIND_NAME,
    DUPLICATE_FUNCTION,
    INVALID_ASSIGNMENT_TARGET,
    NO_MAIN_MODULE,
    NOT_A_STATEMENT,
    REDECLARED_LOCAL,
    RESERVED_WORD,
    UNREACHABLE_CODE,
    UNUSED_LOCAL,
    Category,
    Diagnostic,
    error,
    warning,
)

# ---------------------------------------------------------------------------
# Names the runtime provides
# ---------------------------------------------------------------------------

BUILTIN_GLOBALS = frozenset({
    "love", "math", "string", "table", "os", "io", "coroutine", "debug",
    "package", "utf8", "_G", "print", "pairs", "ipairs", "next", "select",
    "type", "tostring", "tonumber", "require", "error", "assert", "pcall",
    "xpcall", "unpack", "setmetatable", "getmetatable", "rawget", "rawset",
    "rawequal", "collectgarbage",
})

# Lua keywords that LoveScript does not reserve itself.
LUA_RESERVED = frozenset({
    "break", "do", "elseif", "end", "function", "goto", "in", "local",
    "repeat", "then", "until",
})

SUPPORT_MODULES = frozenset({"lume", "lurker"})


@dataclass
class _Binding:
    name: Name
    kind: str  # "let", "param", "import", "function", "loop"
    read: bool = False


class Checker:
    """Checks one unit against the names the whole program provides."""

    def __init__(
        self,
        file: Path,
        *,
        program_globals: Iterable[str] = (),
        modules: Iterable[str] = (),
        external_modules: Iterable[str] = (),
        extra_globals: Iterable[str] = (),
    ):
        self.file = file
        self.globals = BUILTIN_GLOBALS | frozenset(program_globals) | frozenset(extra_globals)
        self.modules = frozenset(modules) | frozenset(external_modules) | SUPPORT_MODULES
        self._scopes: list[dict[str, _Binding]] = []
        self._diagnostics: list[Diagnostic] = []

    def check(self, module: Module) -> list[Diagnostic]:
        """Run all checks and return diagnostics (empty = clean)."""
        self._diagnostics = []
        self._scopes = []
        self._push()
        self._check_block(module.body, top_level=True)
        self._pop()
        return self._diagnostics

    # ------------------------------------------------------------------
    # Scopes
    # ------------------------------------------------------------------

    def _push(self) -> None:
        self._scopes.append({})

    def _pop(self) -> None:
        scope = self._scopes.pop()
        for binding in scope.values():
            if binding.kind == "let" and not binding.read and not binding.name.id.startswith("_"):
                self._report(
                    warning, UNUSED_LOCAL,
                    f"'{binding.name.id}' is declared but its value is never read.",
                    binding.name,
                )

    def _declare(self, name: Name, kind: str) -> None:
        self._check_reserved(name)
        scope = self._scopes[-1]
        if name.id in scope:
            self._report(
                error, REDECLARED_LOCAL,
                f"Cannot redeclare block-scoped variable '{name.id}'.",
                name,
            )
        scope[name.id] = _Binding(name=name, kind=kind)

    def _resolve(self, name: Name) -> None:
        for scope in reversed(self._scopes):
            binding = scope.get(name.id)
            if binding is not None:
                binding.read = True
                return
        if name.id not in self.globals:
            self._report(error, CANNOT_FIND_NAME, f"Cannot find name '{name.id}'.", name)

    def _is_local(self, name: Name) -> bool:
        return any(name.id in scope for scope in self._scopes)

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def _check_block(self, body, top_level: bool = False) -> None:
        for i, stmt in enumerate(body):
            self._check_stmt(stmt, top_level)
            if isinstance(stmt, Return) and i + 1 < len(body):
                following = body[i + 1]
                self._diagnostics.append(error(
                    Category.SEMANTIC, UNREACHABLE_CODE, "Unreachable code detected.",
                    file=self.file, line=getattr(following, "line", 0), column=1,
                ))
                break

    def _check_scoped(self, body, *declare: tuple[Name, str]) -> None:
        self._push()
        for name, kind in declare:
            self._declare(name, kind)
        self._check_block(body)
        self._pop()

    def _check_stmt(self, stmt, top_level: bool) -> None:
        if isinstance(stmt, Import):
            if stmt.module not in self.modules:
                self._diagnostics.append(error(
                    Category.SEMANTIC, CANNOT_FIND_MODULE,
                    f"Cannot find module '{stmt.module}'.",
                    file=self.file, line=stmt.line, column=stmt.column + len("import "),
                    length=len(stmt.module),
                ))
            self._declare(stmt.alias, "import")
        elif isinstance(stmt, Let):
            if stmt.value is not None:
                self._check_expr(stmt.value)
            self._declare(stmt.name, "let")
        elif isinstance(stmt, FunctionDecl):
            self._check_function(stmt, top_level)
        elif isinstance(stmt, If):
            for cond, body in stmt.branches:
                self._check_expr(cond)
                self._check_scoped(body)
            if stmt.orelse is not None:
                self._check_scoped(stmt.orelse)
        elif isinstance(stmt, While):
            self._check_expr(stmt.cond)
            self._check_scoped(stmt.body)
        elif isinstance(stmt, NumericFor):
            self._check_expr(stmt.start)
            self._check_expr(stmt.stop)
            if stmt.step is not None:
                self._check_expr(stmt.step)
            self._check_scoped(stmt.body, (stmt.var, "loop"))
        elif isinstance(stmt, Return):
            if stmt.value is not None:
                self._check_expr(stmt.value)
        elif isinstance(stmt, Assign):
            self._check_expr(stmt.value)
            self._check_target(stmt.target, stmt.line)
        elif isinstance(stmt, ExprStmt):
            if not isinstance(stmt.expr, Call):
                self._diagnostics.append(error(
                    Category.SEMANTIC, NOT_A_STATEMENT,
                    "Only call expressions can be used as statements.",
                    file=self.file, line=stmt.line, column=1,
                ))
            self._check_expr(stmt.expr)

    def _check_function(self, decl: FunctionDecl, top_level: bool) -> None:
        head = decl.name[0]
        if len(decl.name) == 1:
            if not top_level:
                self._declare(head, "function")
            else:
                self._check_reserved(head)
        else:
            self._resolve(head)
            for part in decl.name[1:]:
                self._check_reserved(part)
        self._check_scoped(decl.body, *((p, "param") for p in decl.params))

    def _check_target(self, target, line: int) -> None:
        if isinstance(target, Name):
            if not self._is_local(target) and target.id not in self.globals:
                self._report(error, CANNOT_FIND_NAME, f"Cannot find name '{target.id}'.", target)
        elif isinstance(target, (Field, Index)):
            self._check_expr(target)
        else:
            self._diagnostics.append(error(
                Category.SEMANTIC, INVALID_ASSIGNMENT_TARGET,
                "The left-hand side of an assignment must be a variable or a property access.",
                file=self.file, line=line, column=1,
            ))

    # ------------------------------------------------------------------
    # Expressions
    # ------------------------------------------------------------------

    def _check_expr(self, expr) -> None:
        if isinstance(expr, Name):
            self._resolve(expr)
        elif isinstance(expr, Field):
            self._check_expr(expr.obj)
            if expr.name in LUA_RESERVED:
                self._report(
                    error, RESERVED_WORD,
                    f"'{expr.name}' is a reserved word in Lua and cannot be used as a name.",
                    Name(expr.name, expr.line, expr.column),
                )
        elif isinstance(expr, Index):
            self._check_expr(expr.obj)
            self._check_expr(expr.key)
        elif isinstance(expr, Call):
            self._check_expr(expr.func)
            for arg in expr.args:
                self._check_expr(arg)
        elif isinstance(expr, BinOp):
            self._check_expr(expr.left)
            self._check_expr(expr.right)
        elif isinstance(expr, UnaryOp):
            self._check_expr(expr.operand)
        elif isinstance(expr, Table):
            for entry in expr.entries:
                self._check_expr(entry.value)
        elif isinstance(expr, Lambda):
            self._check_scoped(expr.body, *((p, "param") for p in expr.params))
        elif isinstance(expr, Literal):
            pass

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_reserved(self, name: Name) -> None:
        if name.id in LUA_RESERVED:
            self._report(
                error, RESERVED_WORD,
                f"'{name.id}' is a reserved word in Lua and cannot be used as a name.",
                name,
            )

    def _report(self, factory, code: int, message: str, name: Name) -> None:
        self._diagnostics.append(factory(
            Category.SEMANTIC, code, message,
            file=self.file, line=name.line, column=name.column, length=len(name.id),
        ))


# ---------------------------------------------------------------------------
# Program-wide checks
# ---------------------------------------------------------------------------

def check_program(units: Iterable[tuple[str, Path, Module | None]]) -> list[Diagnostic]:
    """Checks that need every unit at once.

    ``units`` yields (module name, source path, parsed module or None).
    """
    diagnostics: list[Diagnostic] = []
    declared: dict[str, list[tuple[Path, Name]]] = {}
    names = set()
    for unit_name, path, module in units:
        names.add(unit_name)
        if module is None:
            continue
        for decl in module.global_functions:
            declared.setdefault(decl.name[0].id, []).append((path, decl.name[0]))

    for fn_name, sites in sorted(declared.items()):
        if len(sites) < 2:
            continue
        for path, name in sites:
            diagnostics.append(error(
                Category.GLOBAL, DUPLICATE_FUNCTION,
                f"Duplicate function implementation '{fn_name}'.",
                file=path, line=name.line, column=name.column, length=len(fn_name),
            ))

    if "main" not in names:
        diagnostics.append(warning(
            Category.GLOBAL, NO_MAIN_MODULE,
            "No 'main' module found; the runtime has no entry point.",
        ))
    return diagnostics
