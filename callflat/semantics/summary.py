"""
Function summaries and the constraints they are made of.

A summary is the contract the abstraction pass extracts from one function body:

    FunctionSummary = (arg_exprs, ret_expr, constraints)

- ``arg_exprs[i]`` is the symbolic value of the i-th formal, or ``None`` when the
  pass found nothing useful to say about it.
- ``ret_expr`` is the symbolic return value, or ``None``.
- ``constraints`` is an ordered list of:
    * ``ExprConstraint``: a fact ``condition`` that must hold whenever ``assuming`` holds
    * ``CallConstraint``: a call to another function by name, whose result (if
      captured) is bound to a variable of the caller

Every constraint carries a ``CallStack``: the chain of call-site locations from
the instantiation root down to the constraint's origin.  Inside a summary that
chain is a single frame; the instantiator wraps it as it inlines callees.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple, Union

import z3

from ..z3model.expressions import Var, Expr, BoolExpr, Substitution, substitute


# ============================================================================
# SOURCE LOCATIONS AND CALL STACKS
# ============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """A position in the analyzed source (1-based line, 0 when the column is unknown)."""
    file: str
    line: int
    column: int = 0

    @staticmethod
    def parse(text: str) -> 'SourceLocation':
        """Parse ``file:line`` or ``file:line:column``."""
        parts = text.rsplit(":", 2)
        if len(parts) == 3 and parts[1].isdigit() and parts[2].isdigit():
            return SourceLocation(parts[0], int(parts[1]), int(parts[2]))
        parts = text.rsplit(":", 1)
        if len(parts) == 2 and parts[1].isdigit():
            return SourceLocation(parts[0], int(parts[1]))
        raise ValueError(f"not a source location: {text!r}")

    def __str__(self) -> str:
        if self.column:
            return f"{self.file}:{self.line}:{self.column}"
        return f"{self.file}:{self.line}"


class CallStack:
    """
    Immutable, shared provenance chain.

    Either ``TOP`` (no caller) or a ``Frame`` extending its caller.  Frames are
    never mutated, so many constraints can share one frame object.
    """
    location: Optional[SourceLocation] = None

    @staticmethod
    def at(location: Optional[SourceLocation]) -> 'Frame':
        """A single frame at ``location``, as found inside a summary."""
        return Frame(location, TOP)

    def frames(self) -> Iterator['Frame']:
        """Frames from the innermost to the outermost."""
        stack = self
        while isinstance(stack, Frame):
            yield stack
            stack = stack.caller

    def locations(self) -> List[SourceLocation]:
        """Known call-site locations, innermost first."""
        return [frame.location for frame in self.frames() if frame.location is not None]

    @property
    def depth(self) -> int:
        return sum(1 for _ in self.frames())

    def __str__(self) -> str:
        if self is TOP:
            return "<top>"
        return " <- ".join(str(frame.location or "?") for frame in self.frames())


class _Top(CallStack):
    _instance: Optional['_Top'] = None

    def __new__(cls) -> '_Top':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "TOP"


TOP = _Top()


@dataclass(frozen=True, repr=False)
class Frame(CallStack):
    """One call-site location on top of the stack of its callers."""
    location: Optional[SourceLocation]
    caller: CallStack = TOP

    def __repr__(self) -> str:
        return f"Frame({self.location!s}, caller={self.caller!r})"


# ============================================================================
# CONSTRAINTS
# ============================================================================

class Origin(Enum):
    """Where an ``ExprConstraint`` came from."""
    ASSERTED = "asserted"  # a source-level assertion
    IMPLIED = "implied"    # derived by abstraction or instantiation


def _is_trivial(cond: BoolExpr) -> bool:
    return z3.is_true(cond)


def _describe(expr: Optional[Expr]) -> str:
    return "*" if expr is None else str(expr)


@dataclass(eq=False)
class ExprConstraint:
    """``assuming ⇒ condition``, attributed to ``location``."""
    condition: BoolExpr
    assuming: BoolExpr = field(default_factory=lambda: z3.BoolVal(True))
    origin: Origin = Origin.IMPLIED
    location: CallStack = TOP

    def substitute(self, fn: Substitution) -> 'ExprConstraint':
        return ExprConstraint(
            substitute(self.condition, fn),
            substitute(self.assuming, fn),
            self.origin,
            self.location,
        )

    def as_formula(self) -> BoolExpr:
        """The constraint as a single formula for a solver."""
        if _is_trivial(self.assuming):
            return self.condition
        return z3.Implies(self.assuming, self.condition)

    def __str__(self) -> str:
        text = str(self.condition)
        if not _is_trivial(self.assuming):
            text = f"{self.assuming} => {text}"
        if self.origin is Origin.ASSERTED:
            text += " (asserted)"
        return text


@dataclass(eq=False)
class CallConstraint:
    """A call to ``callee`` whose result, if captured, is bound to ``result``."""
    callee: str
    args: List[Optional[Expr]] = field(default_factory=list)
    result: Optional[Var] = None
    assuming: BoolExpr = field(default_factory=lambda: z3.BoolVal(True))
    location: CallStack = TOP

    def substitute(self, fn: Substitution) -> 'CallConstraint':
        return CallConstraint(
            self.callee,
            [substitute(arg, fn) for arg in self.args],
            substitute(self.result, fn),
            substitute(self.assuming, fn),
            self.location,
        )

    def __str__(self) -> str:
        text = f"{self.callee}(" + ", ".join(_describe(arg) for arg in self.args) + ")"
        if self.result is not None:
            text = f"{self.result} = {text}"
        if not _is_trivial(self.assuming):
            text = f"{self.assuming} => {text}"
        return text


Constraint = Union[ExprConstraint, CallConstraint]


# ============================================================================
# FUNCTION SUMMARIES
# ============================================================================

@dataclass(eq=False)
class FunctionSummary:
    """
    The abstracted contract of one function.

    ``len(arg_exprs)`` is the function's arity; callers must supply exactly that
    many (possibly ``None``) actual arguments when the summary is applied.
    """
    arg_exprs: List[Optional[Expr]] = field(default_factory=list)
    ret_expr: Optional[Expr] = None
    constraints: List[Constraint] = field(default_factory=list)

    @property
    def arity(self) -> int:
        return len(self.arg_exprs)

    @property
    def signature(self) -> str:
        args = ", ".join(_describe(arg) for arg in self.arg_exprs)
        return f"({args}) -> {_describe(self.ret_expr)}"

    @property
    def pretty_description(self) -> str:
        """Like ``str()``, but one constraint per line once there are more than four."""
        if len(self.constraints) <= 4:
            return str(self)
        body = ",\n ".join(str(constraint) for constraint in self.constraints)
        return f"[{body}] => {self.signature}"

    def __str__(self) -> str:
        if not self.constraints:
            return self.signature
        body = ", ".join(str(constraint) for constraint in self.constraints)
        return f"[{body}] => {self.signature}"


# Struct name -> ordered (field name, field type) pairs.
StructDecl = List[Tuple[str, str]]

Environment = Dict[str, FunctionSummary]
TypeEnvironment = Dict[str, StructDecl]
