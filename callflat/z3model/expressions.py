"""
Symbolic variables and expressions for function summaries, on top of Z3.

The constraint engine treats Z3 as its expression algebra:

- A *variable* is an uninterpreted Z3 constant (``z3.Int('x')``, ``z3.Bool('c')``...).
  Boolean-sorted variables and expression-sorted variables are told apart by sort.
- An *expression* is any ``z3.ExprRef``; a *boolean expression* is a ``z3.BoolRef``.

On top of that this module adds the three operations the instantiation engine
needs and Z3 does not provide directly:

1. ``VariableGenerator``: a per-session supply of never-repeated variables
2. ``substitute``: rewriting through a callback (``Var -> Expr | None``), with the
   callback invoked once per textual occurrence of each variable
3. ``equate``: the equality constraint between an expression and an optional one

NOTE: never test a Z3 object for truthiness or use ``in`` on lists of them;
``ExprRef.__eq__`` builds a formula.  Variables are keyed by ``get_id()``.
"""

from typing import Callable, Dict, Iterator, List, Optional
import z3


Var = z3.ExprRef
Expr = z3.ExprRef
BoolExpr = z3.BoolRef

# Callback used by substitute(): the replacement for a variable, or None to keep it.
Substitution = Callable[[Var], Optional[Expr]]


def is_var(expr: Optional[Expr]) -> bool:
    """Is ``expr`` an uninterpreted constant (as opposed to a literal or an application)?"""
    if expr is None:
        return False
    return z3.is_const(expr) and expr.decl().kind() == z3.Z3_OP_UNINTERPRETED


def is_bool_var(expr: Optional[Expr]) -> bool:
    """Is ``expr`` a single boolean-sorted variable?"""
    return is_var(expr) and z3.is_bool(expr)


def occurrences(expr: Expr) -> Iterator[Var]:
    """
    Yield every variable occurrence in ``expr``, left to right.

    Shared subterms are visited once per occurrence, so a variable that appears
    twice in the printed term is yielded twice.
    """
    stack = [expr]
    while stack:
        node = stack.pop()
        if is_var(node):
            yield node
        elif z3.is_quantifier(node):
            stack.append(node.body())
        elif z3.is_app(node):
            stack.extend(reversed(node.children()))


def variables(expr: Optional[Expr]) -> List[Var]:
    """Distinct variables of ``expr`` in order of first occurrence."""
    if expr is None:
        return []
    seen: Dict[int, Var] = {}
    for var in occurrences(expr):
        seen.setdefault(var.get_id(), var)
    return list(seen.values())


def substitute(expr: Optional[Expr], fn: Substitution) -> Optional[Expr]:
    """
    Rewrite the variables of ``expr`` through ``fn``.

    ``fn`` is called for every occurrence; a ``None`` answer leaves that variable
    in place.  If ``fn`` answers differently for repeated occurrences of the same
    variable, the first answer wins.  ``substitute(None, fn)`` is ``None``.
    """
    if expr is None:
        return None
    pairs = []
    replaced = set()
    for var in occurrences(expr):
        replacement = fn(var)
        if replacement is None or var.get_id() in replaced:
            continue
        replaced.add(var.get_id())
        pairs.append((var, replacement))
    if not pairs:
        return expr
    return z3.substitute(expr, *pairs)


def equate(lhs: Expr, rhs: Optional[Expr]) -> List[BoolExpr]:
    """
    Equality constraints between ``lhs`` and an optional ``rhs``.

    An absent ``rhs`` carries no information, so no constraint is produced.
    Boolean operands yield a boolean equivalence, all others an arithmetic equality.
    """
    if rhs is None:
        return []
    return [lhs == rhs]


def conjoin(lhs: BoolExpr, rhs: BoolExpr) -> BoolExpr:
    """``lhs ∧ rhs``, dropping trivially true operands."""
    if z3.is_true(lhs):
        return rhs
    if z3.is_true(rhs):
        return lhs
    return z3.And(lhs, rhs)


# ============================================================================
# FRESH VARIABLES
# ============================================================================

class VariableGenerator:
    """
    Supply of fresh variables for one instantiation session.

    Every variable handed out is named ``<prefix><n>`` with a strictly increasing
    ``n``, so two calls never return the same variable.  Sessions that must not
    share names should use separate generators (or distinct prefixes when their
    output is merged).
    """

    def __init__(self, prefix: str = "$"):
        self.prefix = prefix
        self.count = 0

    def fresh(self, sort: Optional[z3.SortRef] = None) -> Var:
        """A new variable of ``sort`` (integers by default)."""
        if sort is None:
            sort = z3.IntSort()
        var = z3.Const(f"{self.prefix}{self.count}", sort)
        self.count += 1
        return var

    def fresh_like(self, var: Var) -> Var:
        """A new variable with the same sort as ``var``."""
        return self.fresh(var.sort())
