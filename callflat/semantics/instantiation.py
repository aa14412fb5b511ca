"""
Interprocedural instantiation of constraint systems.

Given an environment of function summaries and an entry function, flatten the
transitive call graph into a single list of constraints a solver can consume:

    instantiate("main", env)  →  [ExprConstraint, ...]

Each time a summary is applied at a call site:

1. Its variables are alpha-renamed through a fresh renaming scope, so inlining
   the same callee twice never captures variables across call sites.
2. Formals are equated with the caller's actuals (where both are known).
3. Body constraints are replayed under the call's path condition, each wrapped
   in a new ``Frame`` whose caller is the current call stack.
4. Nested calls are expanded depth-first, in body order; results are bound to
   the callee's renamed return value.

Recursion is cut by name: a function already being expanded on the current
path is treated as opaque (its result stays unconstrained).  The guard keys on
the callee name only, so a function reached twice on one path with different
arguments is also cut after the first entry.

Callees missing from the environment are opaque as well.  Neither case is an
error; both are logged at DEBUG.
"""

from __future__ import annotations
from typing import List, Optional, Set
import logging

import z3

from ..z3model.expressions import (
    Expr, BoolExpr, Var, Substitution, VariableGenerator,
    substitute, equate, conjoin,
)
from .summary import (
    CallStack, Frame, TOP, Origin,
    Constraint, ExprConstraint, CallConstraint,
    FunctionSummary, Environment,
)

logger = logging.getLogger(__name__)


class ArityMismatch(AssertionError):
    """A summary was applied to the wrong number of actual arguments."""

    def __init__(self, name: str, expected: int, actual: int):
        super().__init__(
            f"summary of {name} takes {expected} argument(s), applied to {actual}"
        )
        self.name = name
        self.expected = expected
        self.actual = actual


class ConstraintInstantiator:
    """
    Flattens the call graph below one entry function.

    All work happens in the constructor; read ``constraints`` afterwards and drop
    the instance.  Each instantiator owns its fresh-variable supply, its set of
    active names and its output, so independent queries over a shared
    environment do not interact.
    """

    def __init__(
        self,
        name: str,
        environment: Environment,
        fresh_var: Optional[VariableGenerator] = None,
    ):
        self.environment = environment
        self.constraints: List[Constraint] = []
        self.active: Set[str] = set()
        self.fresh_var = fresh_var if fresh_var is not None else VariableGenerator()

        summary = environment.get(name)
        if summary is None:
            logger.debug(f"No summary for entry function {name}")
            return
        # The root's formals are free inputs: rename them apart from the body.
        subst = self.make_substitution()
        self.apply(
            name,
            [substitute(arg, subst) for arg in summary.arg_exprs],
            TOP,
            z3.BoolVal(True),
        )

    def make_substitution(self) -> Substitution:
        """
        A fresh renaming scope.

        The first lookup of a variable allocates a fresh one of the same sort;
        later lookups in the same scope return that same variable.
        """
        renamed = {}

        def rename(var: Var) -> Expr:
            fresh = renamed.get(var.get_id())
            if fresh is None:
                fresh = renamed[var.get_id()] = self.fresh_var.fresh_like(var)
            return fresh

        return rename

    def apply(
        self,
        name: str,
        args: List[Optional[Expr]],
        stack: CallStack,
        path_condition: BoolExpr,
    ) -> Optional[Expr]:
        """
        Inline the summary of ``name`` applied to ``args``.

        Appends the instantiated constraints to ``self.constraints`` and returns the
        callee's renamed return value, or ``None`` when it is unknown, cut by the
        recursion guard, or has no return expression.
        """
        summary = self.environment.get(name)
        if summary is None:
            logger.debug(f"Call to {name} left opaque: no summary (at {stack})")
            return None
        if name in self.active:
            logger.debug(f"Recursive call to {name} cut (at {stack})")
            return None
        if summary.arity != len(args):
            raise ArityMismatch(name, summary.arity, len(args))

        self.active.add(name)
        try:
            return self._instantiate_body(summary, args, stack, path_condition)
        finally:
            self.active.discard(name)

    def _instantiate_body(
        self,
        summary: FunctionSummary,
        args: List[Optional[Expr]],
        stack: CallStack,
        path_condition: BoolExpr,
    ) -> Optional[Expr]:
        subst = self.make_substitution()

        # Only bind the parameters that carry constraints on both sides.
        for formal, actual in zip(summary.arg_exprs, args):
            if formal is None or actual is None:
                continue
            for eq in equate(substitute(formal, subst), actual):
                self.constraints.append(
                    ExprConstraint(eq, path_condition, Origin.IMPLIED, stack)
                )

        for constraint in summary.constraints:
            if not isinstance(constraint, (ExprConstraint, CallConstraint)):
                raise TypeError(f"unknown constraint kind: {type(constraint).__name__}")
            frame = Frame(constraint.location.location, stack)
            if isinstance(constraint, ExprConstraint):
                condition = substitute(constraint.condition, subst)
                cond = conjoin(path_condition, substitute(constraint.assuming, subst))
                self.constraints.append(
                    ExprConstraint(condition, cond, constraint.origin, frame)
                )
            else:
                cond = conjoin(path_condition, substitute(constraint.assuming, subst))
                value = self.apply(
                    constraint.callee,
                    [substitute(arg, subst) for arg in constraint.args],
                    frame,
                    cond,
                )
                if value is None or constraint.result is None:
                    continue
                for eq in equate(substitute(constraint.result, subst), value):
                    self.constraints.append(
                        ExprConstraint(eq, cond, Origin.IMPLIED, frame)
                    )

        return substitute(summary.ret_expr, subst)


def instantiate(name: str, environment: Environment) -> List[Constraint]:
    """Flatten the constraint system of ``name`` and everything it calls."""
    return ConstraintInstantiator(name, environment).constraints
