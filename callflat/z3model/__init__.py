"""Z3-backed symbolic algebra: variables, substitution, equality constraints."""

from .expressions import (
    Var,
    Expr,
    BoolExpr,
    Substitution,
    VariableGenerator,
    is_var,
    is_bool_var,
    occurrences,
    variables,
    substitute,
    equate,
    conjoin,
)
