"""Semantics: summaries, interprocedural instantiation and diagnostics."""

from .summary import (
    SourceLocation,
    CallStack,
    Frame,
    TOP,
    Origin,
    Constraint,
    ExprConstraint,
    CallConstraint,
    FunctionSummary,
    StructDecl,
    Environment,
    TypeEnvironment,
)

from .instantiation import (
    ArityMismatch,
    ConstraintInstantiator,
    instantiate,
)

from .diagnostics import (
    DiagnosticWarning,
    UNRESOLVED_ASSERT_MESSAGE,
    warn,
    capture_warnings,
    count_variable_uses,
    warn_about_unresolved_asserts,
)
