"""
callflat: interprocedural constraint instantiation for function summaries.

An upstream abstraction pass turns each compiled function into a summary:
symbolic arguments, a symbolic return value and an ordered list of
constraints, some of which call other functions by name.  callflat flattens
the call graph below an entry function into one self-contained Z3 constraint
system, renaming variables apart at every call site, conjoining path
conditions across calls, cutting recursion, and keeping the chain of call
sites behind every constraint so failures can be localized.
"""

__version__ = "0.1.0"

from .semantics.summary import (
    SourceLocation,
    CallStack,
    Frame,
    TOP,
    Origin,
    ExprConstraint,
    CallConstraint,
    FunctionSummary,
)
from .semantics.instantiation import ArityMismatch, ConstraintInstantiator, instantiate
from .semantics.diagnostics import DiagnosticWarning, warn_about_unresolved_asserts
