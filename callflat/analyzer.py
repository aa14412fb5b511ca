"""
Core analyzer: builds the summary environment and checks entry functions.

This module ties the pipeline together:
1. Abstract every function of a module into a ``FunctionSummary`` (the
   abstraction pass itself is supplied by the caller), capturing the warnings
   it emits per function
2. Flatten the call graph below an entry function with ``instantiate``
3. Optionally run the unresolved-assert detector over the result

The flattened constraints are meant for a downstream solver; the analyzer does
not solve them.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple
import logging

import z3

from .config import CallflatConfig
from .semantics.summary import (
    Constraint, ExprConstraint, FunctionSummary, Environment, TypeEnvironment,
)
from .semantics.instantiation import instantiate
from .semantics.diagnostics import (
    DiagnosticWarning, capture_warnings, warn_about_unresolved_asserts,
)

logger = logging.getLogger(__name__)

# body, struct table -> summary
AbstractionPass = Callable[[Any, TypeEnvironment], FunctionSummary]


@dataclass
class CheckResult:
    """Flattened constraint system of one entry function plus its diagnostics."""
    function_name: str
    constraints: List[Constraint] = field(default_factory=list)
    warnings: List[DiagnosticWarning] = field(default_factory=list)

    def formulas(self) -> List[z3.BoolRef]:
        return [c.as_formula() for c in self.constraints if isinstance(c, ExprConstraint)]

    def to_smt2(self) -> str:
        """The constraint system in SMT-LIB form (nothing is solved)."""
        solver = z3.Solver()
        solver.add(*self.formulas())
        return solver.sexpr()

    def summary(self) -> str:
        lines = [f"{self.function_name}: {len(self.constraints)} constraint(s)"]
        for constraint in self.constraints:
            lines.append(f"  {constraint}  [{constraint.location}]")
        for warning in self.warnings:
            lines.append(f"  {warning}")
        return "\n".join(lines)


class Analyzer:
    """
    Holds the per-module state: summaries, struct layouts and warnings.

    Example:
        analyzer = Analyzer(abstract=my_abstraction_pass)
        analyzer.analyze_module(module_functions)
        result = analyzer.check("main")
    """

    def __init__(
        self,
        abstract: Optional[AbstractionPass] = None,
        config: Optional[CallflatConfig] = None,
        verbose: bool = False,
    ):
        self.abstract = abstract
        self.config = config if config is not None else CallflatConfig()
        self.verbose = verbose
        self.environment: Environment = {}
        self.type_environment: TypeEnvironment = {}
        self.warnings: Dict[str, List[DiagnosticWarning]] = {}

    def analyze_module(self, functions: Iterable[Tuple[str, Any]]) -> None:
        """Abstract every ``(name, body)`` pair of a module."""
        count = 0
        for name, body in functions:
            self.analyze_function(name, body)
            count += 1
        logger.info(f"[MODULE] Abstracted {count} functions, {len(self.environment)} summaries in environment")

    def analyze_function(self, name: str, body: Any) -> FunctionSummary:
        """Abstract one function, recording its summary and the warnings raised meanwhile."""
        if self.abstract is None:
            raise ValueError("Analyzer has no abstraction pass; use register_summary() instead")
        with capture_warnings() as captured:
            summary = self.abstract(body, self.type_environment)
        self.environment[name] = summary
        self.warnings[name] = captured
        if self.verbose:
            print(f"  {name}: {summary.pretty_description}")
        return summary

    def register_summary(self, name: str, summary: FunctionSummary) -> None:
        self.environment[name] = summary

    def check(self, name: str) -> CheckResult:
        """Flatten the constraint system rooted at ``name`` and run the diagnostics on it."""
        constraints = instantiate(name, self.environment)
        logger.debug(f"Instantiated {len(constraints)} constraints from {name}")

        warnings: List[DiagnosticWarning] = []
        if self.config.analysis.warn_unresolved_asserts:
            with capture_warnings():
                warnings = warn_about_unresolved_asserts(constraints)
        return CheckResult(name, constraints, warnings)

    def check_all(self, entry_points: Optional[Iterable[str]] = None) -> List[CheckResult]:
        """Check the given entry points, or every function in the environment (sorted)."""
        names = list(entry_points) if entry_points is not None else sorted(self.environment)
        logger.info(f"[MODULE] Checking {len(names)} entry points")
        return [self.check(name) for name in names]
