"""
Diagnostics over flattened constraint systems.

Warnings are plain values (message + optional source location).  ``warn()``
hands them to the innermost active ``capture_warnings()`` block, or to the
module logger when nobody is capturing.

The one check implemented here is the unresolved-assert heuristic: when the
abstraction pass cannot make sense of an assertion's condition, it still
records the assertion, but over a brand-new boolean variable.  Such a variable
occurs exactly once in the whole flattened system, which is what we look for.
"""

from __future__ import annotations
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Set
import logging

from ..z3model.expressions import Var, is_bool_var
from .summary import SourceLocation, Frame, Origin, Constraint, ExprConstraint

logger = logging.getLogger(__name__)

UNRESOLVED_ASSERT_MESSAGE = "Failed to parse the assert condition"


@dataclass(frozen=True)
class DiagnosticWarning:
    """A non-fatal finding, attached to a source location when one is known."""
    message: str
    location: Optional[SourceLocation] = None

    def __str__(self) -> str:
        if self.location is None:
            return f"warning: {self.message}"
        return f"{self.location}: warning: {self.message}"


_collectors: List[List[DiagnosticWarning]] = []


def warn(message: str, location: Optional[SourceLocation] = None) -> DiagnosticWarning:
    """Emit a warning to the innermost ``capture_warnings()`` block (or the log)."""
    warning = DiagnosticWarning(message, location)
    if _collectors:
        _collectors[-1].append(warning)
    else:
        logger.warning(str(warning))
    return warning


@contextmanager
def capture_warnings() -> Iterator[List[DiagnosticWarning]]:
    """
    Collect every warning emitted inside the block.

        with capture_warnings() as captured:
            ...
        report(captured)
    """
    captured: List[DiagnosticWarning] = []
    _collectors.append(captured)
    try:
        yield captured
    finally:
        _collectors.pop()


def count_variable_uses(constraints: Sequence[Constraint]) -> Dict[int, int]:
    """Occurrences of every variable (keyed by Z3 id) across all constraints."""
    uses: Dict[int, int] = {}

    def count(var: Var) -> None:
        uses[var.get_id()] = uses.get(var.get_id(), 0) + 1
        return None

    for constraint in constraints:
        constraint.substitute(count)
    return uses


def warn_about_unresolved_asserts(constraints: Sequence[Constraint]) -> List[DiagnosticWarning]:
    """
    Flag asserted constraints whose condition is a lone, otherwise unused boolean variable.

    At most one warning is emitted per source location.
    """
    uses = count_variable_uses(constraints)

    warnings: List[DiagnosticWarning] = []
    seen_locations: Set[SourceLocation] = set()
    for constraint in constraints:
        if not isinstance(constraint, ExprConstraint):
            continue
        if constraint.origin is not Origin.ASSERTED:
            continue
        if not is_bool_var(constraint.condition):
            continue
        if uses.get(constraint.condition.get_id()) != 1:
            continue
        if not isinstance(constraint.location, Frame):
            continue
        location = constraint.location.location
        if location is None or location in seen_locations:
            continue
        seen_locations.add(location)
        warnings.append(warn(UNRESOLVED_ASSERT_MESSAGE, location))
    return warnings
