"""
Loading function summaries from YAML/JSON files.

Summaries normally come straight from the abstraction pass; this loader lets
them be written down by hand (tests, bug reports, experiments) and fed to the
instantiation engine without the compiler front end.  Expressions use SMT-LIB
term syntax and are parsed by Z3 against each function's declared variables:

    structs:
      Point: [[x, Int], [y, Int]]
    functions:
      clamp:
        vars: {x: Int, r: Int, c: Bool}
        args: [x]
        ret: r
        constraints:
          - implied: (>= r 0)
            at: clamp.sil:3:5
          - call: check
            args: [x]
            result: c
            at: clamp.sil:4:1
          - assert: c
            at: clamp.sil:5:3

Constraint entries are keyed by their kind: ``assert`` (asserted), ``implied``,
or ``call``.  ``assuming`` defaults to ``true``; ``at`` is optional.
"""

from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union
import logging

import yaml
import z3

from ..semantics.summary import (
    SourceLocation, CallStack, TOP, Origin,
    Constraint, ExprConstraint, CallConstraint,
    FunctionSummary, Environment, TypeEnvironment,
)

logger = logging.getLogger(__name__)


SORTS = {
    "Int": z3.IntSort,
    "Real": z3.RealSort,
    "Bool": z3.BoolSort,
}

# Sorts tried, in order, when parsing a term of unknown sort.
_CANDIDATE_SORTS = ("Bool", "Int", "Real")

_TERM_PLACEHOLDER = "__callflat_term"


class SummaryFormatError(ValueError):
    """A summary file does not have the expected shape."""


def _term_text(term: Any) -> str:
    # YAML turns `true` and `0` into Python values; SMT-LIB wants them back as text.
    if isinstance(term, bool):
        return "true" if term else "false"
    if isinstance(term, (int, float)):
        return str(term)
    if isinstance(term, str) and term.strip():
        return term
    raise SummaryFormatError(f"not an SMT-LIB term: {term!r}")


def parse_term(term: Any, decls: Dict[str, z3.ExprRef], where: str = "") -> z3.ExprRef:
    """
    Parse an SMT-LIB term over ``decls``.

    The term is parsed as the right-hand side of an equation with a placeholder
    constant, trying each supported sort for the placeholder in turn.
    """
    try:
        text = _term_text(term)
    except SummaryFormatError as e:
        raise SummaryFormatError(f"{where}: {e}") from e
    errors = []
    for sort_name in _CANDIDATE_SORTS:
        source = (
            f"(declare-const {_TERM_PLACEHOLDER} {sort_name})\n"
            f"(assert (= {_TERM_PLACEHOLDER} {text}))"
        )
        try:
            parsed = z3.parse_smt2_string(source, decls=decls)
        except z3.Z3Exception as e:
            errors.append(str(e))
            continue
        return parsed[0].arg(1)
    raise SummaryFormatError(f"{where}: cannot parse term {text!r}: {errors[-1]}")


def parse_bool_term(term: Any, decls: Dict[str, z3.ExprRef], where: str = "") -> z3.BoolRef:
    expr = parse_term(term, decls, where)
    if not z3.is_bool(expr):
        raise SummaryFormatError(f"{where}: expected a boolean term, got {expr} : {expr.sort()}")
    return expr


def _optional_term(term: Any, decls: Dict[str, z3.ExprRef], where: str) -> Optional[z3.ExprRef]:
    if term is None:
        return None
    return parse_term(term, decls, where)


def _location(raw: Any, where: str) -> CallStack:
    if raw is None:
        return TOP
    try:
        return CallStack.at(SourceLocation.parse(str(raw)))
    except ValueError as e:
        raise SummaryFormatError(f"{where}: {e}") from e


def _declare(name: str, raw: Any) -> Dict[str, z3.ExprRef]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise SummaryFormatError(f"{name}: 'vars' must map variable names to sorts")
    decls = {}
    for var_name, sort_name in raw.items():
        sort = SORTS.get(str(sort_name))
        if sort is None:
            raise SummaryFormatError(
                f"{name}: variable {var_name} has unsupported sort {sort_name!r} "
                f"(expected one of {', '.join(SORTS)})"
            )
        decls[str(var_name)] = z3.Const(str(var_name), sort())
    return decls


def _parse_constraint(
    name: str, index: int, raw: Any, decls: Dict[str, z3.ExprRef],
) -> Constraint:
    where = f"{name}: constraint {index}"
    if not isinstance(raw, dict):
        raise SummaryFormatError(f"{where}: expected a mapping")
    assuming = parse_bool_term(raw.get("assuming", True), decls, f"{where} (assuming)")
    location = _location(raw.get("at"), where)

    if "call" in raw:
        args = raw.get("args") or []
        if not isinstance(args, list):
            raise SummaryFormatError(f"{where}: 'args' must be a list")
        result = raw.get("result")
        if result is not None and str(result) not in decls:
            raise SummaryFormatError(f"{where}: result {result} is not a declared variable")
        return CallConstraint(
            str(raw["call"]),
            [_optional_term(arg, decls, f"{where} (arg {i})") for i, arg in enumerate(args)],
            decls[str(result)] if result is not None else None,
            assuming,
            location,
        )

    for key, origin in (("assert", Origin.ASSERTED), ("implied", Origin.IMPLIED)):
        if key in raw:
            condition = parse_bool_term(raw[key], decls, where)
            return ExprConstraint(condition, assuming, origin, location)

    raise SummaryFormatError(f"{where}: expected one of 'assert', 'implied' or 'call'")


def parse_summary(name: str, raw: Any) -> FunctionSummary:
    """Build the ``FunctionSummary`` of ``name`` from its parsed YAML mapping."""
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise SummaryFormatError(f"{name}: expected a mapping")
    decls = _declare(name, raw.get("vars"))

    args = raw.get("args") or []
    if not isinstance(args, list):
        raise SummaryFormatError(f"{name}: 'args' must be a list")
    constraints = raw.get("constraints") or []
    if not isinstance(constraints, list):
        raise SummaryFormatError(f"{name}: 'constraints' must be a list")

    return FunctionSummary(
        [_optional_term(arg, decls, f"{name}: arg {i}") for i, arg in enumerate(args)],
        _optional_term(raw.get("ret"), decls, f"{name}: ret"),
        [_parse_constraint(name, i, c, decls) for i, c in enumerate(constraints)],
    )


def _check_call_sites(environment: Environment) -> None:
    # Call sites must agree with the callee's arity and sorts; calls to
    # functions outside the file are left alone.
    for name, summary in environment.items():
        for index, constraint in enumerate(summary.constraints):
            if not isinstance(constraint, CallConstraint):
                continue
            callee = environment.get(constraint.callee)
            if callee is None:
                continue
            where = f"{name}: constraint {index}"
            if len(constraint.args) != callee.arity:
                raise SummaryFormatError(
                    f"{where}: {constraint.callee} takes {callee.arity} argument(s), "
                    f"called with {len(constraint.args)}"
                )
            for i, (formal, actual) in enumerate(zip(callee.arg_exprs, constraint.args)):
                if formal is not None and actual is not None and formal.sort() != actual.sort():
                    raise SummaryFormatError(
                        f"{where} (arg {i}): {constraint.callee} expects {formal.sort()}, got {actual.sort()}"
                    )
            ret, result = callee.ret_expr, constraint.result
            if ret is not None and result is not None and ret.sort() != result.sort():
                raise SummaryFormatError(
                    f"{where} (result): {constraint.callee} returns {ret.sort()}, "
                    f"{result} is {result.sort()}"
                )


def parse_environment(data: Any) -> Environment:
    if not isinstance(data, dict):
        raise SummaryFormatError("expected a mapping at top level")
    functions = data.get("functions") or {}
    if not isinstance(functions, dict):
        raise SummaryFormatError("'functions' must map function names to summaries")
    environment = {str(name): parse_summary(str(name), raw) for name, raw in functions.items()}
    _check_call_sites(environment)
    return environment


def parse_type_environment(data: Any) -> TypeEnvironment:
    if not isinstance(data, dict):
        raise SummaryFormatError("expected a mapping at top level")
    structs = data.get("structs") or {}
    if not isinstance(structs, dict):
        raise SummaryFormatError("'structs' must map struct names to field lists")
    type_env: TypeEnvironment = {}
    for struct_name, fields in structs.items():
        decl: List[Tuple[str, str]] = []
        for entry in fields or []:
            if not isinstance(entry, (list, tuple)) or len(entry) != 2:
                raise SummaryFormatError(f"struct {struct_name}: fields must be [name, type] pairs")
            decl.append((str(entry[0]), str(entry[1])))
        type_env[str(struct_name)] = decl
    return type_env


def _read(path: Union[str, Path]) -> Any:
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            return yaml.safe_load(f)
    except (OSError, UnicodeDecodeError) as e:
        raise SummaryFormatError(f"cannot read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise SummaryFormatError(f"{path}: {e}") from e



def load_summaries(path: Union[str, Path]) -> Tuple[Environment, TypeEnvironment]:
    """Load both the environment and the struct table from a summary file."""
    data = _read(path)
    environment = parse_environment(data)
    type_environment = parse_type_environment(data)
    logger.info(f"Loaded {len(environment)} summaries and {len(type_environment)} structs from {path}")
    return environment, type_environment


def load_environment(path: Union[str, Path]) -> Environment:
    return load_summaries(path)[0]
