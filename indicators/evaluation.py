"""
Formula evaluation entry points for KPI definitions.
"""
import logging
import math
from typing import List, Mapping, Optional

from .domain import Kpi
from .dsl import Tokenizer, Parser, Evaluator, EvaluationFailure
from .dsl.tokens import TokenType

logger = logging.getLogger(__name__)


def evaluate(formula: str, variable_values: Mapping[str, float]) -> float:
    """
    Evaluate an arithmetic formula against a closed set of variable values.

    Supported syntax:
    - Numeric literals: 12, 0.5, .5
    - Operators: +, -, *, / with the usual precedence, left-associative
    - Unary plus and minus
    - Parentheses for grouping
    - Identifiers, each looked up in ``variable_values``

    Example:
        evaluate("(actual / target) * 100", {"actual": 85000, "target": 100000}) == 85.0

    Args:
        formula: Formula string
        variable_values: Mapping from variable name to its numeric value

    Returns:
        The finite numeric result

    Raises:
        EvaluationFailure: on malformed formulas, unknown identifiers,
            non-numeric values, division by zero or non-finite results
    """
    if formula is None or not str(formula).strip():
        raise EvaluationFailure("Formula is empty")

    try:
        tokens = Tokenizer(str(formula)).generate_tokens()
        ast = Parser(tokens).parse()
        result = Evaluator(dict(variable_values)).eval(ast)
    except RecursionError:
        raise EvaluationFailure("Formula is nested too deeply")

    result = float(result)
    if not math.isfinite(result):
        raise EvaluationFailure("Result is not a finite number")
    return result


def evaluate_formula(kpi: Kpi, variable_values: Mapping[str, float]) -> Optional[float]:
    """
    Evaluate a KPI's formula for one set of recorded values.

    Only the KPI's declared variables are visible to the formula, so a value
    recorded under a name the KPI no longer declares is treated as missing.

    Args:
        kpi: The KPI definition
        variable_values: Recorded values keyed by variable name

    Returns:
        Computed result or None if the formula could not be evaluated
    """
    declared = set(kpi.variable_names)
    context = {name: value for name, value in (variable_values or {}).items() if name in declared}

    try:
        return evaluate(kpi.formula, context)
    except EvaluationFailure as e:
        # Log error for debugging but don't expose to caller
        logger.debug(f"Formula evaluation error for KPI {kpi.id}: {str(e)} for formula: {kpi.formula}")
        return None


def formula_identifiers(formula: str) -> List[str]:
    """Return the distinct identifiers referenced by a formula, in order of appearance."""
    names = []
    for token in Tokenizer(formula or "").generate_tokens():
        if token.type == TokenType.IDENTIFIER and token.value not in names:
            names.append(token.value)
    return names
