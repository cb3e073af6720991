"""
Arithmetic formula language for KPI definitions.

Formulas are tokenized, parsed into a small AST and evaluated against a closed
mapping of variable values. Nothing is substituted textually and nothing is
executed with eval(), so a variable named ``a`` can never leak into ``tax``.
"""

from .tokenizer import Tokenizer
from .parser import Parser
from .evaluator import Evaluator
from .exceptions import (
    ArithmeticFailure,
    EvaluationFailure,
    FormulaSyntaxError,
    UnknownVariableError,
)

__all__ = [
    'Tokenizer', 'Parser', 'Evaluator',
    'EvaluationFailure', 'FormulaSyntaxError', 'UnknownVariableError', 'ArithmeticFailure',
]
