import math
from decimal import Decimal
from numbers import Number

from .ast_nodes import NumberNode, VarNode, UnaryOpNode, BinaryOpNode
from .exceptions import ArithmeticFailure, EvaluationFailure, UnknownVariableError

class Evaluator:
    def __init__(self, context):
        self.context = context  # {"actual": 85000, "target": 100000}

    def resolve(self, name):
        if name not in self.context:
            raise UnknownVariableError(name)
        value = self.context[name]
        if isinstance(value, bool) or not isinstance(value, (Number, Decimal)):
            raise ArithmeticFailure(f"Variable '{name}' is not numeric: {value!r}")
        try:
            value = float(value)
        except OverflowError:
            raise ArithmeticFailure(f"Variable '{name}' is too large")
        if not math.isfinite(value):
            raise ArithmeticFailure(f"Variable '{name}' is not finite: {value!r}")
        return value

    def eval(self, node):
        if isinstance(node, NumberNode):
            return node.value

        if isinstance(node, VarNode):
            return self.resolve(node.name)

        if isinstance(node, UnaryOpNode):
            operand = self.eval(node.operand)
            return -operand if node.op.type.name == "MINUS" else operand

        if isinstance(node, BinaryOpNode):
            left = self.eval(node.left)
            right = self.eval(node.right)

            op = node.op.type
            if op.name == "PLUS": result = left + right
            elif op.name == "MINUS": result = left - right
            elif op.name == "MUL": result = left * right
            elif op.name == "DIV":
                if right == 0:
                    raise ArithmeticFailure("Division by zero")
                result = left / right
            else:
                raise EvaluationFailure(f"Unsupported operator {node.op}")

            if not math.isfinite(result):
                raise ArithmeticFailure("Result is not a finite number")
            return result

        raise EvaluationFailure("Invalid AST node")
