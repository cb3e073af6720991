class EvaluationFailure(Exception):
    """A formula could not be turned into a finite number."""


class FormulaSyntaxError(EvaluationFailure):
    """The formula text is not a well-formed arithmetic expression."""


class UnknownVariableError(EvaluationFailure):
    def __init__(self, name):
        super().__init__(f"Unknown variable '{name}'")
        self.name = name


class ArithmeticFailure(EvaluationFailure):
    """Division by zero, overflow or a non-numeric operand."""
