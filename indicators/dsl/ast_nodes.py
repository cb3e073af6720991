class NumberNode:
    def __init__(self, value): self.value = value

class VarNode:
    def __init__(self, name): self.name = name

class UnaryOpNode:
    def __init__(self, op, operand):
        self.op = op
        self.operand = operand

class BinaryOpNode:
    def __init__(self, left, op, right):
        self.left = left
        self.op = op
        self.right = right
