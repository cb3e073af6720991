from .tokens import TokenType
from .ast_nodes import NumberNode, VarNode, UnaryOpNode, BinaryOpNode
from .exceptions import FormulaSyntaxError

class Parser:
    """
    Recursive-descent parser for arithmetic formulas.

    Grammar:
        expression := term (("+" | "-") term)*
        term       := unary (("*" | "/") unary)*
        unary      := ("+" | "-") unary | factor
        factor     := NUMBER | IDENTIFIER | "(" expression ")"
    """

    def __init__(self, tokens):
        self.tokens = tokens
        self.index = 0
        self.current = tokens[0]

    def eat(self, type_):
        if self.current.type == type_:
            self.index += 1
            self.current = self.tokens[self.index]
        else:
            raise FormulaSyntaxError(f"Unexpected token {self.current}, expected {type_}")

    def parse(self):
        result = self.expression()
        if self.current.type != TokenType.EOF:
            raise FormulaSyntaxError(f"Extra tokens after expression at position {self.current.pos}")
        return result

    def expression(self):
        node = self.term()

        while self.current.type in (TokenType.PLUS, TokenType.MINUS):
            op = self.current
            self.eat(op.type)
            node = BinaryOpNode(node, op, self.term())

        return node

    def term(self):
        node = self.unary()

        while self.current.type in (TokenType.MUL, TokenType.DIV):
            op = self.current
            self.eat(op.type)
            node = BinaryOpNode(node, op, self.unary())

        return node

    def unary(self):
        if self.current.type in (TokenType.PLUS, TokenType.MINUS):
            op = self.current
            self.eat(op.type)
            return UnaryOpNode(op, self.unary())
        return self.factor()

    def factor(self):
        token = self.current

        if token.type == TokenType.NUMBER:
            self.eat(TokenType.NUMBER)
            return NumberNode(token.value)

        if token.type == TokenType.IDENTIFIER:
            self.eat(TokenType.IDENTIFIER)
            # Function calls are not part of the grammar
            if self.current.type == TokenType.LPAREN:
                raise FormulaSyntaxError(f"Function calls are not supported: '{token.value}('")
            return VarNode(token.value)

        if token.type == TokenType.LPAREN:
            self.eat(TokenType.LPAREN)
            expr = self.expression()
            self.eat(TokenType.RPAREN)
            return expr

        raise FormulaSyntaxError(f"Unexpected token: {token}")
