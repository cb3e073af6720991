from .tokens import Token, TokenType
from .exceptions import FormulaSyntaxError

SINGLE_CHAR_TOKENS = {
    '+': TokenType.PLUS,
    '-': TokenType.MINUS,
    '*': TokenType.MUL,
    '/': TokenType.DIV,
    '(': TokenType.LPAREN,
    ')': TokenType.RPAREN,
}

class Tokenizer:
    def __init__(self, text):
        self.text = text
        self.pos = 0
        self.current = text[0] if text else None

    def advance(self):
        self.pos += 1
        self.current = self.text[self.pos] if self.pos < len(self.text) else None

    def peek(self):
        nxt = self.pos + 1
        return self.text[nxt] if nxt < len(self.text) else None

    def skip_spaces(self):
        while self.current and self.current.isspace():
            self.advance()

    def number(self):
        start = self.pos
        while self.current and (self.current.isdigit() or self.current == '.'):
            self.advance()
        literal = self.text[start:self.pos]
        try:
            value = float(literal)
        except ValueError:
            raise FormulaSyntaxError(f"Invalid number '{literal}' at position {start}")
        return Token(TokenType.NUMBER, value, start)

    def identifier(self):
        start = self.pos
        while self.current and (self.current.isalnum() or self.current == '_'):
            self.advance()
        return Token(TokenType.IDENTIFIER, self.text[start:self.pos], start)

    def generate_tokens(self):
        tokens = []
        while self.current:
            if self.current.isspace():
                self.skip_spaces()
                continue

            # ".5" is a number, a lone "." is not
            if self.current.isdigit() or (self.current == '.' and (self.peek() or '').isdigit()):
                tokens.append(self.number())
                continue

            if self.current.isalpha() or self.current == '_':
                tokens.append(self.identifier())
                continue

            type_ = SINGLE_CHAR_TOKENS.get(self.current)
            if type_ is None:
                raise FormulaSyntaxError(f"Unexpected character '{self.current}' at position {self.pos}")
            tokens.append(Token(type_, pos=self.pos))
            self.advance()

        tokens.append(Token(TokenType.EOF, pos=self.pos))
        return tokens
