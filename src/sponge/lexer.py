"""Lexer for the Sponge language."""

from .tokens import KEYWORDS, Token, TokenType

# Largest value an integer literal may hold (signed 64-bit)
INT_MAX = 2**63 - 1
INT_MAX_DIGITS = str(INT_MAX)

SIMPLE_TOKENS: dict[str, TokenType] = {
  "(": TokenType.LPAREN,
  ")": TokenType.RPAREN,
  "{": TokenType.LBRACE,
  "}": TokenType.RBRACE,
  ",": TokenType.COMMA,
  ":": TokenType.COLON,
  ";": TokenType.SEMICOLON,
  "+": TokenType.PLUS,
  "-": TokenType.MINUS,
  "*": TokenType.STAR,
  "/": TokenType.SLASH,
  ">": TokenType.GT,
  "<": TokenType.LT,
}

WHITESPACE = frozenset(" \t\r\n")


def _abbreviate(digits: str, limit: int = 32) -> str:
  if len(digits) <= limit:
    return digits
  return f"{digits[:limit]}... ({len(digits)} digits)"


def _is_digit(c: str) -> bool:
  return "0" <= c <= "9"


def _is_ident_start(c: str) -> bool:
  return ("a" <= c <= "z") or ("A" <= c <= "Z") or c == "_"


def _is_ident_char(c: str) -> bool:
  return _is_ident_start(c) or _is_digit(c)


class LexerError(Exception):
  """Raised when the lexer encounters invalid input."""

  def __init__(self, message: str, line: int, column: int) -> None:
    super().__init__(f"{message} at line {line}, column {column}")
    self.line, self.column = line, column


class Lexer:
  """Tokenizes Sponge source code.

  By default characters that start no token are dropped. With ``strict=True``
  they raise ``LexerError`` instead.
  """

  def __init__(self, source: str, strict: bool = False) -> None:
    self.source = source
    self.strict = strict
    self.pos = 0
    self.line = 1
    self.column = 1
    self.tokens: list[Token] = []

  def _current(self) -> str:
    return self.source[self.pos] if self.pos < len(self.source) else ""

  def _advance(self) -> str:
    ch = self._current()
    self.pos += 1
    self.line, self.column = (self.line + 1, 1) if ch == "\n" else (self.line, self.column + 1)
    return ch

  def _emit(self, type: TokenType, value: str, line: int, col: int) -> None:
    self.tokens.append(Token(type, value, line, col))

  def _read_while(self, pred) -> str:
    start = self.pos
    while self._current() and pred(self._current()):
      self._advance()
    return self.source[start : self.pos]

  def _skip(self, ch: str, line: int, col: int) -> None:
    if self.strict:
      raise LexerError(f"Unexpected character '{ch}'", line, col)
    self._advance()

  def _read_string(self, line: int, col: int) -> None:
    """Read a string literal verbatim; an unterminated literal runs to end of input."""
    self._advance()  # consume opening quote
    value = self._read_while(lambda c: c != '"')
    if self._current():
      self._advance()  # consume closing quote
    self._emit(TokenType.STRING, value, line, col)

  def _read_number(self, line: int, col: int) -> None:
    digits = self._read_while(_is_digit)
    # Compared as text so arbitrarily long runs never reach int()
    value = digits.lstrip("0") or "0"
    if len(value) > len(INT_MAX_DIGITS) or (len(value) == len(INT_MAX_DIGITS) and value > INT_MAX_DIGITS):
      raise LexerError(f"Integer literal {_abbreviate(digits)} does not fit in 64 bits", line, col)
    self._emit(TokenType.INT, value, line, col)

  def tokenize(self) -> list[Token]:
    """Tokenize the entire source and return a list of tokens."""
    while self.pos < len(self.source):
      ch = self._current()
      line, col = self.line, self.column

      match ch:
        case c if c in WHITESPACE:
          self._advance()
        case c if _is_digit(c):
          self._read_number(line, col)
        case '"':
          self._read_string(line, col)
        case c if _is_ident_start(c):
          ident = self._read_while(_is_ident_char)
          self._emit(KEYWORDS.get(ident, TokenType.IDENT), ident, line, col)
        case "=":
          self._advance()
          if self._current() == "=":
            self._advance()
            self._emit(TokenType.EQ, "==", line, col)
          else:
            self._emit(TokenType.ASSIGN, "=", line, col)
        case "!":
          if self.pos + 1 < len(self.source) and self.source[self.pos + 1] == "=":
            self._advance()
            self._advance()
            self._emit(TokenType.NE, "!=", line, col)
          else:
            self._skip(ch, line, col)
        case c if c in SIMPLE_TOKENS:
          self._advance()
          self._emit(SIMPLE_TOKENS[c], c, line, col)
        case _:
          self._skip(ch, line, col)

    self._emit(TokenType.EOF, "", self.line, self.column)
    return self.tokens


def tokenize(source: str, strict: bool = False) -> list[Token]:
  """Convenience function to tokenize source code."""
  return Lexer(source, strict).tokenize()
