"""Token definitions for the Sponge language."""

from enum import Enum, auto
from dataclasses import dataclass


class TokenType(Enum):
  # Keywords
  FUNC = auto()
  LET = auto()
  RETURN = auto()
  IF = auto()
  ELSE = auto()

  # Type names
  INT_TYPE = auto()
  STRING_TYPE = auto()

  # Identifiers and literals
  IDENT = auto()
  INT = auto()
  STRING = auto()

  # Punctuation
  LPAREN = auto()
  RPAREN = auto()
  LBRACE = auto()
  RBRACE = auto()
  COMMA = auto()
  COLON = auto()
  SEMICOLON = auto()

  # Operators
  PLUS = auto()
  MINUS = auto()
  STAR = auto()
  SLASH = auto()
  GT = auto()
  LT = auto()
  EQ = auto()
  NE = auto()

  # Assignment
  ASSIGN = auto()

  # End of file
  EOF = auto()


KEYWORDS: dict[str, TokenType] = {
  "func": TokenType.FUNC,
  "let": TokenType.LET,
  "return": TokenType.RETURN,
  "if": TokenType.IF,
  "else": TokenType.ELSE,
  "int": TokenType.INT_TYPE,
  "string": TokenType.STRING_TYPE,
}


@dataclass(frozen=True, slots=True)
class Token:
  type: TokenType
  value: str
  line: int
  column: int

  def __repr__(self) -> str:
    return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"
