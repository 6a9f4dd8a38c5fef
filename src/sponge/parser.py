"""Recursive descent parser for the Sponge language."""

from .ast import (
  Expr,
  Stmt,
  Type,
  IfStmt,
  LetStmt,
  Program,
  VarExpr,
  CallExpr,
  ExprStmt,
  Function,
  Parameter,
  BinaryExpr,
  IntLiteral,
  ReturnStmt,
  StringLiteral,
)
from .tokens import Token, TokenType


class ParseError(Exception):
  """Raised when the parser encounters a syntax error."""

  def __init__(self, message: str, token: Token) -> None:
    super().__init__(f"{message} at line {token.line}, column {token.column}")
    self.token = token


# Binary operators. All of them share one precedence level and associate to
# the left, so 1 + 2 * 3 is (1 + 2) * 3.
OP_STRINGS: dict[TokenType, str] = {
  TokenType.PLUS: "+",
  TokenType.MINUS: "-",
  TokenType.STAR: "*",
  TokenType.SLASH: "/",
  TokenType.GT: ">",
  TokenType.LT: "<",
  TokenType.EQ: "==",
  TokenType.NE: "!=",
}

TYPE_TOKENS: dict[TokenType, Type] = {
  TokenType.INT_TYPE: Type.INT,
  TokenType.STRING_TYPE: Type.STRING,
}


class Parser:
  """Parses tokens into an AST."""

  def __init__(self, tokens: list[Token]) -> None:
    self.tokens = tokens
    self.pos = 0

  def _current(self) -> Token:
    return self.tokens[self.pos]

  def _at_end(self) -> bool:
    return self._current().type == TokenType.EOF

  def _check(self, *types: TokenType) -> bool:
    return self._current().type in types

  def _advance(self) -> Token:
    token = self._current()
    if not self._at_end():
      self.pos += 1
    return token

  def _expect(self, type: TokenType, message: str) -> Token:
    if not self._check(type):
      raise ParseError(message, self._current())
    return self._advance()

  # === Parsing Functions ===

  def parse(self) -> Program:
    """Parse the entire program."""
    functions: list[Function] = []
    while not self._at_end():
      functions.append(self._parse_function())
    return Program(tuple(functions))

  def _parse_type(self) -> Type:
    token = self._current()
    if token.type not in TYPE_TOKENS:
      raise ParseError("Expected type 'int' or 'string'", token)
    self._advance()
    return TYPE_TOKENS[token.type]

  def _parse_function(self) -> Function:
    """Parse: func name(a: int, b: string): int { ... }"""
    self._expect(TokenType.FUNC, "Expected 'func'")
    name_token = self._expect(TokenType.IDENT, "Expected function name")
    self._expect(TokenType.LPAREN, "Expected '('")

    params: list[Parameter] = []
    if not self._check(TokenType.RPAREN):
      while True:
        param_name = self._expect(TokenType.IDENT, "Expected parameter name")
        self._expect(TokenType.COLON, "Expected ':' after parameter name")
        params.append(Parameter(param_name.value, self._parse_type()))
        if not self._check(TokenType.COMMA):
          break
        self._advance()

    self._expect(TokenType.RPAREN, "Expected ')'")
    self._expect(TokenType.COLON, "Expected ':' before return type")
    return_type = self._parse_type()
    body = self._parse_block()
    return Function(name_token.value, tuple(params), return_type, body)

  def _parse_block(self) -> tuple[Stmt, ...]:
    """Parse: { stmt* }"""
    self._expect(TokenType.LBRACE, "Expected '{'")
    stmts: list[Stmt] = []
    while not self._check(TokenType.RBRACE):
      if self._at_end():
        raise ParseError("Expected '}'", self._current())
      stmts.append(self._parse_statement())
    self._advance()
    return tuple(stmts)

  def _parse_statement(self) -> Stmt:
    """Parse a statement, dispatching on its leading token."""
    match self._current().type:
      case TokenType.LET:
        return self._parse_let()
      case TokenType.RETURN:
        self._advance()
        value = self.parse_expr()
        self._expect(TokenType.SEMICOLON, "Expected ';' after return value")
        return ReturnStmt(value)
      case TokenType.IF:
        return self._parse_if()
      case _:
        expr = self.parse_expr()
        self._expect(TokenType.SEMICOLON, "Expected ';' after expression")
        return ExprStmt(expr)

  def _parse_let(self) -> LetStmt:
    """Parse: let name: type = expr;"""
    self._expect(TokenType.LET, "Expected 'let'")
    name_token = self._expect(TokenType.IDENT, "Expected variable name")
    self._expect(TokenType.COLON, "Expected ':' after variable name")
    type = self._parse_type()
    self._expect(TokenType.ASSIGN, "Expected '='")
    value = self.parse_expr()
    self._expect(TokenType.SEMICOLON, "Expected ';' after let statement")
    return LetStmt(name_token.value, type, value)

  def _parse_if(self) -> IfStmt:
    """Parse: if cond { ... } else { ... }"""
    self._expect(TokenType.IF, "Expected 'if'")
    condition = self.parse_expr()
    then_body = self._parse_block()
    self._expect(TokenType.ELSE, "Expected 'else'")
    else_body = self._parse_block()
    return IfStmt(condition, then_body, else_body)

  def parse_expr(self) -> Expr:
    """Parse a flat, left-associative chain of binary operators."""
    left = self._parse_primary()
    while self._current().type in OP_STRINGS:
      op = OP_STRINGS[self._advance().type]
      right = self._parse_primary()
      left = BinaryExpr(left, op, right)
    return left

  def _parse_primary(self) -> Expr:
    token = self._current()
    match token.type:
      case TokenType.INT:
        self._advance()
        return IntLiteral(int(token.value))
      case TokenType.STRING:
        self._advance()
        return StringLiteral(token.value)
      case TokenType.IDENT:
        self._advance()
        if self._check(TokenType.LPAREN):
          return CallExpr(token.value, self._parse_args())
        return VarExpr(token.value)
      case TokenType.LPAREN:
        self._advance()
        expr = self.parse_expr()
        self._expect(TokenType.RPAREN, "Expected ')'")
        return expr
    raise ParseError(f"Unexpected token {token.type.name} in expression", token)

  def _parse_args(self) -> tuple[Expr, ...]:
    """Parse: ( expr, expr, ... )"""
    self._expect(TokenType.LPAREN, "Expected '('")
    args: list[Expr] = []
    if not self._check(TokenType.RPAREN):
      args.append(self.parse_expr())
      while self._check(TokenType.COMMA):
        self._advance()
        args.append(self.parse_expr())
    self._expect(TokenType.RPAREN, "Expected ')' after arguments")
    return tuple(args)


def parse(tokens: list[Token]) -> Program:
  """Convenience function to parse tokens into an AST."""
  return Parser(tokens).parse()
