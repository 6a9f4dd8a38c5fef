"""AST node definitions for the Sponge language."""

from enum import Enum
from dataclasses import dataclass


class Type(Enum):
  """The two value types of the language."""

  INT = "int"
  STRING = "string"

  def __str__(self) -> str:
    return self.value


# === Expressions ===


@dataclass(frozen=True, slots=True)
class IntLiteral:
  """Integer literal like 42."""

  value: int


@dataclass(frozen=True, slots=True)
class StringLiteral:
  """String literal like "hello"."""

  value: str


@dataclass(frozen=True, slots=True)
class VarExpr:
  """Variable reference."""

  name: str


@dataclass(frozen=True, slots=True)
class BinaryExpr:
  """Binary expression like a + b or x < y."""

  left: "Expr"
  op: str
  right: "Expr"


@dataclass(frozen=True, slots=True)
class CallExpr:
  """Function call like foo(1, 2)."""

  name: str
  args: tuple["Expr", ...]


# Expression union type
Expr = IntLiteral | StringLiteral | VarExpr | BinaryExpr | CallExpr


# === Statements ===


@dataclass(frozen=True, slots=True)
class LetStmt:
  """Variable declaration: let x: int = 42;"""

  name: str
  type: Type
  value: Expr


@dataclass(frozen=True, slots=True)
class ReturnStmt:
  """Return statement: return expr;"""

  value: Expr


@dataclass(frozen=True, slots=True)
class ExprStmt:
  """Expression statement (expression used as statement)."""

  expr: Expr


@dataclass(frozen=True, slots=True)
class IfStmt:
  """If statement; the else block is mandatory."""

  condition: Expr
  then_body: tuple["Stmt", ...]
  else_body: tuple["Stmt", ...]


# Statement union type
Stmt = LetStmt | ReturnStmt | ExprStmt | IfStmt


# === Top-level Definitions ===


@dataclass(frozen=True, slots=True)
class Parameter:
  """Function parameter with name and type."""

  name: str
  type: Type


@dataclass(frozen=True, slots=True)
class Function:
  """Function definition."""

  name: str
  params: tuple[Parameter, ...]
  return_type: Type
  body: tuple[Stmt, ...]


@dataclass(frozen=True, slots=True)
class Program:
  """Root node: functions in declaration order."""

  functions: tuple[Function, ...]
