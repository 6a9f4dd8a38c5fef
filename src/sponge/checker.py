"""Type checker and IR lowering for the Sponge language."""

import logging
from dataclasses import dataclass

from . import ir
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
  BinaryExpr,
  IntLiteral,
  ReturnStmt,
  StringLiteral,
)

logger = logging.getLogger(__name__)

# Builtins that write a string to stdout; println appends a newline
BUILTINS: frozenset[str] = frozenset({"println", "print"})

# Slot name for expression statements whose value is thrown away
DISCARD = "$tmp"


class SemanticError(Exception):
  """Raised when a program is well-formed but ill-typed or refers to unknown names."""

  pass


@dataclass
class FunctionSignature:
  """Stores a function's type signature."""

  param_types: tuple[Type, ...]
  return_type: Type


class SemanticAnalyzer:
  """Type checks a program and lowers each function body to IR.

  Every function gets one flat symbol table seeded from its parameters. A
  ``let`` adds or overwrites an entry, and entries made inside an ``if``
  branch stay visible for the rest of the function.
  """

  def __init__(self) -> None:
    # Function signatures: name -> signature
    self.functions: dict[str, FunctionSignature] = {}
    # Variables of the function being analyzed: name -> type
    self.scope: dict[str, Type] = {}
    self.current_function: Function | None = None

  def analyze(self, program: Program) -> ir.IRProgram:
    """Check a whole program and return its IR, preserving function order."""
    # Register all signatures first so calls may refer to later functions
    for func in program.functions:
      if func.name in BUILTINS:
        raise SemanticError(f"Cannot redefine builtin function '{func.name}'")
      if func.name in self.functions:
        raise SemanticError(f"Function '{func.name}' already defined")
      self.functions[func.name] = FunctionSignature(tuple(p.type for p in func.params), func.return_type)

    return ir.IRProgram(tuple(self._analyze_function(func) for func in program.functions))

  def _analyze_function(self, func: Function) -> ir.IRFunction:
    logger.debug("analyzing function %s", func.name)
    self.current_function = func
    self.scope = {p.name: p.type for p in func.params}
    body = self._analyze_block(func.body)
    self.current_function = None
    return ir.IRFunction(func.name, tuple((p.name, p.type) for p in func.params), func.return_type, body)

  def _analyze_block(self, stmts: tuple[Stmt, ...]) -> tuple[ir.IR, ...]:
    return tuple(self._analyze_stmt(stmt) for stmt in stmts)

  def _analyze_stmt(self, stmt: Stmt) -> ir.IR:
    """Type check a statement and lower it to one IR instruction."""
    match stmt:
      case LetStmt(name, declared, value):
        lowered, value_type = self._analyze_expr(value)
        if value_type != declared:
          raise SemanticError(f"Type mismatch: cannot assign {value_type} to variable '{name}' of type {declared}")
        self.scope[name] = declared
        return ir.StoreVar(name, lowered)

      case ReturnStmt(value):
        assert self.current_function is not None
        lowered, value_type = self._analyze_expr(value)
        expected = self.current_function.return_type
        if value_type != expected:
          raise SemanticError(
            f"Type mismatch: function '{self.current_function.name}' returns {expected}, got {value_type}"
          )
        return ir.Return(lowered)

      case IfStmt(condition, then_body, else_body):
        lowered, cond_type = self._analyze_expr(condition)
        if cond_type != Type.INT:
          raise SemanticError(f"If condition must be int, got {cond_type}")
        return ir.If(lowered, self._analyze_block(then_body), self._analyze_block(else_body))

      case ExprStmt(CallExpr(name, args)) if name in BUILTINS:
        if len(args) != 1:
          raise SemanticError(f"Builtin '{name}' expects 1 argument, got {len(args)}")
        lowered, arg_type = self._analyze_expr(args[0])
        if arg_type != Type.STRING:
          raise SemanticError(f"Builtin '{name}' expects a string argument, got {arg_type}")
        return ir.Println(lowered, newline=name == "println")

      case ExprStmt(CallExpr(name, args)):
        return ir.CallFunc(name, self._analyze_call_args(name, args))

      case ExprStmt(expr):
        lowered, _ = self._analyze_expr(expr)
        return ir.StoreVar(DISCARD, lowered)

    raise SemanticError(f"Unknown statement: {stmt}")

  def _analyze_expr(self, expr: Expr) -> tuple[ir.IRExpr, Type]:
    """Type check an expression and return its IR with its type."""
    match expr:
      case IntLiteral(value):
        return ir.Int(value), Type.INT

      case StringLiteral(value):
        return ir.Str(value), Type.STRING

      case VarExpr(name):
        if name not in self.scope:
          raise SemanticError(f"Unknown variable '{name}'")
        return ir.Var(name), self.scope[name]

      case BinaryExpr(left, op, right):
        left_ir, left_type = self._analyze_expr(left)
        right_ir, right_type = self._analyze_expr(right)
        if op == "+" and left_type == Type.STRING and right_type == Type.STRING:
          return ir.Binary(left_ir, op, right_ir, Type.STRING), Type.STRING
        if left_type != Type.INT or right_type != Type.INT:
          raise SemanticError(f"Operator '{op}' requires int operands, got {left_type} and {right_type}")
        return ir.Binary(left_ir, op, right_ir), Type.INT

      case CallExpr(name, args):
        if name in BUILTINS:
          raise SemanticError(f"Builtin '{name}' does not return a value and can only be used as a statement")
        lowered_args = self._analyze_call_args(name, args)
        return ir.Call(name, lowered_args), self.functions[name].return_type

    raise SemanticError(f"Unknown expression: {expr}")

  def _analyze_call_args(self, name: str, args: tuple[Expr, ...]) -> tuple[ir.IRExpr, ...]:
    """Check a call against the callee's signature and lower its arguments."""
    sig = self.functions.get(name)
    if sig is None:
      raise SemanticError(f"Unknown function '{name}'")
    if len(args) != len(sig.param_types):
      raise SemanticError(f"Function '{name}' expects {len(sig.param_types)} arguments, got {len(args)}")

    lowered: list[ir.IRExpr] = []
    for i, (arg, param_type) in enumerate(zip(args, sig.param_types), 1):
      arg_ir, arg_type = self._analyze_expr(arg)
      if arg_type != param_type:
        raise SemanticError(f"Type mismatch: argument {i} of '{name}' expects {param_type}, got {arg_type}")
      lowered.append(arg_ir)
    return tuple(lowered)


def analyze(program: Program) -> ir.IRProgram:
  """Convenience function to check a program and lower it to IR."""
  return SemanticAnalyzer().analyze(program)
