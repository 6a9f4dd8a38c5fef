"""Typed intermediate representation produced by the semantic analyzer.

The IR mirrors the AST but is already checked: every variable it references
is bound, every call target exists with the right arity and argument types.
Code generation trusts it.
"""

from dataclasses import dataclass

from .ast import Type

# === Expressions ===


@dataclass(frozen=True, slots=True)
class Int:
  value: int


@dataclass(frozen=True, slots=True)
class Str:
  value: str


@dataclass(frozen=True, slots=True)
class Var:
  name: str


@dataclass(frozen=True, slots=True)
class Binary:
  """Binary operation; ``type`` is the result type (STRING only for concatenation)."""

  left: "IRExpr"
  op: str
  right: "IRExpr"
  type: Type = Type.INT


@dataclass(frozen=True, slots=True)
class Call:
  name: str
  args: tuple["IRExpr", ...]


IRExpr = Int | Str | Var | Binary | Call


# === Instructions ===


@dataclass(frozen=True, slots=True)
class StoreVar:
  name: str
  value: IRExpr


@dataclass(frozen=True, slots=True)
class Return:
  value: IRExpr


@dataclass(frozen=True, slots=True)
class If:
  condition: IRExpr
  then_body: tuple["IR", ...]
  else_body: tuple["IR", ...]


@dataclass(frozen=True, slots=True)
class Println:
  """Write a string to stdout, followed by a newline unless ``newline`` is False."""

  value: IRExpr
  newline: bool = True


@dataclass(frozen=True, slots=True)
class CallFunc:
  """Call in statement position; the result is discarded."""

  name: str
  args: tuple[IRExpr, ...]


IR = StoreVar | Return | If | Println | CallFunc


# === Top-level ===


@dataclass(frozen=True, slots=True)
class IRFunction:
  name: str
  params: tuple[tuple[str, Type], ...]
  return_type: Type
  body: tuple[IR, ...]


@dataclass(frozen=True, slots=True)
class IRProgram:
  functions: tuple[IRFunction, ...]

  def find(self, name: str) -> IRFunction | None:
    """Look up a function by name."""
    for func in self.functions:
      if func.name == name:
        return func
    return None
