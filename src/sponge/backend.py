"""Architecture-independent part of code generation.

``CodeGenerator`` walks the IR, allocates stack slots and labels, collects
string literals and dispatches every instruction to hooks that the x86-64 and
AArch64 generators implement.

Stack frame layout (growing downward, both architectures):
    [fp + 8]          -> return address (x86-64) / saved lr (AArch64)
    [fp]              -> saved frame pointer
    [fp - 8]          -> slot 0 (first parameter, or first local)
    [fp - 16]         -> slot 1
    ...
    [sp]              -> bottom of frame (16-byte aligned)
"""

import logging

from . import ir
from .ast import Type
from .target import Target, OutputStrategy

logger = logging.getLogger(__name__)

SLOT_SIZE = 8
ENTRY_FUNCTION = "main"


class CodegenError(Exception):
  """Raised when the IR violates an invariant the analyzer should have enforced."""

  pass


def allocate_slots(func: ir.IRFunction) -> dict[str, int]:
  """Give every distinct variable of a function one frame-pointer-relative offset.

  Parameters come first, then locals in order of first occurrence, scanning
  both branches of every ``if``. A name declared in several branches still
  gets a single slot.
  """
  names: dict[str, None] = dict.fromkeys(name for name, _ in func.params)
  _scan_locals(func.body, names)
  return {name: -SLOT_SIZE * (i + 1) for i, name in enumerate(names)}


def _scan_locals(body: tuple[ir.IR, ...], names: dict[str, None]) -> None:
  for instr in body:
    match instr:
      case ir.StoreVar(name, _):
        names.setdefault(name)
      case ir.If(_, then_body, else_body):
        _scan_locals(then_body, names)
        _scan_locals(else_body, names)


def frame_size(slots: dict[str, int]) -> int:
  """Bytes reserved below the frame pointer, rounded up to 16."""
  return (len(slots) * SLOT_SIZE + 15) & ~15


def function_label(name: str) -> str:
  """Assembly label of a user function; the prefix keeps it clear of C and entry symbols."""
  return f"fn_{name}"


class CodeGenerator:
  """Base class for the per-architecture generators."""

  def __init__(self, target: Target) -> None:
    self.target = target
    self.output: list[str] = []
    # Labels are numbered across the whole program, not per function
    self.label_counter = 0
    # String literals: value -> label, in first-use order
    self.strings: dict[str, str] = {}
    # Slots of the function being generated: variable name -> offset from fp
    self.slots: dict[str, int] = {}
    self.current_func_name = ""

  def _emit(self, line: str) -> None:
    self.output.append(line)

  def _emit_label(self, label: str) -> None:
    self._emit(f"{label}:")

  def _new_label(self, prefix: str) -> str:
    label = f"{prefix}_{self.label_counter}"
    self.label_counter += 1
    return label

  def _epilogue_label(self) -> str:
    return f"{function_label(self.current_func_name)}.epilogue"

  def _get_string_label(self, value: str) -> str:
    """Get or create a label for a string literal."""
    if value not in self.strings:
      self.strings[value] = f"str_{len(self.strings)}"
    return self.strings[value]

  def _slot(self, name: str) -> int:
    if name not in self.slots:
      raise CodegenError(f"No stack slot for variable '{name}' in function '{self.current_func_name}'")
    return self.slots[name]

  @property
  def uses_syscalls(self) -> bool:
    return self.target.output == OutputStrategy.SYSCALL

  # === String collection ===

  def _collect_strings(self, program: ir.IRProgram) -> None:
    for func in program.functions:
      self._collect_strings_from_body(func.body)

  def _collect_strings_from_body(self, body: tuple[ir.IR, ...]) -> None:
    for instr in body:
      match instr:
        case ir.StoreVar(_, value) | ir.Return(value) | ir.Println(value, _):
          self._collect_strings_from_expr(value)
        case ir.CallFunc(_, args):
          for arg in args:
            self._collect_strings_from_expr(arg)
        case ir.If(condition, then_body, else_body):
          self._collect_strings_from_expr(condition)
          self._collect_strings_from_body(then_body)
          self._collect_strings_from_body(else_body)

  def _collect_strings_from_expr(self, expr: ir.IRExpr) -> None:
    match expr:
      case ir.Str(value):
        self._get_string_label(value)
      case ir.Binary(left, _, right, _):
        self._collect_strings_from_expr(left)
        self._collect_strings_from_expr(right)
      case ir.Call(_, args):
        for arg in args:
          self._collect_strings_from_expr(arg)

  # === Program ===

  def generate(self, program: ir.IRProgram) -> str:
    """Generate assembly for the entire program."""
    if program.find(ENTRY_FUNCTION) is None:
      raise CodegenError(f"No '{ENTRY_FUNCTION}' function defined")
    logger.debug("generating %d functions for %s", len(program.functions), self.target.name)

    self._collect_strings(program)
    self._gen_header()
    self._gen_data()
    self._gen_text()
    self._gen_entry()
    for func in program.functions:
      self._gen_function(func)
    return "\n".join(self.output) + "\n"

  def _gen_function(self, func: ir.IRFunction) -> None:
    if len(func.params) > len(self.target.arg_registers):
      raise CodegenError(
        f"Function '{func.name}' has {len(func.params)} parameters; "
        f"{self.target.name} passes at most {len(self.target.arg_registers)}"
      )
    self.current_func_name = func.name
    self.slots = allocate_slots(func)
    logger.debug("function %s: %d slots", func.name, len(self.slots))

    self._gen_prologue(func, frame_size(self.slots))
    for instr in func.body:
      self._gen_instr(instr)
    self._gen_epilogue()

  def _gen_instr(self, instr: ir.IR) -> None:
    """Generate assembly for one IR instruction."""
    match instr:
      case ir.StoreVar(name, value):
        self._gen_expr(value)
        self._gen_store(self._slot(name))
      case ir.Return(value):
        self._gen_expr(value)
        self._gen_jump(self._epilogue_label())
      case ir.If(condition, then_body, else_body):
        then_label = self._new_label("then")
        else_label = self._new_label("else")
        end_label = self._new_label("endif")
        self._gen_expr(condition)
        self._gen_branch_if_zero(else_label)
        self._emit_label(then_label)
        for sub in then_body:
          self._gen_instr(sub)
        self._gen_jump(end_label)
        self._emit_label(else_label)
        for sub in else_body:
          self._gen_instr(sub)
        self._emit_label(end_label)
      case ir.Println(value, newline):
        self._gen_println(value, newline)
      case ir.CallFunc(name, args):
        self._gen_call(name, args)
      case _:
        raise CodegenError(f"Unknown IR instruction: {instr}")

  def _gen_expr(self, expr: ir.IRExpr) -> None:
    """Generate assembly for an expression, result in the return register."""
    match expr:
      case ir.Int(value):
        self._gen_int(value)
      case ir.Str(value):
        self._gen_address(self.strings[value])
      case ir.Var(name):
        self._gen_load(self._slot(name))
      case ir.Binary(left, op, right, result_type):
        if result_type == Type.STRING:
          raise CodegenError(f"String concatenation is not supported on {self.target.name}")
        self._gen_binary(left, op, right)
      case ir.Call(name, args):
        self._gen_call(name, args)
      case _:
        raise CodegenError(f"Unknown IR expression: {expr}")

  def _check_arity(self, name: str, args: tuple[ir.IRExpr, ...]) -> None:
    if len(args) > len(self.target.arg_registers):
      raise CodegenError(
        f"Call to '{name}' passes {len(args)} arguments; {self.target.name} passes at most {len(self.target.arg_registers)}"
      )

  # === Architecture hooks ===

  def _gen_header(self) -> None:
    raise NotImplementedError

  def _gen_data(self) -> None:
    raise NotImplementedError

  def _gen_text(self) -> None:
    raise NotImplementedError

  def _gen_entry(self) -> None:
    raise NotImplementedError

  def _gen_prologue(self, func: ir.IRFunction, size: int) -> None:
    raise NotImplementedError

  def _gen_epilogue(self) -> None:
    raise NotImplementedError

  def _gen_int(self, value: int) -> None:
    raise NotImplementedError

  def _gen_address(self, label: str) -> None:
    raise NotImplementedError

  def _gen_load(self, offset: int) -> None:
    raise NotImplementedError

  def _gen_store(self, offset: int) -> None:
    raise NotImplementedError

  def _gen_binary(self, left: ir.IRExpr, op: str, right: ir.IRExpr) -> None:
    raise NotImplementedError

  def _gen_call(self, name: str, args: tuple[ir.IRExpr, ...]) -> None:
    raise NotImplementedError

  def _gen_println(self, value: ir.IRExpr, newline: bool) -> None:
    raise NotImplementedError

  def _gen_jump(self, label: str) -> None:
    raise NotImplementedError

  def _gen_branch_if_zero(self, label: str) -> None:
    raise NotImplementedError
