"""AArch64 code generator emitting GNU assembler syntax."""

from . import ir
from .target import OS
from .backend import CodeGenerator, CodegenError, function_label

DATA_SECTIONS: dict[OS, str] = {
  OS.LINUX: ".section .rodata",
  OS.MACOS: ".section __DATA,__data",
  OS.WINDOWS: ".section .rdata",
}

TEXT_SECTIONS: dict[OS, str] = {
  OS.LINUX: ".text",
  OS.MACOS: ".section __TEXT,__text",
  OS.WINDOWS: ".text",
}

CONDITIONS: dict[str, str] = {
  ">": "gt",
  "<": "lt",
  "==": "eq",
  "!=": "ne",
}

# Linux AArch64 system call numbers (passed in x8)
SYS_WRITE = 64
SYS_EXIT = 93
STDOUT = 1

# Offset range of the unscaled ldur/stur forms
MIN_DIRECT_OFFSET = -256


def escape_string(s: str) -> str:
  """Escape a string for assembly .asciz directive."""
  result = []
  for c in s:
    if c == "\n":
      result.append("\\n")
    elif c == "\t":
      result.append("\\t")
    elif c == "\\":
      result.append("\\\\")
    elif c == '"':
      result.append('\\"')
    elif ord(c) < 32 or ord(c) == 127:
      result.append(f"\\{ord(c):03o}")
    elif ord(c) > 127:
      result.append("".join(f"\\{b:03o}" for b in c.encode()))
    else:
      result.append(c)
  return "".join(result)


class AArch64CodeGenerator(CodeGenerator):
  """Generates GNU-syntax assembly for AArch64.

  Expression results live in x0, x1 is the scratch register for binary
  operators. Temporaries are pushed in 16-byte units so sp stays aligned.
  """

  def _push(self, reg: str = "x0") -> None:
    self._emit(f"    str {reg}, [sp, #-16]!")

  def _pop(self, reg: str) -> None:
    self._emit(f"    ldr {reg}, [sp], #16")

  def _load_address(self, reg: str, label: str) -> None:
    """Page-relative address of a label: @PAGE/@PAGEOFF on Mach-O, :lo12: elsewhere."""
    if self.target.os == OS.MACOS:
      self._emit(f"    adrp {reg}, {label}@PAGE")
      self._emit(f"    add {reg}, {reg}, {label}@PAGEOFF")
    else:
      self._emit(f"    adrp {reg}, {label}")
      self._emit(f"    add {reg}, {reg}, :lo12:{label}")

  def _load_immediate(self, reg: str, value: int) -> None:
    if 0 <= value <= 0xFFFF:
      self._emit(f"    mov {reg}, #{value}")
      return
    # For larger values, use movz/movk on each 16-bit chunk
    bits = value & 0xFFFF_FFFF_FFFF_FFFF
    chunks = [(bits >> shift) & 0xFFFF for shift in (0, 16, 32, 48)]
    self._emit(f"    movz {reg}, #{chunks[0]}")
    for i, chunk in enumerate(chunks[1:], 1):
      if chunk:
        self._emit(f"    movk {reg}, #{chunk}, lsl #{16 * i}")

  def _slot_operand(self, offset: int) -> str:
    """Memory operand for a slot, materializing the address in x9 when it is out of range."""
    if offset >= MIN_DIRECT_OFFSET:
      return f"[x29, #{offset}]"
    self._emit(f"    sub x9, x29, #{-offset}")
    return "[x9]"

  # === Sections ===

  def _gen_header(self) -> None:
    self._emit(f"// Sponge compiler output for {self.target.name}")
    self._emit("")

  def _gen_data(self) -> None:
    self._emit(DATA_SECTIONS[self.target.os])
    for value, label in self.strings.items():
      self._emit(f"{label}:")
      self._emit(f'    .asciz "{escape_string(value)}"')
      self._emit(f"    .equ {label}_len, . - {label} - 1")
    if self.uses_syscalls:
      self._emit("newline:")
      self._emit('    .ascii "\\n"')
    else:
      self._emit("fmt_line:")
      self._emit('    .asciz "%s\\n"')
      self._emit("fmt_text:")
      self._emit('    .asciz "%s"')
    self._emit("")

  def _gen_text(self) -> None:
    self._emit(TEXT_SECTIONS[self.target.os])
    self._emit(f".globl {self.target.entry_symbol}")
    self._emit(".p2align 2")
    self._emit("")

  def _gen_entry(self) -> None:
    self._emit_label(self.target.entry_symbol)
    if self.target.raw_start:
      self._emit(f"    bl {function_label('main')}")
      self._emit(f"    mov x8, #{SYS_EXIT}")
      self._emit("    svc #0")
    else:
      self._emit("    stp x29, x30, [sp, #-16]!")
      self._emit("    mov x29, sp")
      self._emit(f"    bl {function_label('main')}")
      self._emit("    ldp x29, x30, [sp], #16")
      self._emit("    ret")
    self._emit("")

  # === Functions ===

  def _gen_prologue(self, func: ir.IRFunction, size: int) -> None:
    self._emit(".p2align 2")
    self._emit_label(function_label(func.name))
    self._emit("    stp x29, x30, [sp, #-16]!")
    self._emit("    mov x29, sp")
    if size:
      self._emit(f"    sub sp, sp, #{size}")
    for (name, _), reg in zip(func.params, self.target.arg_registers):
      self._emit(f"    str {reg}, {self._slot_operand(self.slots[name])}")

  def _gen_epilogue(self) -> None:
    # Falling off the end returns 0
    self._emit("    mov x0, #0")
    self._emit_label(self._epilogue_label())
    self._emit("    mov sp, x29")
    self._emit("    ldp x29, x30, [sp], #16")
    self._emit("    ret")
    self._emit("")

  # === Expressions ===

  def _gen_int(self, value: int) -> None:
    self._load_immediate("x0", value)

  def _gen_address(self, label: str) -> None:
    self._load_address("x0", label)

  def _gen_load(self, offset: int) -> None:
    self._emit(f"    ldr x0, {self._slot_operand(offset)}")

  def _gen_store(self, offset: int) -> None:
    self._emit(f"    str x0, {self._slot_operand(offset)}")

  def _gen_binary(self, left: ir.IRExpr, op: str, right: ir.IRExpr) -> None:
    # Evaluate left to x0, push to stack
    self._gen_expr(left)
    self._push()
    # Evaluate right to x0, then pop left back into x0
    self._gen_expr(right)
    self._emit("    mov x1, x0")
    self._pop("x0")

    match op:
      case "+":
        self._emit("    add x0, x0, x1")
      case "-":
        self._emit("    sub x0, x0, x1")
      case "*":
        self._emit("    mul x0, x0, x1")
      case "/":
        self._emit("    sdiv x0, x0, x1")
      case _ if op in CONDITIONS:
        self._emit("    cmp x0, x1")
        self._emit(f"    cset x0, {CONDITIONS[op]}")
      case _:
        raise CodegenError(f"Unknown binary operator '{op}'")

  def _gen_call(self, name: str, args: tuple[ir.IRExpr, ...]) -> None:
    """Generate code for a function call."""
    self._check_arity(name, args)
    # Evaluate arguments and push to stack (in reverse order)
    for arg in reversed(args):
      self._gen_expr(arg)
      self._push()
    # Pop arguments into registers
    for reg in self.target.arg_registers[: len(args)]:
      self._pop(reg)
    self._emit(f"    bl {function_label(name)}")

  def _gen_println(self, value: ir.IRExpr, newline: bool) -> None:
    if self.uses_syscalls:
      self._gen_write(value)
      if newline:
        self._load_address("x1", "newline")
        self._emit("    mov x2, #1")
        self._gen_syscall_write()
      return

    fmt = "fmt_line" if newline else "fmt_text"
    self._gen_expr(value)
    if self.target.os == OS.MACOS:
      # Apple's ABI passes variadic arguments on the stack
      self._push()
      self._load_address("x0", fmt)
      self._emit(f"    bl {self.target.c_symbol('printf')}")
      self._emit("    add sp, sp, #16")
    else:
      self._emit("    mov x1, x0")
      self._load_address("x0", fmt)
      self._emit(f"    bl {self.target.c_symbol('printf')}")

  def _gen_write(self, value: ir.IRExpr) -> None:
    """write(1, s, len(s)); literal lengths are known statically, others are measured."""
    match value:
      case ir.Str(text):
        self._load_address("x1", self.strings[text])
        self._load_immediate("x2", len(text.encode()))
      case _:
        self._gen_expr(value)
        loop_label = self._new_label("strlen")
        done_label = self._new_label("strlen_done")
        self._emit("    mov x1, x0")
        self._emit("    mov x2, #0")
        self._emit_label(loop_label)
        self._emit("    ldrb w3, [x1, x2]")
        self._emit(f"    cbz w3, {done_label}")
        self._emit("    add x2, x2, #1")
        self._emit(f"    b {loop_label}")
        self._emit_label(done_label)
    self._gen_syscall_write()

  def _gen_syscall_write(self) -> None:
    self._emit(f"    mov x0, #{STDOUT}")
    self._emit(f"    mov x8, #{SYS_WRITE}")
    self._emit("    svc #0")

  # === Control flow ===

  def _gen_jump(self, label: str) -> None:
    self._emit(f"    b {label}")

  def _gen_branch_if_zero(self, label: str) -> None:
    self._emit(f"    cbz x0, {label}")
