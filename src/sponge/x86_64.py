"""x86-64 code generator emitting NASM (Intel syntax)."""

from . import ir
from .target import OS, Target
from .backend import CodeGenerator, CodegenError, function_label

# Section holding string literals, per OS
RODATA_SECTIONS: dict[OS, str] = {
  OS.LINUX: ".rodata",
  OS.MACOS: ".data",
  OS.WINDOWS: ".rdata",
}

SET_INSTRUCTIONS: dict[str, str] = {
  ">": "setg",
  "<": "setl",
  "==": "sete",
  "!=": "setne",
}

SYS_WRITE = 1
SYS_EXIT = 60
STDOUT = 1


def nasm_string(value: str) -> str:
  """Operands of a ``db`` directive for a null-terminated string."""
  parts: list[str] = []
  run: list[str] = []
  for byte in value.encode():
    if 32 <= byte < 127 and byte != ord('"'):
      run.append(chr(byte))
      continue
    if run:
      parts.append(f'"{"".join(run)}"')
      run = []
    parts.append(str(byte))
  if run:
    parts.append(f'"{"".join(run)}"')
  parts.append("0")
  return ", ".join(parts)


class X86_64CodeGenerator(CodeGenerator):
  """Generates NASM assembly for x86-64.

  Expression results live in rax, rcx is the scratch register for binary
  operators. Arguments are pushed right to left and popped into the target's
  argument registers right before the call.
  """

  def __init__(self, target: Target) -> None:
    super().__init__(target)
    # 8-byte values pushed below the fixed frame and not yet popped
    self.stack_depth = 0

  def _push(self, reg: str = "rax") -> None:
    self._emit(f"    push {reg}")
    self.stack_depth += 1

  def _pop(self, reg: str) -> None:
    self._emit(f"    pop {reg}")
    self.stack_depth -= 1

  def _call(self, symbol: str) -> None:
    """Emit a call with rsp 16-byte aligned and Windows shadow space reserved."""
    reserve = (8 if self.stack_depth % 2 else 0) + self.target.shadow_space
    if reserve:
      self._emit(f"    sub rsp, {reserve}")
    self._emit(f"    call {symbol}")
    if reserve:
      self._emit(f"    add rsp, {reserve}")

  @staticmethod
  def _mem(offset: int) -> str:
    return f"[rbp{offset:+d}]"

  # === Sections ===

  def _gen_header(self) -> None:
    self._emit(f"; Sponge compiler output for {self.target.name}")
    self._emit("bits 64")
    self._emit("default rel")
    self._emit("")

  def _gen_data(self) -> None:
    self._emit(f"section {RODATA_SECTIONS[self.target.os]}")
    for value, label in self.strings.items():
      self._emit(f"{label}: db {nasm_string(value)}")
      self._emit(f"{label}_len equ $ - {label} - 1")
    if self.uses_syscalls:
      self._emit("newline: db 10")
    else:
      self._emit('fmt_line: db "%s", 10, 0')
      self._emit('fmt_text: db "%s", 0')
    self._emit("")

  def _gen_text(self) -> None:
    self._emit("section .text")
    self._emit(f"global {self.target.entry_symbol}")
    if not self.uses_syscalls:
      self._emit(f"extern {self.target.c_symbol('printf')}")
    self._emit("")

  def _gen_entry(self) -> None:
    self._emit_label(self.target.entry_symbol)
    if self.target.raw_start:
      self._emit(f"    call {function_label('main')}")
      self._emit("    mov rdi, rax")
      self._emit(f"    mov rax, {SYS_EXIT}")
      self._emit("    syscall")
    else:
      self._emit("    push rbp")
      self._emit("    mov rbp, rsp")
      self.stack_depth = 0
      self._call(function_label("main"))
      self._emit("    pop rbp")
      self._emit("    ret")
    self._emit("")

  # === Functions ===

  def _gen_prologue(self, func: ir.IRFunction, size: int) -> None:
    self.stack_depth = 0
    self._emit_label(function_label(func.name))
    self._emit("    push rbp")
    self._emit("    mov rbp, rsp")
    if size:
      self._emit(f"    sub rsp, {size}")
    for (name, _), reg in zip(func.params, self.target.arg_registers):
      self._emit(f"    mov {self._mem(self.slots[name])}, {reg}")

  def _gen_epilogue(self) -> None:
    # Falling off the end returns 0
    self._emit("    xor eax, eax")
    self._emit_label(self._epilogue_label())
    self._emit("    mov rsp, rbp")
    self._emit("    pop rbp")
    self._emit("    ret")
    self._emit("")

  # === Expressions ===

  def _gen_int(self, value: int) -> None:
    self._emit(f"    mov rax, {value}")

  def _gen_address(self, label: str) -> None:
    self._emit(f"    lea rax, [rel {label}]")

  def _gen_load(self, offset: int) -> None:
    self._emit(f"    mov rax, {self._mem(offset)}")

  def _gen_store(self, offset: int) -> None:
    self._emit(f"    mov {self._mem(offset)}, rax")

  def _gen_binary(self, left: ir.IRExpr, op: str, right: ir.IRExpr) -> None:
    # Evaluate left, keep it on the stack while right is evaluated
    self._gen_expr(left)
    self._push()
    self._gen_expr(right)
    self._emit("    mov rcx, rax")
    self._pop("rax")

    match op:
      case "+":
        self._emit("    add rax, rcx")
      case "-":
        self._emit("    sub rax, rcx")
      case "*":
        self._emit("    imul rax, rcx")
      case "/":
        self._emit("    cqo")
        self._emit("    idiv rcx")
      case _ if op in SET_INSTRUCTIONS:
        self._emit("    cmp rax, rcx")
        self._emit(f"    {SET_INSTRUCTIONS[op]} al")
        self._emit("    movzx rax, al")
      case _:
        raise CodegenError(f"Unknown binary operator '{op}'")

  def _gen_call(self, name: str, args: tuple[ir.IRExpr, ...]) -> None:
    """Generate code for a function call."""
    self._check_arity(name, args)
    for arg in reversed(args):
      self._gen_expr(arg)
      self._push()
    for reg in self.target.arg_registers[: len(args)]:
      self._pop(reg)
    self._call(function_label(name))

  def _gen_println(self, value: ir.IRExpr, newline: bool) -> None:
    if self.uses_syscalls:
      self._gen_write(value)
      if newline:
        self._emit("    lea rsi, [rel newline]")
        self._emit("    mov rdx, 1")
        self._gen_syscall_write()
      return

    # printf(fmt, s)
    self._gen_expr(value)
    fmt_reg, arg_reg = self.target.arg_registers[:2]
    self._emit(f"    mov {arg_reg}, rax")
    self._emit(f"    lea {fmt_reg}, [rel {'fmt_line' if newline else 'fmt_text'}]")
    self._emit("    xor eax, eax")
    self._call(self.target.c_symbol("printf"))

  def _gen_write(self, value: ir.IRExpr) -> None:
    """write(1, s, len(s)); literal lengths are known statically, others are measured."""
    match value:
      case ir.Str(text):
        label = self.strings[text]
        self._emit(f"    lea rsi, [rel {label}]")
        self._emit(f"    mov rdx, {label}_len")
      case _:
        self._gen_expr(value)
        loop_label = self._new_label("strlen")
        done_label = self._new_label("strlen_done")
        self._emit("    mov rsi, rax")
        self._emit("    xor edx, edx")
        self._emit_label(loop_label)
        self._emit("    cmp byte [rsi+rdx], 0")
        self._emit(f"    je {done_label}")
        self._emit("    inc rdx")
        self._emit(f"    jmp {loop_label}")
        self._emit_label(done_label)
    self._gen_syscall_write()

  def _gen_syscall_write(self) -> None:
    self._emit(f"    mov rax, {SYS_WRITE}")
    self._emit(f"    mov rdi, {STDOUT}")
    self._emit("    syscall")

  # === Control flow ===

  def _gen_jump(self, label: str) -> None:
    self._emit(f"    jmp {label}")

  def _gen_branch_if_zero(self, label: str) -> None:
    self._emit("    cmp rax, 0")
    self._emit(f"    je {label}")
