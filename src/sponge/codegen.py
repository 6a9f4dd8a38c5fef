"""Code generation entry point: picks the generator for the target architecture."""

from .ir import IRProgram
from .target import DEFAULT_TARGET, TARGETS, Arch, Target
from .x86_64 import X86_64CodeGenerator
from .aarch64 import AArch64CodeGenerator
from .backend import CodeGenerator, CodegenError

GENERATORS: dict[Arch, type[CodeGenerator]] = {
  Arch.X86_64: X86_64CodeGenerator,
  Arch.AARCH64: AArch64CodeGenerator,
}

__all__ = ["CodegenError", "GENERATORS", "generate"]


def generate(program: IRProgram, target: Target | None = None) -> str:
  """Convenience function to generate assembly for a program.

  Each call uses a fresh generator, so label numbering restarts per program.
  """
  if target is None:
    target = TARGETS[DEFAULT_TARGET]
  return GENERATORS[target.arch](target).generate(program)
