"""Target descriptors: which architecture and OS the assembly is generated for."""

import platform
from enum import Enum
from dataclasses import dataclass


class TargetError(Exception):
  """Raised for an unknown target name."""

  pass


class Arch(Enum):
  X86_64 = "x86_64"
  AARCH64 = "aarch64"


class OS(Enum):
  LINUX = "linux"
  MACOS = "macos"
  WINDOWS = "windows"


class OutputStrategy(Enum):
  """How println reaches stdout."""

  SYSCALL = "syscall"  # raw write(2) / exit(2), no C library
  PRINTF = "printf"  # call the C library's printf


@dataclass(frozen=True, slots=True)
class Target:
  """Everything the code generator needs to know about an architecture/OS pair."""

  arch: Arch
  os: OS
  entry_symbol: str
  arg_registers: tuple[str, ...]
  output: OutputStrategy
  shadow_space: int = 0
  symbol_prefix: str = ""

  @property
  def name(self) -> str:
    return f"{self.arch.value}-{self.os.value}"

  @property
  def raw_start(self) -> bool:
    """True when the process starts at _start and exits through a system call."""
    return self.entry_symbol == "_start"

  def c_symbol(self, name: str) -> str:
    """Name of a C-library symbol as the linker sees it (``printf`` -> ``_printf`` on macOS)."""
    return f"{self.symbol_prefix}{name}"


SYSV_ARGS = ("rdi", "rsi", "rdx", "rcx", "r8", "r9")
WIN64_ARGS = ("rcx", "rdx", "r8", "r9")
AARCH64_ARGS = tuple(f"x{i}" for i in range(8))

TARGETS: dict[str, Target] = {
  t.name: t
  for t in (
    Target(Arch.X86_64, OS.LINUX, "_start", SYSV_ARGS, OutputStrategy.SYSCALL),
    Target(Arch.X86_64, OS.MACOS, "_main", SYSV_ARGS, OutputStrategy.PRINTF, symbol_prefix="_"),
    Target(Arch.X86_64, OS.WINDOWS, "main", WIN64_ARGS, OutputStrategy.PRINTF, shadow_space=32),
    Target(Arch.AARCH64, OS.LINUX, "_start", AARCH64_ARGS, OutputStrategy.SYSCALL),
    Target(Arch.AARCH64, OS.MACOS, "_main", AARCH64_ARGS, OutputStrategy.PRINTF, symbol_prefix="_"),
    Target(Arch.AARCH64, OS.WINDOWS, "main", AARCH64_ARGS, OutputStrategy.PRINTF),
  )
}

DEFAULT_TARGET = "x86_64-linux"

_MACHINES = {"x86_64": Arch.X86_64, "amd64": Arch.X86_64, "arm64": Arch.AARCH64, "aarch64": Arch.AARCH64}
_SYSTEMS = {"linux": OS.LINUX, "darwin": OS.MACOS, "windows": OS.WINDOWS}


def get_target(name: str) -> Target:
  """Look up a target by name, e.g. ``x86_64-linux`` or ``aarch64-macos``."""
  try:
    return TARGETS[name]
  except KeyError:
    choices = ", ".join(sorted(TARGETS))
    raise TargetError(f"Unknown target '{name}' (choose from {choices})") from None


def host_target() -> Target:
  """Target matching the running machine, or the default target if it is not supported."""
  arch = _MACHINES.get(platform.machine().lower())
  os = _SYSTEMS.get(platform.system().lower())
  if arch is None or os is None:
    return TARGETS[DEFAULT_TARGET]
  return TARGETS[f"{arch.value}-{os.value}"]
