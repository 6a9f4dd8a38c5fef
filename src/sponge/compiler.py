"""Compiler pipeline for the Sponge language."""

import logging
import tempfile
import subprocess
from pathlib import Path
from dataclasses import dataclass, field

from .lexer import LexerError, tokenize
from .parser import ParseError, parse
from .checker import SemanticError, analyze
from .codegen import CodegenError, generate
from .target import OS, Arch, Target, host_target

logger = logging.getLogger(__name__)

# Object file format handed to nasm, per OS
NASM_FORMATS: dict[OS, str] = {
  OS.LINUX: "elf64",
  OS.MACOS: "macho64",
  OS.WINDOWS: "win64",
}

MACOS_SDK = "/Library/Developer/CommandLineTools/SDKs/MacOSX.sdk"

STAGE_NAMES = {"lexer": "Lexer", "parser": "Parse", "semantic": "Semantic", "codegen": "Codegen"}


@dataclass
class CompileOptions:
  """Settings for one compiler instance."""

  target: Target = field(default_factory=host_target)
  strict: bool = False


@dataclass
class CompileResult:
  """Result of a compilation."""

  success: bool
  error: str | None = None
  assembly: str | None = None
  stage: str | None = None


def build_commands(target: Target, asm_path: Path, obj_path: Path, output_path: Path) -> list[list[str]]:
  """Assembler and linker invocations that turn an assembly file into an executable."""
  if target.arch == Arch.X86_64:
    assemble = ["nasm", "-f", NASM_FORMATS[target.os], "-o", str(obj_path), str(asm_path)]
  else:
    assemble = ["as", "-o", str(obj_path), str(asm_path)]

  if target.os == OS.LINUX:
    link = ["ld", "-o", str(output_path), str(obj_path)]
  elif target.os == OS.MACOS:
    arch = "x86_64" if target.arch == Arch.X86_64 else "arm64"
    link = [
      "ld",
      "-o",
      str(output_path),
      str(obj_path),
      "-lSystem",
      "-syslibroot",
      MACOS_SDK,
      "-e",
      target.entry_symbol,
      "-arch",
      arch,
    ]
  else:
    link = ["gcc", "-o", str(output_path), str(obj_path)]
  return [assemble, link]


class Compiler:
  """Orchestrates the compilation pipeline."""

  def __init__(self, options: CompileOptions | None = None) -> None:
    self.options = options or CompileOptions()

  @property
  def target(self) -> Target:
    return self.options.target

  def compile_to_asm(self, source: str) -> CompileResult:
    """Compile source code to assembly for the configured target."""
    stage = "lexer"
    try:
      tokens = tokenize(source, strict=self.options.strict)
      logger.debug("lexed %d tokens", len(tokens))

      stage = "parser"
      ast = parse(tokens)
      logger.debug("parsed %d functions", len(ast.functions))

      stage = "semantic"
      program = analyze(ast)

      stage = "codegen"
      assembly = generate(program, self.target)
      logger.debug("generated %d lines of %s assembly", assembly.count("\n"), self.target.name)

      return CompileResult(success=True, assembly=assembly)

    except LexerError as e:
      return CompileResult(success=False, error=f"Lexer error: {e}", stage="lexer")
    except ParseError as e:
      return CompileResult(success=False, error=f"Parse error: {e}", stage="parser")
    except SemanticError as e:
      return CompileResult(success=False, error=f"Semantic error: {e}", stage="semantic")
    except CodegenError as e:
      return CompileResult(success=False, error=f"Codegen error: {e}", stage="codegen")
    except RecursionError:
      # Parser, analyzer and generator recurse on nested expressions
      return CompileResult(
        success=False,
        error=f"{STAGE_NAMES[stage]} error: expression nested too deeply",
        stage=stage,
      )

  def compile_to_binary(self, source: str, output_path: Path, keep_asm: bool = False) -> CompileResult:
    """Compile source code to an executable binary."""
    result = self.compile_to_asm(source)
    if not result.success or result.assembly is None:
      return result

    try:
      with tempfile.TemporaryDirectory() as tmpdir:
        tmpdir_path = Path(tmpdir)
        asm_path = tmpdir_path / "output.s"
        obj_path = tmpdir_path / "output.o"

        asm_path.write_text(result.assembly)

        # Optionally save assembly file alongside output
        if keep_asm:
          output_path.with_suffix(".s").write_text(result.assembly)

        for command in build_commands(self.target, asm_path, obj_path, output_path):
          logger.debug("running %s", " ".join(command))
          proc = subprocess.run(command, capture_output=True, text=True)
          if proc.returncode != 0:
            return CompileResult(
              success=False,
              error=f"{command[0]} failed: {proc.stderr.strip()}",
              assembly=result.assembly,
              stage="build",
            )

      return CompileResult(success=True, assembly=result.assembly)

    except FileNotFoundError as e:
      return CompileResult(
        success=False,
        error=f"Tool not found: {e}. Make sure an assembler and linker for {self.target.name} are installed.",
        stage="build",
      )


def compile_source(source: str, target: Target | None = None) -> CompileResult:
  """Convenience function to compile source to assembly."""
  options = CompileOptions(target=target) if target else CompileOptions()
  return Compiler(options).compile_to_asm(source)
