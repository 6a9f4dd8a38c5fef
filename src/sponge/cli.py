"""Command-line interface for the Sponge compiler."""

import sys
import logging
import argparse
from pathlib import Path

from .compiler import CompileOptions, Compiler
from .target import TARGETS, TargetError, get_target, host_target


def main(argv: list[str] | None = None) -> int:
  """Main entry point for the sponge compiler."""
  parser = argparse.ArgumentParser(
    prog="sponge",
    description="Sponge compiler - lowers Sponge source to x86-64 NASM or AArch64 assembly",
  )
  parser.add_argument("source", type=Path, help="Source file to compile (.sp)")
  parser.add_argument("-o", "--output", type=Path, help="Output file (default: source name without extension)")
  parser.add_argument(
    "--emit-asm",
    action="store_true",
    help="Output assembly instead of compiling to binary",
  )
  parser.add_argument(
    "--keep-asm",
    action="store_true",
    help="Keep assembly file alongside binary",
  )
  parser.add_argument(
    "--target",
    help=f"Target to generate code for (default: host). One of: {', '.join(sorted(TARGETS))}",
  )
  parser.add_argument(
    "--strict",
    action="store_true",
    help="Reject characters that start no token instead of skipping them",
  )
  parser.add_argument("-v", "--verbose", action="store_true", help="Log pipeline progress to stderr")

  args = parser.parse_args(argv)
  logging.basicConfig(
    level=logging.DEBUG if args.verbose else logging.WARNING,
    format="%(name)s: %(message)s",
  )

  try:
    target = get_target(args.target) if args.target else host_target()
  except TargetError as e:
    print(f"Error: {e}", file=sys.stderr)
    return 1

  # Validate source file
  if not args.source.exists():
    print(f"Error: Source file '{args.source}' not found", file=sys.stderr)
    return 1

  source = args.source.read_text()
  compiler = Compiler(CompileOptions(target=target, strict=args.strict))

  if args.emit_asm:
    result = compiler.compile_to_asm(source)
    if not result.success:
      print(f"Error: {result.error}", file=sys.stderr)
      return 1
    if args.output:
      args.output.write_text(result.assembly)
    else:
      print(result.assembly, end="")
    return 0

  output_path = args.output or args.source.with_suffix("")
  result = compiler.compile_to_binary(source, output_path, keep_asm=args.keep_asm)
  if not result.success:
    print(f"Error: {result.error}", file=sys.stderr)
    return 1
  print(f"Compiled to {output_path}")
  return 0


if __name__ == "__main__":
  sys.exit(main())
