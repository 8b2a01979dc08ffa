"""RAM machine entry point and step debugger wiring."""

from __future__ import annotations
import argparse
import re
import sys
from typing import List, Optional

from interpreter import Machine, RAMRuntimeError, RunState, TracebackFormatter
from operands import in_value_range
from parser import ParseErrorChain, Parser

PROMPT = "\x1b[38;2;153;221;255m(ram)\033[0m "  # light blue

INPUT_VALUE = re.compile(r"[+-]?[0-9]+")


def _input_value(text: str) -> int:
    if not INPUT_VALUE.fullmatch(text) or not in_value_range(int(text)):
        raise ValueError(f"Failed to convert `{text}` to an integer")
    return int(text)


def _argument_value(text: str) -> int:
    try:
        return _input_value(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc))


def _step_limit(text: str) -> int:
    if not INPUT_VALUE.fullmatch(text) or int(text) < 1:
        raise argparse.ArgumentTypeError(f"Step limit must be a positive integer, got `{text}`")
    return int(text)


def _read_source(filename: str) -> Optional[str]:
    try:
        with open(filename, "r", encoding="utf-8") as handle:
            return handle.read()
    except OSError as exc:
        print(f"Could not read RAM code from {filename}: {exc}", file=sys.stderr)
        return None


def _collect_input(args: argparse.Namespace) -> Optional[List[int]]:
    values = list(args.input)
    if args.input_file is None:
        return values
    try:
        with open(args.input_file, "r", encoding="utf-8") as handle:
            text = handle.read()
    except OSError as exc:
        print(f"Could not read input from {args.input_file}: {exc}", file=sys.stderr)
        return None
    try:
        values.extend(_input_value(token) for token in text.split())
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return None
    return values


def _load_machine(args: argparse.Namespace) -> Optional[Machine]:
    source_text = _read_source(args.file)
    if source_text is None:
        return None
    input_values = _collect_input(args)
    if input_values is None:
        return None
    try:
        program = Parser(source_text, args.file).parse(fail_fast=True)
    except ParseErrorChain as error:
        print(f"ParseError: {error}", file=sys.stderr)
        return None
    return Machine(program, input_values, verbose=args.verbose)


def _emit_output(output: List[int], args: argparse.Namespace) -> int:
    if not args.quiet:
        print(output)
    if args.output_file is not None:
        try:
            with open(args.output_file, "w", encoding="utf-8") as handle:
                handle.write(" ".join(str(v) for v in output))
        except OSError as exc:
            print(f"Could not write output to {args.output_file}: {exc}", file=sys.stderr)
            return 1
    return 0


def _report_runtime_error(machine: Machine, error: RAMRuntimeError, args: argparse.Namespace) -> int:
    formatter = TracebackFormatter(machine)
    print(formatter.format_text(error, verbose=args.verbose), file=sys.stderr)
    if args.traceback_json:
        print(formatter.to_json(error), file=sys.stderr)
    return 1


def run_program(args: argparse.Namespace) -> int:
    machine = _load_machine(args)
    if machine is None:
        return 1
    try:
        if args.max_steps is None:
            output = machine.run()
        else:
            steps = 0
            while machine.step() is RunState.RUNNING:
                steps += 1
                if steps >= args.max_steps:
                    print(f"Execution stopped after {steps} steps without halting", file=sys.stderr)
                    return 1
            output = machine.output
    except RAMRuntimeError as error:
        return _report_runtime_error(machine, error, args)
    return _emit_output(output, args)


def check_program(args: argparse.Namespace) -> int:
    source_text = _read_source(args.file)
    if source_text is None:
        return 1
    try:
        Parser(source_text, args.file).parse()
    except ParseErrorChain as chain:
        print(str(chain), file=sys.stderr)
        return 1
    return 0


def debug_program(args: argparse.Namespace) -> int:
    machine = _load_machine(args)
    if machine is None:
        return 1
    print("RAM step debugger. Enter or 's' steps, 'c' continues, 'q' quits.")
    running = True
    try:
        while not machine.halted:
            if running:
                print(machine.format_state())
                try:
                    command = input(PROMPT).strip().lower()
                except EOFError:
                    print()
                    return 0
                if command == "q":
                    return 0
                if command == "c":
                    running = False
                elif command not in ("", "s"):
                    print(f"Unknown command '{command}'", file=sys.stderr)
                    continue
            machine.step()
    except RAMRuntimeError as error:
        return _report_runtime_error(machine, error, args)
    print(machine.format_state())
    return _emit_output(machine.output, args)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ram", description="RAM machine code interpreter")
    parser.add_argument("-i", "--input-file", metavar="FILE", help="Read whitespace-separated input values from FILE (appended after command-line input)")
    parser.add_argument("-o", "--output-file", metavar="FILE", help="Write the output values to FILE")
    parser.add_argument("-q", "--quiet", action="store_true", help="Don't print program output to stdout")
    parser.add_argument("-verbose", "--verbose", dest="verbose", action="store_true", help="Emit tape snapshots in tracebacks")
    parser.add_argument("--traceback-json", action="store_true", help="Also emit JSON traceback")
    commands = parser.add_subparsers(dest="command", required=True)

    run = commands.add_parser("run", help="Run RAM machine code from a file")
    run.add_argument("file")
    run.add_argument("input", nargs="*", type=_argument_value, help="Input values")
    run.add_argument("--max-steps", type=_step_limit, default=None, help="Stop with an error after this many steps")
    run.set_defaults(handler=run_program)

    check = commands.add_parser("check", help="Validate RAM code syntax of a file")
    check.add_argument("file")
    check.set_defaults(handler=check_program)

    debug = commands.add_parser("debug", help="Step through RAM machine code interactively")
    debug.add_argument("file")
    debug.add_argument("input", nargs="*", type=_argument_value, help="Input values")
    debug.set_defaults(handler=debug_program)
    return parser


def run_cli(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    return args.handler(args)


if __name__ == "__main__":
    raise SystemExit(run_cli())
