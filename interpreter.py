from __future__ import annotations
import json
import operator
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Deque, Dict, Iterable, List, Optional, Tuple, Type

from instructions import Instruction, Opcode
from lexer import RAMError
from operands import (
    VALUE_MAX,
    VALUE_MIN,
    AddressError,
    CellAddress,
    CellUnset,
    IndexConversion,
    Operand,
    RAMRuntimeError,
    Tape,
)
from parser import Program


__all__ = [
    "AddressError",
    "AdditionFailed",
    "ArithmeticFailed",
    "BufferUnset",
    "CellUnset",
    "DivisionByZero",
    "DivisionFailed",
    "IndexConversion",
    "InputExhausted",
    "JumpLabelNotFound",
    "Machine",
    "MultiplicationFailed",
    "RAMError",
    "RAMRuntimeError",
    "RunState",
    "StateEntry",
    "StateLogger",
    "SubtractionFailed",
    "TracebackFormatter",
]


class RunState(Enum):
    RUNNING = "running"
    HALTED = "halted"


class BufferUnset(RAMRuntimeError):
    def __init__(self) -> None:
        super().__init__("Buffer could not be accessed, because its value was never set.")


class InputExhausted(RAMRuntimeError):
    def __init__(self, index: int) -> None:
        super().__init__(f"Input at index `{index}` not found.")
        self.index = index


class JumpLabelNotFound(RAMRuntimeError):
    def __init__(self, label: str) -> None:
        super().__init__(f"Label `{label}` could not be found in RAM code.")
        self.label = label


class ArithmeticFailed(RAMRuntimeError):
    """Checked arithmetic left the 64-bit range (or divided by zero)."""

    template = "Arithmetic on `{0}` and `{1}` failed."

    def __init__(self, operand: int, accumulator: int) -> None:
        super().__init__(self.template.format(operand, accumulator))
        self.operand = operand
        self.accumulator = accumulator


class AdditionFailed(ArithmeticFailed):
    template = "Addition of `{0}` to `{1}` failed."


class SubtractionFailed(ArithmeticFailed):
    template = "Subtraction of `{0}` from `{1}` failed."


class MultiplicationFailed(ArithmeticFailed):
    template = "Multiplication by `{0}` of `{1}` failed."


class DivisionFailed(ArithmeticFailed):
    template = "Division by `{0}` of `{1}` failed."

    @property
    def dividend(self) -> int:
        return self.accumulator


class DivisionByZero(DivisionFailed):
    pass


def _truncating_div(dividend: int, divisor: int) -> int:
    quotient = abs(dividend) // abs(divisor)
    return quotient if (dividend < 0) == (divisor < 0) else -quotient


ARITHMETIC: Dict[Opcode, Tuple[Callable[[int, int], int], Type[ArithmeticFailed]]] = {
    Opcode.ADD: (operator.add, AdditionFailed),
    Opcode.SUB: (operator.sub, SubtractionFailed),
    Opcode.MULT: (operator.mul, MultiplicationFailed),
    Opcode.DIV: (_truncating_div, DivisionFailed),
}


@dataclass
class StateEntry:
    step_index: int
    pointer: int
    instruction: str
    accumulator: Optional[int]
    tape_snapshot: Optional[List[Optional[int]]]


class StateLogger:
    """Keeps the most recent executed steps.

    The step counter covers the whole run; only the last ``history`` entries
    are retained. Tape snapshots are taken in verbose mode only.
    """

    def __init__(self, verbose: bool, history: int = 32) -> None:
        self.verbose = verbose
        self.entries: Deque[StateEntry] = deque(maxlen=history)
        self.next_step_index = 0

    def record(self, *, pointer: int, instruction: Instruction, tape: Tape) -> StateEntry:
        entry = StateEntry(
            step_index=self.next_step_index,
            pointer=pointer,
            instruction=str(instruction),
            accumulator=tape[0],
            tape_snapshot=list(tape) if self.verbose else None,
        )
        self.entries.append(entry)
        self.next_step_index += 1
        return entry

    @property
    def last(self) -> Optional[StateEntry]:
        return self.entries[-1] if self.entries else None


class Machine:
    """Executes a parsed Program against an input sequence.

    Cell 0 of the tape is the accumulator. The program is only read, so one
    Program can back any number of machines.
    """

    def __init__(
        self,
        program: Program,
        input_values: Iterable[int] = (),
        *,
        verbose: bool = False,
        history: int = 32,
    ) -> None:
        self.program = program
        self.tape: Tape = [None]
        self.pointer = 0
        self.input: List[int] = list(input_values)
        self.input_pointer = 0
        self.output: List[int] = []
        self.state = RunState.RUNNING if program.instructions else RunState.HALTED
        self.logger = StateLogger(verbose=verbose, history=history)

    @classmethod
    def from_source(cls, text: str, input_values: Iterable[int] = (), **kwargs: Any) -> "Machine":
        return cls(Program.parse(text, fail_fast=True), input_values, **kwargs)

    @property
    def halted(self) -> bool:
        return self.state is RunState.HALTED

    @property
    def buffer(self) -> int:
        value = self.tape[0]
        if value is None:
            raise BufferUnset()
        return value

    @property
    def current_instruction(self) -> Instruction:
        instructions = self.program.instructions
        if self.pointer < len(instructions):
            return instructions[self.pointer]
        return Instruction(Opcode.HALT)

    def run(self) -> List[int]:
        while self.step() is RunState.RUNNING:
            pass
        return self.output

    def step(self) -> RunState:
        """Execute exactly one instruction and report the resulting state."""
        if self.state is RunState.HALTED:
            return self.state
        instruction = self.program.instructions[self.pointer]
        entry = self.logger.record(pointer=self.pointer, instruction=instruction, tape=self.tape)
        try:
            self.state = self._execute(instruction)
        except RAMRuntimeError as error:
            error.pointer = self.pointer
            error.step_index = entry.step_index
            raise
        return self.state

    def _execute(self, instruction: Instruction) -> RunState:
        opcode = instruction.opcode
        argument = instruction.argument
        if opcode is Opcode.LOAD:
            self.tape[0] = self._get(argument)
            return self._advance()
        if opcode is Opcode.STORE:
            self._set(argument, self.buffer)
            return self._advance()
        if opcode in ARITHMETIC:
            accumulator = self.buffer
            self.tape[0] = self._arithmetic(opcode, accumulator, self._get(argument))
            return self._advance()
        if opcode is Opcode.READ:
            value = self._next_input()
            self._set(argument, value)
            return self._advance()
        if opcode is Opcode.WRITE:
            self.output.append(self._get(argument))
            return self._advance()
        if opcode is Opcode.JUMP:
            return self._jump_to(argument)
        if opcode is Opcode.JGTZ:
            if self.buffer > 0:
                return self._jump_to(argument)
            return self._advance()
        if opcode is Opcode.JZERO:
            if self.buffer == 0:
                return self._jump_to(argument)
            return self._advance()
        return RunState.HALTED

    @staticmethod
    def _arithmetic(opcode: Opcode, accumulator: int, operand: int) -> int:
        func, error_cls = ARITHMETIC[opcode]
        if opcode is Opcode.DIV and operand == 0:
            raise DivisionByZero(operand, accumulator)
        result = func(accumulator, operand)
        if result < VALUE_MIN or result > VALUE_MAX:
            raise error_cls(operand, accumulator)
        return result

    def _get(self, operand: Operand) -> int:
        return operand.resolve(self.tape)

    def _set(self, target: CellAddress, value: int) -> None:
        address = target.resolve(self.tape)
        tape = self.tape
        if address >= len(tape):
            tape.extend([None] * (address + 1 - len(tape)))
        tape[address] = value

    def _next_input(self) -> int:
        # The cursor moves even when the input is exhausted.
        index = self.input_pointer
        self.input_pointer += 1
        if index >= len(self.input):
            raise InputExhausted(index)
        return self.input[index]

    def _jump_to(self, label: str) -> RunState:
        target = self.program.jump_table.get(label)
        if target is None:
            raise JumpLabelNotFound(label)
        if target < len(self.program.instructions):
            self.pointer = target
            return RunState.RUNNING
        self.pointer = len(self.program.instructions)
        return RunState.HALTED

    def _advance(self) -> RunState:
        self.pointer += 1
        if self.pointer < len(self.program.instructions):
            return RunState.RUNNING
        return RunState.HALTED

    def format_state(self) -> str:
        """Render the tape, the input, the output and the next instruction."""
        indices = [str(i) for i in range(len(self.tape))]
        values = ["?" if v is None else str(v) for v in self.tape]
        widths = [max(len(a), len(b)) for a, b in zip(indices, values)]

        def _rule(left: str, mid: str, right: str) -> str:
            return left + mid.join("─" * (w + 2) for w in widths) + right

        def _row(cells: List[str]) -> str:
            return "│" + "│".join(f" {c.rjust(w)} " for c, w in zip(cells, widths)) + "│"

        lines = [
            _rule("╭", "┬", "╮"),
            _row(indices),
            _rule("├", "┼", "┤"),
            _row(values),
            _rule("╰", "┴", "╯"),
            "Input:" + "".join(f" {v}" for v in self.input),
            "Output:" + "".join(f" {v}" for v in self.output),
            f"Next instruction: {self.current_instruction}",
        ]
        return "\n".join(lines)


class TracebackFormatter:
    def __init__(self, machine: Machine) -> None:
        self.machine = machine

    def format_text(self, error: RAMRuntimeError, verbose: bool) -> str:
        lines = ["Traceback (most recent step last):"]
        for entry in self.machine.logger.entries:
            lines.append(f"  Step {entry.step_index}, instruction {entry.pointer}: {entry.instruction}")
            if verbose and entry.tape_snapshot is not None:
                tape = " ".join("?" if v is None else str(v) for v in entry.tape_snapshot)
                lines.append(f"    Tape: {tape}")
        location = f" (instruction {error.pointer})" if error.pointer is not None else ""
        lines.append(f"{error.__class__.__name__}: {error.message}{location}")
        return "\n".join(lines)

    def to_json(self, error: RAMRuntimeError) -> str:
        steps: List[Dict[str, Any]] = []
        for entry in self.machine.logger.entries:
            step: Dict[str, Any] = {
                "step_index": entry.step_index,
                "pointer": entry.pointer,
                "instruction": entry.instruction,
                "accumulator": entry.accumulator,
            }
            if entry.tape_snapshot is not None:
                step["tape"] = entry.tape_snapshot
            steps.append(step)
        data = {
            "error": {
                "type": error.__class__.__name__,
                "message": error.message,
                "pointer": error.pointer,
                "failing_step_index": error.step_index,
            },
            "steps": steps,
        }
        return json.dumps(data, indent=2)
