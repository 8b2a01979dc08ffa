"""Operand model and tape address resolution.

Values are 64-bit signed integers and addresses are non-negative tape
indices. A tape is a list of optional values: ``None`` marks a cell that
was never written.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Union

import numpy as np

from lexer import Lexer, RAMError, RAMParseError, Token


VALUE_MIN = int(np.iinfo(np.int64).min)
VALUE_MAX = int(np.iinfo(np.int64).max)
ADDRESS_MAX = int(np.iinfo(np.uint64).max)

Tape = List[Optional[int]]


class RAMRuntimeError(RAMError):
    """Raised for runtime faults."""

    def __init__(self, message: str, *, pointer: Optional[int] = None) -> None:
        super().__init__(message)
        self.pointer = pointer
        self.step_index: Optional[int] = None


class AddressError(RAMRuntimeError):
    """Raised when an operand cannot be resolved against the tape."""


class CellUnset(AddressError):
    def __init__(self, address: int) -> None:
        super().__init__(f"Cell {address} does not exist or its value wasn't set.")
        self.address = address


class IndexConversion(AddressError):
    def __init__(self, value: int, address: int) -> None:
        super().__init__(f"Value `{value}` in cell `{address}` could not be converted to a tape index.")
        self.value = value
        self.address = address


class InvalidOperand(RAMParseError):
    def __init__(self, token: str, *, column: Optional[int] = None) -> None:
        super().__init__(f"Operand {token} is not a valid operand", column=column)
        self.token = token


class OperandNotFound(RAMParseError):
    def __init__(self, keyword: str) -> None:
        super().__init__(f"Expected operand for keyword `{keyword}`, found nothing")
        self.keyword = keyword


def in_value_range(value: int) -> bool:
    return VALUE_MIN <= value <= VALUE_MAX


def read_cell(tape: Tape, address: int) -> int:
    if address < len(tape):
        value = tape[address]
        if value is not None:
            return value
    raise CellUnset(address)


def to_address(value: int, cell: int) -> int:
    """Interpret ``value`` (found in ``cell``) as a tape index."""
    if value < 0 or value > ADDRESS_MAX:
        raise IndexConversion(value, cell)
    return value


def pointer_at(tape: Tape, address: int) -> int:
    return to_address(read_cell(tape, address), address)


@dataclass(frozen=True)
class Immediate:
    value: int

    def resolve(self, tape: Tape) -> int:
        return self.value

    def __str__(self) -> str:
        return f"={self.value}"


@dataclass(frozen=True)
class Direct:
    address: int

    def resolve(self, tape: Tape) -> int:
        return read_cell(tape, self.address)

    def __str__(self) -> str:
        return str(self.address)


@dataclass(frozen=True)
class Indirect:
    address: int

    def resolve(self, tape: Tape) -> int:
        return read_cell(tape, pointer_at(tape, self.address))

    def __str__(self) -> str:
        return f"^{self.address}"


@dataclass(frozen=True)
class CellDirect:
    address: int

    def resolve(self, tape: Tape) -> int:
        # The target cell does not have to exist yet.
        return self.address

    def __str__(self) -> str:
        return str(self.address)


@dataclass(frozen=True)
class CellIndirect:
    address: int

    def resolve(self, tape: Tape) -> int:
        return pointer_at(tape, self.address)

    def __str__(self) -> str:
        return f"^{self.address}"


Operand = Union[Immediate, Direct, Indirect]
CellAddress = Union[CellDirect, CellIndirect]


def _as_token(source: Union[Token, str]) -> Token:
    if isinstance(source, Token):
        return source
    return Token(Lexer.classify(source), source, 0, 0)


def _address_of(token: Token, text: str) -> int:
    address = int(text)
    if address > ADDRESS_MAX:
        raise InvalidOperand(token.value, column=token.column or None)
    return address


def parse_operand(source: Optional[Union[Token, str]], keyword: str = "") -> Operand:
    """Build an operand from its token: ``=N``, ``N`` or ``^N``."""
    if source is None:
        raise OperandNotFound(keyword)
    token = _as_token(source)
    if token.type == "IMMEDIATE":
        value = int(token.value[1:])
        if not in_value_range(value):
            raise InvalidOperand(token.value, column=token.column or None)
        return Immediate(value)
    if token.type == "NUMBER":
        return Direct(_address_of(token, token.value))
    if token.type == "INDIRECT":
        return Indirect(_address_of(token, token.value[1:]))
    raise InvalidOperand(token.value, column=token.column or None)


def parse_cell_address(source: Optional[Union[Token, str]], keyword: str = "") -> CellAddress:
    """Build a write target from its token: ``N`` or ``^N``."""
    if source is None:
        raise OperandNotFound(keyword)
    token = _as_token(source)
    if token.type == "NUMBER":
        return CellDirect(_address_of(token, token.value))
    if token.type == "INDIRECT":
        return CellIndirect(_address_of(token, token.value[1:]))
    raise InvalidOperand(token.value, column=token.column or None)
