from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from lexer import RAMParseError, Token
from operands import CellAddress, Operand, parse_cell_address, parse_operand


ARG_NONE = "NONE"
ARG_OPERAND = "OPERAND"
ARG_CELL = "CELL"
ARG_LABEL = "LABEL"


class InvalidKeyword(RAMParseError):
    def __init__(self, keyword: str, *, column: Optional[int] = None) -> None:
        super().__init__(f"Keyword `{keyword}` is not a valid keyword", column=column)
        self.keyword = keyword


class LabelNotFound(RAMParseError):
    def __init__(self, keyword: str) -> None:
        super().__init__(f"Expected a label after keyword {keyword}, got nothing")
        self.keyword = keyword


class UnexpectedArgument(RAMParseError):
    """A token where none may stand.

    ``expected`` is ``"end of line"`` for a stray token after a complete
    instruction and ``"nothing"`` for an argument given to HALT.
    """

    def __init__(self, token: str, *, expected: str = "end of line", column: Optional[int] = None) -> None:
        super().__init__(f"Expected {expected}, found `{token}`", column=column)
        self.token = token
        self.expected = expected


class Opcode(Enum):
    LOAD = ("LOAD", ARG_OPERAND)
    STORE = ("STORE", ARG_CELL)
    ADD = ("ADD", ARG_OPERAND)
    SUB = ("SUB", ARG_OPERAND)
    MULT = ("MULT", ARG_OPERAND)
    DIV = ("DIV", ARG_OPERAND)
    READ = ("READ", ARG_CELL)
    WRITE = ("WRITE", ARG_OPERAND)
    JUMP = ("JUMP", ARG_LABEL)
    JGTZ = ("JGTZ", ARG_LABEL)
    JZERO = ("JZERO", ARG_LABEL)
    HALT = ("HALT", ARG_NONE)

    def __init__(self, keyword: str, argument_kind: str) -> None:
        self.keyword = keyword
        self.argument_kind = argument_kind

    @classmethod
    def from_keyword(cls, keyword: str) -> "Opcode":
        # Only ASCII letters fold; ``str.upper`` would map e.g. U+017F to "S".
        opcode = _KEYWORDS.get(keyword.upper()) if keyword.isascii() else None
        if opcode is None:
            raise InvalidKeyword(keyword)
        return opcode


_KEYWORDS = {opcode.keyword: opcode for opcode in Opcode}

Argument = Union[Operand, CellAddress, str, None]


@dataclass(frozen=True)
class Instruction:
    """One RAM instruction: an opcode and the single argument it takes.

    The argument is an operand for LOAD/ADD/SUB/MULT/DIV/WRITE, a cell
    address for STORE/READ, a label name for the jumps and ``None`` for HALT.
    """

    opcode: Opcode
    argument: Argument = None

    @classmethod
    def from_tokens(cls, keyword: Token, argument: Optional[Token]) -> "Instruction":
        try:
            opcode = Opcode.from_keyword(keyword.value)
        except InvalidKeyword:
            raise InvalidKeyword(keyword.value, column=keyword.column)
        kind = opcode.argument_kind
        if kind == ARG_OPERAND:
            return cls(opcode, parse_operand(argument, keyword.value))
        if kind == ARG_CELL:
            return cls(opcode, parse_cell_address(argument, keyword.value))
        if kind == ARG_LABEL:
            if argument is None:
                raise LabelNotFound(keyword.value)
            return cls(opcode, argument.value)
        if argument is not None:
            raise UnexpectedArgument(argument.value, expected="nothing", column=argument.column)
        return cls(opcode)

    def __str__(self) -> str:
        if self.argument is None:
            return self.opcode.keyword
        return f"{self.opcode.keyword} {self.argument}"
