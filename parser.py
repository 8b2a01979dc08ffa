from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from instructions import Instruction, UnexpectedArgument
from lexer import Lexer, RAMParseError, Token


@dataclass
class Program:
    """Instruction list plus the label -> instruction index jump table.

    Built one line at a time. A line is committed as far as it got: a label
    recorded before a bad instruction stays recorded, and an instruction
    followed by a stray token stays appended.
    """

    instructions: List[Instruction] = field(default_factory=list)
    jump_table: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def parse(cls, text: str, *, fail_fast: bool = False) -> "Program":
        return Parser(text).parse(fail_fast=fail_fast)

    def push_line(self, line: str, line_no: int = 1) -> None:
        self.push_tokens(Lexer(line).tokenize_line(line, line_no))

    def push_tokens(self, tokens: List[Token]) -> None:
        if not tokens:
            return
        index = 0
        if tokens[0].type == "LABEL":
            self.jump_table[tokens[0].value] = len(self.instructions)
            index = 1
            if len(tokens) == 1:
                return
        keyword = tokens[index]
        argument = tokens[index + 1] if len(tokens) > index + 1 else None
        self.instructions.append(Instruction.from_tokens(keyword, argument))
        if len(tokens) > index + 2:
            extra = tokens[index + 2]
            raise UnexpectedArgument(extra.value, column=extra.column)


class ParseErrorChain(RAMParseError):
    """Every failing line of a parse, in source order."""

    def __init__(self, errors: List[Tuple[int, RAMParseError]], filename: str = "<string>") -> None:
        message = "\n".join(f"At line {line} found error: {error}" for line, error in errors)
        super().__init__(message, line=errors[0][0] if errors else None)
        self.errors = errors
        self.filename = filename

    @property
    def first(self) -> RAMParseError:
        return self.errors[0][1]


class Parser:
    def __init__(self, text: str, filename: str = "<string>") -> None:
        self.text = text
        self.filename = filename

    def parse(self, *, fail_fast: bool = False) -> Program:
        """Parse the whole text.

        Raises ParseErrorChain when any line fails. With ``fail_fast`` the
        chain holds only the first failing line, otherwise it holds all of
        them.
        """
        program = Program()
        errors: List[Tuple[int, RAMParseError]] = []
        for line_no, tokens in Lexer(self.text, self.filename).lines():
            try:
                program.push_tokens(tokens)
            except RAMParseError as error:
                error.line = line_no
                if error.column is None:
                    error.column = tokens[1].column if tokens[0].type == "LABEL" else tokens[0].column
                errors.append((line_no, error))
                if fail_fast:
                    break
        if errors:
            raise ParseErrorChain(errors, self.filename)
        return program
