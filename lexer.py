from __future__ import annotations
import re
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple


class RAMError(Exception):
    """Base class for interpreter errors.

    Errors compare equal when they are of the same kind and carry the same
    message, so callers can match on them without re-parsing text.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message

    def __eq__(self, other: object) -> bool:
        if type(self) is not type(other):
            return NotImplemented
        return self.args == other.args

    def __hash__(self) -> int:
        return hash((type(self), self.args))


class RAMParseError(RAMError):
    """Raised when parsing fails."""

    def __init__(self, message: str, *, line: Optional[int] = None, column: Optional[int] = None) -> None:
        super().__init__(message)
        self.line = line
        self.column = column


@dataclass
class Token:
    type: str
    value: str
    line: int
    column: int


COMMENT_START = "#"
LABEL_END = ":"

# Token shapes. Range checks belong to the operand layer, the lexer only
# looks at the spelling.
TOKEN_PATTERNS = (
    ("IMMEDIATE", re.compile(r"=[+-]?[0-9]+")),
    ("INDIRECT", re.compile(r"\^\+?[0-9]+")),
    ("NUMBER", re.compile(r"\+?[0-9]+")),
)

_WORD = re.compile(r"\S+")


class Lexer:
    """Splits RAM source into per-line token lists.

    Each line is cut on whitespace. A token starting with ``#`` ends the
    line, except in the argument slot right after the keyword, where it is
    kept so the instruction can reject it (or use it as a label name). The
    first token of a line is a ``LABEL`` when it ends with ``:``;
    every other token is classified by its shape as ``IMMEDIATE`` (``=N``),
    ``INDIRECT`` (``^N``), ``NUMBER`` (``N``) or a plain ``WORD``.
    """

    def __init__(self, text: str, filename: str = "<string>") -> None:
        self.text = text
        self.filename = filename

    def lines(self) -> Iterator[Tuple[int, List[Token]]]:
        for index, line in enumerate(self.text.split("\n"), start=1):
            yield index, self.tokenize_line(line, index)

    def tokenize_line(self, line: str, line_no: int = 1) -> List[Token]:
        tokens: List[Token] = []
        tokens_append = tokens.append
        argument_slot = 1
        for match in _WORD.finditer(line):
            word = match.group()
            column = match.start() + 1
            # The argument slot is taken as written; any other ``#`` token
            # starts a comment.
            if word.startswith(COMMENT_START) and len(tokens) != argument_slot:
                break
            if not tokens and word.endswith(LABEL_END):
                tokens_append(Token("LABEL", word.rstrip(LABEL_END), line_no, column))
                argument_slot = 2
                continue
            tokens_append(Token(self.classify(word), word, line_no, column))
        return tokens

    @staticmethod
    def classify(word: str) -> str:
        for token_type, pattern in TOKEN_PATTERNS:
            if pattern.fullmatch(word):
                return token_type
        return "WORD"
