from enum import Enum
from typing import Dict, List

from .errors import UnbalancedIndentation


class Section(Enum):
    INCLUDES = "includes"
    HEADER = "header"
    AUXILIARIES = "auxiliaries"
    BODY = "body"


class Sections:
    """Named append-only text sections.

    The order they end up in the file is decided by the assembler, not by the
    order in which they were written to.
    """

    def __init__(self):
        self.parts: Dict[Section, List[str]] = {s: [] for s in Section}

    def append(self, section: Section, text: str) -> None:
        if text:
            self.parts[section].append(text)

    def text(self, section: Section) -> str:
        return "".join(self.parts[section])

    def is_empty(self, section: Section) -> bool:
        return not self.parts[section]


class SourceBuffer:
    """Indentation-aware accumulator for statements.

    Braces are counted naively: a ``{`` or ``}`` inside a string literal or a
    comment shifts the indentation all the same.
    """

    def __init__(self, indent: int = 2):
        self.indent = indent
        self.depth = 0
        self.newline = True
        self.chunks: List[str] = []

    def emit(self, text: str) -> None:
        lines = text.split("\n")
        for i, line in enumerate(lines):
            if i > 0:
                self.chunks.append("\n")
                self.newline = True
            self._print_formatted(line)

    def _print_formatted(self, s: str) -> None:
        if not s:
            return
        if self.newline:
            shift = -1 if s[0] == "}" else 0
            if self.depth + shift < 0:
                raise UnbalancedIndentation(f"unmatched '}}' in: {s}")
            self.chunks.append(" " * (self.indent * (self.depth + shift)))
            self.newline = False
        self.chunks.append(s)
        for c in s:
            if c == "{":
                self.depth += 1
            elif c == "}":
                if self.depth == 0:
                    raise UnbalancedIndentation(f"unmatched '}}' in: {s}")
                self.depth -= 1

    def getvalue(self) -> str:
        return "".join(self.chunks)

    def flush(self, sections: Sections, section: Section) -> None:
        sections.append(section, self.getvalue())
        self.chunks = []

    def finalize(self) -> None:
        if self.depth != 0:
            raise UnbalancedIndentation(
                f"indentation depth is {self.depth} at the end of code generation"
            )
