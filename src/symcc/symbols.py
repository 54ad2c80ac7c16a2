import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

from .errors import DuplicateSymbol, InvalidName, TypeMismatch, UndefinedSymbol

logger = logging.getLogger(__name__)

SHORTHAND_PREFIX = "casadi_"

C_KEYWORDS = {
    "auto", "break", "case", "char", "const", "continue", "default", "do",
    "double", "else", "enum", "extern", "float", "for", "goto", "if",
    "inline", "int", "long", "register", "restrict", "return", "short",
    "signed", "sizeof", "static", "struct", "switch", "typedef", "union",
    "unsigned", "void", "volatile", "while",
}

_IDENT_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")


def mangle(name: str) -> str:
    return "".join(ch if (ch.isalnum() or ch == "_") else "_" for ch in name)


def check_name(name: str) -> bool:
    if not _IDENT_RE.match(name):
        return False
    if "__" in name:
        return False
    return name not in C_KEYWORDS


def require_name(name: str, what: str = "name") -> str:
    if not check_name(name):
        raise InvalidName(
            f"{what} '{name}' is not valid: must start with a letter, contain only "
            "letters, digits and single underscores, and not be a C keyword"
        )
    return name


# ----------------------------
# Shorthands, includes, externals
# ----------------------------


class SymbolRegistry:
    """Namespaced macro names plus the include and extern bookkeeping.

    Only short names are stored; the prefix a macro expands to is chosen when
    the file is rendered (``CODEGEN_PREFIX`` if defined, else the base name).
    """

    def __init__(self):
        self.shorthands: Dict[str, str] = {}
        self.includes: Dict[str, Tuple[bool, str]] = {}
        self.externals: Dict[str, None] = {}

    def define(self, short: str, target: Optional[str] = None) -> str:
        target = short if target is None else target
        prev = self.shorthands.get(short)
        if prev is not None and prev != target:
            raise DuplicateSymbol(
                f"Duplicate macro: {short} (already maps to {prev}, not {target})"
            )
        if prev is None:
            self.shorthands[short] = target
            logger.debug("shorthand %s -> %s", short, target)
        return SHORTHAND_PREFIX + short

    def resolve(self, short: str) -> str:
        if short not in self.shorthands:
            raise UndefinedSymbol(f"No such macro: {short}")
        return SHORTHAND_PREFIX + short

    def is_defined(self, short: str) -> bool:
        return short in self.shorthands

    def macros(self) -> Iterator[Tuple[str, str]]:
        for short, target in self.shorthands.items():
            yield SHORTHAND_PREFIX + short, target

    def add_include(self, name: str, relative_path: bool = False, use_ifdef: str = "") -> bool:
        if name in self.includes:
            return False
        self.includes[name] = (relative_path, use_ifdef)
        return True

    def include_text(self, name: str) -> str:
        relative_path, use_ifdef = self.includes[name]
        line = f'#include "{name}"\n' if relative_path else f"#include <{name}>\n"
        if use_ifdef:
            return f"#ifdef {use_ifdef}\n{line}#endif\n"
        return line

    def add_external(self, decl: str) -> None:
        self.externals.setdefault(decl, None)

    def external_lines(self) -> List[str]:
        return list(self.externals)


# ----------------------------
# Local variables of a function body
# ----------------------------


@dataclass(frozen=True)
class LocalBinding:
    type: str
    ref: str = ""


class LocalVariables:
    def __init__(self):
        self.bindings: Dict[str, LocalBinding] = {}
        self.defaults: Dict[str, str] = {}

    def declare(self, name: str, type: str, ref: str = "") -> None:
        new = LocalBinding(type=type, ref=ref)
        old = self.bindings.get(name)
        if old is None:
            self.bindings[name] = new
        elif old != new:
            raise TypeMismatch(
                f"Type mismatch for {name}: '{old.type} {old.ref}' vs '{type} {ref}'"
            )

    def init(self, name: str, default: str) -> None:
        if name in self.defaults:
            raise DuplicateSymbol(f"{name} already defined")
        self.defaults[name] = default

    def declarations(self) -> List[str]:
        # One declaration per type, in the order types first appear
        by_type: Dict[str, List[str]] = {}
        for name, b in self.bindings.items():
            item = f"{b.ref}{name}"
            if name in self.defaults:
                item += f"={self.defaults[name]}"
            by_type.setdefault(b.type, []).append(item)
        return [f"{ty} {', '.join(items)};" for ty, items in by_type.items()]

    def clear(self) -> None:
        self.bindings.clear()
        self.defaults.clear()
