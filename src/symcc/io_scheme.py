from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from .errors import InvalidName


@dataclass(frozen=True)
class SchemeEntry:
    name: str
    enum: str
    description: str


# name -> entries; the input/output side is part of the scheme name
BUILTIN_SCHEMES: Dict[str, Tuple[SchemeEntry, ...]] = {
    "IntegratorInput": (
        SchemeEntry("x0", "INTEGRATOR_X0", "Differential state at the initial time"),
        SchemeEntry("p", "INTEGRATOR_P", "Parameters"),
        SchemeEntry("z0", "INTEGRATOR_Z0", "Initial guess for the algebraic variable"),
        SchemeEntry("rx0", "INTEGRATOR_RX0", "Backward differential state at the final time"),
        SchemeEntry("rp", "INTEGRATOR_RP", "Backward parameter vector"),
        SchemeEntry("rz0", "INTEGRATOR_RZ0", "Initial guess for the backwards algebraic variable"),
    ),
    "IntegratorOutput": (
        SchemeEntry("xf", "INTEGRATOR_XF", "Differential state at the final time"),
        SchemeEntry("qf", "INTEGRATOR_QF", "Quadrature state at the final time"),
        SchemeEntry("zf", "INTEGRATOR_ZF", "Algebraic variable at the final time"),
        SchemeEntry("rxf", "INTEGRATOR_RXF", "Backward differential state at the initial time"),
        SchemeEntry("rqf", "INTEGRATOR_RQF", "Backward quadrature state at the initial time"),
        SchemeEntry("rzf", "INTEGRATOR_RZF", "Backward algebraic variable at the initial time"),
    ),
    "NLPInput": (
        SchemeEntry("x", "NL_X", "Decision variable"),
        SchemeEntry("p", "NL_P", "Fixed parameter"),
    ),
    "NLPOutput": (
        SchemeEntry("f", "NL_F", "Objective function"),
        SchemeEntry("g", "NL_G", "Constraint function"),
    ),
}


class IOScheme:
    """Names of the inputs or outputs of a function."""

    def name(self) -> str:
        raise NotImplementedError

    def entries(self) -> List[str]:
        raise NotImplementedError

    def entry_enum(self, i: int) -> str:
        raise NotImplementedError

    def describe_input(self, i: int) -> str:
        raise NotImplementedError

    def describe_output(self, i: int) -> str:
        raise NotImplementedError

    def size(self) -> int:
        return len(self.entries())

    def entry_names(self) -> str:
        return ", ".join(self.entries())

    def entry(self, i: int) -> str:
        entries = self.entries()
        if not 0 <= i < len(entries):
            raise InvalidName(
                f"{self.name()}::entry(): requesting entry for index {i}, "
                f"but IOScheme is only length {len(entries)}"
            )
        return entries[i]

    def index(self, name: str) -> int:
        entries = self.entries()
        if name not in entries:
            raise InvalidName(
                f"{self.name()}::index(): entry '{name}' not available. "
                f"Available entries are {self.entry_names()}"
            )
        return entries.index(name)

    def __repr__(self) -> str:
        return f"{self.name()}({self.entry_names()})"


class BuiltinIOScheme(IOScheme):
    def __init__(self, scheme: str):
        if scheme not in BUILTIN_SCHEMES:
            raise InvalidName(
                f"unknown io scheme '{scheme}', expected one of {', '.join(BUILTIN_SCHEMES)}"
            )
        self.scheme = scheme

    def name(self) -> str:
        return self.scheme

    def entries(self) -> List[str]:
        return [e.name for e in BUILTIN_SCHEMES[self.scheme]]

    def entry_enum(self, i: int) -> str:
        self.entry(i)
        return BUILTIN_SCHEMES[self.scheme][i].enum

    def describe_input(self, i: int) -> str:
        self.entry(i)
        e = BUILTIN_SCHEMES[self.scheme][i]
        return f"Input argument #{i} ({e.name}, {e.description})"

    def describe_output(self, i: int) -> str:
        self.entry(i)
        e = BUILTIN_SCHEMES[self.scheme][i]
        return f"Output argument #{i} ({e.name}, {e.description})"

    def __repr__(self) -> str:
        return f"builtinIO({self.scheme})"


class CustomIOScheme(IOScheme):
    def __init__(self, entries: Sequence[str]):
        self._entries = list(entries)

    def name(self) -> str:
        return "customIO"

    def entries(self) -> List[str]:
        return list(self._entries)

    def entry_enum(self, i: int) -> str:
        return ""

    def describe_input(self, i: int) -> str:
        return f"Input argument #{i} ({self.entry(i)})"

    def describe_output(self, i: int) -> str:
        return f"Output argument #{i} ({self.entry(i)})"


def default_scheme(prefix: str, n: int) -> CustomIOScheme:
    return CustomIOScheme([f"{prefix}{i}" for i in range(n)])
