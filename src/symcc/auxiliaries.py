import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Set, Tuple

from . import runtime
from .buffer import Section, Sections
from .symbols import SymbolRegistry, mangle

logger = logging.getLogger(__name__)

DEFAULT_SCALAR = "casadi_real"


class Aux(Enum):
    COPY = "copy"
    SWAP = "swap"
    SCAL = "scal"
    AXPY = "axpy"
    DOT = "dot"
    BILIN = "bilin"
    RANK1 = "rank1"
    IAMAX = "iamax"
    INTERPN = "interpn"
    INTERPN_GRAD = "interpn_grad"
    DE_BOOR = "de_boor"
    ND_BOOR_EVAL = "nd_boor_eval"
    FLIP = "flip"
    LOW = "low"
    INTERPN_WEIGHTS = "interpn_weights"
    INTERPN_INTERPOLATE = "interpn_interpolate"
    NORM_1 = "norm_1"
    NORM_2 = "norm_2"
    NORM_INF = "norm_inf"
    FILL = "fill"
    MV = "mv"
    MV_DENSE = "mv_dense"
    MTIMES = "mtimes"
    PROJECT = "project"
    DENSIFY = "densify"
    TRANS = "trans"
    TO_MEX = "to_mex"
    FROM_MEX = "from_mex"
    FINITE_DIFF = "finite_diff"


# (kind, types); None stands for the default scalar type
Dep = Tuple[Aux, Optional[Tuple[str, ...]]]


@dataclass(frozen=True)
class Routine:
    src: str
    arity: int = 1
    deps: Tuple[Dep, ...] = ()
    guard: str = ""


_INT = ("int",)

CATALOG: Dict[Aux, Routine] = {
    Aux.COPY: Routine(runtime.COPY_SRC),
    Aux.SWAP: Routine(runtime.SWAP_SRC),
    Aux.SCAL: Routine(runtime.SCAL_SRC),
    Aux.AXPY: Routine(runtime.AXPY_SRC),
    Aux.DOT: Routine(runtime.DOT_SRC),
    Aux.BILIN: Routine(runtime.BILIN_SRC),
    Aux.RANK1: Routine(runtime.RANK1_SRC),
    Aux.IAMAX: Routine(runtime.IAMAX_SRC),
    Aux.FILL: Routine(runtime.FILL_SRC),
    Aux.NORM_1: Routine(runtime.NORM_1_SRC),
    Aux.NORM_2: Routine(runtime.NORM_2_SRC, deps=((Aux.DOT, None),)),
    Aux.NORM_INF: Routine(runtime.NORM_INF_SRC),
    Aux.MV: Routine(runtime.MV_SRC),
    Aux.MV_DENSE: Routine(runtime.MV_DENSE_SRC),
    Aux.MTIMES: Routine(runtime.MTIMES_SRC),
    Aux.PROJECT: Routine(runtime.PROJECT_SRC),
    Aux.DENSIFY: Routine(runtime.DENSIFY_SRC, arity=2, deps=((Aux.FILL, None),)),
    Aux.TRANS: Routine(runtime.TRANS_SRC),
    Aux.FLIP: Routine(runtime.FLIP_SRC, arity=0),
    Aux.LOW: Routine(runtime.LOW_SRC),
    Aux.INTERPN_WEIGHTS: Routine(runtime.INTERPN_WEIGHTS_SRC, deps=((Aux.LOW, None),)),
    Aux.INTERPN_INTERPOLATE: Routine(runtime.INTERPN_INTERPOLATE_SRC),
    Aux.INTERPN: Routine(
        runtime.INTERPN_SRC,
        deps=(
            (Aux.INTERPN_WEIGHTS, None),
            (Aux.INTERPN_INTERPOLATE, None),
            (Aux.FLIP, ()),
            (Aux.FILL, None),
            (Aux.FILL, _INT),
        ),
    ),
    Aux.INTERPN_GRAD: Routine(runtime.INTERPN_GRAD_SRC, deps=((Aux.INTERPN, None),)),
    Aux.DE_BOOR: Routine(runtime.DE_BOOR_SRC),
    Aux.ND_BOOR_EVAL: Routine(
        runtime.ND_BOOR_EVAL_SRC,
        deps=(
            (Aux.DE_BOOR, None),
            (Aux.FILL, None),
            (Aux.FILL, _INT),
            (Aux.LOW, None),
        ),
    ),
    Aux.FINITE_DIFF: Routine(runtime.FINITE_DIFF_SRC),
    Aux.TO_MEX: Routine(runtime.TO_MEX_SRC, guard="MATLAB_MEX_FILE"),
    Aux.FROM_MEX: Routine(
        runtime.FROM_MEX_SRC, deps=((Aux.FILL, None),), guard="MATLAB_MEX_FILE"
    ),
}


# ----------------------------
# Template rewriting
# ----------------------------

_WORD_RE = re.compile(r"^\w+$")


def _quoted(line: str) -> List[str]:
    return re.findall(r'"([^"]*)"', line)


def replace_token(line: str, key: str, sub: str) -> str:
    if _WORD_RE.match(key):
        return re.sub(r"(?<!\w)" + re.escape(key) + r"(?!\w)", lambda _m: sub, line)
    return line.replace(key, sub)


def instance_suffix(types: Sequence[str]) -> str:
    if all(t == DEFAULT_SCALAR for t in types):
        return ""
    return "".join("_" + mangle(t) for t in types)


def sanitize_source(
    src: str, types: Sequence[str], registry: Optional[SymbolRegistry] = None
) -> str:
    suffix = instance_suffix(types)
    rep: List[Tuple[str, str]] = [(f"T{i + 1}", t) for i, t in enumerate(types)]

    out: List[str] = []
    for line in src.split("\n"):
        # Scaffolding that only keeps the generic form compilable
        if line.startswith("template"):
            continue
        if line.startswith("#define") or line.startswith("#undef"):
            continue
        if line == "inline":
            continue

        if line.startswith("// SYMBOL"):
            sym = _quoted(line)[0]
            if registry is not None:
                registry.define(sym + suffix)
            if suffix:
                rep.append(("casadi_" + sym, "casadi_" + sym + suffix))
            continue

        if line.startswith("// C-REPLACE"):
            key, sub = _quoted(line)[:2]
            rep.append((key, sub))
            continue

        n = line.find("//")
        if n >= 0:
            line = line[:n]
        line = line.rstrip()
        if not line:
            continue

        for key, sub in reversed(rep):
            line = replace_token(line, key, sub)
        out.append(line + "\n")

    out.append("\n")
    return "".join(out)


class AuxiliaryEngine:
    def __init__(self, registry: SymbolRegistry, sections: Sections):
        self.registry = registry
        self.sections = sections
        self.added: Set[Tuple[Aux, Tuple[str, ...]]] = set()
        self.order: List[Tuple[Aux, Tuple[str, ...]]] = []

    @staticmethod
    def normalize(kind: Aux, types: Optional[Sequence[str]]) -> Tuple[str, ...]:
        routine = CATALOG[kind]
        if routine.arity == 0:
            return ()
        inst = (DEFAULT_SCALAR,) if types is None else tuple(types)
        if inst and len(inst) < routine.arity:
            inst = inst + (inst[-1],) * (routine.arity - len(inst))
        return inst

    def request(self, kind: Aux, types: Optional[Sequence[str]] = None) -> None:
        inst = self.normalize(kind, types)
        key = (kind, inst)
        if key in self.added:
            return
        self.added.add(key)

        routine = CATALOG[kind]
        for dep_kind, dep_types in routine.deps:
            self.request(dep_kind, dep_types)

        body = sanitize_source(routine.src, inst, self.registry)
        if routine.guard:
            body = f"#ifdef {routine.guard}\n{body}#endif\n\n"
        self.sections.append(Section.AUXILIARIES, body)
        self.order.append(key)
        logger.debug("auxiliary %s%s", kind.value, instance_suffix(inst))

    def symbol(self, kind: Aux, types: Optional[Sequence[str]] = None) -> str:
        """C name of an instantiation (requesting it if needed)."""
        self.request(kind, types)
        return "casadi_" + kind.value + instance_suffix(self.normalize(kind, types))
