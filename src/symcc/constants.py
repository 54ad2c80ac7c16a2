import hashlib
import logging
import math
import struct
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from .errors import ConstantNotFound

logger = logging.getLogger(__name__)

Scalar = Union[int, float]
Hasher = Callable[[Tuple[Scalar, ...]], int]


def hash_ints(values: Tuple[int, ...]) -> int:
    h = hashlib.blake2b(digest_size=8)
    for v in values:
        h.update(str(v).encode("ascii"))
        h.update(b",")
    return int.from_bytes(h.digest(), "little")


def hash_floats(values: Tuple[float, ...]) -> int:
    h = hashlib.blake2b(digest_size=8)
    for v in values:
        # All NaNs hash alike, and so do both zeros, matching _same
        if math.isnan(v):
            v = math.nan
        elif v == 0:
            v = 0.0
        h.update(struct.pack("<d", v))
    return int.from_bytes(h.digest(), "little")


def _same(a: Sequence[Scalar], b: Sequence[Scalar]) -> bool:
    if len(a) != len(b):
        return False
    for x, y in zip(a, b):
        if x != y and not (isinstance(x, float) and isinstance(y, float)
                           and math.isnan(x) and math.isnan(y)):
            return False
    return True


class ConstantPool:
    """Content-addressed store of numeric sequences.

    Indices are dense, zero based and handed out in first-insertion order.
    The hash only narrows the search; equality is always checked element-wise.
    """

    def __init__(self, kind: type = float, hasher: Optional[Hasher] = None):
        self.kind = kind
        self.hasher = hasher or (hash_floats if kind is float else hash_ints)
        self.entries: List[Tuple[Scalar, ...]] = []
        self.buckets: Dict[int, List[int]] = {}

    def __len__(self) -> int:
        return len(self.entries)

    def __getitem__(self, i: int) -> Tuple[Scalar, ...]:
        return self.entries[i]

    def _key(self, values: Sequence[Scalar]) -> Tuple[Scalar, ...]:
        return tuple(self.kind(v) for v in values)

    def _find(self, key: Tuple[Scalar, ...], h: int) -> int:
        for ind in self.buckets.get(h, ()):
            if _same(key, self.entries[ind]):
                return ind
        return -1

    def intern(self, values: Sequence[Scalar]) -> int:
        key = self._key(values)
        h = self.hasher(key)
        ind = self._find(key, h)
        if ind >= 0:
            return ind
        ind = len(self.entries)
        self.entries.append(key)
        self.buckets.setdefault(h, []).append(ind)
        logger.debug("%s constant #%d (%d elements)", self.kind.__name__, ind, len(key))
        return ind

    def lookup(self, values: Sequence[Scalar]) -> int:
        key = self._key(values)
        ind = self._find(key, self.hasher(key))
        if ind < 0:
            raise ConstantNotFound("Constant not found")
        return ind


# ----------------------------
# Literal rendering
# ----------------------------


def float_literal(v: float) -> str:
    if math.isnan(v):
        return "NAN"
    if math.isinf(v):
        return "-INFINITY" if v < 0 else "INFINITY"
    if v == int(v):
        return f"{int(v)}."
    return f"{v:.16e}"


def initializer(values: Sequence[Scalar]) -> str:
    if values and isinstance(values[0], float):
        body = ", ".join(float_literal(v) for v in values)
    else:
        body = ", ".join(str(v) for v in values)
    return "{" + body + "}"


def array(type: str, name: str, length: int, default: str = "") -> str:
    if length == 0:
        return f"{type} *{name} = 0;\n"
    s = f"{type} {name}[{length}]"
    if default:
        s += f" = {default}"
    return s + ";\n"
