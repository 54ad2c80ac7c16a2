from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple


@dataclass(frozen=True)
class Sparsity:
    """Compressed column storage pattern.

    Serialized as ``[nrow, ncol, colind[0..ncol], row[0..nnz-1]]``, which is
    the layout every sparse auxiliary routine reads.
    """

    nrow: int
    ncol: int
    colind: Tuple[int, ...]
    row: Tuple[int, ...]

    @staticmethod
    def dense(nrow: int, ncol: int = 1) -> "Sparsity":
        colind = tuple(c * nrow for c in range(ncol + 1))
        row = tuple(r for _c in range(ncol) for r in range(nrow))
        return Sparsity(nrow, ncol, colind, row)

    @staticmethod
    def from_triplets(nrow: int, ncol: int, entries: Sequence[Tuple[int, int]]) -> "Sparsity":
        cols: List[List[int]] = [[] for _ in range(ncol)]
        for r, c in sorted(set(entries), key=lambda rc: (rc[1], rc[0])):
            if not (0 <= r < nrow and 0 <= c < ncol):
                raise ValueError(f"entry ({r}, {c}) outside a {nrow}x{ncol} pattern")
            cols[c].append(r)
        colind = [0]
        row: List[int] = []
        for rows in cols:
            row.extend(rows)
            colind.append(len(row))
        return Sparsity(nrow, ncol, tuple(colind), tuple(row))

    @staticmethod
    def from_dict(d: dict) -> "Sparsity":
        nrow = int(d["nrow"])
        ncol = int(d.get("ncol", 1))
        if "colind" in d:
            return Sparsity(nrow, ncol, tuple(d["colind"]), tuple(d["row"]))
        return Sparsity.dense(nrow, ncol)

    def __post_init__(self):
        if len(self.colind) != self.ncol + 1:
            raise ValueError(f"colind must have {self.ncol + 1} entries, got {len(self.colind)}")
        if self.colind[-1] != len(self.row):
            raise ValueError("colind[-1] must equal the number of nonzeros")

    def nnz(self) -> int:
        return len(self.row)

    def is_dense(self) -> bool:
        return self.nnz() == self.nrow * self.ncol

    def compress(self) -> List[int]:
        return [self.nrow, self.ncol, *self.colind, *self.row]

    def transpose(self) -> "Sparsity":
        entries = [
            (c, self.row[k])
            for c in range(self.ncol)
            for k in range(self.colind[c], self.colind[c + 1])
        ]
        return Sparsity.from_triplets(self.ncol, self.nrow, entries)


def optional_sparsity(d: Optional[dict]) -> Optional[Sparsity]:
    return None if d is None else Sparsity.from_dict(d)
