import itertools
from string import Template
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Tuple

from .errors import UndefinedSymbol
from .io_scheme import IOScheme, default_scheme
from .sparsity import Sparsity

if TYPE_CHECKING:
    from .codegen import CodeGenerator

_handles = itertools.count()


class Function:
    """What the code generator needs from a symbolic function.

    Every instance gets an opaque ``handle``; the generator keys its record of
    already generated sub-functions on it, so two distinct objects with equal
    contents are still generated twice.
    """

    has_refcount = False

    def __init__(
        self,
        name: str,
        sparsity_in: Sequence[Sparsity],
        sparsity_out: Sequence[Sparsity],
        scheme_in: Optional[IOScheme] = None,
        scheme_out: Optional[IOScheme] = None,
    ):
        self.handle = next(_handles)
        self.name = name
        self.sparsity_in = list(sparsity_in)
        self.sparsity_out = list(sparsity_out)
        self.scheme_in = scheme_in or default_scheme("i", len(self.sparsity_in))
        self.scheme_out = scheme_out or default_scheme("o", len(self.sparsity_out))
        self.sz_iw = 0
        self.sz_w = 0

    def n_in(self) -> int:
        return len(self.sparsity_in)

    def n_out(self) -> int:
        return len(self.sparsity_out)

    def signature(self, fname: str) -> str:
        return (
            f"int {fname}(const casadi_real** arg, casadi_real** res, "
            "int* iw, casadi_real* w, void* mem)"
        )

    def get_jacobian_sparsity(self) -> Sparsity:
        nnz_in = sum(sp.nnz() for sp in self.sparsity_in)
        nnz_out = sum(sp.nnz() for sp in self.sparsity_out)
        return Sparsity.dense(nnz_out, nnz_in)

    def codegen_declarations(self, g: "CodeGenerator") -> None:
        pass

    def codegen(self, g: "CodeGenerator", fname: str) -> None:
        raise NotImplementedError(f"{type(self).__name__} cannot be code generated")

    def codegen_incref(self, g: "CodeGenerator") -> None:
        pass

    def codegen_decref(self, g: "CodeGenerator") -> None:
        pass

    def codegen_meta(self, g: "CodeGenerator") -> None:
        g.emit(g.declare(f"int {self.name}_n_in(void)"), " { return ", str(self.n_in()), ";}\n\n")
        g.emit(g.declare(f"int {self.name}_n_out(void)"), " { return ", str(self.n_out()), ";}\n\n")
        self._codegen_names(g, "in", self.scheme_in)
        self._codegen_names(g, "out", self.scheme_out)
        g.add_io_sparsities(self.name, self.sparsity_in, self.sparsity_out)
        g.emit(
            g.declare(f"int {self.name}_work(int *sz_arg, int* sz_res, int *sz_iw, int *sz_w)"),
            " {\n",
            f"if (sz_arg) *sz_arg = {self.n_in()};\n",
            f"if (sz_res) *sz_res = {self.n_out()};\n",
            f"if (sz_iw) *sz_iw = {self.sz_iw};\n",
            f"if (sz_w) *sz_w = {self.sz_w};\n",
            "return 0;\n",
            "}\n\n",
        )

    def _codegen_names(self, g: "CodeGenerator", side: str, scheme: IOScheme) -> None:
        g.emit(g.declare(f"const char* {self.name}_name_{side}(int i)"), " {\n", "switch (i) {\n")
        for i, entry in enumerate(scheme.entries()):
            g.emit(f'case {i}: return "{entry}";\n')
        g.emit("default: return 0;\n", "}\n", "}\n\n")


class CFunction(Function):
    """A function whose body is literal C.

    Body lines may refer to ``$name`` placeholders: sub-functions listed in
    ``calls`` (replaced by their generated name) and pooled constants listed in
    ``constants`` / ``int_constants`` (replaced by the constant's symbol).
    Names in ``auxiliaries`` are requested from the routine catalog.
    """

    def __init__(
        self,
        name: str,
        body: Sequence[str],
        sparsity_in: Sequence[Sparsity],
        sparsity_out: Sequence[Sparsity],
        calls: Sequence[Function] = (),
        constants: Optional[Dict[str, Sequence[float]]] = None,
        int_constants: Optional[Dict[str, Sequence[int]]] = None,
        auxiliaries: Sequence[str] = (),
        externals: Sequence[str] = (),
        local_vars: Sequence[Tuple[str, str, str]] = (),
        incref: Sequence[str] = (),
        decref: Sequence[str] = (),
        jacobian_sparsity: Optional[Sparsity] = None,
        sz_iw: int = 0,
        sz_w: int = 0,
        scheme_in: Optional[IOScheme] = None,
        scheme_out: Optional[IOScheme] = None,
    ):
        super().__init__(name, sparsity_in, sparsity_out, scheme_in, scheme_out)
        self.body = list(body)
        self.calls = list(calls)
        self.constants = dict(constants or {})
        self.int_constants = dict(int_constants or {})
        self.auxiliaries = list(auxiliaries)
        self.externals = list(externals)
        self.local_vars = list(local_vars)
        self.incref = list(incref)
        self.decref = list(decref)
        self.jacobian_sparsity = jacobian_sparsity
        self.has_refcount = bool(self.incref or self.decref)
        self.sz_iw = sz_iw
        self.sz_w = sz_w

    def get_jacobian_sparsity(self) -> Sparsity:
        if self.jacobian_sparsity is not None:
            return self.jacobian_sparsity
        return super().get_jacobian_sparsity()

    def codegen_declarations(self, g: "CodeGenerator") -> None:
        for f in self.calls:
            g.add_dependency(f)
        for decl in self.externals:
            g.add_external(decl)
        for aux in self.auxiliaries:
            g.add_auxiliary(aux)

    def _placeholders(self, g: "CodeGenerator") -> Dict[str, str]:
        mapping: Dict[str, str] = {}
        for f in self.calls:
            mapping[f.name] = g.dependency_name(f)
        for key, values in self.constants.items():
            mapping[key] = g.constant([float(v) for v in values], integer=False)
        for key, ivalues in self.int_constants.items():
            mapping[key] = g.constant([int(v) for v in ivalues], integer=True)
        return mapping

    def codegen(self, g: "CodeGenerator", fname: str) -> None:
        mapping = self._placeholders(g)
        lines: List[str] = []
        for line in self.body:
            try:
                lines.append(Template(line).substitute(mapping))
            except KeyError as e:
                raise UndefinedSymbol(f"{self.name}: unknown placeholder ${e.args[0]}") from None

        g.comment(f"{self.name}")
        g.emit("static ", self.signature(fname), " {\n")
        for name, ty, ref in self.local_vars:
            g.local(name, ty, ref)
        g.emit_locals()
        for line in lines:
            g.emit(line, "\n")
        g.emit("return 0;\n", "}\n\n")

    def codegen_incref(self, g: "CodeGenerator") -> None:
        for line in self.incref:
            g.emit(line, "\n")

    def codegen_decref(self, g: "CodeGenerator") -> None:
        for line in self.decref:
            g.emit(line, "\n")
