import logging
import os
from dataclasses import dataclass, fields
from typing import IO, Any, Dict, List, Optional, Sequence, Set, Union

from .auxiliaries import Aux, AuxiliaryEngine
from .buffer import Section, Sections, SourceBuffer
from .constants import ConstantPool, array, float_literal, initializer
from .errors import (
    DuplicateSymbol,
    InvalidName,
    InvalidOption,
    StaleInterfaceUsage,
    UndefinedSymbol,
)
from .function import Function
from .sparsity import Sparsity
from .symbols import LocalVariables, SymbolRegistry, check_name, require_name

logger = logging.getLogger(__name__)

DLL_EXPORT = "CASADI_SYMBOL_EXPORT "


@dataclass
class Options:
    verbose: bool = True
    mex: bool = False
    cpp: bool = False
    main: bool = False
    casadi_real: str = "double"
    codegen_scalars: bool = False
    with_header: bool = False
    with_mem: bool = False
    with_export: bool = True
    indent: int = 2

    @staticmethod
    def from_dict(opts: Optional[Dict[str, Any]]) -> "Options":
        o = Options()
        known = {f.name for f in fields(Options)}
        for key, value in (opts or {}).items():
            if key not in known:
                raise InvalidOption(f"Unrecognized option: {key}")
            if key == "casadi_real":
                value = str(value)
            elif key == "indent":
                if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                    raise InvalidOption(f"indent must be a non-negative integer, got {value!r}")
            elif not isinstance(value, bool):
                raise InvalidOption(f"{key} must be true or false, got {value!r}")
            setattr(o, key, value)
        return o


class CodeGenerator:
    def __init__(self, name: str, opts: Optional[Dict[str, Any]] = None):
        self.opts = Options.from_dict(opts)

        # Divide name into base and suffix (if any)
        base, dot, ext = name.rpartition(".")
        if dot:
            self.name = base
            self.suffix = "." + ext
        else:
            self.name = name
            self.suffix = ".cpp" if self.opts.cpp else ".c"
        if not check_name(self.name):
            raise InvalidName(f"'{self.name}' cannot be used as a base name for generated code")

        self.dll_export = DLL_EXPORT if self.opts.with_export else ""

        self.registry = SymbolRegistry()
        self.int_constants = ConstantPool(int)
        self.float_constants = ConstantPool(float)
        self.sections = Sections()
        self.buffer = SourceBuffer(self.opts.indent)
        self.aux = AuxiliaryEngine(self.registry, self.sections)
        self.locals = LocalVariables()

        self.added_functions: Dict[int, str] = {}
        self.exposed_fname: List[str] = []
        self.sparsity_meta: Set[str] = set()

        self.add_include("math.h")
        if self.opts.main:
            self.add_include("stdio.h")
        if self.opts.mex or self.opts.main:
            self.add_include("string.h")
        if self.opts.with_mem:
            self.add_include("casadi/mem.h", False)
            self.sections.append(Section.HEADER, "#include <casadi/mem.h>\n")
        if self.opts.mex:
            self.add_include("mex.h", False, "MATLAB_MEX_FILE")

    # ---- buffer ----

    def emit(self, *parts: str) -> "CodeGenerator":
        self.buffer.emit("".join(parts))
        return self

    def flush(self, section: Section = Section.BODY) -> None:
        self.buffer.flush(self.sections, section)

    def comment(self, s: str) -> None:
        if self.opts.verbose:
            self.emit("/* ", s, " */\n")

    # ---- symbols ----

    def shorthand(self, name: str, allow_adding: bool = True) -> str:
        """Define macro casadi_<name>; with allow_adding=False it must be new."""
        if not allow_adding and self.registry.is_defined(name):
            raise DuplicateSymbol(f"Duplicate macro: {name}")
        return self.registry.define(name)

    def lookup_shorthand(self, name: str) -> str:
        return self.registry.resolve(name)

    def add_include(self, new_include: str, relative_path: bool = False, use_ifdef: str = "") -> None:
        if self.registry.add_include(new_include, relative_path, use_ifdef):
            self.sections.append(Section.INCLUDES, self.registry.include_text(new_include))

    def add_external(self, new_external: str) -> None:
        self.registry.add_external(new_external)

    def local(self, name: str, type: str, ref: str = "") -> None:
        self.locals.declare(name, type, ref)

    def init_local(self, name: str, default: str) -> None:
        self.locals.init(name, default)

    def emit_locals(self) -> None:
        for decl in self.locals.declarations():
            self.emit(decl, "\n")
        self.locals.clear()

    # ---- constants ----

    def constant(self, v: Union[float, Sequence[float], Sequence[int]], integer: Optional[bool] = None) -> str:
        if isinstance(v, (int, float)):
            return float_literal(float(v))
        if integer is None:
            integer = len(v) > 0 and all(isinstance(x, int) and not isinstance(x, bool) for x in v)
        if integer:
            return self.shorthand(f"s{self.int_constants.intern(v)}")
        return self.shorthand(f"c{self.float_constants.intern(v)}")

    def get_constant(self, v: Sequence[float], integer: bool = False) -> int:
        pool = self.int_constants if integer else self.float_constants
        return pool.lookup(v)

    def add_sparsity(self, sp: Sparsity) -> int:
        return self.int_constants.intern(sp.compress())

    def sparsity(self, sp: Sparsity) -> str:
        return self.shorthand(f"s{self.add_sparsity(sp)}")

    def get_sparsity(self, sp: Sparsity) -> int:
        return self.int_constants.lookup(sp.compress())

    # ---- work vectors ----

    def work(self, n: int, sz: int) -> str:
        if n < 0 or sz == 0:
            return "0"
        if sz == 1 and not self.opts.codegen_scalars:
            return f"(&w{n})"
        return f"w{n}"

    def workel(self, n: int) -> str:
        if n < 0:
            return "0"
        return ("*" if self.opts.codegen_scalars else "") + f"w{n}"

    @staticmethod
    def array(type: str, name: str, length: int, default: str = "") -> str:
        return array(type, name, length, default)

    # ---- dependencies ----

    def add_dependency(self, f: Function) -> str:
        """Generate ``f`` unless already done; return its generated name."""
        fname = self.added_functions.get(f.handle)
        if fname is not None:
            return fname

        fname = self.shorthand(f"f{len(self.added_functions)}")
        self.added_functions[f.handle] = fname
        logger.debug("generating %s as %s", f.name, fname)

        f.codegen_declarations(self)
        f.codegen(self, fname)

        if f.has_refcount:
            self.emit("void ", fname, "_incref(void) {\n")
            f.codegen_incref(self)
            self.emit("}\n\n")
            self.emit("void ", fname, "_decref(void) {\n")
            f.codegen_decref(self)
            self.emit("}\n\n")

        self.flush(Section.BODY)
        return fname

    def dependency_name(self, f: Function) -> str:
        fname = self.added_functions.get(f.handle)
        if fname is None:
            raise UndefinedSymbol(f"{f.name} has not been added as a dependency")
        return fname

    def __call__(self, f: Function, arg: str, res: str, iw: str, w: str, mem: str = "0") -> str:
        return f"{self.dependency_name(f)}({arg}, {res}, {iw}, {w}, {mem})"

    def add(self, f: Function, with_jac_sparsity: bool = False) -> None:
        require_name(f.name, "function name")
        if f.name in self.exposed_fname:
            raise DuplicateSymbol(f"a function named '{f.name}' has already been added")

        codegen_name = self.add_dependency(f)

        self.emit(
            self.declare(f.signature(f.name)), " {\n",
            "return ", codegen_name, "(arg, res, iw, w, mem);\n",
            "}\n\n",
        )

        f.codegen_meta(self)

        if with_jac_sparsity:
            jac = f.get_jacobian_sparsity()
            self.add_io_sparsities("jac_" + f.name, f.sparsity_in, [jac])

        self.flush(Section.BODY)
        self.exposed_fname.append(f.name)

    def add_io_sparsities(self, name: str, sp_in: Sequence[Sparsity], sp_out: Sequence[Sparsity]) -> None:
        if name in self.sparsity_meta:
            return
        self.sparsity_meta.add(name)

        for side, sps in (("in", sp_in), ("out", sp_out)):
            self.emit(self.declare(f"const int* {name}_sparsity_{side}(int i)"), " {\n", "switch (i) {\n")
            for i, sp in enumerate(sps):
                self.emit(f"case {i}: return {self.sparsity(sp)};\n")
            self.emit("default: return 0;\n", "}\n", "}\n\n")

    def declare(self, s: str) -> str:
        cpp_prefix = 'extern "C" ' if self.opts.cpp else ""
        if self.opts.with_header:
            self.sections.append(Section.HEADER, f"{cpp_prefix}{s};\n")
        return cpp_prefix + self.dll_export + s

    # ---- auxiliary calls ----

    def add_auxiliary(self, f: Union[Aux, str], inst: Optional[Sequence[str]] = None) -> None:
        if isinstance(f, str):
            try:
                f = Aux(f)
            except ValueError:
                raise UndefinedSymbol(f"no auxiliary routine named '{f}'") from None
        self.aux.request(f, inst)

    def copy(self, arg: str, n: int, res: str) -> str:
        self.add_auxiliary(Aux.COPY)
        return f"casadi_copy({arg}, {n}, {res});"

    def fill(self, res: str, n: int, v: str) -> str:
        self.add_auxiliary(Aux.FILL)
        return f"casadi_fill({res}, {n}, {v});"

    def swap(self, n: int, x: str, inc_x: int, y: str, inc_y: int) -> str:
        self.add_auxiliary(Aux.SWAP)
        return f"casadi_swap({n}, {x}, {inc_x}, {y}, {inc_y});"

    def dot(self, n: int, x: str, y: str) -> str:
        self.add_auxiliary(Aux.DOT)
        return f"casadi_dot({n}, {x}, {y})"

    def bilin(self, A: str, sp_A: Sparsity, x: str, y: str) -> str:
        self.add_auxiliary(Aux.BILIN)
        return f"casadi_bilin({A}, {self.sparsity(sp_A)}, {x}, {y})"

    def rank1(self, A: str, sp_A: Sparsity, alpha: str, x: str, y: str) -> str:
        self.add_auxiliary(Aux.RANK1)
        return f"casadi_rank1({A}, {self.sparsity(sp_A)}, {alpha}, {x}, {y});"

    def iamax(self, n: int, x: str, inc_x: int = 1) -> str:
        self.add_auxiliary(Aux.IAMAX)
        return f"casadi_iamax({n}, {x}, {inc_x})"

    def norm_1(self, n: int, x: str) -> str:
        self.add_auxiliary(Aux.NORM_1)
        return f"casadi_norm_1({n}, {x})"

    def norm_2(self, n: int, x: str) -> str:
        self.add_auxiliary(Aux.NORM_2)
        return f"casadi_norm_2({n}, {x})"

    def norm_inf(self, n: int, x: str) -> str:
        self.add_auxiliary(Aux.NORM_INF)
        return f"casadi_norm_inf({n}, {x})"

    def axpy(self, n: int, a: str, x: str, y: str) -> str:
        self.add_auxiliary(Aux.AXPY)
        return f"casadi_axpy({n}, {a}, {x}, {y});"

    def scal(self, n: int, alpha: str, x: str) -> str:
        self.add_auxiliary(Aux.SCAL)
        return f"casadi_scal({n}, {alpha}, {x});"

    def mv(self, x: str, sp_x: Sparsity, y: str, z: str, tr: bool) -> str:
        self.add_auxiliary(Aux.MV)
        return f"casadi_mv({x}, {self.sparsity(sp_x)}, {y}, {z}, {int(tr)});"

    def mv_dense(self, x: str, nrow_x: int, ncol_x: int, y: str, z: str, tr: bool) -> str:
        self.add_auxiliary(Aux.MV_DENSE)
        return f"casadi_mv_dense({x}, {nrow_x}, {ncol_x}, {y}, {z}, {int(tr)});"

    def mtimes(self, x: str, sp_x: Sparsity, y: str, sp_y: Sparsity,
               z: str, sp_z: Sparsity, w: str, tr: bool) -> str:
        self.add_auxiliary(Aux.MTIMES)
        return (
            f"casadi_mtimes({x}, {self.sparsity(sp_x)}, {y}, {self.sparsity(sp_y)}, "
            f"{z}, {self.sparsity(sp_z)}, {w}, {int(tr)});"
        )

    def project(self, arg: str, sp_arg: Sparsity, res: str, sp_res: Sparsity, w: str) -> str:
        # Matching patterns need no work vector
        if sp_arg == sp_res:
            return self.copy(arg, sp_arg.nnz(), res)
        self.add_auxiliary(Aux.PROJECT)
        return (
            f"casadi_project({arg}, {self.sparsity(sp_arg)}, {res}, "
            f"{self.sparsity(sp_res)}, {w});"
        )

    def densify(self, arg: str, sp_arg: Sparsity, res: str, tr: bool = False) -> str:
        self.add_auxiliary(Aux.DENSIFY)
        return f"casadi_densify({arg}, {self.sparsity(sp_arg)}, {res}, {int(tr)});"

    def trans(self, x: str, sp_x: Sparsity, y: str, sp_y: Sparsity, iw: str) -> str:
        self.add_auxiliary(Aux.TRANS)
        return f"casadi_trans({x},{self.sparsity(sp_x)}, {y}, {self.sparsity(sp_y)}, {iw})"

    def interpn(self, ndim: int, grid: str, offset: str, values: str, x: str,
                lookup_mode: str, iw: str, w: str) -> str:
        self.add_auxiliary(Aux.INTERPN)
        return (
            f"casadi_interpn({ndim}, {grid}, {offset}, {values}, {x}, "
            f"{lookup_mode}, {iw}, {w});"
        )

    def interpn_grad(self, grad: str, ndim: int, grid: str, offset: str, values: str,
                     x: str, lookup_mode: str, iw: str, w: str) -> str:
        self.add_auxiliary(Aux.INTERPN_GRAD)
        return (
            f"casadi_interpn_grad({grad}, {ndim}, {grid}, {offset}, {values}, {x}, "
            f"{lookup_mode}, {iw}, {w});"
        )

    def nd_boor_eval(self, ret: str, n_dims: int, knots: str, offset: str, degree: str,
                     strides: str, c: str, m: int, x: str, lookup_mode: str,
                     iw: str, w: str) -> str:
        self.add_auxiliary(Aux.ND_BOOR_EVAL)
        return (
            f"casadi_nd_boor_eval({ret}, {n_dims}, {knots}, {offset}, {degree}, {strides}, "
            f"{c}, {m}, {x}, {lookup_mode}, {iw}, {w});"
        )

    def finite_diff(self, yf: str, yc: str, yb: str, J: str, h: str, n_y: int, scheme: int) -> str:
        self.add_auxiliary(Aux.FINITE_DIFF)
        return f"casadi_finite_diff({yf}, {yc}, {yb}, {J}, {h}, {n_y}, {scheme});"

    def to_mex(self, sp: Sparsity, arg: str) -> str:
        self.add_auxiliary(Aux.TO_MEX)
        return f"casadi_to_mex({self.sparsity(sp)}, {arg});"

    def from_mex(self, arg: str, res: str, res_off: int, sp_res: Sparsity, w: str) -> str:
        if res_off != 0:
            res = f"{res}+{res_off}"
        self.add_auxiliary(Aux.FROM_MEX)
        return f"casadi_from_mex({arg}, {res}, {self.sparsity(sp_res)}, {w});"

    def printf(self, fmt: str, *args: str) -> str:
        self.add_include("stdio.h")
        return "PRINTF(" + ", ".join([f'"{fmt}"', *args]) + ");"

    # ---- assembly ----

    def casadi_real_guard(self) -> str:
        return (
            "#ifndef casadi_real\n"
            f"#define casadi_real {self.opts.casadi_real}\n"
            "#endif\n\n"
        )

    def render(self) -> str:
        self.buffer.finalize()
        cpp = self.opts.cpp
        s: List[str] = []

        # Prefix internal symbols to avoid symbol collisions
        s.append(
            "/* How to prefix internal symbols */\n"
            "#ifdef CODEGEN_PREFIX\n"
            "  #define NAMESPACE_CONCAT(NS, ID) _NAMESPACE_CONCAT(NS, ID)\n"
            "  #define _NAMESPACE_CONCAT(NS, ID) NS ## ID\n"
            "  #define CASADI_PREFIX(ID) NAMESPACE_CONCAT(CODEGEN_PREFIX, ID)\n"
            "#else\n"
            f"  #define CASADI_PREFIX(ID) {self.name}_ ## ID\n"
            "#endif\n\n"
        )

        s.append(self.sections.text(Section.INCLUDES))
        s.append("\n")

        s.append(self.casadi_real_guard())

        s.append(
            "#define to_double(x) " + ("static_cast<double>(x)" if cpp else "(double) x") + "\n"
            "#define to_int(x) " + ("static_cast<int>(x)" if cpp else "(int) x") + "\n"
            "#define CASADI_CAST(x,y) " + ("static_cast<x>(y)" if cpp else "(x) y") + "\n\n"
        )

        s.append(
            "/* Pre-c99 compatibility */\n"
            "#if __STDC_VERSION__ < 199901L\n"
            "  #define fmin CASADI_PREFIX(fmin)\n"
            "  casadi_real fmin(casadi_real x, casadi_real y) { return x<y ? x : y;}\n"
            "  #define fmax CASADI_PREFIX(fmax)\n"
            "  casadi_real fmax(casadi_real x, casadi_real y) { return x>y ? x : y;}\n"
            "#endif\n\n"
        )

        s.append(
            "/* CasADi extensions */\n"
            "#define sq CASADI_PREFIX(sq)\n"
            "casadi_real sq(casadi_real x) { return x*x;}\n"
            "#define sign CASADI_PREFIX(sign)\n"
            "casadi_real CASADI_PREFIX(sign)(casadi_real x) { return x<0 ? -1 : x>0 ? 1 : x;}\n"
            "#define twice CASADI_PREFIX(twice)\n"
            "casadi_real twice(casadi_real x) { return x+x;}\n\n"
        )

        macros = list(self.registry.macros())
        if macros:
            s.append("/* Add prefix to internal symbols */\n")
            for macro, target in macros:
                s.append(f"#define {macro} CASADI_PREFIX({target})\n")
            s.append("\n")

        s.append("/* Printing routine */\n")
        if self.opts.mex:
            s.append(
                "#ifdef MATLAB_MEX_FILE\n"
                "  #define PRINTF mexPrintf\n"
                "#else\n"
                "  #define PRINTF printf\n"
                "#endif\n"
            )
        else:
            s.append("#define PRINTF printf\n")
        s.append("\n")

        if self.opts.with_export:
            s.append(
                "/* Symbol visibility in DLLs */\n"
                "#ifndef CASADI_SYMBOL_EXPORT\n"
                "  #if defined(_WIN32) || defined(__WIN32__) || defined(__CYGWIN__)\n"
                "    #if defined(STATIC_LINKED)\n"
                "      #define CASADI_SYMBOL_EXPORT\n"
                "    #else\n"
                "      #define CASADI_SYMBOL_EXPORT __declspec(dllexport)\n"
                "    #endif\n"
                "  #elif defined(__GNUC__) && defined(GCC_HASCLASSVISIBILITY)\n"
                '    #define CASADI_SYMBOL_EXPORT __attribute__ ((visibility ("default")))\n'
                "  #else\n"
                "    #define CASADI_SYMBOL_EXPORT\n"
                "  #endif\n"
                "#endif\n\n"
            )

        if len(self.int_constants):
            for i, v in enumerate(self.int_constants.entries):
                s.append(array("static const int", f"casadi_s{i}", len(v), initializer(v)))
            s.append("\n")

        if len(self.float_constants):
            for i, v in enumerate(self.float_constants.entries):
                s.append(array("static const casadi_real", f"casadi_c{i}", len(v), initializer(v)))
            s.append("\n")

        externals = self.registry.external_lines()
        if externals:
            s.append("/* External functions */\n")
            for decl in externals:
                s.append(decl + "\n")
            s.append("\n\n")

        s.append(self.sections.text(Section.AUXILIARIES))
        s.append(self.sections.text(Section.BODY))
        s.append("\n")
        return "".join(s)

    def dump(self, stream: IO[str]) -> None:
        stream.write(self.render())

    def generate_mex(self) -> str:
        names = self.exposed_fname
        s: List[str] = ["#ifdef MATLAB_MEX_FILE\n"]
        if self.opts.cpp:
            s.append('extern "C"\n')
        s.append("void mexFunction(int resc, mxArray *resv[], int argc, const mxArray *argv[]) {\n")
        buf_len = max((len(n) for n in names), default=0)
        s.append(f"  char buf[{buf_len + 1}];\n")
        s.append("  int buf_ok = --argc >= 0 && !mxGetString(*argv++, buf, sizeof(buf));\n")
        s.append("  if (!buf_ok) {\n")
        s.append("    /* name error */\n")
        for n in names:
            s.append(f'  }} else if (strcmp(buf, "{n}")==0) {{\n')
            s.append(f"    return mex_{n}(resc, resv, argc, argv);\n")
        s.append("  }\n")
        s.append('  mexErrMsgTxt("First input should be a command string. Possible values:')
        s.extend(f" '{n}'" for n in names)
        s.append('");\n')
        s.append("}\n")
        s.append("#endif\n")
        return "".join(s)

    def generate_main(self) -> str:
        names = self.exposed_fname
        s: List[str] = ["int main(int argc, char* argv[]) {\n"]
        s.append("  if (argc<2) {\n")
        s.append("    /* name error */\n")
        for n in names:
            s.append(f'  }} else if (strcmp(argv[1], "{n}")==0) {{\n')
            s.append(f"    return main_{n}(argc-2, argv+2);\n")
        s.append("  }\n")
        s.append('  fprintf(stderr, "First input should be a command string. Possible values:')
        s.extend(f" '{n}'" for n in names)
        s.append('\\n");\n')
        s.append("  return 1;\n")
        s.append("}\n")
        return "".join(s)

    def dispatch_wrapper(self, kind: str) -> str:
        if kind == "mex":
            return self.generate_mex()
        if kind == "main":
            return self.generate_main()
        raise InvalidOption(f"unknown dispatch wrapper '{kind}', expected 'mex' or 'main'")

    def _file_open(self) -> str:
        s = (
            "/* This file was automatically generated by CasADi.\n"
            "   The CasADi copyright holders make no ownership claim of its contents. */\n"
        )
        if not self.opts.cpp:
            s += '#ifdef __cplusplus\nextern "C" {\n#endif\n\n'
        return s

    def _file_close(self) -> str:
        if not self.opts.cpp:
            return '#ifdef __cplusplus\n} /* extern "C" */\n#endif\n'
        return ""

    def source_text(self) -> str:
        s = self._file_open() + self.render()
        if self.opts.mex:
            s += self.generate_mex()
        if self.opts.main:
            s += self.generate_main()
        return s + self._file_close()

    def header_text(self) -> str:
        return (
            self._file_open()
            + self.casadi_real_guard()
            + self.sections.text(Section.HEADER)
            + self._file_close()
        )

    def generate(self, prefix: str = "") -> str:
        """Write the source (and header) files; return the source path."""
        if self.name + self.suffix in prefix:
            raise StaleInterfaceUsage(
                "The signature of CodeGenerator.generate has changed. "
                "Instead of providing the filename, only provide the prefix."
            )

        fullname = prefix + self.name + self.suffix
        out_dir = os.path.dirname(fullname)
        if out_dir:
            os.makedirs(out_dir, exist_ok=True)
        with open(fullname, "w", encoding="utf-8") as f:
            f.write(self.source_text())
        logger.info("wrote %s", fullname)

        if self.opts.with_header:
            hname = prefix + self.name + ".h"
            with open(hname, "w", encoding="utf-8") as f:
                f.write(self.header_text())
            logger.info("wrote %s", hname)
        return fullname
