import os
import sys
import tempfile
import unittest

ROOT = os.path.dirname(os.path.dirname(__file__))
SRC = os.path.join(ROOT, "src")

sys.path.insert(0, SRC)

from symcc.codegen import CodeGenerator, Options  # noqa: E402
from symcc.errors import (  # noqa: E402
    ConstantNotFound,
    DuplicateSymbol,
    InvalidName,
    InvalidOption,
    StaleInterfaceUsage,
    UnbalancedIndentation,
    UndefinedSymbol,
)
from symcc.function import CFunction  # noqa: E402
from symcc.io_scheme import CustomIOScheme  # noqa: E402
from symcc.sparsity import Sparsity  # noqa: E402

SIG = "(const casadi_real** arg, casadi_real** res, int* iw, casadi_real* w, void* mem)"


def make_fn(name, body=("res[0][0] = arg[0][0];",), **kw):
    return CFunction(name, list(body), [Sparsity.dense(1)], [Sparsity.dense(1)], **kw)


class OptionsTests(unittest.TestCase):
    def test_defaults(self):
        o = Options.from_dict(None)
        self.assertTrue(o.verbose)
        self.assertTrue(o.with_export)
        self.assertFalse(o.mex)
        self.assertEqual(o.casadi_real, "double")
        self.assertEqual(o.indent, 2)

    def test_unknown_option(self):
        with self.assertRaises(InvalidOption):
            CodeGenerator("gen", {"colour": True})

    def test_non_bool_flag(self):
        for bad in ("false", 1, None):
            with self.assertRaises(InvalidOption):
                Options.from_dict({"mex": bad})
        self.assertFalse(Options.from_dict({"mex": False}).mex)

    def test_bad_indent(self):
        for bad in (-1, "2", True):
            with self.assertRaises(InvalidOption):
                Options.from_dict({"indent": bad})


class NameTests(unittest.TestCase):
    def test_suffix(self):
        self.assertEqual(CodeGenerator("gen").suffix, ".c")
        self.assertEqual(CodeGenerator("gen", {"cpp": True}).suffix, ".cpp")
        g = CodeGenerator("gen.cc")
        self.assertEqual((g.name, g.suffix), ("gen", ".cc"))

    def test_invalid_base_name(self):
        for bad in ("my gen", "1gen", "a__b.c"):
            with self.assertRaises(InvalidName):
                CodeGenerator(bad)


class ShorthandTests(unittest.TestCase):
    def test_add_and_lookup(self):
        g = CodeGenerator("gen")
        with self.assertRaises(UndefinedSymbol):
            g.lookup_shorthand("x")
        self.assertEqual(g.shorthand("x"), "casadi_x")
        self.assertEqual(g.shorthand("x"), "casadi_x")
        self.assertEqual(g.lookup_shorthand("x"), "casadi_x")

    def test_new_only(self):
        g = CodeGenerator("gen")
        self.assertEqual(g.shorthand("y", allow_adding=False), "casadi_y")
        with self.assertRaises(DuplicateSymbol):
            g.shorthand("y", allow_adding=False)
        g.constant([1.0])
        with self.assertRaises(DuplicateSymbol):
            g.shorthand("c0", allow_adding=False)


class IncludeTests(unittest.TestCase):
    def test_default_includes(self):
        src = CodeGenerator("gen").render()
        self.assertIn("#include <math.h>\n", src)
        self.assertNotIn("#include <stdio.h>", src)

    def test_main_and_mex_includes(self):
        src = CodeGenerator("gen", {"main": True, "mex": True}).render()
        self.assertIn("#include <stdio.h>\n", src)
        self.assertIn("#include <string.h>\n", src)
        self.assertIn("#ifdef MATLAB_MEX_FILE\n#include <mex.h>\n#endif\n", src)
        self.assertEqual(src.count("#include <string.h>"), 1)

    def test_printf_adds_stdio_once(self):
        g = CodeGenerator("gen")
        self.assertEqual(g.printf("x=%g\\n", "x"), 'PRINTF("x=%g\\n", x);')
        g.printf("y")
        self.assertEqual(g.render().count("#include <stdio.h>"), 1)


class DependencyTests(unittest.TestCase):
    def test_sub_function_generated_once(self):
        helper = make_fn("helper", ["res[0][0] = 42;"])
        a = make_fn("a", ["return $helper(arg, res, iw, w, mem);"], calls=[helper])
        b = make_fn("b", ["return $helper(arg, res, iw, w, mem);"], calls=[helper])
        g = CodeGenerator("gen")
        g.add(a)
        g.add(b)
        src = g.render()
        self.assertEqual(src.count("res[0][0] = 42;"), 1)
        self.assertEqual(g.add_dependency(helper), "casadi_f1")
        self.assertIn("return casadi_f1(arg, res, iw, w, mem);", src)
        # Callees are written before their callers
        self.assertLess(src.index("static int casadi_f1("), src.index("static int casadi_f0("))

    def test_equal_functions_are_distinct(self):
        g = CodeGenerator("gen")
        self.assertEqual(g.add_dependency(make_fn("x")), "casadi_f0")
        self.assertEqual(g.add_dependency(make_fn("x")), "casadi_f1")

    def test_call_expression(self):
        g = CodeGenerator("gen")
        f = make_fn("f")
        with self.assertRaises(UndefinedSymbol):
            g(f, "arg", "res", "iw", "w")
        g.add(f)
        self.assertEqual(g(f, "arg", "res", "iw", "w"), "casadi_f0(arg, res, iw, w, 0)")

    def test_generated_body(self):
        g = CodeGenerator("gen")
        g.add(make_fn("f", local_vars=[("a", "casadi_real", ""), ("p", "casadi_real", "*")]))
        src = g.render()
        self.assertIn(
            "/* f */\n"
            "static int casadi_f0" + SIG + " {\n"
            "  casadi_real a, *p;\n"
            "  res[0][0] = arg[0][0];\n"
            "  return 0;\n"
            "}\n",
            src,
        )
        self.assertIn(
            "CASADI_SYMBOL_EXPORT int f" + SIG + " {\n"
            "  return casadi_f0(arg, res, iw, w, mem);\n"
            "}\n",
            src,
        )

    def test_quiet_mode_skips_comments(self):
        g = CodeGenerator("gen", {"verbose": False})
        g.add(make_fn("f"))
        self.assertNotIn("/* f */", g.render())

    def test_placeholders(self):
        g = CodeGenerator("gen")
        g.add(make_fn("f", ["res[0][0] = $c[1] + $n[0];"],
                      constants={"c": [1.0, 2.0]}, int_constants={"n": [3]}))
        src = g.render()
        self.assertIn("res[0][0] = casadi_c0[1] + casadi_s0[0];", src)
        with self.assertRaises(UndefinedSymbol):
            CodeGenerator("gen").add(make_fn("f", ["$missing;"]))

    def test_refcount_hooks(self):
        g = CodeGenerator("gen")
        g.add(make_fn("f", incref=["counter++;"], decref=["counter--;"]))
        src = g.render()
        self.assertIn("void casadi_f0_incref(void) {\n  counter++;\n}\n", src)
        self.assertIn("void casadi_f0_decref(void) {\n  counter--;\n}\n", src)

    def test_unknown_auxiliary(self):
        g = CodeGenerator("gen")
        with self.assertRaises(UndefinedSymbol):
            g.add(make_fn("f", auxiliaries=["nope"]))


class ExposeTests(unittest.TestCase):
    def test_order_and_duplicates(self):
        g = CodeGenerator("gen", {"main": True})
        g.add(make_fn("b"))
        g.add(make_fn("a"))
        with self.assertRaises(DuplicateSymbol):
            g.add(make_fn("a"))
        self.assertEqual(g.exposed_fname, ["b", "a"])
        main = g.generate_main()
        self.assertLess(main.index('"b"'), main.index('"a"'))
        self.assertIn("Possible values: 'b' 'a'\\n", main)

    def test_invalid_function_name(self):
        g = CodeGenerator("gen")
        with self.assertRaises(InvalidName):
            g.add(make_fn("bad name"))
        self.assertEqual(g.exposed_fname, [])

    def test_meta_functions(self):
        g = CodeGenerator("gen")
        g.add(make_fn("f", scheme_in=CustomIOScheme(["x"]), sz_iw=3, sz_w=4))
        src = g.render()
        self.assertIn("CASADI_SYMBOL_EXPORT int f_n_in(void) { return 1;}", src)
        self.assertIn("CASADI_SYMBOL_EXPORT int f_n_out(void) { return 1;}", src)
        self.assertIn('case 0: return "x";', src)
        self.assertIn('case 0: return "o0";', src)
        self.assertIn("f_sparsity_in(int i)", src)
        self.assertIn("if (sz_iw) *sz_iw = 3;", src)
        self.assertIn("if (sz_w) *sz_w = 4;", src)
        self.assertNotIn("jac_f_sparsity", src)

    def test_jacobian_sparsity(self):
        g = CodeGenerator("gen")
        g.add(make_fn("f"), with_jac_sparsity=True)
        src = g.render()
        self.assertIn("jac_f_sparsity_in(int i)", src)
        self.assertIn("jac_f_sparsity_out(int i)", src)

    def test_io_sparsities_once_per_name(self):
        g = CodeGenerator("gen")
        g.add_io_sparsities("x", [Sparsity.dense(2)], [])
        g.add_io_sparsities("x", [Sparsity.dense(3)], [])
        g.flush()
        src = g.render()
        self.assertEqual(src.count("x_sparsity_in(int i)"), 1)
        self.assertIn("static const int casadi_s0[6] = {2, 1, 0, 2, 0, 1};", src)

    def test_main_without_functions(self):
        g = CodeGenerator("gen", {"main": True})
        self.assertEqual(
            g.generate_main(),
            "int main(int argc, char* argv[]) {\n"
            "  if (argc<2) {\n"
            "    /* name error */\n"
            "  }\n"
            '  fprintf(stderr, "First input should be a command string. Possible values:\\n");\n'
            "  return 1;\n"
            "}\n",
        )

    def test_mex_buffer_size(self):
        g = CodeGenerator("gen", {"mex": True})
        self.assertIn("char buf[1];", g.generate_mex())
        g.add(make_fn("f"))
        g.add(make_fn("long_name"))
        mex = g.generate_mex()
        self.assertIn("char buf[10];", mex)
        self.assertIn("return mex_long_name(resc, resv, argc, argv);", mex)
        self.assertTrue(mex.startswith("#ifdef MATLAB_MEX_FILE\n"))

    def test_dispatch_wrapper(self):
        g = CodeGenerator("gen")
        self.assertEqual(g.dispatch_wrapper("main"), g.generate_main())
        with self.assertRaises(InvalidOption):
            g.dispatch_wrapper("python")


class DeclareTests(unittest.TestCase):
    def test_c_with_header(self):
        g = CodeGenerator("gen", {"with_header": True})
        self.assertEqual(g.declare("int f(void)"), "CASADI_SYMBOL_EXPORT int f(void)")
        self.assertIn("int f(void);\n", g.header_text())

    def test_cpp(self):
        g = CodeGenerator("gen", {"with_header": True, "cpp": True})
        self.assertEqual(g.declare("int f(void)"), 'extern "C" CASADI_SYMBOL_EXPORT int f(void)')
        self.assertIn('extern "C" int f(void);\n', g.header_text())

    def test_without_export(self):
        g = CodeGenerator("gen", {"with_export": False})
        self.assertEqual(g.declare("int f(void)"), "int f(void)")
        self.assertNotIn("Symbol visibility", g.render())
        self.assertEqual(g.header_text().count("int f(void)"), 0)

    def test_header_guard_first(self):
        g = CodeGenerator("gen", {"with_header": True, "casadi_real": "float"})
        g.add(make_fn("f"))
        h = g.header_text()
        self.assertIn("#define casadi_real float\n", h)
        self.assertLess(h.index("#define casadi_real"), h.index("int f("))


class ConstantTests(unittest.TestCase):
    def test_pooling(self):
        g = CodeGenerator("gen")
        self.assertEqual(g.constant([1.0, 2.0, 3.0]), "casadi_c0")
        self.assertEqual(g.constant([1.0, 2.0, 3.0]), "casadi_c0")
        self.assertEqual(g.constant([1, 2, 3]), "casadi_s0")
        self.assertEqual(g.constant([1, 2], integer=False), "casadi_c1")
        self.assertEqual(g.get_constant([1, 2, 3], integer=True), 0)
        with self.assertRaises(ConstantNotFound):
            g.get_constant([9.0])
        src = g.render()
        self.assertIn("static const casadi_real casadi_c0[3] = {1., 2., 3.};", src)
        self.assertIn("static const int casadi_s0[3] = {1, 2, 3};", src)
        self.assertIn("#define casadi_c0 CASADI_PREFIX(c0)", src)

    def test_signed_zero_arrays_shared(self):
        g = CodeGenerator("gen")
        self.assertEqual(g.constant([0.0, 1.0]), "casadi_c0")
        self.assertEqual(g.constant([-0.0, 1.0]), "casadi_c0")
        src = g.render()
        self.assertIn("static const casadi_real casadi_c0[2] = {0., 1.};", src)
        self.assertNotIn("casadi_c1", src)

    def test_scalar(self):
        g = CodeGenerator("gen")
        self.assertEqual(g.constant(0.5), "5.0000000000000000e-01")
        self.assertEqual(g.constant(2), "2.")

    def test_sparsity(self):
        g = CodeGenerator("gen")
        sp = Sparsity.dense(2)
        self.assertEqual(g.sparsity(sp), "casadi_s0")
        self.assertEqual(g.get_sparsity(sp), 0)
        with self.assertRaises(ConstantNotFound):
            g.get_sparsity(Sparsity.dense(3))

    def test_work(self):
        g = CodeGenerator("gen")
        self.assertEqual(g.work(2, 1), "(&w2)")
        self.assertEqual(g.work(2, 5), "w2")
        self.assertEqual(g.work(-1, 5), "0")
        self.assertEqual(g.work(3, 0), "0")
        self.assertEqual(g.workel(3), "w3")
        s = CodeGenerator("gen", {"codegen_scalars": True})
        self.assertEqual(s.work(2, 1), "w2")
        self.assertEqual(s.workel(3), "*w3")


class CallHelperTests(unittest.TestCase):
    def test_project_equal_patterns_copies(self):
        g = CodeGenerator("gen")
        sp = Sparsity.dense(2)
        self.assertEqual(g.project("x", sp, "y", sp, "w"), "casadi_copy(x, 2, y);")
        self.assertEqual([k.value for k, _t in g.aux.order], ["copy"])

    def test_project_different_patterns(self):
        g = CodeGenerator("gen")
        sp = Sparsity.from_triplets(2, 1, [(0, 0)])
        self.assertEqual(g.project("x", sp, "y", Sparsity.dense(2), "w"),
                         "casadi_project(x, casadi_s0, y, casadi_s1, w);")

    def test_from_mex_offset(self):
        g = CodeGenerator("gen")
        sp = Sparsity.dense(2)
        self.assertEqual(g.from_mex("p", "res[0]", 3, sp, "w"),
                         "casadi_from_mex(p, res[0]+3, casadi_s0, w);")
        self.assertEqual(g.from_mex("p", "res[0]", 0, sp, "w"),
                         "casadi_from_mex(p, res[0], casadi_s0, w);")
        self.assertIn("#ifdef MATLAB_MEX_FILE\n", g.render())

    def test_blas_helpers(self):
        g = CodeGenerator("gen")
        self.assertEqual(g.dot(3, "x", "y"), "casadi_dot(3, x, y)")
        self.assertEqual(g.axpy(3, "a", "x", "y"), "casadi_axpy(3, a, x, y);")
        self.assertEqual(g.fill("x", 3, "0."), "casadi_fill(x, 3, 0.);")
        self.assertEqual(g.norm_2(3, "x"), "casadi_norm_2(3, x)")
        src = g.render()
        self.assertEqual(src.count("casadi_real casadi_dot("), 1)


class RenderTests(unittest.TestCase):
    def test_section_order(self):
        g = CodeGenerator("gen", {"main": True})
        g.add(make_fn("f", ["$c[0];"], constants={"c": [1.5]},
                      externals=["int ext(int);"], auxiliaries=["copy"]))
        src = g.render()
        markers = [
            "CASADI_PREFIX(ID) gen_ ## ID",
            "#include <math.h>",
            "#define casadi_real double",
            "#define to_double(x) (double) x",
            "/* Pre-c99 compatibility */",
            "/* CasADi extensions */",
            "/* Add prefix to internal symbols */",
            "/* Printing routine */",
            "/* Symbol visibility in DLLs */",
            "static const int casadi_s0",
            "static const casadi_real casadi_c0",
            "/* External functions */",
            "void casadi_copy(",
            "static int casadi_f0(",
        ]
        positions = [src.index(m) for m in markers]
        self.assertEqual(positions, sorted(positions))

    def test_cpp_casts_and_mex_printf(self):
        src = CodeGenerator("gen", {"cpp": True, "mex": True}).render()
        self.assertIn("#define to_double(x) static_cast<double>(x)", src)
        self.assertIn("  #define PRINTF mexPrintf\n", src)

    def test_unbalanced_render(self):
        g = CodeGenerator("gen")
        g.emit("{\n")
        with self.assertRaises(UnbalancedIndentation):
            g.render()
        g.emit("}\n")
        g.flush()
        g.render()

    def test_source_text_balanced(self):
        g = CodeGenerator("gen", {"main": True, "mex": True})
        g.add(make_fn("f", auxiliaries=["interpn", "from_mex", "mtimes"]))
        src = g.source_text()
        self.assertTrue(src.startswith("/* This file was automatically generated by CasADi."))
        self.assertIn('extern "C" {', src)
        self.assertEqual(src.count("{"), src.count("}"))

    def test_cpp_source_has_no_extern_block(self):
        g = CodeGenerator("gen", {"cpp": True})
        self.assertNotIn('extern "C" {', g.source_text())


class GenerateTests(unittest.TestCase):
    def test_writes_files(self):
        with tempfile.TemporaryDirectory() as tmp:
            g = CodeGenerator("gen", {"with_header": True})
            g.add(make_fn("f"))
            prefix = os.path.join(tmp, "out") + os.sep
            path = g.generate(prefix)
            self.assertEqual(path, prefix + "gen.c")
            with open(path, encoding="utf-8") as f:
                self.assertIn("int f(", f.read())
            with open(prefix + "gen.h", encoding="utf-8") as f:
                self.assertIn("int f(", f.read())

    def test_stale_prefix(self):
        g = CodeGenerator("gen")
        with self.assertRaises(StaleInterfaceUsage):
            g.generate("out/gen.c")


if __name__ == "__main__":
    unittest.main()
