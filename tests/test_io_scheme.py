import os
import sys
import unittest

ROOT = os.path.dirname(os.path.dirname(__file__))
SRC = os.path.join(ROOT, "src")

sys.path.insert(0, SRC)

from symcc.errors import InvalidName  # noqa: E402
from symcc.io_scheme import BuiltinIOScheme, CustomIOScheme, default_scheme  # noqa: E402


class CustomSchemeTests(unittest.TestCase):
    def test_entries(self):
        s = CustomIOScheme(["x", "p"])
        self.assertEqual(s.size(), 2)
        self.assertEqual(s.entry(1), "p")
        self.assertEqual(s.index("x"), 0)
        self.assertEqual(s.entry_enum(0), "")
        self.assertEqual(s.describe_input(0), "Input argument #0 (x)")
        self.assertEqual(s.describe_output(1), "Output argument #1 (p)")
        self.assertEqual(repr(s), "customIO(x, p)")

    def test_bad_lookups(self):
        s = CustomIOScheme(["x"])
        with self.assertRaises(InvalidName):
            s.entry(1)
        with self.assertRaises(InvalidName):
            s.index("y")

    def test_default_scheme(self):
        self.assertEqual(default_scheme("i", 3).entries(), ["i0", "i1", "i2"])
        self.assertEqual(default_scheme("o", 0).size(), 0)


class BuiltinSchemeTests(unittest.TestCase):
    def test_nlp_input(self):
        s = BuiltinIOScheme("NLPInput")
        self.assertEqual(s.entries(), ["x", "p"])
        self.assertEqual(s.entry_enum(0), "NL_X")
        self.assertEqual(s.describe_input(1), "Input argument #1 (p, Fixed parameter)")
        self.assertEqual(repr(s), "builtinIO(NLPInput)")

    def test_integrator_output(self):
        s = BuiltinIOScheme("IntegratorOutput")
        self.assertEqual(s.size(), 6)
        self.assertEqual(s.index("rzf"), 5)
        with self.assertRaises(InvalidName):
            s.entry_enum(6)

    def test_unknown_scheme(self):
        with self.assertRaises(InvalidName):
            BuiltinIOScheme("DAEInput")


if __name__ == "__main__":
    unittest.main()
