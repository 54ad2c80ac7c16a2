#!/usr/bin/env python3
"""
symcc CLI Entry Point

Usage:
    symcc <manifest.json> [--prefix DIR] [-v]

- Reads a JSON manifest describing the output name, code generation options
  and a list of functions with literal C bodies.
- Generates <prefix><name>.c (or .cpp) and, with "with_header", <name>.h.
- Prints the path of the generated source file.

Manifest layout:

    {
      "name": "gen",
      "options": {"main": true, "with_header": true},
      "functions": [
        {"name": "helper", "expose": false,
         "inputs": [{"nrow": 2}], "outputs": [{"nrow": 1}],
         "body": ["res[0][0] = arg[0][0]+arg[0][1];"]},
        {"name": "f", "calls": ["helper"], "auxiliaries": ["copy"],
         "inputs": [{"nrow": 2}], "outputs": [{"nrow": 1}],
         "jacobian_sparsity": true,
         "body": ["return $helper(arg, res, iw, w, mem);"]}
      ]
    }
"""

import json
import logging
import sys
from typing import Dict, List, Optional, Tuple

from .codegen import CodeGenerator
from .errors import CodegenErr, InvalidOption, UndefinedSymbol
from .function import CFunction
from .io_scheme import BuiltinIOScheme, CustomIOScheme, IOScheme
from .sparsity import Sparsity, optional_sparsity

logger = logging.getLogger(__name__)

FUNCTION_KEYS = {
    "name", "expose", "inputs", "outputs", "body", "calls", "constants",
    "int_constants", "auxiliaries", "externals", "locals", "incref", "decref",
    "jacobian_sparsity", "sz_iw", "sz_w", "scheme_in", "scheme_out",
}


def load_scheme(scheme) -> Optional[IOScheme]:
    if scheme is None:
        return None
    if isinstance(scheme, str):
        return BuiltinIOScheme(scheme)
    return CustomIOScheme(scheme)


def load_function(d: dict, known: Dict[str, CFunction]) -> Tuple[CFunction, bool, bool]:
    unknown = set(d) - FUNCTION_KEYS
    if unknown:
        raise InvalidOption(f"{d.get('name', '?')}: unknown function keys {sorted(unknown)}")

    calls: List[CFunction] = []
    for callee in d.get("calls", []):
        if callee not in known:
            raise UndefinedSymbol(f"{d['name']}: calls '{callee}' before it is defined")
        calls.append(known[callee])

    jac = d.get("jacobian_sparsity", False)
    with_jac = bool(jac)
    jac_sp = optional_sparsity(jac) if isinstance(jac, dict) else None

    f = CFunction(
        d["name"],
        d.get("body", []),
        [Sparsity.from_dict(s) for s in d.get("inputs", [])],
        [Sparsity.from_dict(s) for s in d.get("outputs", [])],
        calls=calls,
        constants=d.get("constants"),
        int_constants=d.get("int_constants"),
        auxiliaries=d.get("auxiliaries", []),
        externals=d.get("externals", []),
        local_vars=[tuple(v) for v in d.get("locals", [])],
        incref=d.get("incref", []),
        decref=d.get("decref", []),
        jacobian_sparsity=jac_sp,
        sz_iw=d.get("sz_iw", 0),
        sz_w=d.get("sz_w", 0),
        scheme_in=load_scheme(d.get("scheme_in")),
        scheme_out=load_scheme(d.get("scheme_out")),
    )
    return f, d.get("expose", True), with_jac


def load_manifest(path: str) -> CodeGenerator:
    with open(path, "r", encoding="utf-8") as f:
        manifest = json.load(f)

    g = CodeGenerator(manifest["name"], manifest.get("options"))
    known: Dict[str, CFunction] = {}
    for d in manifest.get("functions", []):
        fn, expose, with_jac = load_function(d, known)
        known[fn.name] = fn
        if expose:
            g.add(fn, with_jac)
        logger.info("loaded %s%s", fn.name, "" if expose else " (internal)")
    return g


def main():
    if len(sys.argv) < 2 or sys.argv[1] in ("-h", "--help"):
        print("usage: symcc <manifest.json> [--prefix DIR] [-v]", file=sys.stderr)
        sys.exit(2)

    manifest = sys.argv[1]
    prefix = ""
    if "--prefix" in sys.argv:
        k = sys.argv.index("--prefix")
        if k + 1 >= len(sys.argv):
            print("error: --prefix needs a directory", file=sys.stderr)
            sys.exit(2)
        prefix = sys.argv[k + 1]
        if prefix and not prefix.endswith(("/", "\\")):
            prefix += "/"

    if "-v" in sys.argv:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    try:
        g = load_manifest(manifest)
        out = g.generate(prefix)
        print(f"Wrote C: {out}")

    except (CodegenErr, OSError, ValueError, KeyError) as e:
        print(f"error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
