# ----------------------------
# Code generation errors
# ----------------------------


class CodegenErr(Exception):
    pass


class InvalidOption(CodegenErr):
    pass


class InvalidName(CodegenErr):
    pass


class UndefinedSymbol(CodegenErr):
    pass


class DuplicateSymbol(CodegenErr):
    pass


class TypeMismatch(CodegenErr):
    pass


class ConstantNotFound(CodegenErr):
    pass


class UnbalancedIndentation(CodegenErr):
    pass


class StaleInterfaceUsage(CodegenErr):
    pass
