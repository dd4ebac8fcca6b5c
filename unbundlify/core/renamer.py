"""Scope-aware variable renaming."""

from typing import Optional

from unbundlify.core.analyzer import Scope, Variable

RESERVED_WORDS = frozenset((
    "arguments", "await", "break", "case", "catch", "class", "const", "continue",
    "debugger", "default", "delete", "do", "else", "enum", "eval", "export",
    "extends", "false", "finally", "for", "function", "if", "implements",
    "import", "in", "instanceof", "interface", "let", "new", "null", "package",
    "private", "protected", "public", "return", "static", "super", "switch",
    "this", "throw", "true", "try", "typeof", "undefined", "var", "void",
    "while", "with", "yield",
))


def _is_in_scope(scope: Optional[Scope], name: str) -> bool:
    while scope is not None:
        if name in scope.set:
            return True
        scope = scope.upper
    return False


def choose_unique_name(scope: Scope, candidate: str) -> str:
    """Return ``candidate`` or a numbered variant that is free in ``scope``.

    A name is free when it is not a reserved word and no variable of that name
    is visible from ``scope``. Names starting with a digit get a ``_`` prefix.
    """
    if candidate[:1].isdigit():
        candidate = "_" + candidate

    name = candidate
    suffix = 1
    while name in RESERVED_WORDS or _is_in_scope(scope, name):
        suffix += 1
        name = f"{candidate}{suffix}"
    return name


def _rename_in_child(scope: Scope, old_name: str, new_name: str) -> None:
    # A redeclaration of the old name shadows the renamed variable below here.
    if old_name in scope.set:
        return
    for reference in scope.through:
        if reference.identifier.name == old_name:
            reference.identifier.name = new_name
    for child in scope.child_scopes:
        _rename_in_child(child, old_name, new_name)


def rename_variable(variable: Variable, new_name: str) -> None:
    """Rename a variable at its declarations and every place it is used.

    The variable is marked as deliberately named so later automatic renaming
    passes leave it alone. References made directly in the variable's scope
    are renamed by name, which covers scopes whose references are never bound
    (a script's global scope) and uses of hoisted declarations.
    """
    scope = variable.scope
    old_name = variable.name

    if scope.set.get(old_name) is variable:
        del scope.set[old_name]
    variable.keep_name = True

    for identifier in variable.identifiers:
        identifier.name = new_name
    for reference in variable.references:
        reference.identifier.name = new_name
    for reference in scope.references:
        if reference.identifier.name == old_name:
            reference.identifier.name = new_name
    for child in scope.child_scopes:
        _rename_in_child(child, old_name, new_name)

    variable.name = new_name
    scope.set[new_name] = variable
