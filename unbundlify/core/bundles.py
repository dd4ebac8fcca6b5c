"""Splitting Browserify and Webpack bundles into modules.

A bundle is recognized by matching the whole program against known wrapper
shapes. The matching shape yields the module table and, from the loader
code, the entry point. Browserify bundles also record which name each module
used to require another, which is used to reconstruct file paths.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Optional, Union

from unbundlify.core.analyzer import Scope, analyze
from unbundlify.core.nodes import Node, is_node
from unbundlify.core.parser import parse_javascript
from unbundlify.core.patterns import matches
from unbundlify.core.renamer import choose_unique_name, rename_variable
from unbundlify.exceptions import FormatError, ShapeError

logger = logging.getLogger(__name__)

ModuleId = Union[int, str]


class BundleFormat(str, Enum):
    """Supported bundlers."""
    BROWSERIFY = "browserify"
    WEBPACK = "webpack"


BROWSERIFY_PATTERNS = [
    """
    (function() {
      statement1_repeatable_optional;
    })()(expression1, expression2, expression3);
    statement2_repeatable_optional;
    """,
    """
    expression0 = function() {
      statement1_repeatable_optional;
    }()(expression1, expression2, expression3);
    statement2_repeatable_optional;
    """,
    """
    !function() {
      statement1_repeatable_optional;
    }()(expression1, expression2, expression3);
    statement2_repeatable_optional;
    """,
    """
    expression00 = function placeholder0(expression0_repeatable) {
      statement1_repeatable_optional;
    }(expression1, expression2, expression3);
    statement2_repeatable_optional;
    """,
    """
    !function placeholder0(expression0_repeatable) {
      statement1_repeatable_optional;
    }(expression1, expression2, expression3);
    statement2_repeatable_optional;
    """,
    # Standalone (UMD) build
    """
    !function(expression0_repeatable) {
      statement0_repeatable_optional;
    }(function() {
      var placeholder00;
      return function placeholder1(expression00_repeatable) {
        statement1_repeatable_optional;
      }(expression1, expression2, expression3)(expression4);
    });
    statement2_repeatable_optional;
    """,
]

WEBPACK_PATTERNS = [
    # Up to Webpack 4
    """
    (function(expression0) {
      statement1_repeatable_optional;
    })(expression1);
    statement2_repeatable_optional;
    """,
    """
    !function(expression0) {
      statement1_repeatable_optional;
    }(expression1);
    statement2_repeatable_optional;
    """,
    # Result assigned to a global
    """
    placeholder1.placeholder2 = function(expression0) {
      statement1_repeatable_optional;
    }(expression1);
    statement2_repeatable_optional;
    """,
    # Code splitting chunks
    """
    (placeholder1.placeholder2 = placeholder1.placeholder2 || []).push([
      [expression0_literal_repeatable],
      expression1
    ]);
    statement2_repeatable_optional;
    """,
    """
    (placeholder1.placeholder2 = placeholder1.placeholder2 || []).push([
      [expression0_literal_repeatable],
      expression1,
      expression2
    ]);
    statement2_repeatable_optional;
    """,
    """
    "use strict";
    (placeholder1.placeholder2 = placeholder1.placeholder2 || []).push([
      [expression0_literal_repeatable],
      expression1
    ]);
    statement2_repeatable_optional;
    """,
    """
    "use strict";
    (placeholder1.placeholder2 = placeholder1.placeholder2 || []).push([
      [expression0_literal_repeatable],
      expression1,
      expression2
    ]);
    statement2_repeatable_optional;
    """,
    """
    var placeholder1 = placeholder2(
      [expression0_literal_repeatable],
      expression1,
      expression2
    );
    statement2_repeatable_optional;
    """,
    # Universal module definition
    """
    !function(expression0_repeatable) {
      statement0_repeatable_optional;
    }(placeholder00, function() {
      return function(expression00) {
        statement1_repeatable_optional;
      }(expression1).placeholder1;
    });
    statement2_repeatable_optional;
    """,
]

# Loader statements that start the entry module. A pair means: match the
# statement with the first pattern, then any of its `expression1` captures
# with the second.
WEBPACK_ENTRY_PATTERNS: list[Union[str, tuple[str, str]]] = [
    "return placeholder1(placeholder1.s = expression1_literal);",
    "return placeholder1(placeholder1.s = expression1_literal), expression2_repeatable;",
    ("return expression0, expression1_repeatable;", "placeholder1(placeholder1.s = expression1_literal)"),
    "placeholder1(placeholder1.s = expression1_literal);",
    "placeholder1(placeholder1.s = expression1_literal), expression2_repeatable;",
    ("expression0, expression1_repeatable;", "placeholder1(placeholder1.s = expression1_literal)"),
    # JSONP chunk loader
    "placeholder1.push([expression1_literal, expression2_literal_repeatable_optional]);",
    "placeholder1.push([expression1_literal, expression2_literal_repeatable_optional]), expression3_repeatable;",
]

_BROWSERIFY_MODULE = "[expression1, expression2]"
_MODULE_FACTORIES = (
    "(function(expression1_repeatable_optional) { statement1_repeatable_optional; })",
    "((expression1_repeatable_optional) => { statement1_repeatable_optional; })",
)
_EVAL_STATEMENT = "eval(expression1_literal);"

PARAMETER_NAMES = {
    BundleFormat.BROWSERIFY: ("require", "module", "exports"),
    BundleFormat.WEBPACK: ("module", "exports", "require"),
}


@dataclass
class ModuleEntry:
    """One entry of a bundle's module table."""
    module_id: ModuleId
    factory: Node
    dependencies: Optional[Node] = None


@dataclass
class BundleLayout:
    """What was recognized about a bundle before modules are named."""
    format: BundleFormat
    modules: dict[ModuleId, ModuleEntry] = field(default_factory=dict)
    entry_ids: list[ModuleId] = field(default_factory=list)


@dataclass
class BundleModule:
    """A module split out of a bundle.

    ``node`` is the factory function's body; ``scope`` is the factory's
    scope, in which the parameters were renamed to ``require``, ``module``
    and ``exports``.
    """
    name: str
    node: Node
    scope: Scope
    module_id: ModuleId


def iterate_object(node: Node) -> Iterator[tuple[ModuleId, Node]]:
    """Yield ``(key, value)`` pairs of an array or object literal.

    Array holes are skipped; array keys are indexes.

    Raises:
        ShapeError: If ``node`` is not an array/object literal or has
            computed keys
    """
    if node.type == "ArrayExpression":
        captures = matches("[expression1_repeatable_optional]", node)
        for index, element in enumerate(captures["expression1"]):
            if element is not None:
                yield index, element
        return

    if node.type != "ObjectExpression":
        raise ShapeError(f"Object expected, got {node.type}")

    for prop in node.properties:
        key = prop.key if prop.type == "Property" else None
        captures = matches("expression1_identifier", key) if key is not None and not prop.computed else None
        if captures is not None:
            yield captures["expression1"].name, prop.value
            continue
        captures = matches("expression1_literal", key) if key is not None else None
        if captures is None:
            raise ShapeError("Literal or identifier property name expected")
        yield captures["expression1"].value, prop.value


def _dependency_edges(modules: dict[ModuleId, ModuleEntry]) -> Iterator[tuple[ModuleId, str, ModuleId]]:
    """Yield ``(parent, required name, target)`` in module table order."""
    for module_id, entry in modules.items():
        if entry.dependencies is None:
            continue
        for name, value in iterate_object(entry.dependencies):
            captures = matches("expression1_literal", value)
            if captures is None:
                raise ShapeError("Expected module reference to be a literal expression")
            target = captures["expression1"].value
            # `false` marks a module excluded from the build.
            if target is None or isinstance(target, bool):
                continue
            yield module_id, str(name), target


def _match_first(patterns: list[str], node: Node) -> Optional[dict[str, Any]]:
    for pattern in patterns:
        captures = matches(pattern, node)
        if captures is not None:
            return captures
    return None


def _webpack_entries(statements: list[Node]) -> list[ModuleId]:
    entries = []
    for statement in statements:
        for pattern in WEBPACK_ENTRY_PATTERNS:
            if isinstance(pattern, tuple):
                outer = matches(pattern[0], statement)
                captures = None
                if outer is not None:
                    for expression in outer["expression1"]:
                        captures = matches(pattern[1], expression)
                        if captures is not None:
                            break
            else:
                captures = matches(pattern, statement)

            if captures is not None:
                entries.append(captures["expression1"].value)
                break
    return entries


def extract_modules(tree: Node) -> BundleLayout:
    """Recognize the bundle format and read the module table and entry points.

    Raises:
        FormatError: If the program matches no known bundle shape
        ShapeError: If the module table has an unexpected structure
    """
    captures = _match_first(BROWSERIFY_PATTERNS, tree)
    if captures is not None:
        layout = BundleLayout(format=BundleFormat.BROWSERIFY)
        entries = matches("[expression1_literal_repeatable_optional]", captures["expression3"])
        if entries is None:
            raise ShapeError("Entry points are not an array")
        layout.entry_ids = [literal.value for literal in entries["expression1"]]
    else:
        captures = _match_first(WEBPACK_PATTERNS, tree)
        if captures is None:
            raise FormatError("The script is not in a known Webpack or Browserify format.")
        layout = BundleLayout(format=BundleFormat.WEBPACK)
        if captures.get("statement1"):
            layout.entry_ids = _webpack_entries(captures["statement1"])

    for module_id, value in iterate_object(captures["expression1"]):
        if layout.format == BundleFormat.BROWSERIFY:
            parts = matches(_BROWSERIFY_MODULE, value)
            if parts is None:
                raise ShapeError("Module entry is not a two elements array")
            entry = ModuleEntry(module_id, parts["expression1"], parts["expression2"])
        else:
            if _match_first(list(_MODULE_FACTORIES), value) is None:
                raise ShapeError("Module entry is not a function")
            entry = ModuleEntry(module_id, value)
        layout.modules[module_id] = entry

    logger.debug(
        "Recognized %s bundle with %d modules, entry points %s",
        layout.format.value, len(layout.modules), layout.entry_ids,
    )
    return layout


def normalize_module_path(name: str) -> str:
    """Collapse ``//``, ``/./`` and ``dir/../`` and strip trailing slashes."""
    name = re.sub(r"/+", "/", name)
    while "/./" in name:
        name = name.replace("/./", "/", 1)
    while re.search(r"[^/]+/\.\./", name):
        name = re.sub(r"[^/]+/\.\./", "", name, count=1)
    name = re.sub(r"(?:/\.\.)+/", "/", name, count=1)
    return re.sub(r"/+$", "", name)


def _resolve_required_name(parent_name: str, required: str) -> str:
    if required.endswith("/"):
        required += "index"
    if required.startswith("./"):
        return normalize_module_path(re.sub(r"[^/]+$", "", parent_name) + "/" + required)
    return normalize_module_path(parent_name + "/" + required)


def resolve_module_names(layout: BundleLayout) -> dict[ModuleId, str]:
    """Assign a path to every module of a bundle.

    The entry point becomes ``/main``. For Browserify bundles, modules
    required by package name are placed at ``/<package>/`` and names of other
    modules are derived from the relative names their parents required them
    by, until no more modules can be named. Remaining modules are named after
    their ids. Names still end in ``/`` for package roots.
    """
    names: dict[ModuleId, str] = {}

    if len(layout.entry_ids) == 1:
        names[layout.entry_ids[0]] = "/main"
    else:
        for index, entry_id in enumerate(layout.entry_ids):
            names[entry_id] = f"/main{index + 1}"

    if layout.format == BundleFormat.BROWSERIFY:
        edges = list(_dependency_edges(layout.modules))
        absolute: set[ModuleId] = set()
        for parent, required, target in edges:
            if not required.startswith("./") and not required.startswith("../"):
                names[target] = "/" + required + ("" if required.endswith("/") else "/")
                absolute.add(target)

        for module_id in layout.modules:
            if isinstance(module_id, str) and module_id not in absolute:
                names[module_id] = "/" + module_id
                absolute.add(module_id)

        warned: set[ModuleId] = set()
        changed = True
        while changed:
            changed = False
            for parent, required, target in edges:
                if target in absolute or parent not in names:
                    continue
                candidate = _resolve_required_name(names[parent], required)
                if target not in names:
                    names[target] = candidate
                    changed = True
                elif names[target] != candidate and target not in warned:
                    logger.warning(
                        "Got different names for module %s included from %s: %s and %s",
                        target, names[parent], candidate, names[target],
                    )
                    warned.add(target)

    for module_id in layout.modules:
        if module_id not in names:
            names[module_id] = f"/{module_id}"
    return names


def _rename_parameters(scope: Scope, params: list[Node], new_names: tuple[str, ...]) -> None:
    pairs = []
    for param, new_name in zip(params, new_names):
        variable = scope.set.get(param.name) if param.type == "Identifier" else None
        if variable is not None:
            pairs.append((variable, new_name))

    # Move parameters that hold one of the target names out of the way first.
    targets = {new_name for _, new_name in pairs}
    for variable, new_name in pairs:
        if variable.name in targets and variable.name != new_name:
            rename_variable(variable, choose_unique_name(scope, "_" + new_name))
    for variable, new_name in pairs:
        rename_variable(variable, new_name)


def _inline_eval(factory: Node) -> None:
    """Replace a trailing ``eval("...")`` with the statements it evaluates."""
    body = factory.body.body
    if not body:
        return
    captures = matches(_EVAL_STATEMENT, body[-1])
    if captures is not None and isinstance(captures["expression1"].value, str):
        body[-1:] = parse_javascript(captures["expression1"].value).body


def parse_modules(tree: Node) -> Iterator[BundleModule]:
    """Split a bundle into its modules.

    Args:
        tree: Program of the bundle

    Yields:
        BundleModule for every module of the module table, entry point first

    Raises:
        FormatError: If the program is not a known bundle
        ShapeError: If parts of the bundle have an unexpected structure
    """
    layout = extract_modules(tree)
    names = resolve_module_names(layout)
    parameter_names = PARAMETER_NAMES[layout.format]

    for module_id, name in names.items():
        entry = layout.modules.get(module_id)
        if entry is None:
            continue

        factory = entry.factory
        captures = _match_first(list(_MODULE_FACTORIES), factory)
        if captures is None:
            raise ShapeError("Module code doesn't have the expected format")

        _inline_eval(factory)

        scope = analyze(factory).acquire(factory)
        _rename_parameters(scope, captures["expression1"], parameter_names)

        yield BundleModule(
            name=name.rstrip("/") or "/",
            node=factory.body,
            scope=scope,
            module_id=module_id,
        )


def is_bundle(tree: Node) -> bool:
    """Tell whether a program looks like a supported bundle."""
    return is_node(tree) and (
        _match_first(BROWSERIFY_PATTERNS, tree) is not None
        or _match_first(WEBPACK_PATTERNS, tree) is not None
    )
