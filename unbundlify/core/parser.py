"""JavaScript parsing using esprima."""

from pathlib import Path
from typing import Any

import esprima
from rich.console import Console

from unbundlify.core.nodes import Node
from unbundlify.exceptions import ScriptParseError

console = Console()

# Parser metadata that must not leak into structural comparisons.
_SKIPPED_FIELDS = frozenset((
    "range",
    "loc",
    "leadingComments",
    "trailingComments",
    "innerComments",
    "comments",
    "tokens",
    "errors",
))

# `tolerant` lets a script use `return` at the top level, which module
# bodies and pattern fragments rely on.
_PARSE_OPTIONS = {"tolerant": True}

_MAX_SAFE_INTEGER = 2 ** 53


def parse_javascript(source_code: str) -> Node:
    """Parse JavaScript code into a normalized syntax tree.

    Args:
        source_code: The JavaScript source code to parse

    Returns:
        Program node with location data stripped

    Raises:
        ScriptParseError: If the source is not valid JavaScript
    """
    try:
        program = esprima.parseScript(source_code, _PARSE_OPTIONS)
    except Exception as e:
        raise ScriptParseError(f"Failed to parse JavaScript: {e}") from e
    return _to_node(program)


def parse_file(file_path: Path) -> Node:
    """Parse a JavaScript file.

    Args:
        file_path: Path to the JavaScript file

    Returns:
        Program node for the file
    """
    source_code = file_path.read_text(encoding="utf-8")
    try:
        return parse_javascript(source_code)
    except ScriptParseError as e:
        raise ScriptParseError(f"{file_path}: {e}") from e


def _to_node(value: Any) -> Any:
    """Convert esprima objects into plain Node values."""
    if isinstance(value, (list, tuple)):
        return [_to_node(item) for item in value]

    if isinstance(value, dict):
        fields = value.items()
    elif hasattr(value, "__dict__") and not isinstance(value, type):
        fields = vars(value).items()
    else:
        return value

    node = Node()
    for key, item in fields:
        if key in _SKIPPED_FIELDS or key.startswith("_"):
            continue
        node[key] = _to_node(item)
    return _normalize(node)


def _normalize(node: Node) -> Node:
    node_type = node.get("type")

    if node_type == "Literal":
        value = node.get("value")
        # esprima reports every number as a float; keep integers integral.
        if type(value) is float and value.is_integer() and abs(value) < _MAX_SAFE_INTEGER:
            node["value"] = int(value)

    elif node_type == "Property" and node.get("shorthand"):
        # `{a}` becomes `{a: a}` so the value can be renamed on its own.
        node["shorthand"] = False
        if node.get("value") is None:
            node["value"] = Node(node["key"])

    return node
