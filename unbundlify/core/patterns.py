"""Structural pattern matching over syntax trees.

A pattern is written as ordinary JavaScript in which some names are
placeholders:

- ``expressionN`` matches an expression (also identifiers and literals),
- ``statementN`` matches a statement or declaration,
- ``placeholderN`` matches a bare name string, e.g. an identifier's name or a
  string literal's value.

Expression and statement placeholders take modifiers after underscores, e.g.
``expression1_literal_repeatable``. ``optional`` accepts an absent node and
``repeatable`` captures a run of sibling nodes as a list.

``matches`` returns a capture map (placeholder name to captured value) or
``None``; ``fill`` builds a new tree from a pattern and a capture map.
"""

import re
from dataclasses import dataclass, replace as dataclass_replace
from functools import lru_cache
from typing import Any, Optional, Union

from unbundlify.core.nodes import IGNORED_FIELDS, Node, deep_equal, is_node
from unbundlify.core import nodes
from unbundlify.core.parser import parse_javascript
from unbundlify.exceptions import CompileError, FillError, ScriptParseError

_EXPRESSION_NAME = re.compile(r"^(expression\d+)((?:_\w+?)*)$")
_STATEMENT_NAME = re.compile(r"^(statement\d+)((?:_\w+?)*)$")
_GENERIC_NAME = re.compile(r"^placeholder\d+$")
_TRAILING_SEMICOLON = re.compile(r";\s*$")

# Statements that already read as a single line and need no braces.
SINGLE_LINE_STATEMENTS = frozenset((
    "EmptyStatement",
    "BlockStatement",
    "ExpressionStatement",
    "ReturnStatement",
    "ThrowStatement",
))

_DECLARATIONS = frozenset(("VariableDeclaration", "FunctionDeclaration", "ClassDeclaration"))
_EXPRESSION_LIKE = frozenset(("Identifier", "Literal", "TemplateLiteral", "MetaProperty", "Super"))


@dataclass(frozen=True)
class Placeholder:
    """Base class for pattern slots."""

    name: str
    optional: bool = False
    repeatable: bool = False

    type = "Placeholder"

    def accepts(self, node: Any) -> bool:
        raise NotImplementedError


@dataclass(frozen=True)
class ExpressionPlaceholder(Placeholder):
    """Matches expression-shaped nodes."""

    kind: str = "any"  # any, strict, identifier, literal
    or_declaration: bool = False
    declarator: bool = False

    type = "ExpressionPlaceholder"

    def accepts(self, node: Any) -> bool:
        if node is None:
            return self.optional
        if not is_node(node):
            return False
        node_type = node.type
        if self.declarator:
            return node_type == "VariableDeclarator"
        if self.or_declaration and node_type == "VariableDeclaration":
            return True
        if self.kind == "identifier":
            return node_type == "Identifier"
        if self.kind == "literal":
            return node_type == "Literal"
        if node_type.endswith("Expression"):
            return True
        return self.kind == "any" and node_type in _EXPRESSION_LIKE


@dataclass(frozen=True)
class StatementPlaceholder(Placeholder):
    """Matches statements and declarations."""

    kind: str = "any"  # any, strict, declaration or one declaration type
    multi_line: bool = False

    type = "StatementPlaceholder"

    def accepts(self, node: Any) -> bool:
        if node is None:
            return self.optional
        if not is_node(node):
            return False
        node_type = node.type
        if self.multi_line and node_type in SINGLE_LINE_STATEMENTS:
            return False
        if self.kind == "strict":
            return node_type.endswith("Statement")
        if self.kind == "declaration":
            return node_type in _DECLARATIONS
        if self.kind != "any":
            return node_type == self.kind
        return node_type.endswith("Statement") or node_type.endswith("Declaration")


@dataclass(frozen=True)
class GenericPlaceholder(Placeholder):
    """Matches a plain name string."""

    type = "GenericPlaceholder"

    def accepts(self, node: Any) -> bool:
        return isinstance(node, str)


Pattern = Union[Node, Placeholder]
CaptureMap = dict[str, Any]


def _expression_placeholder(name: str, modifiers: list[str]) -> ExpressionPlaceholder:
    options: dict[str, Any] = {}
    for modifier in modifiers:
        if modifier == "optional":
            options["optional"] = True
        elif modifier == "repeatable":
            options["repeatable"] = True
        elif modifier in ("strict", "identifier", "literal"):
            options["kind"] = modifier
        elif modifier == "orDeclaration":
            options["or_declaration"] = True
        else:
            raise CompileError(f"Unrecognized expression placeholder modifier: {modifier}")
    return ExpressionPlaceholder(name, **options)


_STATEMENT_KINDS = {
    "strict": "strict",
    "declaration": "declaration",
    "classDeclaration": "ClassDeclaration",
    "functionDeclaration": "FunctionDeclaration",
    "variableDeclaration": "VariableDeclaration",
}


def _statement_placeholder(name: str, modifiers: list[str]) -> StatementPlaceholder:
    options: dict[str, Any] = {}
    for modifier in modifiers:
        if modifier == "optional":
            options["optional"] = True
        elif modifier == "repeatable":
            options["repeatable"] = True
        elif modifier == "multiLine":
            options["multi_line"] = True
        elif modifier in _STATEMENT_KINDS:
            options["kind"] = _STATEMENT_KINDS[modifier]
        else:
            raise CompileError(f"Unrecognized statement placeholder modifier: {modifier}")
    return StatementPlaceholder(name, **options)


class _Compiler:
    """Turns a parsed fragment into a pattern, one compile call at a time."""

    def __init__(self):
        self.placeholders: dict[str, tuple[str, Placeholder]] = {}

    def placeholder_for(self, identifier: str) -> Optional[Placeholder]:
        match = _EXPRESSION_NAME.match(identifier)
        factory = _expression_placeholder
        if not match:
            match = _STATEMENT_NAME.match(identifier)
            factory = _statement_placeholder
        if not match:
            return None

        name, suffix = match.group(1), match.group(2)
        modifiers = [m for m in suffix.split("_") if m]
        known = self.placeholders.get(name)
        if known is not None:
            known_suffix, placeholder = known
            if modifiers and suffix != known_suffix:
                raise CompileError(f"Conflicting modifiers for placeholder {name}")
            return placeholder

        placeholder = factory(name, modifiers)
        self.placeholders[name] = (suffix, placeholder)
        return placeholder

    def leave(self, node: Any, parent: Optional[Node], key: Optional[str]) -> Optional[Any]:
        if not is_node(node):
            return None
        node_type = node.type

        if node_type == "Identifier":
            placeholder = self.placeholder_for(node.name)
            if placeholder is not None:
                return placeholder

        if node_type == "ExpressionStatement" and isinstance(node.expression, StatementPlaceholder):
            return node.expression

        if (
            node_type == "VariableDeclarator"
            and isinstance(node.id, ExpressionPlaceholder)
            and node.init is None
        ):
            # `var expression1, expression2;` matches whole declarators.
            return dataclass_replace(node.id, declarator=True)

        for field, value in node.items():
            if isinstance(value, str) and field not in IGNORED_FIELDS and _GENERIC_NAME.match(value):
                node[field] = GenericPlaceholder(value)
        return None


@lru_cache(maxsize=None)
def _compile_source(source: str) -> Pattern:
    try:
        tree = parse_javascript(source)
    except ScriptParseError as e:
        raise CompileError(f"Invalid pattern {source!r}: {e}") from e

    pattern = nodes.replace(tree, leave=_Compiler().leave)

    if is_node(pattern) and pattern.type == "Program" and len(pattern.body) == 1:
        pattern = pattern.body[0]
    if (
        is_node(pattern)
        and pattern.type == "ExpressionStatement"
        and not _TRAILING_SEMICOLON.search(source)
    ):
        pattern = pattern.expression
    return pattern


def compile(source: str) -> Pattern:
    """Compile pattern source into a pattern.

    Compiled patterns are cached and must be treated as read-only.

    Raises:
        CompileError: On unparsable source or an unknown modifier
    """
    return _compile_source(source)


def _as_pattern(pattern: Union[str, Pattern]) -> Pattern:
    return compile(pattern) if isinstance(pattern, str) else pattern


def _bind(name: str, value: Any, captures: CaptureMap) -> bool:
    if name in captures:
        return deep_equal(captures[name], value)
    captures[name] = value
    return True


def _minimum_length(items: list[Any]) -> int:
    total = 0
    for item in items:
        if isinstance(item, Placeholder) and item.repeatable and item.optional:
            continue
        total += 1
    return total


def _match_sequence(patterns: list[Any], values: list[Any], captures: CaptureMap) -> bool:
    position = 0
    for index, item in enumerate(patterns):
        if isinstance(item, Placeholder) and item.repeatable:
            limit = len(values) - _minimum_length(patterns[index + 1:])
            run = []
            while position < limit and item.accepts(values[position]):
                run.append(values[position])
                position += 1
            if not run and not item.optional:
                return False
            if not _bind(item.name, run, captures):
                return False
            continue

        if position >= len(values) or not _match(item, values[position], captures):
            return False
        position += 1
    return position == len(values)


def _match(pattern: Any, value: Any, captures: CaptureMap) -> bool:
    if isinstance(pattern, Placeholder):
        return pattern.accepts(value) and _bind(pattern.name, value, captures)

    if isinstance(pattern, Node):
        if not isinstance(value, Node):
            return False
        for field, expected in pattern.items():
            if field in IGNORED_FIELDS:
                continue
            actual = value.get(field)
            if isinstance(expected, list):
                if not isinstance(actual, list) or not _match_sequence(expected, actual, captures):
                    return False
            elif not _match(expected, actual, captures):
                return False
        return True

    return deep_equal(pattern, value)


def matches(
    pattern: Union[str, Pattern],
    node: Any,
    captures: Optional[CaptureMap] = None,
) -> Optional[CaptureMap]:
    """Match a node against a pattern.

    Args:
        pattern: Pattern source or compiled pattern
        node: Node to match
        captures: Existing captures the match must stay consistent with

    Returns:
        New capture map on success, None otherwise. ``captures`` itself is
        never modified.
    """
    working = dict(captures) if captures else {}
    if _match(_as_pattern(pattern), node, working):
        return working
    return None


def _fill(pattern: Any, captures: CaptureMap) -> Any:
    if isinstance(pattern, Placeholder):
        if pattern.name not in captures:
            raise FillError(f"No capture for placeholder {pattern.name}")
        return captures[pattern.name]

    if isinstance(pattern, Node):
        result = Node()
        for field, value in pattern.items():
            if isinstance(value, list):
                result[field] = _fill_sequence(value, captures)
                continue
            filled = _fill(value, captures)
            if isinstance(filled, list):
                raise FillError(f"Placeholder {value.name} holds a list and cannot fill {field}")
            result[field] = filled
        return result

    return pattern


def _fill_sequence(items: list[Any], captures: CaptureMap) -> list[Any]:
    result = []
    for item in items:
        filled = _fill(item, captures)
        if isinstance(item, Placeholder) and isinstance(filled, list):
            result.extend(filled)
        else:
            result.append(filled)
    return result


def fill(pattern: Union[str, Pattern], captures: CaptureMap) -> Any:
    """Build a new tree from a pattern, substituting captured values.

    List captures placed in a list position are spliced in.

    Raises:
        FillError: If a placeholder in the pattern has no capture
    """
    return _fill(_as_pattern(pattern), captures)
