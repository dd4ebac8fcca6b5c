"""Rewriting of minifier idioms into readable code."""

import logging
from typing import Optional

from unbundlify.core import nodes
from unbundlify.core.analyzer import ScopeManager, analyze
from unbundlify.core.nodes import Node, is_node
from unbundlify.core.patterns import Pattern, compile, fill, matches
from unbundlify.core.renamer import choose_unique_name, rename_variable

logger = logging.getLogger(__name__)

_LET_SPLIT = ("let expression1, expression2_repeatable;", "let expression1; let expression2;")

# (pattern, replacement) pairs, tried in order.
REWRITE_RULES: list[tuple[str, str]] = [
    # Constants
    ("!1", "false"),
    ("!0", "true"),
    ("void 0", "undefined"),

    # Conditions written as expressions
    ("expression1 && expression2;", "if (expression1) expression2;"),
    ("expression1 || expression2;", "if (!expression1) expression2;"),
    ("expression1 ? expression2 : expression3;", "if (expression1) expression2; else expression3;"),
    (
        "return expression1 ? expression2 : expression3;",
        "if (expression1) return expression2; else return expression3;",
    ),

    # Comma operator
    ("expression1, expression2;", "expression1; expression2;"),
    ("expression1, expression2, expression3_repeatable;", "expression1; expression2, expression3;"),
    ("return expression1, expression2;", "expression1; return expression2;"),
    (
        "return expression1, expression2, expression3_repeatable;",
        "expression1; return expression2, expression3;",
    ),

    # One declaration per variable
    ("var expression1, expression2_repeatable;", "var expression1; var expression2;"),
    _LET_SPLIT,

    # Braces around bodies that span several lines
    (
        "if (expression1) statement1_multiLine; else statement2_optional;",
        "if (expression1) { statement1; } else statement2;",
    ),
    (
        "if (expression1) statement1; else statement2_multiLine;",
        "if (expression1) statement1; else { statement2; }",
    ),
    ("while (expression1) statement1_multiLine;", "while (expression1) { statement1; }"),
    ("do statement1_multiLine; while (expression1);", "do { statement1; } while (expression1);"),
    (
        "for (expression1_orDeclaration_optional; expression2_optional; expression3_optional) statement1_multiLine;",
        "for (expression1; expression2; expression3) { statement1; }",
    ),
    (
        "for (expression1_orDeclaration in expression2) statement1_multiLine;",
        "for (expression1 in expression2) { statement1; }",
    ),
    (
        "for (expression1_orDeclaration of expression2) statement1_multiLine;",
        "for (expression1 of expression2) { statement1; }",
    ),

    # Babel's interop helper for default imports
    (
        "function placeholder1(placeholder2) { return placeholder2 && placeholder2.__esModule ? placeholder2 : { default: placeholder2 }; }",
        "function _interopRequireDefault(obj) { return obj && obj.__esModule ? obj : { default: obj }; }",
    ),
]

_FOR_STATEMENTS = frozenset(("ForStatement", "ForInStatement", "ForOfStatement"))

# Parent fields that hold statement lists.
_STATEMENT_LISTS = {
    "Program": "body",
    "BlockStatement": "body",
    "SwitchCase": "consequent",
}

_compiled_rules: Optional[list[tuple[Pattern, Pattern]]] = None


def _with_kind(pattern: Node, kind: str) -> Node:
    """Copy a declaration pattern (or a list of them) with another kind."""
    if pattern.type == "Program":
        return Node(pattern, body=[_with_kind(statement, kind) for statement in pattern.body])
    return Node(pattern, kind=kind)


def _rules() -> list[tuple[Pattern, Pattern]]:
    global _compiled_rules
    if _compiled_rules is None:
        rules = [(compile(source), compile(target)) for source, target in REWRITE_RULES]
        # `const` without initializers does not parse; derive its rule from `let`.
        pattern, replacement = rules[REWRITE_RULES.index(_LET_SPLIT)]
        rules.append((_with_kind(pattern, "const"), _with_kind(replacement, "const")))
        _compiled_rules = rules
    return _compiled_rules


class _Rewriter:
    def __init__(self, tree: Node):
        self.scope_manager: ScopeManager = analyze(tree)
        self.rewritten = 0

    def rewrite_node(self, node: Node) -> Optional[Node]:
        candidates = list(_rules())
        result = node
        applied = True
        while applied:
            applied = False
            for index, (pattern, replacement) in enumerate(candidates):
                captures = matches(pattern, result)
                if captures is None:
                    continue
                del candidates[index]
                new_node = fill(replacement, captures)
                if result.type == "FunctionDeclaration" and is_node(new_node) and new_node.type == "FunctionDeclaration":
                    self._rename_function(result, new_node)
                result = new_node
                applied = True
                break

        if result is node:
            return None
        self.rewritten += 1
        return result

    def _rename_function(self, old: Node, new: Node) -> None:
        """Carry a function's new name over to everything that uses it."""
        scope = self.scope_manager.acquire(old)
        upper = scope.upper if scope is not None else None
        variable = upper.set.get(old.id.name) if upper is not None else None
        if variable is None:
            new.id.name = old.id.name
            return
        if variable.name == new.id.name:
            return
        new.id.name = choose_unique_name(upper, new.id.name)
        rename_variable(variable, new.id.name)

    def enter(self, node: Node, parent: Optional[Node], key: Optional[str]) -> Optional[Node]:
        if not is_node(node):
            return None
        # Declarations in a `for` head cannot be split into statements.
        if node.type == "VariableDeclaration" and key in ("init", "left") and parent.type in _FOR_STATEMENTS:
            return None
        return self.rewrite_node(node)

    def leave(self, node: Node, parent: Optional[Node], key: Optional[str]) -> Optional[Node]:
        if not is_node(node):
            return None
        if node.type == "Program" and parent is not None and _STATEMENT_LISTS.get(parent.type) != key:
            # A statement list standing where a single statement belongs.
            node.type = "BlockStatement"
            node.pop("sourceType", None)

        list_field = _STATEMENT_LISTS.get(node.type)
        if list_field is not None:
            statements = node.get(list_field) or []
            if any(is_node(s) and s.type == "Program" for s in statements):
                node[list_field] = _flatten(statements)
        return None


def _flatten(statements: list[Node]) -> list[Node]:
    result = []
    for statement in statements:
        if is_node(statement) and statement.type == "Program":
            result.extend(_flatten(statement.body))
        else:
            result.append(statement)
    return result


def rewrite_code(tree: Node) -> int:
    """Rewrite minifier idioms across a tree, in place.

    Each node is matched against the rule table; a matching rule is applied
    and the result is matched again against the rules not yet applied to that
    node, until nothing matches. Children of the result are then visited.

    Args:
        tree: Program to rewrite

    Returns:
        Number of nodes that were replaced
    """
    rewriter = _Rewriter(tree)
    nodes.replace(tree, enter=rewriter.enter, leave=rewriter.leave)
    logger.debug("Rewrote %d nodes", rewriter.rewritten)
    return rewriter.rewritten
