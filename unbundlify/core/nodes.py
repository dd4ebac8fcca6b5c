"""Syntax tree node type and traversal helpers."""

from typing import Any, Callable, Iterator, Optional

_DICT_SHADOWED_FIELDS = frozenset(("update",))


class Node(dict):
    """An ESTree node.

    Fields are stored as dict items so trees compare, copy and serialize like
    plain data, and are also readable as attributes (``node.type``). Reading
    a field the node does not have gives ``None``, the same as the esprima
    node objects the parser converts from.
    """

    __slots__ = ()

    def __getattribute__(self, name: str) -> Any:
        # ESTree fields named like dict methods read as fields.
        if name in _DICT_SHADOWED_FIELDS:
            return dict.get(self, name)
        return dict.__getattribute__(self, name)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__"):
            raise AttributeError(name)
        return self.get(name)

    def __setattr__(self, name: str, value: Any) -> None:
        self[name] = value

    def __delattr__(self, name: str) -> None:
        self.pop(name, None)

    def __repr__(self) -> str:
        return f"Node({dict.__repr__(self)})"


# Fields holding child nodes, per node kind, in source order.
VISITOR_KEYS: dict[str, tuple[str, ...]] = {
    "ArrayExpression": ("elements",),
    "ArrayPattern": ("elements",),
    "ArrowFunctionExpression": ("params", "body"),
    "AssignmentExpression": ("left", "right"),
    "AssignmentPattern": ("left", "right"),
    "AwaitExpression": ("argument",),
    "BinaryExpression": ("left", "right"),
    "BlockStatement": ("body",),
    "BreakStatement": ("label",),
    "CallExpression": ("callee", "arguments"),
    "CatchClause": ("param", "body"),
    "ClassBody": ("body",),
    "ClassDeclaration": ("id", "superClass", "body"),
    "ClassExpression": ("id", "superClass", "body"),
    "ConditionalExpression": ("test", "consequent", "alternate"),
    "ContinueStatement": ("label",),
    "DebuggerStatement": (),
    "DoWhileStatement": ("body", "test"),
    "EmptyStatement": (),
    "ExportAllDeclaration": ("source",),
    "ExportDefaultDeclaration": ("declaration",),
    "ExportNamedDeclaration": ("declaration", "specifiers", "source"),
    "ExportSpecifier": ("local", "exported"),
    "ExpressionStatement": ("expression",),
    "ForInStatement": ("left", "right", "body"),
    "ForOfStatement": ("left", "right", "body"),
    "ForStatement": ("init", "test", "update", "body"),
    "FunctionDeclaration": ("id", "params", "body"),
    "FunctionExpression": ("id", "params", "body"),
    "Identifier": (),
    "IfStatement": ("test", "consequent", "alternate"),
    "Import": (),
    "ImportDeclaration": ("specifiers", "source"),
    "ImportDefaultSpecifier": ("local",),
    "ImportNamespaceSpecifier": ("local",),
    "ImportSpecifier": ("imported", "local"),
    "LabeledStatement": ("label", "body"),
    "Literal": (),
    "LogicalExpression": ("left", "right"),
    "MemberExpression": ("object", "property"),
    "MetaProperty": ("meta", "property"),
    "MethodDefinition": ("key", "value"),
    "NewExpression": ("callee", "arguments"),
    "ObjectExpression": ("properties",),
    "ObjectPattern": ("properties",),
    "Program": ("body",),
    "Property": ("key", "value"),
    "RestElement": ("argument",),
    "ReturnStatement": ("argument",),
    "SequenceExpression": ("expressions",),
    "SpreadElement": ("argument",),
    "Super": (),
    "SwitchCase": ("test", "consequent"),
    "SwitchStatement": ("discriminant", "cases"),
    "TaggedTemplateExpression": ("tag", "quasi"),
    "TemplateElement": (),
    "TemplateLiteral": ("quasis", "expressions"),
    "ThisExpression": (),
    "ThrowStatement": ("argument",),
    "TryStatement": ("block", "handler", "finalizer"),
    "UnaryExpression": ("argument",),
    "UpdateExpression": ("argument",),
    "VariableDeclaration": ("declarations",),
    "VariableDeclarator": ("id", "init"),
    "WhileStatement": ("test", "body"),
    "WithStatement": ("object", "body"),
    "YieldExpression": ("argument",),
}

# Fields that carry source text only and never take part in comparisons.
IGNORED_FIELDS = frozenset(("raw",))


def is_node(value: Any) -> bool:
    """Return True for tree nodes (nodes always carry a ``type``)."""
    return isinstance(value, Node) and "type" in value


def child_keys(node: Node) -> tuple[str, ...]:
    """Return the names of the fields of ``node`` that hold child nodes."""
    keys = VISITOR_KEYS.get(node.get("type"))
    if keys is not None:
        return keys
    return tuple(
        key for key, value in node.items()
        if is_node(value) or (isinstance(value, list) and any(is_node(item) for item in value))
    )


def iter_child_nodes(node: Node) -> Iterator[Node]:
    """Yield the direct children of ``node`` in source order."""
    for key in child_keys(node):
        value = node.get(key)
        if isinstance(value, list):
            for item in value:
                if is_node(item):
                    yield item
        elif is_node(value):
            yield value


def traverse(
    node: Node,
    enter: Optional[Callable[[Node, Optional[Node]], None]] = None,
    leave: Optional[Callable[[Node, Optional[Node]], None]] = None,
    parent: Optional[Node] = None,
) -> None:
    """Walk the tree depth-first, calling ``enter`` before and ``leave`` after children."""
    if enter is not None:
        enter(node, parent)
    for child in iter_child_nodes(node):
        traverse(child, enter, leave, node)
    if leave is not None:
        leave(node, parent)


Replacer = Callable[[Node, Optional[Node], Optional[str]], Optional[Any]]


def replace(
    node: Node,
    enter: Optional[Replacer] = None,
    leave: Optional[Replacer] = None,
    parent: Optional[Node] = None,
    key: Optional[str] = None,
) -> Any:
    """Walk the tree depth-first, substituting nodes on the way.

    ``enter`` and ``leave`` receive ``(node, parent, key)`` where ``key`` is the
    parent field holding the node. A non-None return value replaces the node
    in its parent. Children of a replacement returned by ``enter`` are walked
    instead of the original's. Returns the (possibly replaced) root.
    """
    if enter is not None:
        replacement = enter(node, parent, key)
        if replacement is not None:
            node = replacement
    if is_node(node):
        for field in child_keys(node):
            value = node.get(field)
            if isinstance(value, list):
                for index in range(len(value)):
                    if is_node(value[index]):
                        value[index] = replace(value[index], enter, leave, node, field)
            elif is_node(value):
                node[field] = replace(value, enter, leave, node, field)
    if leave is not None:
        replacement = leave(node, parent, key)
        if replacement is not None:
            node = replacement
    return node


def _same_scalar(left: Any, right: Any) -> bool:
    # 1 == True in Python; literals of different kinds must not compare equal.
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return left == right


def deep_equal(left: Any, right: Any) -> bool:
    """Compare two trees structurally, ignoring raw source text of literals."""
    if isinstance(left, dict) and isinstance(right, dict):
        keys = {k for k in left if k not in IGNORED_FIELDS}
        keys.update(k for k in right if k not in IGNORED_FIELDS)
        return all(deep_equal(left.get(k), right.get(k)) for k in keys)
    if isinstance(left, list) and isinstance(right, list):
        return len(left) == len(right) and all(
            deep_equal(a, b) for a, b in zip(left, right)
        )
    if isinstance(left, (dict, list)) or isinstance(right, (dict, list)):
        return False
    return _same_scalar(left, right)
