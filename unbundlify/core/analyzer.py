"""Lexical scope analysis.

Builds a scope tree for a syntax tree: which names each scope declares, which
identifier occurrences declare or reference each variable, and which
references pass through a scope unresolved. Follows the ES2017 scoping rules
for scripts: ``var`` and parameters are function scoped, ``let``, ``const``
and classes are block scoped, and the global scope of a script is dynamic, so
references made directly in it are never bound to a variable.
"""

from dataclasses import dataclass, field
from typing import Optional

from unbundlify.core.nodes import Node, is_node, iter_child_nodes

_FUNCTION_SCOPES = ("function", "global", "module")


@dataclass(eq=False)
class Reference:
    """An identifier occurrence that reads or writes a name."""
    identifier: Node
    scope: "Scope"
    resolved: Optional["Variable"] = None


@dataclass(eq=False)
class Variable:
    """A declared name with all its declaring and referencing occurrences."""
    name: str
    scope: "Scope"
    kind: str = "variable"  # variable, parameter, function, class, catch, implicit
    identifiers: list[Node] = field(default_factory=list)
    references: list[Reference] = field(default_factory=list)
    keep_name: bool = False


@dataclass(eq=False)
class Scope:
    """A lexical scope."""
    type: str  # global, module, function, function-expression-name, block, for, catch, class, switch, with
    block: Node
    upper: Optional["Scope"] = None
    dynamic: bool = False
    variables: list[Variable] = field(default_factory=list)
    set: dict[str, Variable] = field(default_factory=dict)
    references: list[Reference] = field(default_factory=list)
    through: list[Reference] = field(default_factory=list)
    child_scopes: list["Scope"] = field(default_factory=list)
    pending: list[Reference] = field(default_factory=list, repr=False)

    @property
    def variable_scope(self) -> "Scope":
        """Nearest enclosing scope that receives ``var`` declarations."""
        scope = self
        while scope.type not in _FUNCTION_SCOPES and scope.upper is not None:
            scope = scope.upper
        return scope

    def define(self, identifier: Optional[Node], kind: str, name: Optional[str] = None) -> Variable:
        name = name if name is not None else identifier.name
        variable = self.set.get(name)
        if variable is None:
            variable = Variable(name=name, scope=self, kind=kind)
            self.variables.append(variable)
            self.set[name] = variable
        if identifier is not None:
            variable.identifiers.append(identifier)
        return variable

    def resolve_pending(self) -> None:
        """Bind references collected in this scope, passing the rest upwards."""
        for reference in self.pending:
            variable = None if self.dynamic else self.set.get(reference.identifier.name)
            if variable is not None:
                reference.resolved = variable
                variable.references.append(reference)
                continue
            self.through.append(reference)
            if self.upper is not None:
                self.upper.pending.append(reference)
        self.pending = []


class ScopeManager:
    """Result of analysing a tree."""

    def __init__(self):
        self.scopes: list[Scope] = []
        self.root: Optional[Scope] = None
        self._by_block: dict[int, list[Scope]] = {}

    @property
    def global_scope(self) -> Optional[Scope]:
        return self.scopes[0] if self.scopes else None

    def register(self, scope: Scope) -> None:
        self.scopes.append(scope)
        self._by_block.setdefault(id(scope.block), []).append(scope)

    def acquire(self, node: Node) -> Optional[Scope]:
        """Return the scope created for ``node``, or None if it creates none."""
        for scope in self._by_block.get(id(node), ()):
            if scope.block is node and scope.type != "function-expression-name":
                return scope
        return None


class _Referencer:
    """Walks the tree creating scopes, declarations and references."""

    def __init__(self, manager: ScopeManager):
        self.manager = manager
        self.current: Optional[Scope] = None

    def nest(self, scope_type: str, block: Node, dynamic: bool = False, register: bool = True) -> Scope:
        scope = Scope(type=scope_type, block=block, upper=self.current, dynamic=dynamic)
        if self.current is not None:
            self.current.child_scopes.append(scope)
        else:
            self.manager.root = scope
        if register:
            self.manager.register(scope)
        self.current = scope
        return scope

    def close(self) -> None:
        scope = self.current
        scope.resolve_pending()
        self.current = scope.upper

    def reference(self, identifier: Node) -> None:
        ref = Reference(identifier=identifier, scope=self.current)
        self.current.references.append(ref)
        self.current.pending.append(ref)

    def visit(self, node: Optional[Node]) -> None:
        if not is_node(node):
            return
        handler = getattr(self, f"visit_{node.type}", None)
        if handler is not None:
            handler(node)
        else:
            self.visit_children(node)

    def visit_children(self, node: Node) -> None:
        for child in iter_child_nodes(node):
            self.visit(child)

    def visit_pattern(self, pattern: Optional[Node], on_identifier) -> None:
        """Visit a binding or assignment target, reporting its names."""
        if not is_node(pattern):
            return
        pattern_type = pattern.type
        if pattern_type == "Identifier":
            on_identifier(pattern)
        elif pattern_type == "ObjectPattern":
            for prop in pattern.properties:
                if prop.type == "RestElement":
                    self.visit_pattern(prop.argument, on_identifier)
                    continue
                if prop.computed:
                    self.visit(prop.key)
                self.visit_pattern(prop.value, on_identifier)
        elif pattern_type == "ArrayPattern":
            for element in pattern.elements:
                self.visit_pattern(element, on_identifier)
        elif pattern_type == "RestElement":
            self.visit_pattern(pattern.argument, on_identifier)
        elif pattern_type == "AssignmentPattern":
            self.visit_pattern(pattern.left, on_identifier)
            self.visit(pattern.right)
        else:
            self.visit(pattern)

    # Scopes

    def visit_Program(self, node: Node) -> None:
        if node.sourceType == "module":
            self.nest("module", node)
        else:
            self.nest("global", node, dynamic=True)
        for statement in node.body:
            self.visit(statement)
        self.close()

    def visit_function(self, node: Node) -> None:
        named_expression = node.type == "FunctionExpression" and node.id is not None
        if named_expression:
            self.nest("function-expression-name", node)
            self.current.define(node.id, "function")

        scope = self.nest("function", node)
        if node.type != "ArrowFunctionExpression":
            scope.define(None, "implicit", name="arguments")
        for param in node.params:
            self.visit_pattern(param, lambda ident: scope.define(ident, "parameter"))

        body = node.body
        if is_node(body) and body.type == "BlockStatement":
            for statement in body.body:
                self.visit(statement)
        else:
            self.visit(body)
        self.close()

        if named_expression:
            self.close()

    def visit_FunctionDeclaration(self, node: Node) -> None:
        if node.id is not None:
            self.current.define(node.id, "function")
        self.visit_function(node)

    visit_FunctionExpression = visit_function
    visit_ArrowFunctionExpression = visit_function

    def visit_class(self, node: Node) -> None:
        self.visit(node.superClass)
        self.nest("class", node)
        if node.type == "ClassExpression" and node.id is not None:
            self.current.define(node.id, "class")
        self.visit(node.body)
        self.close()

    def visit_ClassDeclaration(self, node: Node) -> None:
        if node.id is not None:
            self.current.define(node.id, "class")
        self.visit_class(node)

    visit_ClassExpression = visit_class

    def visit_BlockStatement(self, node: Node) -> None:
        self.nest("block", node)
        for statement in node.body:
            self.visit(statement)
        self.close()

    def visit_ForStatement(self, node: Node) -> None:
        init = node.init
        scoped = is_node(init) and init.type == "VariableDeclaration" and init.kind != "var"
        if scoped:
            self.nest("for", node)
        self.visit(init)
        self.visit(node.test)
        self.visit(node.get("update"))
        self.visit(node.body)
        if scoped:
            self.close()

    def visit_for_each(self, node: Node) -> None:
        left = node.left
        scoped = left.type == "VariableDeclaration" and left.kind != "var"
        if scoped:
            self.nest("for", node)
        if left.type == "VariableDeclaration":
            self.visit(left)
        else:
            self.visit_pattern(left, self.reference)
        self.visit(node.right)
        self.visit(node.body)
        if scoped:
            self.close()

    visit_ForInStatement = visit_for_each
    visit_ForOfStatement = visit_for_each

    def visit_CatchClause(self, node: Node) -> None:
        scope = self.nest("catch", node)
        self.visit_pattern(node.param, lambda ident: scope.define(ident, "catch"))
        self.visit(node.body)
        self.close()

    def visit_SwitchStatement(self, node: Node) -> None:
        self.visit(node.discriminant)
        self.nest("switch", node)
        for case in node.cases:
            self.visit(case)
        self.close()

    def visit_WithStatement(self, node: Node) -> None:
        self.visit(node.object)
        self.nest("with", node, dynamic=True)
        self.visit(node.body)
        self.close()

    # Declarations and references

    def visit_VariableDeclaration(self, node: Node) -> None:
        target = self.current.variable_scope if node.kind == "var" else self.current
        for declarator in node.declarations:
            self.visit_pattern(declarator.id, lambda ident: target.define(ident, "variable"))
            self.visit(declarator.init)

    def visit_Identifier(self, node: Node) -> None:
        self.reference(node)

    def visit_AssignmentExpression(self, node: Node) -> None:
        self.visit_pattern(node.left, self.reference)
        self.visit(node.right)

    def visit_MemberExpression(self, node: Node) -> None:
        self.visit(node.object)
        if node.computed:
            self.visit(node.property)

    def visit_Property(self, node: Node) -> None:
        if node.computed:
            self.visit(node.key)
        self.visit(node.value)

    def visit_MethodDefinition(self, node: Node) -> None:
        if node.computed:
            self.visit(node.key)
        self.visit(node.value)

    def visit_LabeledStatement(self, node: Node) -> None:
        self.visit(node.body)

    def visit_BreakStatement(self, node: Node) -> None:
        pass

    visit_ContinueStatement = visit_BreakStatement
    visit_MetaProperty = visit_BreakStatement

    def visit_ImportDeclaration(self, node: Node) -> None:
        for specifier in node.specifiers:
            self.current.define(specifier.local, "import")

    def visit_ExportNamedDeclaration(self, node: Node) -> None:
        if node.declaration is not None:
            self.visit(node.declaration)
        elif node.source is None:
            for specifier in node.specifiers:
                self.reference(specifier.local)

    def visit_ExportAllDeclaration(self, node: Node) -> None:
        pass


def analyze(tree: Node) -> ScopeManager:
    """Analyse the scopes of a tree.

    The tree need not be a Program: any node can be analysed, in which case
    the scopes it creates hang below a synthetic global scope that is not
    returned by ``acquire``.

    Args:
        tree: Root node to analyse

    Returns:
        ScopeManager for the tree
    """
    manager = ScopeManager()
    referencer = _Referencer(manager)
    if tree.type != "Program":
        referencer.nest("global", tree, register=False)
    referencer.visit(tree)
    while referencer.current is not None:
        referencer.close()
    return manager
