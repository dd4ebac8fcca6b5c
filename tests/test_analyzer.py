"""Tests for scope analysis."""

from unbundlify.core.analyzer import analyze
from unbundlify.core.parser import parse_javascript


def scope_of(manager, node):
    scope = manager.acquire(node)
    assert scope is not None
    return scope


class TestAnalyze:
    """Tests for analyze()."""

    def test_global_scope(self, simple_code):
        """Top-level declarations live in the global scope."""
        program = parse_javascript(simple_code)
        manager = analyze(program)
        scope = scope_of(manager, program)

        assert scope.type == "global"
        assert scope.dynamic
        assert set(scope.set) == {"a", "b", "add", "result"}
        assert manager.global_scope is scope

    def test_function_scope(self, simple_code):
        """Parameters and the implicit arguments binding belong to the function."""
        program = parse_javascript(simple_code)
        manager = analyze(program)
        function = program.body[2]
        scope = scope_of(manager, function)

        assert scope.type == "function"
        assert set(scope.set) == {"arguments", "x", "y"}
        assert scope.set["x"].kind == "parameter"
        assert [r.identifier.name for r in scope.set["x"].references] == ["x"]

    def test_nested_scopes(self, nested_scope_code):
        """Functions and classes create nested scopes."""
        program = parse_javascript(nested_scope_code)
        manager = analyze(program)
        global_scope = scope_of(manager, program)

        assert set(global_scope.set) == {"outer", "process", "Calculator"}
        process_scope = scope_of(manager, program.body[1])
        assert set(process_scope.set) == {"arguments", "data", "temp"}

        # The named function expression gets its own name scope above its body.
        transform = program.body[1].body.body[1].argument
        transform_scope = scope_of(manager, transform)
        assert "result" in transform_scope.set
        assert "transform" not in transform_scope.set
        assert transform_scope.upper.type == "function-expression-name"
        assert "transform" in transform_scope.upper.set

    def test_var_is_function_scoped(self):
        """var inside a block belongs to the enclosing function."""
        program = parse_javascript("function f() { if (a) { var x = 1; let y = 2; } }")
        manager = analyze(program)
        function = program.body[0]
        block = function.body.body[0].consequent

        assert "x" in scope_of(manager, function).set
        assert set(scope_of(manager, block).set) == {"y"}

    def test_for_let_scope(self):
        """let in a for head gets a scope of its own."""
        program = parse_javascript("for (let i = 0; i < 2; i++) f(i);")
        manager = analyze(program)
        loop = program.body[0]

        scope = scope_of(manager, loop)
        assert scope.type == "for"
        assert len(scope.set["i"].references) == 3

    def test_for_update_references(self):
        """References in a for loop's update clause are recorded."""
        program = parse_javascript("function f(n) { for (var i = 0; i < n; i++); }")
        manager = analyze(program)
        scope = scope_of(manager, program.body[0])

        assert [r.identifier.name for r in scope.set["i"].references] == ["i", "i"]

    def test_hoisted_function_reference(self):
        """References before a function declaration still resolve to it."""
        program = parse_javascript("function outer() { inner(); function inner() {} }")
        manager = analyze(program)
        scope = scope_of(manager, program.body[0])

        assert len(scope.set["inner"].references) == 1

    def test_through_references(self):
        """Unresolved references pass through every scope up to the global one."""
        program = parse_javascript("function f() { return g(x); }")
        manager = analyze(program)
        function_scope = scope_of(manager, program.body[0])
        global_scope = scope_of(manager, program)

        assert {r.identifier.name for r in function_scope.through} == {"g", "x"}
        assert {r.identifier.name for r in global_scope.through} == {"g", "x"}

    def test_global_references_are_not_bound(self):
        """A script's global scope never binds references."""
        program = parse_javascript("var a = 1; a++;")
        manager = analyze(program)
        scope = scope_of(manager, program)

        assert scope.set["a"].references == []
        assert [r.identifier.name for r in scope.references] == ["a"]

    def test_property_names_are_not_references(self):
        """Non-computed member and property names are not variable uses."""
        program = parse_javascript("function f(a) { return a.b + {b: a}.b; }")
        manager = analyze(program)
        scope = scope_of(manager, program.body[0])

        assert [r.identifier.name for r in scope.references] == ["a", "a"]

    def test_catch_scope(self):
        """The catch parameter is scoped to the clause."""
        program = parse_javascript("try {} catch (e) { log(e); }")
        manager = analyze(program)
        handler = program.body[0].handler

        scope = scope_of(manager, handler)
        assert scope.type == "catch"
        assert len(scope.set["e"].references) == 1

    def test_analyze_function_root(self):
        """A function can be analysed on its own."""
        function = parse_javascript("(function(a, b) { return a + c; })").body[0].expression
        manager = analyze(function)
        scope = scope_of(manager, function)

        assert scope.upper is manager.root
        assert manager.acquire(function) is scope
        assert set(scope.set) == {"arguments", "a", "b"}
        assert [r.identifier.name for r in scope.through] == ["c"]

    def test_acquire_unknown_node(self):
        """Nodes that create no scope give None."""
        program = parse_javascript("a + b;")
        manager = analyze(program)

        assert manager.acquire(program.body[0]) is None
