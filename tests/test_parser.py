"""Tests for parser module."""

import pytest

from unbundlify.core.nodes import Node, deep_equal, iter_child_nodes, replace, traverse
from unbundlify.core.parser import parse_file, parse_javascript
from unbundlify.exceptions import ScriptParseError


class TestParseJavaScript:
    """Tests for parse_javascript function."""

    def test_parse_simple_code(self, simple_code):
        """Test parsing simple JavaScript code."""
        program = parse_javascript(simple_code)

        assert program.type == "Program"
        assert program.sourceType == "script"
        assert [s.type for s in program.body] == [
            "VariableDeclaration",
            "VariableDeclaration",
            "FunctionDeclaration",
            "VariableDeclaration",
        ]

    def test_nodes_allow_attribute_access(self):
        """Nodes read as attributes and as items."""
        declaration = parse_javascript("var a = 1;").body[0]

        assert isinstance(declaration, Node)
        assert declaration.kind == declaration["kind"] == "var"
        assert declaration.missing_field is None

    def test_fields_named_like_dict_methods(self):
        """A for loop's update clause reads as a field, not as dict.update."""
        loop = parse_javascript("for (i = 0; i < 2; i++) f();").body[0]

        assert isinstance(loop.update, Node)
        assert loop.update.type == "UpdateExpression"

    def test_location_data_is_stripped(self):
        """Parsing the same code with different layout gives equal trees."""
        compact = parse_javascript("function f(a){return a+1}")
        spread = parse_javascript("function f(a)\n{\n  return a + 1;\n}\n")

        assert "range" not in compact
        assert "loc" not in compact
        assert compact == spread

    def test_integral_numbers_are_ints(self):
        """Integral numeric literals are ints, others stay floats."""
        literals = [s.expression for s in parse_javascript("1; 1.5; 0x10;").body]

        assert literals[0].value == 1 and isinstance(literals[0].value, int)
        assert literals[1].value == 1.5
        assert literals[2].value == 16 and isinstance(literals[2].value, int)

    def test_shorthand_properties_are_expanded(self):
        """{a} parses like {a: a} with separate key and value nodes."""
        prop = parse_javascript("x = {a};").body[0].expression.right.properties[0]

        assert prop.shorthand is False
        assert prop.key is not prop.value
        assert deep_equal(prop.key, prop.value)

    def test_top_level_return(self):
        """Module bodies and pattern fragments may return at top level."""
        program = parse_javascript("return 1;")

        assert program.body[0].type == "ReturnStatement"

    def test_syntax_error(self):
        """Invalid code raises ScriptParseError."""
        with pytest.raises(ScriptParseError):
            parse_javascript("var = ;")


class TestParseFile:
    """Tests for parse_file function."""

    def test_parse_file(self, tmp_path, simple_code):
        """Files are read as UTF-8 and parsed."""
        script = tmp_path / "sample.js"
        script.write_text(simple_code, encoding="utf-8")

        assert parse_file(script) == parse_javascript(simple_code)

    def test_error_names_the_file(self, tmp_path):
        """Parse errors mention the offending file."""
        script = tmp_path / "broken.js"
        script.write_text("function (", encoding="utf-8")

        with pytest.raises(ScriptParseError, match="broken.js"):
            parse_file(script)


class TestTraversal:
    """Tests for tree traversal helpers."""

    def test_traverse_order(self):
        """enter runs before children, leave after."""
        events = []
        traverse(
            parse_javascript("f(a);"),
            enter=lambda node, parent: events.append(("enter", node.type)),
            leave=lambda node, parent: events.append(("leave", node.type)),
        )

        assert events[:3] == [("enter", "Program"), ("enter", "ExpressionStatement"), ("enter", "CallExpression")]
        assert events[-1] == ("leave", "Program")

    def test_iter_child_nodes_skips_holes(self):
        """Array holes are not children."""
        array = parse_javascript("[a, , b];").body[0].expression

        assert [child.name for child in iter_child_nodes(array)] == ["a", "b"]

    def test_replace(self):
        """Returned nodes take the place of the visited node."""
        program = parse_javascript("f(a);")

        def rename(node, parent, key):
            if node.type == "Identifier" and node.name == "a":
                return Node(type="Identifier", name="b")
            return None

        replace(program, enter=rename)

        assert program == parse_javascript("f(b);")

    def test_deep_equal_treats_missing_fields_as_none(self):
        """A missing field equals an explicit None."""
        assert deep_equal(Node(type="Identifier", name="a"), Node(type="Identifier", name="a", extra=None))
        assert not deep_equal(Node(type="Literal", value=1), Node(type="Literal", value=True))
