"""Tests for bundle splitting."""

import logging

import pytest

from unbundlify.core.bundles import (
    BundleFormat,
    extract_modules,
    is_bundle,
    normalize_module_path,
    parse_modules,
    resolve_module_names,
)
from unbundlify.core.nodes import deep_equal
from unbundlify.core.parser import parse_javascript
from unbundlify.exceptions import FormatError, ShapeError

BROWSERIFY_MODULES = """{
  1:[
    function(r, m, e)
    {
      e.test = function()
      {
        return r("test");
      };
    },
    {
      "test": 2
    }
  ],
  2: [
    function(r, m, e)
    {
      m.exports = 42;
    },
    {}
  ]
}"""

WEBPACK_MODULES = """[
  function(m, e, r)
  {
    e.test = function()
    {
      return r(1);
    };
  },
  function(m, e, r)
  {
    m.exports = 42;
  }
]"""


def split(source: str) -> dict:
    return {module.name: module.node for module in parse_modules(parse_javascript(source))}


def assert_body(node, expected: str) -> None:
    assert deep_equal(node.body, parse_javascript(expected).body)


def assert_browserify_modules(modules: dict) -> None:
    assert list(modules) == ["/main", "/test"]
    assert_body(modules["/main"], 'exports.test = function() { return require("test"); };')
    assert_body(modules["/test"], "module.exports = 42;")


def assert_webpack_modules(modules: dict) -> None:
    assert list(modules) == ["/main", "/1"]
    assert_body(modules["/main"], "exports.test = function() { return require(1); };")
    assert_body(modules["/1"], "module.exports = 42;")


class TestBrowserify:
    """Tests for Browserify bundles."""

    def test_default_format(self, browserify_bundle):
        """The plain (function(){...})()(...) wrapper is recognized."""
        assert_browserify_modules(split(browserify_bundle))

    def test_assigned_to_global(self):
        """The wrapper result may be assigned and followed by more code."""
        source = f"""
        require = function(){{
          function r(e,n,t){{
            return x.exports;
          }}
          return r;
        }}()({BROWSERIFY_MODULES}, {{}}, [1]);
        noop;
        """
        assert_browserify_modules(split(source))

    def test_optimized_format(self):
        """The !function(){...}()(...) wrapper is recognized."""
        source = f"""
        !function(){{
          function r(e,n,t){{
            return x.exports;
          }}
          return r;
        }}()({BROWSERIFY_MODULES}, {{}}, [1])
        """
        assert_browserify_modules(split(source))

    def test_relative_names(self, relative_browserify_bundle):
        """Module paths follow the relative names modules were required by."""
        modules = list(parse_modules(parse_javascript(relative_browserify_bundle)))

        assert [(m.module_id, m.name) for m in modules] == [
            (1, "/main"),
            (3, "/pkg"),
            (2, "/lib/util"),
            (4, "/lib/helpers/index"),
            (5, "/pkg/inner"),
            (6, "/6"),
        ]

    def test_multiple_entry_points(self):
        """Several entry points are numbered."""
        source = """
        (function(){ return r; })()({
          1: [function(r, m, e) {}, {}],
          2: [function(r, m, e) {}, {}]
        }, {}, [1, 2])
        """
        assert list(split(source)) == ["/main1", "/main2"]

    def test_conflicting_names(self, caplog):
        """A module reached under two different paths keeps the first one."""
        source = """
        (function(){ return r; })()({
          1: [function(r, m, e) { r("./a"); r("./b"); }, {"./a": 2, "./b": 3}],
          2: [function(r, m, e) { r("./c"); }, {"./c": 4}],
          3: [function(r, m, e) { r("./d"); }, {"./d": 4}],
          4: [function(r, m, e) {}, {}]
        }, {}, [1])
        """
        with caplog.at_level(logging.WARNING, logger="unbundlify.core.bundles"):
            names = list(split(source))

        assert names == ["/main", "/a", "/b", "/c"]
        assert len(caplog.records) == 1
        assert "/d" in caplog.records[0].getMessage()

    def test_excluded_dependencies(self):
        """Dependencies mapped to false are ignored."""
        source = """
        (function(){ return r; })()({
          1: [function(r, m, e) {}, {"fs": false, "./x": 2}],
          2: [function(r, m, e) {}, {}]
        }, {}, [1])
        """
        assert list(split(source)) == ["/main", "/x"]

    def test_string_module_ids(self):
        """Modules with string ids are placed at their id."""
        source = """
        (function(){ return r; })()({
          1: [function(r, m, e) {}, {"./dep": "vendor/dep"}],
          "vendor/dep": [function(r, m, e) {}, {}]
        }, {}, [1])
        """
        assert list(split(source)) == ["/main", "/vendor/dep"]


class TestWebpack:
    """Tests for Webpack bundles."""

    def test_default_format(self, webpack_bundle):
        """Webpack 4 bundles start the entry module from the loader's return."""
        assert_webpack_modules(split(webpack_bundle))

    def test_optimized_format(self):
        """The entry point can be the last expression of a sequence."""
        source = f"""
        !function(modules){{
          function __webpack_require(moduleId){{
            return module.exports;
          }}
          __webpack_require__.m=1,__webpack_require__.n=2,__webpack_require__(__webpack_require__.s = 0);
        }}({WEBPACK_MODULES})
        """
        assert_webpack_modules(split(source))

    @pytest.mark.parametrize("push", ["bar.push([0, 1, 2]);\ninit();", "bar.push([0, 1, 2]), init();"])
    def test_jsonp_entry_point(self, push):
        """JSONP loaders name their entry point in a push call."""
        source = f"""
        !function(modules){{
          function __webpack_require(moduleId){{
            return module.exports;
          }}
          function init(){{
            __webpack_require__(__webpack_require__.s = foo[0]);
          }}
          {push}
        }}({WEBPACK_MODULES})
        """
        assert_webpack_modules(split(source))

    def test_jsonp_chunks(self):
        """Chunks without an entry point name modules after their index."""
        modules = split("""
        (window.webpackJsonp = window.webpackJsonp || []).push([
          [123],
          [
            function(m, e, r)
            {
              e.test = function()
              {
                return r(2);
              };
            },
            ,
            function(m, e, r)
            {
              m.exports = 42;
            }
          ]
        ]);
        """)

        assert list(modules) == ["/0", "/2"]
        assert_body(modules["/0"], "exports.test = function() { return require(2); };")
        assert_body(modules["/2"], "module.exports = 42;")

    def test_jsonp_chunks_with_object_table(self):
        """Object module tables use their keys as ids."""
        modules = split("""
        (window.webpackJsonp = window.webpackJsonp || []).push([
          ["abc", "cda"],
          {
            "abc": function(m, e, r)
            {
              e.test = function()
              {
                return r("123");
              };
            },
            "123": function(m, e, r)
            {
              m.exports = 42;
            }
          },
          [["xyz", "zyx"]]
        ]);
        """)

        assert list(modules) == ["/abc", "/123"]
        assert_body(modules["/abc"], 'exports.test = function() { return require("123"); };')
        assert_body(modules["/123"], "module.exports = 42;")

    def test_arrow_factories(self):
        """Modules may be arrow functions."""
        modules = split("""
        (function(modules){ return r(r.s = 0); })([
          (m, e, r) => { m.exports = r(1); },
          (m) => { m.exports = 42; }
        ])
        """)

        assert_body(modules["/main"], "module.exports = require(1);")
        assert_body(modules["/1"], "module.exports = 42;")

    def test_eval_modules(self):
        """Modules wrapped in eval() are parsed into statements."""
        modules = split("""
        (function(modules){ return r(r.s = 0); })([
          function(m, e, r) { "use strict"; eval("m.exports = r(1);\\ne.x = 2;"); },
          function(m, e, r) { m.exports = 42; }
        ])
        """)

        assert_body(modules["/main"], '"use strict"; module.exports = require(1); exports.x = 2;')

    def test_conflicting_parameter_names(self):
        """Parameters already using the conventional names are swapped safely."""
        modules = split("""
        (function(modules){ return r(r.s = 0); })([
          function(require, module, exports) { module.exports = require(1); exports.x = 1; }
        ])
        """)

        assert_body(modules["/main"], "exports.exports = module(1); require.x = 1;")

    def test_module_scope(self, webpack_bundle):
        """Module scopes hold the renamed parameters."""
        module = next(parse_modules(parse_javascript(webpack_bundle)))

        assert module.module_id == 0
        assert {"module", "exports", "require"} <= set(module.scope.set)
        assert module.scope.block.body is module.node


class TestExtractModules:
    """Tests for format recognition and malformed bundles."""

    def test_layout(self, browserify_bundle, webpack_bundle):
        """The layout reports format, modules and entry points."""
        browserify = extract_modules(parse_javascript(browserify_bundle))
        webpack = extract_modules(parse_javascript(webpack_bundle))

        assert browserify.format == BundleFormat.BROWSERIFY
        assert list(browserify.modules) == [1, 2]
        assert browserify.entry_ids == [1]
        assert webpack.format == BundleFormat.WEBPACK
        assert list(webpack.modules) == [0, 1]
        assert webpack.entry_ids == [0]

    def test_resolve_module_names(self, browserify_bundle):
        """Package roots keep their trailing slash until modules are yielded."""
        layout = extract_modules(parse_javascript(browserify_bundle))

        assert resolve_module_names(layout) == {1: "/main", 2: "/test/"}

    def test_unknown_format(self, simple_code):
        """Ordinary scripts are rejected."""
        with pytest.raises(FormatError, match="not in a known Webpack or Browserify format"):
            list(parse_modules(parse_javascript(simple_code)))

    @pytest.mark.parametrize(
        ("source", "message"),
        [
            ("(function(){})()({1: [function(r, m, e) {}, {}]}, {}, 1)", "Entry points are not an array"),
            ("(function(){})()({1: function(r, m, e) {}}, {}, [1])", "not a two elements array"),
            ("(function(m){})([42])", "Module entry is not a function"),
            ("(function(m){})(window)", "Object expected, got Identifier"),
            ("(function(m){})({[k]: function(){}})", "Literal or identifier property name expected"),
            (
                "(function(){})()({1: [function(r, m, e) {}, {'./x': y}]}, {}, [1])",
                "Expected module reference to be a literal expression",
            ),
        ],
    )
    def test_malformed_bundles(self, source, message):
        """Unexpected module tables raise ShapeError."""
        with pytest.raises(ShapeError, match=message):
            list(parse_modules(parse_javascript(source)))

    def test_is_bundle(self, browserify_bundle, webpack_bundle, simple_code):
        """is_bundle() recognizes both formats."""
        assert is_bundle(parse_javascript(browserify_bundle))
        assert is_bundle(parse_javascript(webpack_bundle))
        assert not is_bundle(parse_javascript(simple_code))


class TestNormalizeModulePath:
    """Tests for normalize_module_path()."""

    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("/lib//util", "/lib/util"),
            ("/lib/./util", "/lib/util"),
            ("/lib/sub/../util", "/lib/util"),
            ("/a/b/../../c", "/c"),
            ("/../x", "/x"),
            ("/pkg/", "/pkg"),
        ],
    )
    def test_normalize(self, path, expected):
        """Redundant segments are removed."""
        assert normalize_module_path(path) == expected
