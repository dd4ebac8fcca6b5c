"""Pytest configuration and fixtures."""

import pytest


@pytest.fixture
def simple_code() -> str:
    """Return simple JavaScript code for testing."""
    return """
var a = 1;
var b = 2;
function add(x, y) {
    return x + y;
}
var result = add(a, b);
"""


@pytest.fixture
def nested_scope_code() -> str:
    """Return code with nested scopes for testing."""
    return """
var outer = "value";

function process(data) {
    var temp = data.split("");
    return function transform(item) {
        var result = item.toUpperCase();
        return result;
    };
}

class Calculator {
    constructor(a, b) {
        this.x = a;
        this.y = b;
    }

    add() {
        return this.x + this.y;
    }
}
"""


@pytest.fixture
def browserify_bundle() -> str:
    """Return a two-module Browserify bundle; module 1 requires "test"."""
    return """
(function(){
  function r(e,n,t){
    return x.exports;
  }
  return r;
})()({
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
}, {}, [1])
"""


@pytest.fixture
def webpack_bundle() -> str:
    """Return a two-module Webpack 4 bundle with module 0 as entry point."""
    return """
(function(modules){
  function __webpack_require(moduleId){
    return module.exports;
  }
  return __webpack_require__(__webpack_require__.s = 0);
})([
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
])
"""


@pytest.fixture
def relative_browserify_bundle() -> str:
    """Return a Browserify bundle whose modules require each other by relative path."""
    return """
(function(){
  function r(e,n,t){
    return x.exports;
  }
  return r;
})()({
  1:[
    function(r, m, e)
    {
      var a = r("./lib/util");
      var b = r("pkg");
    },
    {
      "./lib/util": 2,
      "pkg": 3
    }
  ],
  2: [
    function(r, m, e)
    {
      m.exports = r("./helpers/");
    },
    {
      "./helpers/": 4
    }
  ],
  3: [
    function(r, m, e)
    {
      m.exports = r("./inner");
    },
    {
      "./inner": 5
    }
  ],
  4: [
    function(r, m, e)
    {
      m.exports = 1;
    },
    {}
  ],
  5: [
    function(r, m, e)
    {
      m.exports = 2;
    },
    {}
  ],
  6: [
    function(r, m, e)
    {
    },
    {}
  ]
}, {}, [1])
"""
