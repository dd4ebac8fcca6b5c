"""Unbundlify - split Browserify and Webpack bundles and make minified JavaScript readable."""

__version__ = "0.1.0"
__author__ = "unbundlify"

from unbundlify.config import Config
from unbundlify.core.parser import parse_javascript
from unbundlify.core.generator import generate_code
from unbundlify.core.bundles import parse_modules

__all__ = [
    "__version__",
    "Config",
    "parse_javascript",
    "generate_code",
    "parse_modules",
]
