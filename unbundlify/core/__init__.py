"""Core tree transformations."""

from unbundlify.core.parser import parse_javascript, parse_file
from unbundlify.core.patterns import compile, matches, fill
from unbundlify.core.analyzer import analyze, Scope, ScopeManager, Variable
from unbundlify.core.renamer import choose_unique_name, rename_variable
from unbundlify.core.rewriter import rewrite_code
from unbundlify.core.naming import deduce_variable_names, generate_variable_names, create_name_source
from unbundlify.core.bundles import parse_modules, BundleModule, BundleFormat
from unbundlify.core.generator import generate_code, module_output_path, save_output

__all__ = [
    "parse_javascript",
    "parse_file",
    "compile",
    "matches",
    "fill",
    "analyze",
    "Scope",
    "ScopeManager",
    "Variable",
    "choose_unique_name",
    "rename_variable",
    "rewrite_code",
    "deduce_variable_names",
    "generate_variable_names",
    "create_name_source",
    "parse_modules",
    "BundleModule",
    "BundleFormat",
    "generate_code",
    "module_output_path",
    "save_output",
]
