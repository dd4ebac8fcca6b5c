"""Plugin system for unbundlify."""

from unbundlify.plugins.base import Plugin, PluginChain, PluginContext
from unbundlify.plugins.transforms import (
    DeduceNamesPlugin,
    GenerateNamesPlugin,
    RewriteCodePlugin,
    create_transform_chain,
)

__all__ = [
    "Plugin",
    "PluginChain",
    "PluginContext",
    "GenerateNamesPlugin",
    "RewriteCodePlugin",
    "DeduceNamesPlugin",
    "create_transform_chain",
]
