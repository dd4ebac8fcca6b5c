"""Readability transformations run on every processed tree."""

from typing import Optional

from unbundlify.core.naming import NameSource, create_name_source, deduce_variable_names, generate_variable_names
from unbundlify.core.rewriter import rewrite_code
from unbundlify.plugins.base import Plugin, PluginChain, PluginContext


class GenerateNamesPlugin(Plugin):
    """Replace minified local names with distinct generated ones."""

    name = "generate_names"
    description = "Give every non-top-level variable a generated name"
    priority = 10

    def __init__(self, style: str = "dictionary", seed: int = 0):
        self.style = style
        self.seed = seed

    def should_run(self, context: PluginContext) -> bool:
        return context.rename_variables

    def process(self, context: PluginContext) -> PluginContext:
        # A fresh source per tree keeps names reproducible per file.
        name_source: NameSource = create_name_source(self.style, self.seed)
        count = generate_variable_names(context.tree, scope=context.scope, name_source=name_source)
        context.metadata["generated_names"] = count
        return context


class RewriteCodePlugin(Plugin):
    """Undo minifier idioms."""

    name = "rewrite_code"
    description = "Rewrite comma sequences, short-circuit statements and bare bodies"
    priority = 20

    def should_run(self, context: PluginContext) -> bool:
        return context.rewrite_code

    def process(self, context: PluginContext) -> PluginContext:
        context.metadata["rewritten_nodes"] = rewrite_code(context.tree)
        # Rewriting replaces nodes, so a scope analysed earlier is stale.
        context.scope = None
        return context


class DeduceNamesPlugin(Plugin):
    """Name variables after what they are initialized with."""

    name = "deduce_names"
    description = "Derive names from require() paths, property reads and loop heads"
    priority = 30

    def should_run(self, context: PluginContext) -> bool:
        return context.rename_variables

    def process(self, context: PluginContext) -> PluginContext:
        context.metadata["deduced_names"] = deduce_variable_names(context.tree)
        return context


def create_transform_chain(style: str = "dictionary", seed: int = 0, chain: Optional[PluginChain] = None) -> PluginChain:
    """Build the standard readability pipeline."""
    chain = chain if chain is not None else PluginChain()
    chain.add_plugin(GenerateNamesPlugin(style=style, seed=seed))
    chain.add_plugin(RewriteCodePlugin())
    chain.add_plugin(DeduceNamesPlugin())
    return chain
