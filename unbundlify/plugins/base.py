"""Transformation plugins and the chain that runs them over a syntax tree."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from unbundlify.core.analyzer import Scope
from unbundlify.core.nodes import Node

logger = logging.getLogger(__name__)


@dataclass
class PluginContext:
    """A tree on its way through the chain.

    ``scope`` may carry an analysis done by the caller, e.g. the factory
    scope of a bundle module. Plugins that replace nodes must reset it.
    """
    tree: Node
    scope: Optional[Scope] = None
    file_path: Optional[Path] = None
    rename_variables: bool = True
    rewrite_code: bool = True
    metadata: dict[str, Any] = field(default_factory=dict)


class Plugin(ABC):
    """One transformation step."""

    name: str = "base_plugin"
    description: str = "Base plugin class"
    priority: int = 100  # Lower priority runs first

    @abstractmethod
    def process(self, context: PluginContext) -> PluginContext:
        """Transform ``context.tree`` in place.

        Counts worth reporting go into ``context.metadata``.
        """

    def should_run(self, context: PluginContext) -> bool:
        """Tell whether the context's switches enable this plugin."""
        return True


class PluginChain:
    """Plugins kept sorted by priority and run one after another."""

    def __init__(self):
        self.plugins: list[Plugin] = []

    def add_plugin(self, plugin: Plugin) -> "PluginChain":
        """Insert a plugin at its priority and return the chain."""
        self.plugins.append(plugin)
        self.plugins.sort(key=lambda p: p.priority)
        return self

    def remove_plugin(self, name: str) -> "PluginChain":
        """Drop every plugin with the given name and return the chain."""
        self.plugins = [p for p in self.plugins if p.name != name]
        return self

    def run(self, context: PluginContext) -> PluginContext:
        """Pass the context through every enabled plugin."""
        for plugin in self.plugins:
            if not plugin.should_run(context):
                logger.debug("Skipping plugin %s", plugin.name)
                continue
            context = plugin.process(context)
            logger.debug("Plugin %s done for %s", plugin.name, context.file_path or "<tree>")
        return context

    def __or__(self, other: "PluginChain") -> "PluginChain":
        combined = PluginChain()
        combined.plugins = sorted(self.plugins + other.plugins, key=lambda p: p.priority)
        return combined
