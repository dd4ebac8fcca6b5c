"""Variable naming: deducing names from usage and generating placeholder names."""

import logging
import random
import re
from abc import ABC, abstractmethod
from typing import Callable, Optional

from unbundlify.core import nodes
from unbundlify.core.analyzer import Scope, Variable, analyze
from unbundlify.core.nodes import Node
from unbundlify.core.patterns import CaptureMap, compile, matches
from unbundlify.core.renamer import RESERVED_WORDS, choose_unique_name, rename_variable
from unbundlify.core.wordlists import ADJECTIVES, NOUNS

logger = logging.getLogger(__name__)

_PRIME = 32059
_IDENTIFIER = re.compile(r"^[\w$]+$")


class NameSource(ABC):
    """Produces a stream of distinct synthetic variable names."""

    @abstractmethod
    def next_name(self) -> str:
        """Return a name not returned before by this source."""


class DictionaryNameSource(NameSource):
    """Names like ``_quick_bridge_`` built from adjectives and a noun.

    Consecutive seeds are spread over the whole word space by multiplying with
    a prime, so neighbouring variables get unrelated names. Once every
    combination is used, another adjective is added.
    """

    def __init__(self, seed: int = 0):
        self.seed = seed - 1
        self.num_adjectives = 1
        self.space = len(NOUNS) * len(ADJECTIVES)

    def next_name(self) -> str:
        self.seed += 1
        if self.seed >= self.space:
            self.seed = 0
            self.num_adjectives += 1
            self.space *= len(ADJECTIVES)

        number = (self.seed * _PRIME) % self.space
        words = []
        for _ in range(self.num_adjectives):
            words.append(ADJECTIVES[number % len(ADJECTIVES)])
            number //= len(ADJECTIVES)
        words.append(NOUNS[number])
        return "_" + "_".join(words) + "_"


_ONSETS = (
    "b", "d", "f", "g", "h", "k", "l", "m", "n", "p", "r", "s", "t", "v", "z",
    "br", "ch", "dr", "gr", "kr", "pl", "sh", "st", "th", "tr",
)
_VOWELS = ("a", "e", "i", "o", "u", "ai", "ao", "ea", "ei", "ia", "io", "ou")


class PhoneticNameSource(NameSource):
    """Pronounceable random names, deterministic for a given seed.

    A name that was already handed out bumps the syllable count, so later
    names get longer instead of repeating.
    """

    def __init__(self, seed: int = 0, syllables: int = 2):
        self.seed = seed
        self.syllables = syllables
        self.used: set[str] = set()

    def _compose(self) -> str:
        rng = random.Random(self.seed * 1000 + self.syllables)
        return "".join(rng.choice(_ONSETS) + rng.choice(_VOWELS) for _ in range(self.syllables))

    def next_name(self) -> str:
        while True:
            name = self._compose()
            self.seed += 1
            if name not in self.used and name not in RESERVED_WORDS:
                self.used.add(name)
                return name
            self.syllables += 1


NAME_SOURCES: dict[str, Callable[[int], NameSource]] = {
    "dictionary": DictionaryNameSource,
    "phonetic": PhoneticNameSource,
}


def create_name_source(style: str = "dictionary", seed: int = 0) -> NameSource:
    """Create a fresh name source of the given style."""
    try:
        factory = NAME_SOURCES[style]
    except KeyError:
        raise ValueError(f"Unknown name style: {style}") from None
    return factory(seed)


def generate_variable_names(
    tree: Node,
    scope: Optional[Scope] = None,
    name_source: Optional[NameSource] = None,
) -> int:
    """Give every variable below the top-level scope a synthetic name.

    Minified names carry no information, and distinct synthetic names make
    the output easier to search. Variables declared directly in a Program are
    left alone, as are variables already renamed deliberately.

    Args:
        tree: Tree to rename in
        scope: Scope to start from, analysed from ``tree`` if omitted
        name_source: Source of names, a new dictionary source if omitted

    Returns:
        Number of renamed variables
    """
    if scope is None:
        manager = analyze(tree)
        scope = manager.acquire(tree) or manager.root
    if name_source is None:
        name_source = DictionaryNameSource()

    renamed = 0
    pending = [scope]
    while pending:
        current = pending.pop(0)
        if current.block.type != "Program":
            for variable in current.variables:
                if variable.keep_name or variable.name == "arguments":
                    continue
                rename_variable(variable, choose_unique_name(variable.scope, name_source.next_name()))
                renamed += 1
        pending[0:0] = current.child_scopes

    logger.debug("Generated %d variable names", renamed)
    return renamed


def name_from_module_path(path: str) -> Optional[str]:
    """Derive a variable name from a module path: ``a/script-messenger`` -> ``scriptMessenger``."""
    match = re.search(r"([^/]+)/*$", path)
    if not match:
        return None
    name = re.sub(r"\W+$", "", match.group(1))
    name = re.sub(r"\W+(\w)", lambda m: m.group(1).upper(), name)
    return name if _IDENTIFIER.match(name) else None


def name_from_class(class_name: str) -> Optional[str]:
    """Derive a variable name from a constructor name: ``WeakMap`` -> ``weakMap``."""
    if re.match(r"^[A-Z][a-z]", class_name):
        return class_name[0].lower() + class_name[1:]
    if re.match(r"^[A-Z]{2,}[a-z]", class_name):
        return class_name.lower()
    return None


def _from_path(key: str) -> Callable[[CaptureMap], Optional[str]]:
    return lambda captures: name_from_module_path(captures[key])


def _fixed(name: str) -> Callable[[CaptureMap], Optional[str]]:
    return lambda captures: name


_DECLARATION_KINDS = ("var", "let", "const")
_LOOP_KINDS = ("var", "let")

# Idioms in priority order. Each pattern declares `placeholder1`.
NAMING_IDIOMS: list[tuple[str, Callable[[CaptureMap], Optional[str]]]] = [
    *[
        (source.format(kind=kind), _from_path("placeholder2"))
        for source in (
            "{kind} placeholder1 = require('placeholder2');",
            "{kind} placeholder1 = _interopRequireDefault(require('placeholder2'));",
            "{kind} placeholder1 = require('placeholder2').placeholder3();",
        )
        for kind in _DECLARATION_KINDS
    ],
    *[
        (f"{kind} placeholder1 = expression1.placeholder2;", lambda c: c["placeholder2"])
        for kind in _DECLARATION_KINDS
    ],
    *[
        (
            f"for ({kind} placeholder1 = expression1; expression2_optional; expression3_optional) statement1;",
            _fixed("index"),
        )
        for kind in _LOOP_KINDS
    ],
    *[(f"for ({kind} placeholder1 in expression1) statement1;", _fixed("key")) for kind in _LOOP_KINDS],
    *[(f"for ({kind} placeholder1 of expression1) statement1;", _fixed("item")) for kind in _LOOP_KINDS],
    *[
        (f"{kind} placeholder1 = expression1('placeholder2');", _from_path("placeholder2"))
        for kind in _DECLARATION_KINDS
    ],
    *[
        (
            f"{kind} placeholder1 = new placeholder2(expression1_repeatable_optional);",
            lambda c: name_from_class(c["placeholder2"]),
        )
        for kind in _DECLARATION_KINDS
    ],
]


def _lookup(scope: Optional[Scope], name: str) -> Optional[Variable]:
    while scope is not None:
        variable = scope.set.get(name)
        if variable is not None:
            return variable
        scope = scope.upper
    return None


def deduce_variable_names(tree: Node) -> int:
    """Rename variables whose purpose can be read off their declaration.

    For example ``var a = require("./event-target")`` renames ``a`` to
    ``eventTarget``, and a counter declared in a ``for`` head becomes
    ``index``.

    Args:
        tree: Tree to rename in

    Returns:
        Number of renamed variables
    """
    scope_manager = analyze(tree)
    idioms = [(compile(source), namer) for source, namer in NAMING_IDIOMS]
    scopes: list[Scope] = []
    renamed = 0

    def enter(node: Node, parent: Optional[Node]) -> None:
        nonlocal renamed
        scope = scope_manager.acquire(node)
        if scope is not None:
            scopes.append(scope)
        if not scopes:
            return

        for pattern, namer in idioms:
            captures = matches(pattern, node)
            if captures is None:
                continue
            new_name = namer(captures)
            if not new_name:
                continue
            old_name = captures["placeholder1"]
            variable = _lookup(scopes[-1], old_name)
            if variable is not None and new_name != old_name:
                rename_variable(variable, choose_unique_name(scopes[-1], new_name))
                renamed += 1
            break

    def leave(node: Node, parent: Optional[Node]) -> None:
        if scope_manager.acquire(node) is not None:
            scopes.pop()

    nodes.traverse(tree, enter, leave)
    logger.debug("Deduced %d variable names", renamed)
    return renamed
