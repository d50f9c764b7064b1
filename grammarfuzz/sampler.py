"""
Mutation sampling from a synthesized grammar.

Starts from the default derivation of the grammar (one per root option)
and applies random mutations: a character swapped within its class, an
alternation option re-chosen, a repetition resampled with a new count,
or a recursive reference expanded to a different depth.
"""

import math
import random
from dataclasses import dataclass
from typing import Optional

from grammarfuzz import logger
from grammarfuzz.errors import InvalidParameterError
from grammarfuzz.grammar import (
    Alternation, Grammar, Literal, Node, Recursive, Repetition, Sequence,
    base_indices, branches,
)


@dataclass(frozen=True)
class SampleParameters:
    """Parameters controlling how mutations are drawn."""

    distribution: tuple = (0.2, 0.2, 0.2, 0.4)
    """
    Probabilities of repetition counts min_repeat, min_repeat + 1, ...
    The last bucket is open-ended: the count keeps growing with that same
    probability until max_repeat is reached.
    """

    recursion_probability: float = 0.2
    """Chance of choosing a recursive branch when resampling a reference"""

    min_repeat: int = 1
    """Smallest repetition count produced by a resample"""

    max_repeat: int = 200
    """
    Largest repetition count produced by a resample. A sampler refuses a
    grammar with a repetition whose own bounds fall outside
    [min_repeat, max_repeat].
    """

    def __post_init__(self):
        if not self.distribution:
            raise InvalidParameterError("distribution must not be empty")
        if any(p < 0 for p in self.distribution):
            raise InvalidParameterError("distribution must not contain negative values")
        if not math.isclose(sum(self.distribution), 1.0, abs_tol=1e-6):
            raise InvalidParameterError(
                f"distribution must sum to 1, got {sum(self.distribution)}"
            )
        if not 0.0 <= self.recursion_probability <= 1.0:
            raise InvalidParameterError("recursion_probability must be in [0, 1]")
        if self.min_repeat < 0:
            raise InvalidParameterError("min_repeat must be non-negative")
        if self.min_repeat > self.max_repeat:
            raise InvalidParameterError("min_repeat must not exceed max_repeat")


DEFAULT_PARAMETERS = SampleParameters()


@dataclass(frozen=True)
class Derivation:
    """One concrete expansion of a node, with the string it produces."""
    node: Node
    text: str
    children: tuple = ()
    depth: int = 0


def _with_children(derivation: Derivation, children: tuple) -> Derivation:
    return Derivation(
        derivation.node,
        "".join(c.text for c in children),
        children,
        derivation.depth,
    )


class GrammarMutationSampler:
    """
    Infinite iterator of mutated inputs.

    Sampling is fully determined by random_seed.

    Example:
        >>> sampler = GrammarMutationSampler(grammar, max_length=40, mutations=15)
        >>> next(sampler)
        '(()(()))'
    """

    def __init__(
        self,
        grammar: Grammar,
        params: Optional[SampleParameters] = None,
        max_length: Optional[int] = None,
        mutations: int = 1,
        random_seed: int = 0,
        max_depth: int = 100
    ):
        if max_length is not None and max_length < 0:
            raise InvalidParameterError("max_length must be non-negative")
        if mutations < 0:
            raise InvalidParameterError("mutations must be non-negative")
        if max_depth < 0:
            raise InvalidParameterError("max_depth must be non-negative")

        grammar.validate()
        self.grammar = grammar
        self.params = params or DEFAULT_PARAMETERS
        self.max_length = max_length
        self.mutations = mutations
        self.max_depth = max_depth
        self.random = random.Random(random_seed)

        for node in grammar.iter_nodes():
            if isinstance(node, Repetition):
                low, high = self._count_bounds(node)
                if low > high:
                    raise InvalidParameterError(
                        f"Repetition {node} allows no count in "
                        f"[{self.params.min_repeat}, {self.params.max_repeat}]"
                    )

        roots = grammar.root.options if isinstance(grammar.root, Alternation) else (grammar.root,)
        self._bases = [self._derive_default(root, 0) for root in roots]

    def __iter__(self):
        return self

    def __next__(self) -> str:
        return self.sample()

    def sample(self) -> str:
        """Draw one mutated input."""
        derivation = self.random.choice(self._bases)
        for _ in range(self.mutations):
            derivation = self._mutate(derivation)
        text = derivation.text
        if self.max_length is not None:
            text = text[:self.max_length]
        return text

    # ===== Derivations =====

    def _derive_default(self, node: Node, depth: int) -> Derivation:
        if isinstance(node, Literal):
            return Derivation(node, node.text, depth=depth)
        if isinstance(node, Sequence):
            children = tuple(self._derive_default(c, depth) for c in node.children)
        elif isinstance(node, Alternation):
            children = (self._derive_default(node.options[0], depth),) if node.options else ()
        elif isinstance(node, Repetition):
            children = tuple(self._derive_default(node.body, depth) for _ in range(node.min))
        elif isinstance(node, Recursive):
            rule = self.grammar.resolve(node.target)
            branch = branches(rule)[base_indices(rule, node.target)[0]]
            children = (self._derive_default(branch, depth + 1),)
        else:
            raise TypeError(f"Unknown node type: {type(node)}")
        return _with_children(Derivation(node, "", depth=depth), children)

    def _derive_random(self, node: Node, depth: int) -> Derivation:
        """Expand node with fresh random choices."""
        if isinstance(node, Literal):
            return Derivation(node, node.text, depth=depth)
        if isinstance(node, Sequence):
            children = tuple(self._derive_random(c, depth) for c in node.children)
        elif isinstance(node, Alternation):
            children = ()
            if node.options:
                children = (self._derive_random(self.random.choice(node.options), depth),)
        elif isinstance(node, Repetition):
            count = self._repeat_count(node)
            children = tuple(self._derive_random(node.body, depth) for _ in range(count))
        elif isinstance(node, Recursive):
            branch = self._choose_branch(node, depth)
            children = (self._derive_random(branch, depth + 1),)
        else:
            raise TypeError(f"Unknown node type: {type(node)}")
        return _with_children(Derivation(node, "", depth=depth), children)

    def _repeat_count(self, node: Repetition) -> int:
        dist = self.params.distribution
        draw = self.random.random()
        index = len(dist) - 1
        total = 0.0
        for i, weight in enumerate(dist):
            total += weight
            if draw < total:
                index = i
                break

        count = self.params.min_repeat + index
        if index == len(dist) - 1:
            while count < self.params.max_repeat and self.random.random() < dist[-1]:
                count += 1

        low, high = self._count_bounds(node)
        return min(max(count, low), high)

    def _count_bounds(self, node: Repetition) -> tuple:
        low = max(self.params.min_repeat, node.min)
        high = self.params.max_repeat if node.max is None else min(self.params.max_repeat, node.max)
        return low, high

    def _choose_branch(self, node: Recursive, depth: int) -> Node:
        rule = self.grammar.resolve(node.target)
        options = branches(rule)
        base = base_indices(rule, node.target)
        recursive = [i for i in range(len(options)) if i not in base]
        if (recursive and depth < self.max_depth
                and self.random.random() < self.params.recursion_probability):
            return options[self.random.choice(recursive)]
        if recursive and depth >= self.max_depth:
            logger.logger.debug(f"Recursion depth limit {self.max_depth} reached in {node.target}")
        return options[self.random.choice(base)]

    # ===== Mutation =====

    def _candidates(self, derivation: Derivation, path: tuple = ()) -> list[tuple]:
        """Paths of all mutable positions in derivation."""
        found = []
        node = derivation.node
        if isinstance(node, Literal):
            if any(c is not None and len(c) > 1 for c in node.classes):
                found.append(path)
        elif not isinstance(node, Sequence):
            found.append(path)
        for i, child in enumerate(derivation.children):
            found.extend(self._candidates(child, path + (i,)))
        return found

    def _mutate(self, derivation: Derivation) -> Derivation:
        candidates = self._candidates(derivation)
        if not candidates:
            return derivation
        path = self.random.choice(candidates)
        return self._replace(derivation, path)

    def _replace(self, derivation: Derivation, path: tuple) -> Derivation:
        if not path:
            return self._mutate_node(derivation)
        index = path[0]
        children = list(derivation.children)
        children[index] = self._replace(children[index], path[1:])
        return _with_children(derivation, tuple(children))

    def _mutate_node(self, derivation: Derivation) -> Derivation:
        node = derivation.node
        if isinstance(node, Literal):
            positions = [
                i for i, c in enumerate(node.classes) if c is not None and len(c) > 1
            ]
            i = self.random.choice(positions)
            char = self.random.choice(node.classes[i].characters)
            text = derivation.text[:i] + char + derivation.text[i + 1:]
            return Derivation(node, text, depth=derivation.depth)
        return self._derive_random(node, derivation.depth)
