"""
Grammar model for grammarfuzz.

These classes represent an inferred grammar as a tree of immutable nodes.
Recursion goes through a rule table keyed by rule id, so the node tree
itself never contains cycles.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import ClassVar, Iterator, Mapping, Optional

from grammarfuzz.charset import CharacterClass, format_class
from grammarfuzz.errors import GrammarFormatError


class NodeType(Enum):
    """Types of grammar nodes"""
    LITERAL = "literal"
    SEQUENCE = "sequence"
    ALTERNATION = "alternation"
    REPETITION = "repetition"
    RECURSIVE = "recursive"


# ===== Nodes =====

@dataclass(frozen=True)
class Node:
    """Base class for all grammar nodes"""
    type: ClassVar[NodeType]

    def __str__(self):
        return format_node(self)


@dataclass(frozen=True)
class Literal(Node):
    """
    Fixed terminal text.

    classes holds one optional CharacterClass per character of text, or is
    empty when no position was generalized. The default rendering is always
    text itself.
    """
    text: str
    classes: tuple = ()
    type: ClassVar[NodeType] = NodeType.LITERAL

    def __post_init__(self):
        if self.classes and len(self.classes) != len(self.text):
            raise ValueError(
                f"Literal {self.text!r} has {len(self.classes)} classes "
                f"for {len(self.text)} characters"
            )

    def class_at(self, index: int) -> Optional[CharacterClass]:
        if not self.classes:
            return None
        return self.classes[index]


@dataclass(frozen=True)
class Sequence(Node):
    """Fixed-order concatenation of children"""
    children: tuple = ()
    type: ClassVar[NodeType] = NodeType.SEQUENCE


@dataclass(frozen=True)
class Alternation(Node):
    """Structural variants; the first option is the default"""
    options: tuple = ()
    type: ClassVar[NodeType] = NodeType.ALTERNATION


@dataclass(frozen=True)
class Repetition(Node):
    """Repeated body, between min and max (None: unbounded) copies"""
    body: Node
    min: int = 0
    max: Optional[int] = None
    type: ClassVar[NodeType] = NodeType.REPETITION

    def __post_init__(self):
        if self.min < 0:
            raise ValueError("Repetition min must be non-negative")
        if self.max is not None and self.max < self.min:
            raise ValueError("Repetition max must not be below min")


@dataclass(frozen=True)
class Recursive(Node):
    """Reference to a rule in the owning grammar's rule table"""
    target: str
    type: ClassVar[NodeType] = NodeType.RECURSIVE


EMPTY = Sequence(())


def sequence_of(nodes) -> Node:
    """Collapse a node list into a single node (empty -> EMPTY)."""
    nodes = tuple(nodes)
    if len(nodes) == 1:
        return nodes[0]
    return Sequence(nodes)


# ===== Traversal =====

def iter_nodes(node: Node) -> Iterator[Node]:
    """Yield node and all descendants, without following rule references."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        if isinstance(current, Sequence):
            stack.extend(reversed(current.children))
        elif isinstance(current, Alternation):
            stack.extend(reversed(current.options))
        elif isinstance(current, Repetition):
            stack.append(current.body)


def contains_recursive(node: Node, target: Optional[str] = None) -> bool:
    """True if node refers to target (or to any rule when target is None)."""
    return any(
        isinstance(n, Recursive) and (target is None or n.target == target)
        for n in iter_nodes(node)
    )


def branches(rule: Node) -> tuple:
    """Branches a rule can resolve to: its options, or the rule itself."""
    if isinstance(rule, Alternation):
        return rule.options
    return (rule,)


def base_indices(rule: Node, rule_id: Optional[str] = None) -> list[int]:
    """
    Indices of the base branches of rule.

    A base branch does not refer back to rule_id; with no rule_id it must
    not refer to any rule at all.
    """
    return [i for i, b in enumerate(branches(rule)) if not contains_recursive(b, rule_id)]


def rename_target(node: Node, old: str, new: str) -> Node:
    """Return node with every Recursive(old) replaced by Recursive(new)."""
    if isinstance(node, Recursive):
        return Recursive(new) if node.target == old else node
    if isinstance(node, Sequence):
        return Sequence(tuple(rename_target(c, old, new) for c in node.children))
    if isinstance(node, Alternation):
        return Alternation(tuple(rename_target(o, old, new) for o in node.options))
    if isinstance(node, Repetition):
        return Repetition(rename_target(node.body, old, new), node.min, node.max)
    return node


# ===== Concretization =====

def concretize(node: Node, rules: dict) -> str:
    """
    Render the default string of node.

    Alternations take their first option, repetitions their minimum count
    and recursive references a base branch of their rule.
    """
    if isinstance(node, Literal):
        return node.text
    if isinstance(node, Sequence):
        return "".join(concretize(c, rules) for c in node.children)
    if isinstance(node, Alternation):
        return concretize(node.options[0], rules) if node.options else ""
    if isinstance(node, Repetition):
        return concretize(node.body, rules) * node.min
    if isinstance(node, Recursive):
        rule = rules[node.target]
        base = base_indices(rule, node.target)
        if not base:
            raise GrammarFormatError(f"Rule {node.target} has no base case")
        return concretize(branches(rule)[base[0]], rules)
    raise TypeError(f"Unknown node type: {type(node)}")


# ===== Grammar =====

@dataclass(frozen=True)
class Grammar:
    """
    A root node plus the rules its Recursive nodes refer to.

    rules is copied into a read-only mapping; grammars hash by root.
    """
    root: Node
    rules: Mapping = field(default_factory=dict, hash=False)

    def __post_init__(self):
        object.__setattr__(self, "rules", MappingProxyType(dict(self.rules)))

    def __str__(self):
        return format_grammar(self)

    def default(self) -> str:
        """Default concretization of the root."""
        return concretize(self.root, self.rules)

    def concretize(self, node: Node) -> str:
        return concretize(node, self.rules)

    def resolve(self, rule_id: str) -> Node:
        try:
            return self.rules[rule_id]
        except KeyError:
            raise GrammarFormatError(f"Unknown rule: {rule_id}") from None

    def iter_nodes(self) -> Iterator[Node]:
        """Yield every node of the root and of every rule."""
        yield from iter_nodes(self.root)
        for rule in self.rules.values():
            yield from iter_nodes(rule)

    def validate(self) -> None:
        """
        Check the rule table is consistent.

        Raises:
            GrammarFormatError: If a Recursive node refers to a missing rule,
                a rule has no base case, or base cases refer to each other
                in a cycle
        """
        for node in self.iter_nodes():
            if isinstance(node, Recursive) and node.target not in self.rules:
                raise GrammarFormatError(f"Reference to unknown rule: {node.target}")

        # rule -> rules its default base branch refers to
        depends = {}
        for rule_id, rule in self.rules.items():
            base = base_indices(rule, rule_id)
            if not base:
                raise GrammarFormatError(f"Rule {rule_id} has no base case")
            depends[rule_id] = {
                n.target for n in iter_nodes(branches(rule)[base[0]])
                if isinstance(n, Recursive)
            }

        done = set()
        for start in depends:
            if start in done:
                continue
            stack = [(start, iter(sorted(depends[start])))]
            active = {start}
            while stack:
                rule_id, pending = stack[-1]
                child = next(pending, None)
                if child is None:
                    stack.pop()
                    active.discard(rule_id)
                    done.add(rule_id)
                    continue
                if child in active:
                    raise GrammarFormatError(
                        f"Base cases of rules {sorted(active)} refer to each other"
                    )
                if child not in done:
                    active.add(child)
                    stack.append((child, iter(sorted(depends[child]))))


# ===== Formatting =====

_SPECIAL = "()[]{}|*+<>"


def _format_literal(node: Literal) -> str:
    out = []
    for i, char in enumerate(node.text):
        cls = node.class_at(i)
        if cls is not None and len(cls) > 1:
            out.append(format_class(cls))
        elif char in _SPECIAL or char == "\\":
            out.append("\\" + char)
        elif char.isprintable() and ord(char) < 128:
            out.append(char)
        else:
            out.append(f"\\x{ord(char):02x}")
    return "".join(out)


def format_node(node: Node) -> str:
    """Render a node in a compact regex-like notation."""
    if isinstance(node, Literal):
        return _format_literal(node)
    if isinstance(node, Sequence):
        if not node.children:
            return "()"
        return "".join(format_node(c) for c in node.children)
    if isinstance(node, Alternation):
        return "(" + "|".join(format_node(o) for o in node.options) + ")"
    if isinstance(node, Repetition):
        body = format_node(node.body)
        if node.max is None and node.min == 0:
            suffix = "*"
        elif node.max is None and node.min == 1:
            suffix = "+"
        elif node.max is None:
            suffix = f"{{{node.min},}}"
        else:
            suffix = f"{{{node.min},{node.max}}}"
        return f"({body}){suffix}"
    if isinstance(node, Recursive):
        return f"<{node.target}>"
    raise TypeError(f"Unknown node type: {type(node)}")


def format_grammar(grammar: Grammar) -> str:
    lines = [format_node(grammar.root)]
    for rule_id, rule in grammar.rules.items():
        lines.append(f"{rule_id} ::= {format_node(rule)}")
    return "\n".join(lines)
