"""
Structural grammar synthesis.

Builds a grammar from accepted seed inputs by generalizing each seed into
a derivation tree (character classes, repetitions, recursion) and merging
the trees of all seeds. Every rewrite is kept only after the oracle
accepted the exact string it produces.
"""

import difflib
from typing import Iterable, Optional

from grammarfuzz import logger
from grammarfuzz.charset import format_query
from grammarfuzz.errors import EmptyInputError, SeedRejectedError
from grammarfuzz.generalizer import CharacterGeneralizer
from grammarfuzz.grammar import (
    Alternation, Grammar, Literal, Node, Recursive, Repetition,
    Sequence, concretize, format_node, iter_nodes, rename_target, sequence_of,
)
from grammarfuzz.limits import SynthesisLimits, DEFAULT_LIMITS
from grammarfuzz.oracle import CachingOracle, Oracle


class _MergeRejected(Exception):
    """A merge step failed oracle validation."""


def _key(node: Node):
    """Alignment key: literals compare by character class."""
    if isinstance(node, Literal) and len(node.text) == 1 and node.class_at(0) is not None:
        return ("literal", node.class_at(0).characters)
    if isinstance(node, Repetition):
        return ("repetition", _key(node.body))
    return node


def _children(node: Node) -> tuple:
    return node.children if isinstance(node, Sequence) else (node,)


def _join_literals(left: Literal, right: Literal) -> Literal:
    if not left.classes and not right.classes:
        return Literal(left.text + right.text)
    classes = (left.classes or (None,) * len(left.text)) + \
        (right.classes or (None,) * len(right.text))
    return Literal(left.text + right.text, classes)


def compact(node: Node) -> Node:
    """Flatten nested sequences and join adjacent literals."""
    if isinstance(node, Sequence):
        flat = []
        for child in node.children:
            for part in _children(compact(child)):
                if isinstance(part, Literal):
                    if not part.text:
                        continue
                    if flat and isinstance(flat[-1], Literal):
                        flat[-1] = _join_literals(flat[-1], part)
                        continue
                flat.append(part)
        return sequence_of(flat)
    if isinstance(node, Alternation):
        return Alternation(tuple(compact(o) for o in node.options))
    if isinstance(node, Repetition):
        return Repetition(compact(node.body), node.min, node.max)
    return node


class StructuralSynthesizer:
    """
    Synthesizes a grammar from seeds and an oracle.

    Example:
        >>> synthesizer = StructuralSynthesizer(oracle)
        >>> grammar = synthesizer.synthesize(["()", "(())"])
        >>> print(grammar)
    """

    def __init__(self, oracle: Oracle, limits: Optional[SynthesisLimits] = None):
        self.limits = limits or DEFAULT_LIMITS
        self.oracle = CachingOracle(oracle, self.limits.max_queries)
        self.generalizer = CharacterGeneralizer(self.oracle, self.limits)
        self.rules: dict[str, Node] = {}

    # ===== Helpers =====

    def _render(self, node: Node) -> str:
        return concretize(node, self.rules)

    def _render_all(self, nodes) -> str:
        return "".join(self._render(n) for n in nodes)

    def _accepts(self, text: str) -> bool:
        return self.oracle.try_query(text)

    def _new_rule_id(self) -> str:
        return f"r{len(self.rules)}"

    def _check_seed(self, seed: str) -> None:
        if self.oracle.is_cached(seed):
            accepted = self.oracle.query(seed)
        else:
            accepted = self.oracle.oracle.query(seed)
            self.oracle.remember(seed, accepted)
        shown = format_query(seed, self.limits.alphabet)
        if not accepted:
            raise SeedRejectedError(f"Seed input has been rejected by oracle: {shown}", seed=seed)
        logger.log_seed_added(shown)

    # ===== Entry point =====

    def synthesize(self, seeds: Iterable[str]) -> Grammar:
        """
        Synthesize a grammar covering every seed.

        Args:
            seeds: Accepted example inputs, in order

        Returns:
            Grammar whose default concretization is oracle-accepted

        Raises:
            EmptyInputError: If seeds is empty
            SeedRejectedError: If a seed is rejected by the oracle
            OracleError: If the oracle cannot be queried
        """
        seeds = list(seeds)
        if not seeds:
            raise EmptyInputError("No seed inputs supplied")

        self.rules = {}
        self.generalizer = CharacterGeneralizer(self.oracle, self.limits)

        for seed in seeds:
            self._check_seed(seed)

        root = None
        for seed in seeds:
            tree = self._seed_tree(seed)
            root = tree if root is None else self._merge_root(root, tree)

        root = self._refine_all(root)
        grammar = self._finalize(root)
        logger.logger.info(
            f"Synthesis finished: {self.oracle.queries} queries, "
            f"{self.oracle.hits} cache hits"
        )
        return grammar

    # ===== Per-seed structure =====

    def _seed_tree(self, seed: str) -> Node:
        classes = self.generalizer.generalize_string(seed)
        nodes = [Literal(char, (cls,)) for char, cls in zip(seed, classes)]
        tree = sequence_of(self._structure(nodes, "", ""))
        logger.logger.info(f"Seed tree: {format_node(compact(tree))}")
        return tree

    def _structure(self, nodes: list, prefix: str, suffix: str) -> list:
        """
        Generalize a region of nodes sitting between prefix and suffix.

        Repeated runs are tried first; regions without a run are tried for
        recursive nesting. Returns the (possibly unchanged) node list.
        """
        if not nodes:
            return []
        for start, unit, count in self._runs(nodes):
            result = self._try_repetition(nodes, start, unit, count, prefix, suffix)
            if result is not None:
                return result
        if len(nodes) > 1:
            result = self._try_recursion(nodes, prefix, suffix)
            if result is not None:
                return result
        return list(nodes)

    def _runs(self, nodes: list) -> list[tuple[int, int, int]]:
        """Maximal runs of a repeated unit, widest coverage first."""
        keys = [_key(n) for n in nodes]
        size = len(keys)
        found = []
        for unit in range(1, size // 2 + 1):
            for start in range(0, size - 2 * unit + 1):
                if keys[start] != keys[start + unit]:
                    continue
                pattern = keys[start:start + unit]
                if start >= unit and keys[start - unit:start] == pattern:
                    continue
                count = 1
                while keys[start + count * unit:start + (count + 1) * unit] == pattern:
                    count += 1
                if count >= 2:
                    found.append((unit * count, unit, start, count))
        found.sort(key=lambda run: (-run[0], run[1], run[2]))
        return [(start, unit, count) for _, unit, start, count
                in found[:self.limits.max_repetition_candidates]]

    def _try_repetition(self, nodes, start, unit, count, prefix, suffix) -> Optional[list]:
        left = nodes[:start]
        first = nodes[start:start + unit]
        others = nodes[start + unit:start + unit * count]
        right = nodes[start + unit * count:]

        before = prefix + self._render_all(left)
        after = self._render_all(right) + suffix
        raw = self._render_all(first) + self._render_all(others)
        if not self._accepts(before + raw + self._render_all(first) + after):
            logger.log_generalization_rejected("repetition", format_query(raw))
            return None

        body = sequence_of(self._structure(first, before, self._render_all(others) + after))
        body_text = self._render(body)
        if body_text * count != raw and not self._accepts(before + body_text * count + after):
            return None
        if not self._accepts(before + body_text * (count + 1) + after):
            return None

        minimum = count
        for _ in range(self.limits.max_min_probes):
            if minimum == 0 or not self._accepts(before + body_text * (minimum - 1) + after):
                break
            minimum -= 1

        repetition = Repetition(body, minimum, None)
        logger.log_generalization(
            "repetition", f"{format_node(compact(repetition))} from {count} copies"
        )
        repeated = body_text * minimum
        new_left = self._structure(left, prefix, repeated + after)
        new_right = self._structure(
            right, prefix + self._render_all(new_left) + repeated, suffix
        )
        return new_left + [repetition] + new_right

    def _try_recursion(self, nodes, prefix, suffix) -> Optional[list]:
        texts = [self._render(n) for n in nodes]
        whole = "".join(texts)
        size = len(nodes)
        tried = 0
        for middle in range(size - 2, -1, -1):
            for i in range(1, size - middle):
                j = i + middle
                outer_left = "".join(texts[:i])
                outer_right = "".join(texts[j:])
                if not outer_left or not outer_right:
                    continue
                if tried >= self.limits.max_recursion_candidates:
                    return None
                tried += 1

                deeper = outer_left + whole + outer_right
                deepest = outer_left + deeper + outer_right
                if not (self._accepts(prefix + deeper + suffix)
                        and self._accepts(prefix + deepest + suffix)):
                    continue

                rule_id = self._new_rule_id()
                # reserve the id before structuring the inner region
                self.rules[rule_id] = sequence_of(nodes)
                inner = self._structure(nodes[i:j], prefix + outer_left, outer_right + suffix)
                base = sequence_of(nodes[:i] + inner + nodes[j:])
                nested = sequence_of(nodes[:i] + [Recursive(rule_id)] + nodes[j:])
                self.rules[rule_id] = Alternation((base, nested))
                logger.log_generalization(
                    "recursion",
                    f"{rule_id} ::= {format_node(compact(self.rules[rule_id]))}",
                )
                return [Recursive(rule_id)]
        return None

    # ===== Merging =====

    def _merge_root(self, root: Node, tree: Node) -> Node:
        """Merge a seed tree into the grammar built so far."""
        options = list(root.options) if isinstance(root, Alternation) else [root]
        for index, option in enumerate(options):
            merged = self._try_merge(option, tree)
            if merged is not None:
                options[index] = merged
                return sequence_of(options) if len(options) == 1 else Alternation(tuple(options))
        if tree not in options:
            options.append(tree)
            logger.logger.info(f"Seed tree kept as alternative #{len(options)}")
        return options[0] if len(options) == 1 else Alternation(tuple(options))

    def _try_merge(self, existing: Node, tree: Node) -> Optional[Node]:
        if existing == tree:
            return existing
        try:
            merged = self._merge_structure(existing, tree, "", "")
        except _MergeRejected:
            return None
        if merged is None:
            return None
        text = self._render(merged)
        if text != self._render(existing) and not self._accepts(text):
            return None
        return merged

    def _merge(self, a: Node, b: Node, prefix: str, suffix: str) -> Node:
        """Merge b into a, falling back to an alternation of both."""
        if a == b:
            return a
        try:
            merged = self._merge_structure(a, b, prefix, suffix)
        except _MergeRejected:
            merged = None
        if merged is not None:
            return merged
        return self._alternate(a, b, prefix, suffix)

    def _merge_structure(self, a: Node, b: Node, prefix: str, suffix: str) -> Optional[Node]:
        """
        Structural merge of b into a.

        Returns None when the nodes have no structural correspondence and
        raises _MergeRejected when a correspondence failed validation.
        """
        if isinstance(a, Literal) and isinstance(b, Literal):
            return self._merge_literals(a, b, prefix, suffix)
        if isinstance(a, Repetition) or isinstance(b, Repetition):
            return self._merge_repetitions(a, b, prefix, suffix)
        if isinstance(a, Alternation):
            return a if b in a.options else None
        if isinstance(a, Recursive) and isinstance(b, Recursive):
            return a if self._same_rule(a.target, b.target) else None
        if isinstance(a, Sequence) or isinstance(b, Sequence):
            return self._merge_sequences(_children(a), _children(b), prefix, suffix)
        return None

    def _merge_literals(self, a: Literal, b: Literal, prefix: str, suffix: str) -> Optional[Node]:
        if len(a.text) != 1 or len(b.text) != 1:
            return None
        ca, cb = a.class_at(0), b.class_at(0)
        if ca is None or cb is None:
            return a if a.text == b.text else None
        if ca == cb:
            return a
        if not ca.overlaps(cb):
            return None

        extra = [c for c in dict.fromkeys(cb.checks + (b.text,)) if c not in ca]
        if not self.oracle.try_query_all(prefix + c + suffix for c in extra):
            logger.log_generalization_rejected("class union", f"{ca} | {cb}")
            raise _MergeRejected()
        merged = ca.union(cb, self.limits.max_checks)
        logger.log_generalization("class union", f"{ca} | {cb} -> {merged}")
        return Literal(a.text, (merged,))

    def _merge_repetitions(self, a: Node, b: Node, prefix: str, suffix: str) -> Node:
        ra = a if isinstance(a, Repetition) else Repetition(a, 1, None)
        rb = b if isinstance(b, Repetition) else Repetition(b, 1, None)

        copies = max(ra.min, 1)
        body_text = self._render(ra.body)
        body = self._merge(ra.body, rb.body, prefix, body_text * (copies - 1) + suffix)
        minimum = min(ra.min, rb.min)
        maximum = None if ra.max is None or rb.max is None else max(ra.max, rb.max)

        merged_text = self._render(body)
        for count in sorted({minimum, max(minimum, 1), minimum + 1}):
            if not self._accepts(prefix + merged_text * count + suffix):
                logger.log_generalization_rejected(
                    "repetition merge", f"{count} x {format_query(merged_text)}"
                )
                raise _MergeRejected()
        return Repetition(body, minimum, maximum)

    def _merge_sequences(self, a_children: tuple, b_children: tuple,
                         prefix: str, suffix: str) -> Node:
        """Align two child lists and merge them position by position."""
        matcher = difflib.SequenceMatcher(
            None,
            [_key(n) for n in a_children],
            [_key(n) for n in b_children],
            autojunk=False,
        )
        merged = []
        for tag, i1, i2, j1, j2 in matcher.get_opcodes():
            if i2 - i1 == j2 - j1:
                mark = len(merged)
                try:
                    for offset in range(i2 - i1):
                        merged.append(self._merge(
                            a_children[i1 + offset],
                            b_children[j1 + offset],
                            prefix + self._render_all(merged),
                            self._render_all(a_children[i1 + offset + 1:]) + suffix,
                        ))
                    continue
                except _MergeRejected:
                    del merged[mark:]
            merged.append(self._alternate(
                sequence_of(a_children[i1:i2]),
                sequence_of(b_children[j1:j2]),
                prefix + self._render_all(merged),
                self._render_all(a_children[i2:]) + suffix,
            ))
        return sequence_of(merged)

    def _alternate(self, a: Node, b: Node, prefix: str, suffix: str) -> Node:
        """Add b (or its options) as validated alternatives of a."""
        options = list(a.options) if isinstance(a, Alternation) else [a]
        for option in (b.options if isinstance(b, Alternation) else (b,)):
            if option in options:
                continue
            if not self._accepts(prefix + self._render(option) + suffix):
                logger.log_generalization_rejected("alternation", format_node(compact(option)))
                raise _MergeRejected()
            options.append(option)
        if len(options) == 1:
            return options[0]
        alternation = Alternation(tuple(options))
        logger.log_generalization("alternation", format_node(compact(alternation)))
        return alternation

    def _same_rule(self, a_id: str, b_id: str) -> bool:
        if a_id == b_id:
            return True
        return rename_target(self.rules[b_id], b_id, a_id) == self.rules[a_id]

    # ===== Refinement =====

    def _refine_all(self, root: Node) -> Node:
        for _ in range(self.limits.max_refine_passes):
            refined = self._refine(root, "", "")
            if refined == root:
                break
            if not self._accepts(self._render(refined)):
                break
            root = refined
        return root

    def _refine(self, node: Node, prefix: str, suffix: str) -> Node:
        if isinstance(node, Sequence):
            return sequence_of(self._structure(list(node.children), prefix, suffix))
        if isinstance(node, Alternation):
            options = []
            for index, option in enumerate(node.options):
                refined = self._refine(option, prefix, suffix)
                if (index > 0 and refined != option
                        and not self._accepts(prefix + self._render(refined) + suffix)):
                    refined = option
                options.append(refined)
            return Alternation(tuple(options))
        if isinstance(node, Repetition):
            copies = max(node.min, 1)
            body_text = self._render(node.body)
            body = self._refine(node.body, prefix, body_text * (copies - 1) + suffix)
            new_text = self._render(body)
            if new_text != body_text and not self._accepts(prefix + new_text * copies + suffix):
                body = node.body
            return Repetition(body, node.min, node.max)
        return node

    # ===== Finalization =====

    def _finalize(self, root: Node) -> Grammar:
        """Compact literals, drop unreachable rules and validate."""
        reachable = set()
        pending = [root]
        while pending:
            for node in iter_nodes(pending.pop()):
                if isinstance(node, Recursive) and node.target not in reachable:
                    reachable.add(node.target)
                    pending.append(self.rules[node.target])

        rules = {
            rule_id: compact(rule)
            for rule_id, rule in self.rules.items()
            if rule_id in reachable
        }
        grammar = Grammar(compact(root), rules)
        grammar.validate()
        logger.logger.info(f"Synthesized grammar:\n{grammar}")
        return grammar


def synthesize(seeds: Iterable[str], oracle: Oracle,
               limits: Optional[SynthesisLimits] = None) -> Grammar:
    """
    Synthesize a grammar from seed inputs.

    Args:
        seeds: Accepted example inputs
        oracle: Accept/reject function for candidate inputs
        limits: Synthesis configuration (default: DEFAULT_LIMITS)

    Returns:
        Grammar covering the seeds

    Example:
        >>> oracle = FunctionOracle(lambda s: set(s) == {"a"} and len(s) >= 3)
        >>> grammar = synthesize(["aaa", "aaaa"], oracle)
        >>> grammar.root
        Repetition(body=Literal(text='a', ...), min=3, max=None)
    """
    return StructuralSynthesizer(oracle, limits).synthesize(seeds)
