"""
Tests for structural grammar synthesis.
"""

import pytest

from grammarfuzz.charset import make_class
from grammarfuzz.errors import EmptyInputError, OracleError, SeedRejectedError
from grammarfuzz.grammar import (
    Alternation, Literal, Recursive, Repetition, Sequence, format_node,
)
from grammarfuzz.limits import SynthesisLimits
from grammarfuzz.oracle import FunctionOracle
from grammarfuzz.sampler import GrammarMutationSampler, SampleParameters
from grammarfuzz.synthesis import StructuralSynthesizer, compact, synthesize


def test_repetition_from_seeds(a_oracle):
    """Test runs of a character become a repetition with a lowered minimum."""
    grammar = synthesize(["aaa", "aaaa"], a_oracle)

    assert grammar.root == Repetition(Literal("a", (make_class("a"),)), 3, None)
    assert grammar.rules == {}
    assert grammar.default() == "aaa"
    assert str(grammar) == "(a){3,}"


def test_repetition_samples_stay_in_language(a_oracle):
    """Test samples of a learned repetition only repeat the seed character."""
    grammar = synthesize(["aaa", "aaaa"], a_oracle)

    params = SampleParameters(recursion_probability=0.0)
    sampler = GrammarMutationSampler(grammar, params, mutations=5, random_seed=3)
    samples = [next(sampler) for _ in range(10)]

    for sample in samples:
        assert set(sample) == {"a"}
        assert len(sample) >= 3
        assert a_oracle.query(sample)


def test_reject_all_oracle_rejects_every_seed_set(reject_oracle):
    """Test an oracle that accepts nothing rejects any non-empty seed list."""
    for seeds in (["a"], ["()", "(())"], ["x=1", "y=22", "z"], [""]):
        with pytest.raises(SeedRejectedError) as exc_info:
            synthesize(seeds, reject_oracle)

        assert exc_info.value.seed == seeds[0]


def test_recursion_from_single_seed(paren_oracle):
    """Test nested delimiters become a recursive rule."""
    grammar = synthesize(["()"], paren_oracle)

    assert grammar.root == Recursive("r0")
    rule = grammar.rules["r0"]
    assert isinstance(rule, Alternation)
    base, nested = rule.options
    assert base == Literal("()", (make_class("("), make_class(")")))
    assert nested == Sequence((
        Literal("(", (make_class("("),)),
        Recursive("r0"),
        Literal(")", (make_class(")"),)),
    ))
    assert grammar.default() == "()"


def test_recursion_from_several_seeds(paren_oracle):
    """Test every generated input of a multi-seed grammar stays balanced."""
    grammar = synthesize(["()", "(())"], paren_oracle)

    assert paren_oracle.query(grammar.default())

    params = SampleParameters(recursion_probability=0.5)
    sampler = GrammarMutationSampler(grammar, params, mutations=3, random_seed=1)
    for _ in range(100):
        assert paren_oracle.query(next(sampler))


def test_rejected_seed(a_oracle):
    """Test a seed the oracle rejects aborts synthesis."""
    with pytest.raises(SeedRejectedError) as exc_info:
        synthesize(["aaa", "b"], a_oracle)

    assert exc_info.value.seed == "b"
    assert "'b'" in str(exc_info.value)


def test_no_seeds(a_oracle):
    with pytest.raises(EmptyInputError):
        synthesize([], a_oracle)


def test_oracle_failure_propagates():
    """Test oracle errors are not swallowed."""
    oracle = FunctionOracle(lambda s: s == "ab" or 1 / 0)

    with pytest.raises(OracleError):
        synthesize(["ab"], oracle)


def test_default_is_accepted(assign_oracle):
    """Test the default string of a synthesized grammar is accepted."""
    grammar = synthesize(["x=42", "count=7"], assign_oracle)

    assert assign_oracle.query(grammar.default())
    assert "[a-z]" in str(grammar)
    assert "[0-9]" in str(grammar)


def test_samples_mostly_accepted(assign_oracle):
    """Test mutated samples of a learned grammar stay in the language."""
    grammar = synthesize(["x=42"], assign_oracle)
    sampler = GrammarMutationSampler(grammar, mutations=5, random_seed=3)

    samples = [next(sampler) for _ in range(200)]

    assert all(assign_oracle.query(s) for s in samples)
    assert len(set(samples)) > 20


def test_synthesis_is_deterministic(assign_oracle):
    first = synthesize(["x=42", "ab=1"], assign_oracle)
    second = synthesize(["x=42", "ab=1"], assign_oracle)

    assert first == second


def test_unrelated_seeds_become_alternatives():
    """Test seeds with no common structure are kept side by side."""
    oracle = FunctionOracle(lambda s: s in ("cat", "dog!"))

    grammar = synthesize(["cat", "dog!"], oracle)

    assert isinstance(grammar.root, Alternation)
    assert [grammar.concretize(o) for o in grammar.root.options] == ["cat", "dog!"]


def test_exhausted_budget_keeps_seed(a_oracle):
    """Test a zero query budget falls back to the literal seed."""
    limits = SynthesisLimits(max_queries=0)

    grammar = synthesize(["aaa"], a_oracle, limits)

    assert isinstance(grammar.root, Literal)
    assert grammar.default() == "aaa"


def test_query_counters(a_oracle):
    synthesizer = StructuralSynthesizer(a_oracle)

    synthesizer.synthesize(["aaa"])

    assert synthesizer.oracle.queries > 0
    assert synthesizer.oracle.hits > 0


def test_compact_joins_literals():
    node = Sequence((
        Literal("a"),
        Sequence((Literal("b"), Literal(""))),
        Repetition(Sequence((Literal("c"), Literal("d"))), 1),
    ))

    compacted = compact(node)

    assert compacted == Sequence((Literal("ab"), Repetition(Literal("cd"), 1)))
    assert format_node(compacted) == "ab(cd)+"


def test_compact_pads_missing_classes():
    digit = make_class("0123456789")

    joined = compact(Sequence((Literal("x"), Literal("1", (digit,)))))

    assert joined == Literal("x1", (None, digit))
