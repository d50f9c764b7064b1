"""
Tests for JSON serialization/deserialization of grammars.
"""

import json
import string

import pytest

from grammarfuzz.charset import make_class
from grammarfuzz.errors import GrammarFormatError
from grammarfuzz.grammar import (
    Alternation, Grammar, Literal, Recursive, Repetition, Sequence,
)
from grammarfuzz.serialization import (
    deserialize_character_class, deserialize_grammar, deserialize_node,
    grammar_from_json, grammar_to_json, load_grammar, save_grammar,
    serialize_character_class, serialize_grammar, serialize_node,
)
from grammarfuzz.synthesis import synthesize


def sample_grammar():
    lower = make_class(string.ascii_lowercase, checks="amz")
    rule = Alternation((
        Literal("()"),
        Sequence((Literal("("), Recursive("r0"), Literal(")"))),
    ))
    root = Sequence((
        Literal("x=", (lower, None)),
        Repetition(Literal("1", (make_class(string.digits),)), 1, None),
        Alternation((Literal(";"), Sequence(()))),
        Repetition(Recursive("r0"), 0, 3),
    ))
    return Grammar(root, {"r0": rule})


def test_serialize_grammar_structure():
    """Test the serialized layout of a grammar."""
    data = serialize_grammar(sample_grammar())

    assert data["version"] == "0.1.0"
    assert data["root"]["type"] == "sequence"
    assert set(data["rules"]) == {"r0"}
    assert data["rules"]["r0"]["type"] == "alternation"

    literal = data["root"]["children"][0]
    assert literal["text"] == "x="
    assert literal["classes"][0]["characters"] == string.ascii_lowercase
    assert literal["classes"][0]["checks"] == "amz"
    assert literal["classes"][1] is None


def test_character_class_roundtrip():
    cls = make_class("abc", checks="b", triggers="a")

    assert deserialize_character_class(serialize_character_class(cls)) == cls
    assert deserialize_character_class(None) is None


def test_node_roundtrip():
    node = Repetition(Sequence((Literal("a"), Recursive("r1"))), 2, 4)

    assert deserialize_node(serialize_node(node)) == node


def test_grammar_json_roundtrip():
    """Test a grammar survives a JSON roundtrip unchanged."""
    grammar = sample_grammar()

    restored = grammar_from_json(grammar_to_json(grammar))

    assert restored == grammar
    assert restored.default() == grammar.default()


def test_synthesized_grammar_roundtrip(paren_oracle):
    grammar = synthesize(["()"], paren_oracle)

    restored = grammar_from_json(grammar_to_json(grammar, indent=None))

    assert restored == grammar
    assert str(restored) == str(grammar)


def test_save_and_load(tmp_path):
    grammar = sample_grammar()
    path = tmp_path / "sample.gram"

    save_grammar(grammar, str(path))

    assert json.loads(path.read_text(encoding="utf-8"))["version"] == "0.1.0"
    assert load_grammar(str(path)) == grammar


def test_load_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_grammar(str(tmp_path / "missing.gram"))


def test_invalid_json():
    with pytest.raises(GrammarFormatError, match="Invalid grammar JSON"):
        grammar_from_json("{not json")


def test_unsupported_version():
    data = serialize_grammar(sample_grammar())
    data["version"] = "9.9.9"

    with pytest.raises(GrammarFormatError, match="Unsupported grammar version"):
        deserialize_grammar(data)


def test_malformed_documents():
    """Test structural problems are reported as GrammarFormatError."""
    bad_documents = [
        [],
        {"version": "0.1.0"},
        {"root": {"type": "wildcard"}},
        {"root": {"type": "literal"}},
        {"root": {"type": "literal", "text": 5}},
        {"root": {"type": "literal", "text": "ab", "classes": [None]}},
        {"root": {"type": "repetition", "body": {"type": "literal", "text": "a"}, "min": 3, "max": 1}},
        {"root": {"type": "repetition", "body": {"type": "literal", "text": "a"}, "min": 1.5}},
        {"root": {"type": "repetition", "body": {"type": "literal", "text": "a"}, "min": True}},
        {"root": {"type": "repetition", "body": {"type": "literal", "text": "a"}, "min": 1, "max": "3"}},
        {"root": {"type": "repetition", "body": {"type": "literal", "text": "a"}, "min": "2"}},
        {"root": {"type": "recursive", "target": ["r0"]}},
        {"root": {"type": "sequence", "children": 7}},
        {"root": {"type": "literal", "text": "a"}, "rules": []},
    ]
    for data in bad_documents:
        with pytest.raises(GrammarFormatError):
            deserialize_grammar(data)


def test_dangling_rule_reference():
    data = {"root": {"type": "recursive", "target": "r0"}, "rules": {}}

    with pytest.raises(GrammarFormatError, match="unknown rule"):
        deserialize_grammar(data)


def test_rule_without_base_case():
    rule = {"type": "sequence", "children": [
        {"type": "literal", "text": "("},
        {"type": "recursive", "target": "r0"},
        {"type": "literal", "text": ")"},
    ]}
    data = {"root": {"type": "recursive", "target": "r0"}, "rules": {"r0": rule}}

    with pytest.raises(GrammarFormatError, match="no base case"):
        deserialize_grammar(data)
