"""
JSON serialization/deserialization for grammarfuzz grammars.

This module allows saving a synthesized grammar to disk and loading it
back for fuzzing, so synthesis and sampling can run as separate steps.
"""

import json
from typing import Any, Dict, Optional

from grammarfuzz import logger
from grammarfuzz.charset import CharacterClass
from grammarfuzz.errors import GrammarFormatError
from grammarfuzz.grammar import (
    Alternation, Grammar, Literal, Node, Recursive, Repetition, Sequence,
)

FORMAT_VERSION = "0.1.0"


# ===== Character Class Serialization =====

def serialize_character_class(cls: Optional[CharacterClass]) -> Optional[Dict[str, Any]]:
    """
    Convert a CharacterClass to a JSON-serializable dict.

    Args:
        cls: CharacterClass or None

    Returns:
        Dict representation or None
    """
    if cls is None:
        return None

    return {
        "triggers": "".join(sorted(cls.triggers)),
        "characters": "".join(cls.characters),
        "checks": "".join(cls.checks)
    }


def deserialize_character_class(data: Optional[Dict[str, Any]]) -> Optional[CharacterClass]:
    """
    Convert a dict back to a CharacterClass.

    Args:
        data: Dict representation from serialize_character_class or None

    Returns:
        CharacterClass or None
    """
    if data is None:
        return None

    return CharacterClass(
        triggers=frozenset(data["triggers"]),
        characters=tuple(sorted(set(data["characters"]))),
        checks=tuple(data["checks"])
    )


# ===== Node Serialization =====

def serialize_node(node: Node) -> Dict[str, Any]:
    """
    Convert a grammar Node to a JSON-serializable dict.

    Args:
        node: Grammar node

    Returns:
        Dict representation of the node
    """
    if isinstance(node, Literal):
        return {
            "type": "literal",
            "text": node.text,
            "classes": [serialize_character_class(c) for c in node.classes]
        }

    elif isinstance(node, Sequence):
        return {
            "type": "sequence",
            "children": [serialize_node(child) for child in node.children]
        }

    elif isinstance(node, Alternation):
        return {
            "type": "alternation",
            "options": [serialize_node(option) for option in node.options]
        }

    elif isinstance(node, Repetition):
        return {
            "type": "repetition",
            "body": serialize_node(node.body),
            "min": node.min,
            "max": node.max
        }

    elif isinstance(node, Recursive):
        return {
            "type": "recursive",
            "target": node.target
        }

    else:
        raise ValueError(f"Unknown node type: {type(node)}")


def _is_count(value) -> bool:
    # bool is an int subclass but never a valid bound
    return isinstance(value, int) and not isinstance(value, bool)


def deserialize_node(data: Dict[str, Any]) -> Node:
    """
    Convert a dict back to a grammar Node.

    Args:
        data: Dict representation from serialize_node

    Returns:
        Grammar node
    """
    node_type = data["type"]

    if node_type == "literal":
        if not isinstance(data["text"], str):
            raise ValueError("Literal text must be a string")
        return Literal(
            data["text"],
            tuple(deserialize_character_class(c) for c in data.get("classes", []))
        )

    elif node_type == "sequence":
        return Sequence(tuple(deserialize_node(child) for child in data["children"]))

    elif node_type == "alternation":
        return Alternation(tuple(deserialize_node(option) for option in data["options"]))

    elif node_type == "repetition":
        minimum, maximum = data["min"], data.get("max")
        if not _is_count(minimum) or (maximum is not None and not _is_count(maximum)):
            raise ValueError("Repetition bounds must be integers")
        return Repetition(deserialize_node(data["body"]), minimum, maximum)

    elif node_type == "recursive":
        if not isinstance(data["target"], str):
            raise ValueError("Recursive target must be a string")
        return Recursive(data["target"])

    else:
        raise ValueError(f"Unknown node type: {node_type}")


# ===== Grammar Serialization =====

def serialize_grammar(grammar: Grammar) -> Dict[str, Any]:
    """
    Convert a Grammar to a JSON-serializable dict.

    Args:
        grammar: Synthesized grammar

    Returns:
        Dict representation of the grammar

    Example:
        >>> grammar = synthesize(seeds, oracle)
        >>> data = serialize_grammar(grammar)
        >>> json_str = json.dumps(data)
    """
    return {
        "version": FORMAT_VERSION,
        "root": serialize_node(grammar.root),
        "rules": {
            rule_id: serialize_node(rule)
            for rule_id, rule in grammar.rules.items()
        }
    }


def deserialize_grammar(data: Dict[str, Any]) -> Grammar:
    """
    Convert a dict back to a Grammar.

    Args:
        data: Dict representation from serialize_grammar

    Returns:
        Validated Grammar

    Raises:
        GrammarFormatError: If the data does not describe a valid grammar

    Example:
        >>> data = json.loads(json_str)
        >>> grammar = deserialize_grammar(data)
        >>> sampler = GrammarMutationSampler(grammar)
    """
    if not isinstance(data, dict):
        raise GrammarFormatError("Grammar data must be a JSON object")

    # Check version for future compatibility
    version = data.get("version", FORMAT_VERSION)
    if version != FORMAT_VERSION:
        raise GrammarFormatError(f"Unsupported grammar version: {version}")

    try:
        grammar = Grammar(
            deserialize_node(data["root"]),
            {
                str(rule_id): deserialize_node(rule)
                for rule_id, rule in data.get("rules", {}).items()
            }
        )
        grammar.validate()
    except (KeyError, TypeError, ValueError, AttributeError, RecursionError) as e:
        raise GrammarFormatError(f"Malformed grammar: {e}") from e

    return grammar


def grammar_to_json(grammar: Grammar, indent: int = 2) -> str:
    """
    Convert a Grammar to a JSON string.

    Args:
        grammar: Synthesized grammar
        indent: JSON indentation (default: 2)

    Returns:
        JSON string
    """
    return json.dumps(serialize_grammar(grammar), indent=indent)


def grammar_from_json(json_str: str) -> Grammar:
    """
    Convert a JSON string to a Grammar.

    Args:
        json_str: JSON string from grammar_to_json

    Returns:
        Validated Grammar

    Raises:
        GrammarFormatError: If the string is not a valid grammar document
    """
    try:
        data = json.loads(json_str)
    except (json.JSONDecodeError, RecursionError) as e:
        raise GrammarFormatError(f"Invalid grammar JSON: {e}") from e
    return deserialize_grammar(data)


def save_grammar(grammar: Grammar, path: str) -> None:
    """
    Write a grammar to a file as JSON.

    Args:
        grammar: Synthesized grammar
        path: Destination file
    """
    logger.log_grammar_saved(path)
    with open(path, "w", encoding="utf-8") as f:
        f.write(grammar_to_json(grammar))


def load_grammar(path: str) -> Grammar:
    """
    Read a grammar written by save_grammar.

    Args:
        path: Grammar file

    Returns:
        Validated Grammar

    Raises:
        FileNotFoundError: If path does not exist
        GrammarFormatError: If the file is not a valid grammar document
    """
    logger.log_grammar_loaded(path)
    with open(path, "r", encoding="utf-8") as f:
        return grammar_from_json(f.read())
