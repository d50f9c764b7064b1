"""
Tests for input alphabets and character classes.
"""

import string

import pytest

from grammarfuzz.charset import (
    PREDEFINED_CLASSES, InputAlphabet, format_class, format_query,
    make_class, pick_checks, singleton,
)


def test_alphabet_sizes():
    """Test ASCII and BYTE alphabets cover the expected code points."""
    assert len(InputAlphabet.ASCII.characters()) == 128
    assert len(InputAlphabet.BYTE.characters()) == 256
    assert InputAlphabet.BYTE.characters()[255] == "\xff"


def test_alphabet_from_name():
    """Test alphabet lookup is case-insensitive."""
    assert InputAlphabet.from_name("byte") is InputAlphabet.BYTE
    assert InputAlphabet.from_name("ASCII") is InputAlphabet.ASCII

    with pytest.raises(ValueError, match="Unknown input alphabet"):
        InputAlphabet.from_name("utf8")


def test_make_class_defaults():
    """Test triggers and checks default to all characters, sorted."""
    cls = make_class("cba")

    assert cls.characters == ("a", "b", "c")
    assert cls.triggers == frozenset("abc")
    assert cls.checks == ("a", "b", "c")
    assert "b" in cls
    assert "d" not in cls
    assert len(cls) == 3


def test_singleton():
    cls = singleton("x")
    assert cls.characters == ("x",)
    assert cls.checks == ("x",)


def test_union_keeps_own_checks_first():
    """Test union merges characters and triggers, checks stay ordered."""
    left = make_class("ab", checks="a")
    right = make_class("bc", checks="c")

    merged = left.union(right, max_checks=8)

    assert merged.characters == ("a", "b", "c")
    assert merged.triggers == frozenset("abc")
    assert merged.checks == ("a", "c")


def test_union_truncates_checks():
    left = make_class("ab", checks="a")
    right = make_class("bc", checks="c")

    assert left.union(right, max_checks=1).checks == ("a",)


def test_overlaps():
    assert make_class("abc").overlaps(make_class("cde"))
    assert not make_class("abc").overlaps(make_class("xyz"))


def test_pick_checks_small_class():
    """Test small classes are checked completely."""
    assert pick_checks(("a", "b"), "a", 8) == ("a", "b")


def test_pick_checks_keeps_original():
    """Test the observed character is always among the checks."""
    chars = tuple("abcdefghij")

    checks = pick_checks(chars, "b", 5)

    assert checks == ("b", "c", "e", "g", "i")


def test_predefined_classes():
    """Test predefined classes cover digits, letters and blanks."""
    characters = [cls.characters for cls in PREDEFINED_CLASSES]
    assert tuple(string.digits) in characters
    assert tuple(string.ascii_lowercase) in characters
    assert tuple(string.ascii_uppercase) in characters
    assert tuple("\t ") in characters


def test_format_class_ranges():
    """Test classes render as bracket expressions with ranges."""
    assert format_class(make_class(string.ascii_lowercase)) == "[a-z]"
    assert format_class(make_class("0123456789abcdef")) == "[0-9a-f]"
    assert format_class(make_class("ab")) == "[ab]"
    assert format_class(make_class("(")) == "\\("


def test_format_query_ascii():
    """Test control characters are shown as hex escapes."""
    assert format_query("a\nb") == "a\\x0ab"
    assert format_query("plain text") == "plain text"


def test_format_query_byte():
    """Test BYTE inputs render as hex pairs."""
    assert format_query("AB\xff", InputAlphabet.BYTE) == "4142ff"
