"""
Input alphabets and character classes.

A CharacterClass describes which characters can stand in for an observed
character at one position of an accepted input.
"""

import string
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional


class InputAlphabet(Enum):
    """Alphabet the oracle is queried with"""
    ASCII = 128
    BYTE = 256

    @property
    def size(self) -> int:
        return self.value

    def characters(self) -> list[str]:
        return [chr(code) for code in range(self.value)]

    @classmethod
    def from_name(cls, name: str) -> "InputAlphabet":
        try:
            return cls[name.upper()]
        except KeyError:
            raise ValueError(f"Unknown input alphabet: {name}") from None


@dataclass(frozen=True)
class CharacterClass:
    """
    Substitutable characters for one position.

    triggers: characters whose presence justifies trying this class
    characters: full substitutable alphabet, sorted by code point
    checks: subset of characters that was confirmed against the oracle and
        is re-verified whenever the class is reused in another context
    """
    triggers: frozenset
    characters: tuple
    checks: tuple

    def __contains__(self, char: str) -> bool:
        return char in self.characters

    def __len__(self):
        return len(self.characters)

    def __str__(self):
        return format_class(self)

    def overlaps(self, other: "CharacterClass") -> bool:
        return not set(self.characters).isdisjoint(other.characters)

    def union(self, other: "CharacterClass", max_checks: int) -> "CharacterClass":
        """Combine two classes; checks keep this class's entries first."""
        characters = tuple(sorted(set(self.characters) | set(other.characters)))
        checks = tuple(dict.fromkeys(self.checks + other.checks))[:max_checks]
        return CharacterClass(
            triggers=self.triggers | other.triggers,
            characters=characters,
            checks=checks,
        )


def make_class(characters: Iterable[str], checks: Iterable[str] = None,
               triggers: Iterable[str] = None) -> CharacterClass:
    """Build a CharacterClass, triggers and checks default to all characters."""
    chars = tuple(sorted(set(characters)))
    return CharacterClass(
        triggers=frozenset(chars if triggers is None else triggers),
        characters=chars,
        checks=chars if checks is None else tuple(checks),
    )


def singleton(char: str) -> CharacterClass:
    """Class that admits only the observed character."""
    return make_class(char)


def pick_checks(characters: tuple, original: str, max_checks: int) -> tuple:
    """
    Choose a deterministic, evenly spaced subset of characters to re-verify.

    The original character is always kept since it is known to be accepted.
    """
    if len(characters) <= max_checks:
        return tuple(characters)
    step = len(characters) / max_checks
    picked = [characters[int(i * step)] for i in range(max_checks)]
    if original not in picked:
        picked[0] = original
    return tuple(dict.fromkeys(picked))


# Predefined classes tried before the exhaustive scan. Each one is accepted
# only if every one of its checks keeps the input valid.
PREDEFINED_CLASSES = (
    make_class(string.digits, checks="059"),
    make_class(string.ascii_lowercase, checks="amz"),
    make_class(string.ascii_uppercase, checks="AMZ"),
    make_class(" \t", checks=" \t"),
)


def _escape_char(char: str, special: str = "") -> str:
    if char in special or char == "\\":
        return "\\" + char
    if char in string.printable and char not in "\t\n\r\x0b\x0c":
        return char
    return f"\\x{ord(char):02x}"


def format_class(cls: CharacterClass) -> str:
    """Render a class as a bracket expression with ranges, e.g. [0-9a-f]."""
    codes = [ord(c) for c in cls.characters]
    if len(codes) == 1:
        return _escape_char(cls.characters[0], "()[]{}|*+<>")
    parts = []
    start = prev = codes[0]
    for code in codes[1:] + [None]:
        if code is not None and code == prev + 1:
            prev = code
            continue
        first = _escape_char(chr(start), "[]-^")
        if prev - start >= 2:
            parts.append(f"{first}-{_escape_char(chr(prev), '[]-^')}")
        elif prev != start:
            parts.append(first + _escape_char(chr(prev), "[]-^"))
        else:
            parts.append(first)
        if code is not None:
            start = prev = code
    return "[" + "".join(parts) + "]"


def format_query(query: str, alphabet: Optional[InputAlphabet] = None) -> str:
    """
    Render an oracle input for logs and terminal output.

    ASCII inputs show control characters as \\xNN; BYTE inputs are shown
    as hex pairs.
    """
    if alphabet is InputAlphabet.BYTE:
        return "".join(f"{ord(c):02x}" for c in query)
    out = []
    for char in query:
        if ord(char) < 32 or ord(char) == 127:
            out.append(f"\\x{ord(char):02x}")
        else:
            out.append(char)
    return "".join(out)
