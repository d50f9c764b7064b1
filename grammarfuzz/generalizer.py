"""
Character generalization.

For one character of an accepted input, finds the set of characters that
can replace it while keeping the input accepted.
"""

from typing import Optional

from grammarfuzz import logger
from grammarfuzz.charset import (
    PREDEFINED_CLASSES, CharacterClass, format_class, make_class, pick_checks,
)
from grammarfuzz.limits import SynthesisLimits, DEFAULT_LIMITS
from grammarfuzz.oracle import CachingOracle, Oracle


class CharacterGeneralizer:
    """
    Discovers character classes position by position.

    Classes learned at one position are remembered by trigger character.
    When the same character shows up again, the remembered class is reused
    if all of its checks pass in the new context; otherwise the position is
    generalized from scratch.

    Example:
        >>> generalizer = CharacterGeneralizer(oracle)
        >>> cls = generalizer.generalize("x=", "1", ";")
        >>> "7" in cls
        True
    """

    def __init__(self, oracle: Oracle, limits: Optional[SynthesisLimits] = None):
        self.limits = limits or DEFAULT_LIMITS
        if isinstance(oracle, CachingOracle):
            self.oracle = oracle
        else:
            self.oracle = CachingOracle(oracle, self.limits.max_queries)
        self._learned: dict[str, list[CharacterClass]] = {}

    def _accepts_all(self, prefix: str, suffix: str, chars) -> bool:
        return self.oracle.try_query_all(prefix + c + suffix for c in chars)

    def _reuse(self, prefix: str, char: str, suffix: str) -> Optional[CharacterClass]:
        for cls in reversed(self._learned.get(char, ())):
            if self._accepts_all(prefix, suffix, cls.checks):
                return cls
        return None

    def _scan(self, prefix: str, suffix: str, chars, accepted: set) -> None:
        candidates = [c for c in chars if c not in accepted]
        results = self.oracle.try_query_many(prefix + c + suffix for c in candidates)
        accepted.update(c for c, ok in zip(candidates, results) if ok)

    def _remember(self, cls: CharacterClass) -> None:
        for trigger in sorted(cls.triggers):
            known = self._learned.setdefault(trigger, [])
            if cls not in known:
                known.append(cls)

    def generalize(self, prefix: str, char: str, suffix: str) -> CharacterClass:
        """
        Generalize char, which sits between prefix and suffix.

        prefix + char + suffix must be an accepted input.

        Predefined classes whose checks pass are scanned member by member;
        a passing check never admits untested characters.

        Returns:
            CharacterClass whose characters were all accepted in this context
        """
        cls = self._reuse(prefix, char, suffix)
        if cls is not None:
            logger.logger.debug(f"Reusing class {format_class(cls)} for {char!r}")
            return cls

        # Only characters the oracle accepted here may join the class.
        accepted = {char}
        for predefined in PREDEFINED_CLASSES:
            if char not in predefined.triggers:
                continue
            if self._accepts_all(prefix, suffix, predefined.checks):
                self._scan(prefix, suffix, predefined.characters, accepted)

        if self.limits.exhaustive_characters:
            self._scan(prefix, suffix, self.limits.alphabet.characters(), accepted)

        characters = tuple(sorted(accepted))
        cls = make_class(
            characters,
            checks=pick_checks(characters, char, self.limits.max_checks),
        )
        if len(characters) > 1:
            logger.log_generalization("character", f"{char!r} -> {format_class(cls)}")
        self._remember(cls)
        return cls

    def generalize_string(self, text: str) -> list[CharacterClass]:
        """Generalize every position of an accepted input."""
        return [
            self.generalize(text[:i], char, text[i + 1:])
            for i, char in enumerate(text)
        ]
