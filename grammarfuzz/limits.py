"""
Synthesis configuration and query limits for grammarfuzz.

A SynthesisLimits value is built once and handed to the character
generalizer and the structural synthesizer; there is no global state.
"""

from dataclasses import dataclass
from typing import Optional

from grammarfuzz.charset import InputAlphabet


@dataclass(frozen=True)
class SynthesisLimits:
    """Configuration for grammar synthesis and its oracle query budget."""

    # Character generalization
    alphabet: InputAlphabet = InputAlphabet.ASCII
    """Alphabet substitutes are drawn from (ASCII: 128 chars, BYTE: 256)"""

    exhaustive_characters: bool = True
    """
    Try every character of the alphabet at every position (default: True).
    When False only the predefined classes are tried.
    """

    max_checks: int = 8
    """Maximum number of checks stored per character class (default: 8)"""

    # Query budget
    max_queries: Optional[int] = None
    """
    Maximum number of distinct oracle queries issued during synthesis.
    Seed validation is not counted. Set to None for no limit.
    """

    # Structural search
    max_repetition_candidates: int = 64
    """Maximum repeated runs tried per region (default: 64)"""

    max_recursion_candidates: int = 64
    """Maximum nesting splits tried per region (default: 64)"""

    max_min_probes: int = 32
    """
    Maximum number of shorter repeat counts probed when lowering the
    minimum of a repetition (default: 32).
    """

    max_refine_passes: int = 2
    """Structural passes over the merged grammar (default: 2)"""

    def __post_init__(self):
        """Validate limits make sense."""
        if not isinstance(self.alphabet, InputAlphabet):
            raise ValueError("alphabet must be an InputAlphabet")

        if self.max_checks < 1:
            raise ValueError("max_checks must be at least 1")

        if self.max_queries is not None and self.max_queries < 0:
            raise ValueError("max_queries must be non-negative or None")

        if self.max_repetition_candidates < 0:
            raise ValueError("max_repetition_candidates must be non-negative")

        if self.max_recursion_candidates < 0:
            raise ValueError("max_recursion_candidates must be non-negative")

        if self.max_min_probes < 0:
            raise ValueError("max_min_probes must be non-negative")

        if self.max_refine_passes < 0:
            raise ValueError("max_refine_passes must be non-negative")


# Default limits: exhaustive character search, no query budget
DEFAULT_LIMITS = SynthesisLimits()

# Cheap limits for slow oracles
STRICT_LIMITS = SynthesisLimits(
    exhaustive_characters=False,
    max_checks=4,
    max_queries=5_000,
    max_repetition_candidates=16,
    max_recursion_candidates=16,
    max_min_probes=8,
    max_refine_passes=1,
)

# Wider search for fast oracles
RELAXED_LIMITS = SynthesisLimits(
    max_checks=16,
    max_repetition_candidates=256,
    max_recursion_candidates=256,
    max_min_probes=128,
    max_refine_passes=4,
)
