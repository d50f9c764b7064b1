"""
Tests for synthesis configuration and the logger.
"""

import pytest

from grammarfuzz import logger
from grammarfuzz.charset import InputAlphabet
from grammarfuzz.limits import (
    DEFAULT_LIMITS, RELAXED_LIMITS, STRICT_LIMITS, SynthesisLimits,
)


def test_default_limits():
    """Test default limits search exhaustively without a budget."""
    assert DEFAULT_LIMITS.alphabet is InputAlphabet.ASCII
    assert DEFAULT_LIMITS.exhaustive_characters
    assert DEFAULT_LIMITS.max_queries is None


def test_presets_are_ordered():
    """Test strict limits are tighter than relaxed ones."""
    assert STRICT_LIMITS.max_queries is not None
    assert not STRICT_LIMITS.exhaustive_characters
    assert STRICT_LIMITS.max_checks < DEFAULT_LIMITS.max_checks < RELAXED_LIMITS.max_checks
    assert STRICT_LIMITS.max_refine_passes < RELAXED_LIMITS.max_refine_passes


def test_invalid_limits():
    """Test nonsensical limits are rejected."""
    with pytest.raises(ValueError, match="max_checks"):
        SynthesisLimits(max_checks=0)

    with pytest.raises(ValueError, match="max_queries"):
        SynthesisLimits(max_queries=-1)

    with pytest.raises(ValueError, match="alphabet"):
        SynthesisLimits(alphabet="ASCII")

    with pytest.raises(ValueError, match="max_refine_passes"):
        SynthesisLimits(max_refine_passes=-1)


def test_zero_query_budget_allowed():
    limits = SynthesisLimits(max_queries=0)
    assert limits.max_queries == 0


def test_set_log_level():
    """Test log level can be changed and rejects unknown levels."""
    logger.set_log_level("DEBUG")
    assert logger.logger.level == 10
    logger.set_log_level("warning")
    assert logger.logger.level == 30

    with pytest.raises(ValueError, match="Invalid log level"):
        logger.set_log_level("LOUD")
