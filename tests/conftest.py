"""
Pytest configuration for grammarfuzz tests.
"""

import re
import sys
from pathlib import Path

import pytest

# Add parent directory to Python path so tests can import grammarfuzz
sys.path.insert(0, str(Path(__file__).parent.parent))

from grammarfuzz import FunctionOracle  # noqa: E402


def balanced(text):
    """Accept strings of balanced parentheses, including the empty string."""
    depth = 0
    for char in text:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                return False
        else:
            return False
    return depth == 0


ASSIGNMENT = re.compile(r"[a-z]+=[0-9]+")


@pytest.fixture
def a_oracle():
    """Accepts three or more 'a' characters."""
    return FunctionOracle(lambda s: len(s) >= 3 and set(s) == {"a"})


@pytest.fixture
def paren_oracle():
    return FunctionOracle(balanced)


@pytest.fixture
def reject_oracle():
    return FunctionOracle(lambda s: False)


@pytest.fixture
def assign_oracle():
    """Accepts assignments like x=42."""
    return FunctionOracle(lambda s: ASSIGNMENT.fullmatch(s) is not None)
