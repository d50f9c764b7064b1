"""
Structured logging for grammarfuzz.

Provides a centralized logger with consistent formatting and log levels.
"""

import logging
import sys

# Create logger instance
logger = logging.getLogger("grammarfuzz")

# Default to WARNING level, synthesis issues thousands of queries
logger.setLevel(logging.WARNING)

# Create console handler with formatting
_handler = logging.StreamHandler(sys.stderr)
_handler.setLevel(logging.DEBUG)

# Format: [LEVEL] grammarfuzz: message
_formatter = logging.Formatter(
    fmt="[%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
_handler.setFormatter(_formatter)

# Add handler if not already added
if not logger.handlers:
    logger.addHandler(_handler)


def set_log_level(level: str) -> None:
    """
    Set the log level for grammarfuzz.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Example:
        >>> from grammarfuzz import logger
        >>> logger.set_log_level("DEBUG")
    """
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level}")
    logger.setLevel(numeric_level)


def set_log_file(path: str) -> None:
    """
    Send log output to a file instead of stderr.

    Args:
        path: File to append log records to
    """
    file_handler = logging.FileHandler(path, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        fmt="%(asctime)s - %(levelname)s - %(message)s"
    ))
    logger.removeHandler(_handler)
    logger.addHandler(file_handler)


def log_seed_added(seed: str) -> None:
    """Log when a seed passes the oracle precondition."""
    logger.info(f"Adding new seed input: {seed}")


def log_oracle_query(query: str) -> None:
    """Log an input sent to the oracle."""
    logger.debug(f"Oracle input: {query}")


def log_oracle_skipped(query: str, reason: str) -> None:
    """Log when a precondition rejects an input without running the oracle."""
    logger.debug(f"Oracle failed because {reason}: {query}")


def log_oracle_result(exit_code: int) -> None:
    """Log the exit status returned by the oracle."""
    logger.debug(f"Oracle exit value: {exit_code}")


def log_generalization(kind: str, detail: str) -> None:
    """Log a validated generalization."""
    logger.info(f"Generalized {kind}: {detail}")


def log_generalization_rejected(kind: str, detail: str) -> None:
    """Log a generalization that failed oracle validation."""
    logger.debug(f"Rejected {kind}: {detail}")


def log_budget_exhausted(limit: int) -> None:
    """Log when the query budget is used up."""
    logger.warning(f"Oracle query budget exhausted, limit: {limit}")


def log_grammar_saved(path: str) -> None:
    """Log when a grammar is written to disk."""
    logger.info(f"Saving grammar to {path}")


def log_grammar_loaded(path: str) -> None:
    """Log when a grammar is read from disk."""
    logger.info(f"Loading grammar from {path}")
