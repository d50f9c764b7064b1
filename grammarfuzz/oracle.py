"""
Oracles: accept/reject functions backed by the program under test.

An oracle answers one question, is this input valid? Command oracles run
an external program per query and accept when it exits with status 0.
"""

import shlex
import subprocess
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, Optional

from grammarfuzz import logger
from grammarfuzz.charset import format_query
from grammarfuzz.errors import OracleError, QueryBudgetExceededError

PLACEHOLDER = "{}"


def parse_allowed_length(allowed_length: Optional[str]) -> tuple:
    """
    Parse an allowed input length specification.

    Args:
        allowed_length: "N" for an exact length, "A-B" for a range, or None

    Returns:
        () for no restriction, (N,) or (A, B)

    Raises:
        ValueError: If the range is reversed or has more than one dash
    """
    if allowed_length is None:
        return ()
    if "-" not in allowed_length:
        return (int(allowed_length),)
    if allowed_length.count("-") > 1:
        raise ValueError('"allowed_length" contains more than one dash.')
    low, high = (int(part) for part in allowed_length.split("-"))
    if low > high:
        raise ValueError('Invalid range for "allowed_length".')
    return (low, high)


def length_violation(query: str, allowed_length: tuple) -> Optional[str]:
    """Describe why query breaks the length restriction, or None."""
    if len(allowed_length) == 1 and len(query) != allowed_length[0]:
        return f"the query length is not equal to {allowed_length[0]}"
    if len(allowed_length) == 2 and not allowed_length[0] <= len(query) <= allowed_length[1]:
        return f"the query length is not in {allowed_length[0]}-{allowed_length[1]}"
    return None


class Oracle:
    """
    Base class for all oracles.

    Subclasses implement query(); query_many() may be overridden to answer
    independent queries concurrently.
    """

    def query(self, text: str) -> bool:
        """
        Ask whether text is a valid input.

        Raises:
            OracleError: If the oracle could not be invoked
        """
        raise NotImplementedError

    def query_many(self, texts: Iterable[str]) -> list[bool]:
        """Answer several independent queries, results in input order."""
        return [self.query(text) for text in texts]

    def __call__(self, text: str) -> bool:
        return self.query(text)


class FunctionOracle(Oracle):
    """
    Oracle backed by a Python callable.

    Example:
        >>> oracle = FunctionOracle(lambda s: s.isdigit())
        >>> oracle.query("123")
        True
    """

    def __init__(self, function: Callable[[str], bool], allowed_length: tuple = ()):
        self.function = function
        self.allowed_length = tuple(allowed_length)

    def query(self, text: str) -> bool:
        reason = length_violation(text, self.allowed_length)
        if reason:
            logger.log_oracle_skipped(format_query(text), reason)
            return False
        try:
            return bool(self.function(text))
        except Exception as e:
            raise OracleError(f"Oracle function failed: {e}") from e


class WrappedOracle(Oracle):
    """Oracle that transforms each input before delegating it"""

    def __init__(self, oracle: Oracle, wrapper: Callable[[str], str]):
        self.oracle = oracle
        self.wrapper = wrapper

    def query(self, text: str) -> bool:
        return self.oracle.query(self.wrapper(text))

    def query_many(self, texts: Iterable[str]) -> list[bool]:
        return self.oracle.query_many([self.wrapper(text) for text in texts])


class CommandOracle(Oracle):
    """
    Oracle that runs an external command per query.

    The input is accepted when the command exits with status 0. A query
    that does not finish within timeout seconds is an OracleError.
    """

    def __init__(
        self,
        command: str,
        allowed_length: tuple = (),
        timeout: Optional[float] = 10.0,
        max_workers: int = 1,
        encoding: str = "latin-1"
    ):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.command = command
        self.allowed_length = tuple(allowed_length)
        self.timeout = timeout
        self.max_workers = max_workers
        self.encoding = encoding

    def _precondition(self, text: str) -> Optional[str]:
        return length_violation(text, self.allowed_length)

    def _invocation(self, text: str) -> tuple[list[str], Optional[bytes]]:
        """Return the argument vector and the stdin payload for text."""
        raise NotImplementedError

    def query(self, text: str) -> bool:
        logger.log_oracle_query(format_query(text))
        reason = self._precondition(text)
        if reason:
            logger.log_oracle_skipped(format_query(text), reason)
            return False

        args, payload = self._invocation(text)
        try:
            proc = subprocess.run(
                args,
                input=payload,
                stdin=None if payload is not None else subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise OracleError(f"Oracle timed out after {self.timeout}s: {self.command}") from e
        except (OSError, ValueError) as e:
            raise OracleError(f"Could not run oracle {self.command}: {e}") from e

        if proc.stdout:
            logger.logger.debug(
                f"Oracle output: {proc.stdout.decode(self.encoding, errors='replace')}"
            )
        logger.log_oracle_result(proc.returncode)
        return proc.returncode == 0

    def query_many(self, texts: Iterable[str]) -> list[bool]:
        texts = list(texts)
        if self.max_workers == 1 or len(texts) < 2:
            return [self.query(text) for text in texts]
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            return list(pool.map(self.query, texts))


class ArgumentTemplateOracle(CommandOracle):
    """
    Command oracle that substitutes the input for each {} in the command.

    Command arguments cannot carry null bytes, so such inputs are rejected
    without running the command.
    """

    def _precondition(self, text: str) -> Optional[str]:
        if "\0" in text:
            return "the query contains a null byte"
        return super()._precondition(text)

    def _invocation(self, text: str) -> tuple[list[str], Optional[bytes]]:
        args = [arg.replace(PLACEHOLDER, text) for arg in shlex.split(self.command)]
        return args, None


class StdinPipeOracle(CommandOracle):
    """Command oracle that writes the input to the command's standard input"""

    def _invocation(self, text: str) -> tuple[list[str], Optional[bytes]]:
        return shlex.split(self.command), text.encode(self.encoding)


def command_oracle(command: str, **kwargs) -> CommandOracle:
    """
    Build the command oracle matching the command's addressing mode.

    Each {} in command is substituted with the query; when command has no
    {} the query is sent to standard input.
    """
    if PLACEHOLDER in command:
        return ArgumentTemplateOracle(command, **kwargs)
    return StdinPipeOracle(command, **kwargs)


class CachingOracle(Oracle):
    """
    Memoizing oracle with an optional query budget.

    Repeated queries are answered from the cache and do not count against
    max_queries. Once the budget is spent, query() raises
    QueryBudgetExceededError for uncached inputs.
    """

    def __init__(self, oracle: Oracle, max_queries: Optional[int] = None):
        self.oracle = oracle
        self.max_queries = max_queries
        self.queries = 0
        self.hits = 0
        self._cache: dict[str, bool] = {}
        self._exhausted_logged = False

    @property
    def remaining(self) -> Optional[int]:
        if self.max_queries is None:
            return None
        return max(self.max_queries - self.queries, 0)

    def _charge(self, count: int) -> None:
        remaining = self.remaining
        if remaining is not None and count > remaining:
            if not self._exhausted_logged:
                logger.log_budget_exhausted(self.max_queries)
                self._exhausted_logged = True
            raise QueryBudgetExceededError(
                f"Query budget of {self.max_queries} exhausted"
            )
        self.queries += count

    def is_cached(self, text: str) -> bool:
        return text in self._cache

    def remember(self, text: str, accepted: bool) -> None:
        """Record an answer obtained outside the budget (e.g. seed checks)."""
        self._cache[text] = accepted

    def query(self, text: str) -> bool:
        if text in self._cache:
            self.hits += 1
            return self._cache[text]
        self._charge(1)
        accepted = self.oracle.query(text)
        self._cache[text] = accepted
        return accepted

    def query_many(self, texts: Iterable[str]) -> list[bool]:
        texts = list(texts)
        pending = [t for t in dict.fromkeys(texts) if t not in self._cache]
        self._charge(len(pending))
        for text, accepted in zip(pending, self.oracle.query_many(pending)):
            self._cache[text] = accepted
        self.hits += len(texts) - len(pending)
        return [self._cache[t] for t in texts]

    def try_query(self, text: str) -> bool:
        """Like query(), but an exhausted budget counts as a rejection."""
        try:
            return self.query(text)
        except QueryBudgetExceededError:
            return False

    def try_query_all(self, texts: Iterable[str]) -> bool:
        """True when every text is accepted; stops at the first rejection."""
        for text in texts:
            if not self.try_query(text):
                return False
        return True

    def try_query_many(self, texts: Iterable[str]) -> list[bool]:
        """
        Answer as many queries as the budget allows.

        Inputs beyond the remaining budget are reported as rejected.
        """
        texts = list(texts)
        pending = [t for t in dict.fromkeys(texts) if t not in self._cache]
        remaining = self.remaining
        if remaining is not None and len(pending) > remaining:
            allowed = set(pending[:remaining])
            answerable = [t for t in texts if t in self._cache or t in allowed]
            results = dict(zip(answerable, self.query_many(answerable)))
            if not self._exhausted_logged:
                logger.log_budget_exhausted(self.max_queries)
                self._exhausted_logged = True
            return [results.get(t, False) for t in texts]
        return self.query_many(texts)
