"""
Exceptions for grammarfuzz.

All exceptions inherit from GrammarFuzzError for easy catching.
"""


class GrammarFuzzError(Exception):
    """
    Base exception for grammarfuzz errors.

    All grammarfuzz-specific exceptions inherit from this.
    """
    pass


class EmptyInputError(GrammarFuzzError):
    """
    No seed inputs were supplied.

    Synthesis needs at least one accepted example to start from.
    """
    pass


class SeedRejectedError(GrammarFuzzError):
    """
    A seed input was rejected by the oracle.

    Every seed must already be a valid input; the caller has to fix the
    seed set before synthesis can run.
    """

    def __init__(self, message: str, seed: str = None):
        super().__init__(message)
        self.seed = seed

    def __str__(self):
        msg = super().__str__()
        if self.seed is not None:
            msg += f"\n  Seed: {self.seed!r}"
        return msg


class OracleError(GrammarFuzzError):
    """
    The oracle could not be queried.

    Raised when the program under test cannot be started, input cannot be
    written to it, or it does not finish within the query timeout.
    Never retried automatically.
    """
    pass


class GrammarFormatError(GrammarFuzzError):
    """
    A grammar could not be loaded or is structurally invalid.

    Raised for malformed JSON, unknown node types, missing fields, dangling
    rule references and rules without a base case.
    """
    pass


class InvalidParameterError(GrammarFuzzError):
    """
    Sampling parameters are malformed.

    Raised before any sampling begins, e.g. for a distribution that does
    not sum to 1 or a min_repeat larger than max_repeat.
    """
    pass


class QueryBudgetExceededError(GrammarFuzzError):
    """
    The configured oracle query budget is used up.

    The synthesizer recovers from this by treating the pending validation
    as a rejection and keeping the more conservative structure.
    """
    pass
