"""
grammarfuzz - grammar inference from examples and grammar-based fuzzing.

Usage:
    import grammarfuzz

    # Learn a grammar from accepted seeds, validated by a Python oracle
    oracle = grammarfuzz.FunctionOracle(lambda s: s.count("(") == s.count(")"))
    grammar = grammarfuzz.synthesize(["()", "(())"], oracle)
    print(grammar)

    # Or validate against an external program ({} is replaced by the input)
    oracle = grammarfuzz.command_oracle("python3 -m json.tool {}")

    # Save, load and sample mutated inputs
    grammarfuzz.save_grammar(grammar, "parens.gram")
    grammar = grammarfuzz.load_grammar("parens.gram")
    sampler = grammarfuzz.GrammarMutationSampler(grammar, max_length=40, mutations=15)
    for _ in range(10):
        print(next(sampler))
"""

from grammarfuzz.charset import CharacterClass, InputAlphabet, format_query
from grammarfuzz.errors import (
    GrammarFuzzError,
    EmptyInputError,
    SeedRejectedError,
    OracleError,
    GrammarFormatError,
    InvalidParameterError,
    QueryBudgetExceededError,
)
from grammarfuzz.generalizer import CharacterGeneralizer
from grammarfuzz.grammar import (
    Grammar,
    Node,
    NodeType,
    Literal,
    Sequence,
    Alternation,
    Repetition,
    Recursive,
    format_grammar,
    format_node,
)
from grammarfuzz.limits import (
    SynthesisLimits,
    DEFAULT_LIMITS,
    STRICT_LIMITS,
    RELAXED_LIMITS,
)
from grammarfuzz.oracle import (
    Oracle,
    FunctionOracle,
    WrappedOracle,
    CommandOracle,
    ArgumentTemplateOracle,
    StdinPipeOracle,
    CachingOracle,
    command_oracle,
    parse_allowed_length,
)
from grammarfuzz.sampler import GrammarMutationSampler, SampleParameters
from grammarfuzz.serialization import (
    grammar_to_json,
    grammar_from_json,
    serialize_grammar,
    deserialize_grammar,
    save_grammar,
    load_grammar,
)
from grammarfuzz.synthesis import StructuralSynthesizer, synthesize

__version__ = "0.1.0"

__all__ = [
    # Synthesis
    "synthesize",
    "StructuralSynthesizer",
    "CharacterGeneralizer",
    "SynthesisLimits",
    "DEFAULT_LIMITS",
    "STRICT_LIMITS",
    "RELAXED_LIMITS",
    # Grammar model
    "Grammar",
    "Node",
    "NodeType",
    "Literal",
    "Sequence",
    "Alternation",
    "Repetition",
    "Recursive",
    "CharacterClass",
    "InputAlphabet",
    "format_grammar",
    "format_node",
    "format_query",
    # Sampling
    "GrammarMutationSampler",
    "SampleParameters",
    # Oracles
    "Oracle",
    "FunctionOracle",
    "WrappedOracle",
    "CommandOracle",
    "ArgumentTemplateOracle",
    "StdinPipeOracle",
    "CachingOracle",
    "command_oracle",
    "parse_allowed_length",
    # Serialization
    "grammar_to_json",
    "grammar_from_json",
    "serialize_grammar",
    "deserialize_grammar",
    "save_grammar",
    "load_grammar",
    # Errors
    "GrammarFuzzError",
    "EmptyInputError",
    "SeedRejectedError",
    "OracleError",
    "GrammarFormatError",
    "InvalidParameterError",
    "QueryBudgetExceededError",
]
