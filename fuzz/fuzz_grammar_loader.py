#!/usr/bin/env python3
"""
AFL fuzz target for the grammarfuzz grammar loader.

This script reads input from stdin and attempts to load it as a grammar
document. AFL will mutate inputs to find crashes and edge cases.

Usage:
    py-afl-fuzz -i corpus -o findings -- python fuzz/fuzz_grammar_loader.py
"""

import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import afl
import grammarfuzz

# Initialize AFL (must be after all imports)
afl.init()

# Read input from stdin
input_data = sys.stdin.buffer.read()

try:
    document = input_data.decode('utf-8')
    grammar = grammarfuzz.grammar_from_json(document)

    # Exercise the loaded grammar: printing, default rendering, sampling
    _ = str(grammar)
    _ = grammar.default()
    sampler = grammarfuzz.GrammarMutationSampler(grammar, max_length=64, mutations=4)
    for _ in range(4):
        next(sampler)

except grammarfuzz.GrammarFormatError:
    # Expected - invalid grammar document
    pass
except UnicodeDecodeError:
    # Expected - invalid UTF-8
    pass
except grammarfuzz.InvalidParameterError:
    # Expected - repetition bounds outside the sampling range
    pass

# Fast exit (skip Python cleanup for speed)
os._exit(0)
