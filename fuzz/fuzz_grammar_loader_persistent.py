#!/usr/bin/env python3
"""
AFL fuzz target for the grammarfuzz grammar loader (persistent mode).

Persistent mode processes multiple inputs per process spawn,
which is 10-100x faster than regular mode.

Usage:
    py-afl-fuzz -i corpus -o findings -- python fuzz/fuzz_grammar_loader_persistent.py

Note: Requires afl-fuzz >= 1.82b and PYTHON_AFL_PERSISTENT environment variable
      (py-afl-fuzz sets this automatically)
"""

import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import afl
import grammarfuzz

# Persistent mode loop - process N inputs before restarting
while afl.loop(1000):
    # Rewind stdin for next input
    sys.stdin.seek(0)

    input_data = sys.stdin.buffer.read()

    try:
        document = input_data.decode('utf-8')
        grammar = grammarfuzz.grammar_from_json(document)

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

# Normal exit after loop completes
sys.exit(0)
