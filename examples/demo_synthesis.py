"""
Demo of grammar synthesis and fuzzing with a Python oracle.

Learns the language of balanced parentheses from two seeds, then samples
mutated inputs from the learned grammar and checks them against the
same oracle.
"""

import grammarfuzz


def balanced(text):
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


print("=" * 70)
print("grammarfuzz Synthesis Demo")
print("=" * 70)
print()

# Step 1: Wrap the validity check as an oracle
print("1. Oracle: balanced parentheses")
print("-" * 70)
oracle = grammarfuzz.FunctionOracle(balanced)
seeds = ["()", "(())"]
for seed in seeds:
    print(f"  seed {seed!r}: {'accepted' if oracle.query(seed) else 'rejected'}")
print()

# Step 2: Synthesize
print("2. Synthesize a grammar from the seeds:")
print("-" * 70)
synthesizer = grammarfuzz.StructuralSynthesizer(oracle)
grammar = synthesizer.synthesize(seeds)
print(grammar)
print(f"\nOracle queries: {synthesizer.oracle.queries} ({synthesizer.oracle.hits} cache hits)")
print(f"Default input:  {grammar.default()!r}")
print()

# Step 3: Sample
print("3. Sample mutated inputs:")
print("-" * 70)
params = grammarfuzz.SampleParameters(recursion_probability=0.5)
sampler = grammarfuzz.GrammarMutationSampler(grammar, params, max_length=40, mutations=5)
passed = 0
total = 20
for _ in range(total):
    sample = next(sampler)
    ok = oracle.query(sample)
    passed += ok
    print(f"  {'pass' if ok else 'fail'}  {sample}")
print(f"\nPass rate: {passed / total}")
print()

print("=" * 70)
print("Demo complete!")
print("=" * 70)
