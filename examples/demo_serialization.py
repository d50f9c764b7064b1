"""
Demo of JSON serialization for grammarfuzz grammars.

This demonstrates the typical workflow: learn a grammar once, store it,
and load it later for fuzzing.
"""

import os
import re
import tempfile

import grammarfuzz

print("=" * 70)
print("grammarfuzz JSON Serialization Demo")
print("=" * 70)
print()

# Step 1: Learn a grammar for simple assignments like "x=42"
print("1. Learn a grammar for assignments:")
print("-" * 70)

pattern = re.compile(r"[a-z]+=[0-9]+")
oracle = grammarfuzz.FunctionOracle(lambda s: pattern.fullmatch(s) is not None)
grammar = grammarfuzz.synthesize(["x=42", "count=7"], oracle)
print(grammar)
print()

# Step 2: Serialize to JSON
print("2. Serialize to JSON:")
print("-" * 70)

json_definition = grammarfuzz.grammar_to_json(grammar)
print(json_definition[:500] + "...")
print(f"\nJSON size: {len(json_definition.encode('utf-8'))} bytes")
print()

# Step 3: Save and load
print("3. Save to disk and load back:")
print("-" * 70)

with tempfile.TemporaryDirectory() as tmp:
    path = os.path.join(tmp, "assign.gram")
    grammarfuzz.save_grammar(grammar, path)
    restored = grammarfuzz.load_grammar(path)

print(f"Restored grammar equals original: {restored == grammar}")
print(f"Default input: {restored.default()!r}")
print()

# Step 4: Compact vs pretty JSON
print("4. JSON formatting options:")
print("-" * 70)

compact_json = grammarfuzz.grammar_to_json(grammar, indent=None)
pretty_json = grammarfuzz.grammar_to_json(grammar, indent=2)
print(f"Compact JSON size: {len(compact_json.encode('utf-8'))} bytes")
print(f"Pretty JSON size:  {len(pretty_json.encode('utf-8'))} bytes")
print()

print("=" * 70)
print("Demo complete!")
print("=" * 70)
