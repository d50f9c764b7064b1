#!/usr/bin/env python3
"""
grammarfuzz CLI - Learn grammars from seed inputs and fuzz with them.
"""

import sys
import argparse
from datetime import datetime
from pathlib import Path
import grammarfuzz
from grammarfuzz import logger


def read_seeds(input_dir: str) -> list[str]:
    """Read every file of input_dir as one seed, in file name order."""
    path = Path(input_dir)
    if not path.is_dir():
        raise FileNotFoundError(f"Input directory not found: {input_dir}")
    seeds = []
    for seed_file in sorted(p for p in path.iterdir() if p.is_file()):
        seeds.append(seed_file.read_bytes().decode("latin-1"))
    return seeds


def parse_distribution(value: str) -> tuple:
    try:
        return tuple(float(p) for p in value.split(","))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid distribution: {value}") from None


def default_grammar_name() -> str:
    return datetime.now().strftime("%Y-%m-%d_%H:%M") + ".gram"


def cmd_learn(args):
    """Synthesize a grammar from seed inputs"""
    try:
        allowed_length = grammarfuzz.parse_allowed_length(args.length)
        alphabet = grammarfuzz.InputAlphabet.from_name(args.alphabet)
        seeds = read_seeds(args.input)
        if not seeds:
            print(f"Error: no seed inputs found in {args.input}", file=sys.stderr)
            return 1

        oracle = grammarfuzz.command_oracle(
            args.command,
            allowed_length=allowed_length,
            timeout=args.timeout,
            max_workers=args.workers,
            encoding="latin-1",
        )
        limits = grammarfuzz.SynthesisLimits(alphabet=alphabet, max_queries=args.max_queries)
        synthesizer = grammarfuzz.StructuralSynthesizer(oracle, limits)
        grammar = synthesizer.synthesize(seeds)

        output = args.output or default_grammar_name()
        grammarfuzz.save_grammar(grammar, output)
        print(grammar)
        print(f"\nSaved grammar to {output} ({synthesizer.oracle.queries} oracle queries)")
        return 0
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except grammarfuzz.SeedRejectedError as e:
        print(f"Seed rejected: {e}", file=sys.stderr)
        return 1
    except grammarfuzz.GrammarFuzzError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_fuzz(args):
    """Sample mutated inputs from a grammar and run them through the oracle"""
    try:
        allowed_length = grammarfuzz.parse_allowed_length(args.length)
        # only a range bounds the samples; an exact length is left to the oracle
        max_length = allowed_length[1] if len(allowed_length) == 2 else None
        grammar = grammarfuzz.load_grammar(args.input)
        params = grammarfuzz.SampleParameters(
            distribution=args.distribution,
            recursion_probability=args.recursion,
        )
        sampler = grammarfuzz.GrammarMutationSampler(
            grammar,
            params,
            max_length=max_length,
            mutations=args.mutations,
            random_seed=args.seed,
        )
        oracle = grammarfuzz.command_oracle(
            args.command,
            allowed_length=allowed_length,
            timeout=args.timeout,
        )

        passed = 0
        for _ in range(args.count):
            sample = next(sampler)
            print(f"Input: {grammarfuzz.format_query(sample)}")
            if oracle.query(sample):
                passed += 1
                print("pass")
            else:
                print("fail")
        rate = passed / args.count if args.count else 0.0
        print(f"Pass rate: {rate}")
        return 0
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except grammarfuzz.GrammarFuzzError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_print(args):
    """Print a saved grammar"""
    try:
        grammar = grammarfuzz.load_grammar(args.grammar)
        print(grammar)
        return 0
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except grammarfuzz.GrammarFormatError as e:
        print(f"Invalid grammar: {e}", file=sys.stderr)
        return 1


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="grammarfuzz - learn input grammars from examples and fuzz with them",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  grammarfuzz learn "./parser {}" -i inputs -o parser.gram    Learn, input as argument
  grammarfuzz learn "./parser" -i inputs                      Learn, input on stdin
  grammarfuzz fuzz "./parser" -i parser.gram -c 100           Fuzz with 100 samples
  grammarfuzz print parser.gram                               Show a learned grammar
        """
    )
    parser.add_argument('--log', type=str, default='WARNING',
                        help='Log level (DEBUG, INFO, WARNING, ERROR)')
    parser.add_argument('-f', '--file', type=str, default=None,
                        help='Write log output to this file')

    subparsers = parser.add_subparsers(dest='command_name', help='Command to run')

    # Learn command
    learn_parser = subparsers.add_parser('learn', help='Synthesize a grammar from seed inputs')
    learn_parser.add_argument('command', type=str,
                              help='Oracle command; {} is replaced by the input, otherwise stdin is used')
    learn_parser.add_argument('-o', '--output', type=str, default=None,
                              help='Grammar output file (default: timestamped .gram file)')
    learn_parser.add_argument('-i', '--input', type=str, default='inputs',
                              help='Directory of seed input files (default: inputs)')
    learn_parser.add_argument('-l', '--length', type=str, default=None,
                              help='Allowed input length, N or A-B')
    learn_parser.add_argument('-a', '--alphabet', type=str, default='ASCII',
                              help='Input alphabet, ASCII or BYTE (default: ASCII)')
    learn_parser.add_argument('--timeout', type=float, default=10.0,
                              help='Seconds before an oracle query fails (default: 10)')
    learn_parser.add_argument('--max-queries', type=int, default=None,
                              help='Oracle query budget (default: unlimited)')
    learn_parser.add_argument('--workers', type=int, default=1,
                              help='Concurrent oracle processes (default: 1)')
    learn_parser.set_defaults(func=cmd_learn)

    # Fuzz command
    fuzz_parser = subparsers.add_parser('fuzz', help='Sample inputs from a grammar')
    fuzz_parser.add_argument('command', type=str,
                             help='Oracle command; {} is replaced by the input, otherwise stdin is used')
    fuzz_parser.add_argument('-i', '--input', type=str, required=True,
                             help='Grammar file written by learn')
    fuzz_parser.add_argument('-c', '--count', type=int, default=15,
                             help='Number of samples (default: 15)')
    fuzz_parser.add_argument('-l', '--length', type=str, default=None,
                             help='Allowed sample length, N or A-B (a range also truncates samples)')
    fuzz_parser.add_argument('-s', '--seed', type=int, default=0,
                             help='Random seed (default: 0)')
    fuzz_parser.add_argument('-m', '--mutations', type=int, default=40,
                             help='Mutations per sample (default: 40)')
    fuzz_parser.add_argument('-d', '--distribution', type=parse_distribution,
                             default=(0.2, 0.2, 0.2, 0.4),
                             help='Repetition count distribution (default: 0.2,0.2,0.2,0.4)')
    fuzz_parser.add_argument('-r', '--recursion', type=float, default=0.2,
                             help='Recursion probability (default: 0.2)')
    fuzz_parser.add_argument('--timeout', type=float, default=10.0,
                             help='Seconds before an oracle query fails (default: 10)')
    fuzz_parser.set_defaults(func=cmd_fuzz)

    # Print command
    print_parser = subparsers.add_parser('print', help='Print a grammar file')
    print_parser.add_argument('grammar', type=str, help='Grammar file to print')
    print_parser.set_defaults(func=cmd_print)

    args = parser.parse_args(argv)

    if not args.command_name:
        parser.print_help()
        return 1

    try:
        logger.set_log_level(args.log)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    if args.file:
        logger.set_log_file(args.file)

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
