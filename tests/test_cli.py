"""
Tests for the grammarfuzz command line interface.
"""

import shlex
import sys

import main
from grammarfuzz.grammar import Alternation, Grammar, Literal, Recursive, Sequence
from grammarfuzz.serialization import load_grammar, save_grammar

ALL_A = "import sys; s = sys.argv[1]; sys.exit(0 if len(s) >= 3 and set(s) == {'a'} else 1)"
BALANCED_STDIN = (
    "import sys\n"
    "depth = 0\n"
    "for c in sys.stdin.read():\n"
    "    depth += 1 if c == '(' else -1\n"
    "    if depth < 0: sys.exit(1)\n"
    "sys.exit(0 if depth == 0 else 1)\n"
)


def python_command(script, placeholder=False):
    command = f"{shlex.quote(sys.executable)} -c {shlex.quote(script)}"
    if placeholder:
        command += " {}"
    return command


def paren_grammar():
    rule = Alternation((
        Literal("()"),
        Sequence((Literal("("), Recursive("r0"), Literal(")"))),
    ))
    return Grammar(Recursive("r0"), {"r0": rule})


def test_no_command_prints_help(capsys):
    assert main.main([]) == 1
    assert "usage" in capsys.readouterr().out


def test_print(tmp_path, capsys):
    path = tmp_path / "parens.gram"
    save_grammar(paren_grammar(), str(path))

    assert main.main(["print", str(path)]) == 0

    out = capsys.readouterr().out
    assert "<r0>" in out
    assert "r0 ::=" in out


def test_print_missing_file(tmp_path, capsys):
    assert main.main(["print", str(tmp_path / "missing.gram")]) == 1
    assert "Error" in capsys.readouterr().err


def test_print_invalid_grammar(tmp_path, capsys):
    path = tmp_path / "broken.gram"
    path.write_text("{not json", encoding="utf-8")

    assert main.main(["print", str(path)]) == 1
    assert "Invalid grammar" in capsys.readouterr().err


def test_learn(tmp_path, capsys):
    """Test learning a grammar from a seed directory."""
    inputs = tmp_path / "inputs"
    inputs.mkdir()
    (inputs / "seed1").write_bytes(b"aaa")
    output = tmp_path / "a.gram"

    status = main.main([
        "learn", python_command(ALL_A, placeholder=True),
        "-i", str(inputs), "-o", str(output), "--workers", "4",
    ])

    assert status == 0
    assert "Saved grammar" in capsys.readouterr().out
    grammar = load_grammar(str(output))
    assert grammar.default() == "aaa"
    assert str(grammar) == "(a){3,}"


def test_learn_empty_input_dir(tmp_path, capsys):
    inputs = tmp_path / "inputs"
    inputs.mkdir()

    assert main.main(["learn", "prog {}", "-i", str(inputs)]) == 1
    assert "no seed inputs" in capsys.readouterr().err


def test_learn_missing_input_dir(tmp_path, capsys):
    assert main.main(["learn", "prog {}", "-i", str(tmp_path / "nope")]) == 1
    assert "not found" in capsys.readouterr().err


def test_learn_rejected_seed(tmp_path, capsys):
    inputs = tmp_path / "inputs"
    inputs.mkdir()
    (inputs / "seed1").write_bytes(b"bbb")

    status = main.main([
        "learn", python_command(ALL_A, placeholder=True),
        "-i", str(inputs), "-o", str(tmp_path / "out.gram"),
    ])

    assert status == 1
    assert "Seed rejected" in capsys.readouterr().err
    assert not (tmp_path / "out.gram").exists()


def test_learn_invalid_length(tmp_path, capsys):
    inputs = tmp_path / "inputs"
    inputs.mkdir()
    (inputs / "seed1").write_bytes(b"aaa")

    assert main.main(["learn", "prog {}", "-i", str(inputs), "-l", "5-2"]) == 1
    assert "Invalid range" in capsys.readouterr().err


def test_fuzz(tmp_path, capsys):
    """Test fuzzing reports every sample and the pass rate."""
    path = tmp_path / "parens.gram"
    save_grammar(paren_grammar(), str(path))

    status = main.main([
        "fuzz", python_command(BALANCED_STDIN),
        "-i", str(path), "-c", "5", "-m", "3", "-r", "0.5",
    ])

    assert status == 0
    out = capsys.readouterr().out
    assert out.count("Input: ") == 5
    assert out.count("pass") == 5
    assert "Pass rate: 1.0" in out


def test_fuzz_invalid_distribution(tmp_path, capsys):
    path = tmp_path / "parens.gram"
    save_grammar(paren_grammar(), str(path))

    status = main.main(["fuzz", "prog", "-i", str(path), "-d", "0.5,0.1"])

    assert status == 1
    assert "sum to 1" in capsys.readouterr().err


def test_invalid_log_level(capsys, tmp_path):
    assert main.main(["--log", "LOUD", "print", str(tmp_path / "x.gram")]) == 1
    assert "Invalid log level" in capsys.readouterr().err


ACCEPT_ALL = "import sys; sys.exit(0)"


def test_fuzz_counts_length_violations_as_failures(tmp_path, capsys):
    """Test samples outside the allowed length fail without running the program."""
    path = tmp_path / "a.gram"
    save_grammar(Grammar(Literal("a")), str(path))

    status = main.main([
        "fuzz", python_command(ACCEPT_ALL), "-i", str(path), "-c", "3", "-l", "2-3",
    ])

    assert status == 0
    out = capsys.readouterr().out
    assert out.count("fail") == 3
    assert "Pass rate: 0.0" in out


def test_fuzz_exact_length_does_not_truncate(tmp_path, capsys):
    """Test an exact length is checked by the oracle, not used to cut samples."""
    path = tmp_path / "abc.gram"
    save_grammar(Grammar(Literal("abc")), str(path))

    status = main.main([
        "fuzz", python_command(ACCEPT_ALL), "-i", str(path), "-c", "2", "-l", "2",
    ])

    assert status == 0
    out = capsys.readouterr().out
    assert out.count("Input: abc") == 2
    assert "Pass rate: 0.0" in out


def test_fuzz_range_truncates_samples(tmp_path, capsys):
    path = tmp_path / "abc.gram"
    save_grammar(Grammar(Literal("abc")), str(path))

    status = main.main([
        "fuzz", python_command(ACCEPT_ALL), "-i", str(path), "-c", "2", "-l", "1-2",
    ])

    assert status == 0
    out = capsys.readouterr().out
    assert out.count("Input: ab\n") == 2
    assert "Pass rate: 1.0" in out
