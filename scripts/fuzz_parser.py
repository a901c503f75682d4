#!/usr/bin/env python3
"""
Parser fuzzer for the toy language.

Generates random and mutated inputs to find parser bugs like:
- Crashes (exceptions other than ParseError)
- Hangs (infinite loops, e.g. a repetition that stops consuming input)
- Well-formed programs that are rejected
- Disagreement with the Lark reference parser
- ASTs that do not survive rendering back to source

Usage:
    python scripts/fuzz_parser.py [--duration MINUTES] [--seed SEED] [--iterations N]

Findings are saved to scripts/fuzz_findings/
"""

import argparse
import hashlib
import random
import signal
import string
import sys
import time
import traceback
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

# Add scripts directory to path
sys.path.insert(0, str(Path(__file__).parent))

from toy_ast import BINARY_OPERATORS
from toy_combinators import ParseError
from toy_converter import program_to_source
from toy_lexer import KEYWORDS, PUNCTUATION
from toy_parser import parse
import toy_peg_parser

# Expected parse errors - these are normal rejections
EXPECTED_ERRORS = (ParseError,)

# Directory for saving findings
FINDINGS_DIR = Path(__file__).parent / "fuzz_findings"

TIMEOUT_SECONDS = 5


class TimeoutError(Exception):
    pass


@contextmanager
def timeout(seconds):
    """Context manager for timeout on Unix systems."""
    def handler(signum, frame):
        raise TimeoutError(f"Timed out after {seconds} seconds")

    if hasattr(signal, 'SIGALRM'):
        old_handler = signal.signal(signal.SIGALRM, handler)
        signal.alarm(seconds)
        try:
            yield
        finally:
            signal.alarm(0)
            signal.signal(signal.SIGALRM, old_handler)
    else:
        # Windows fallback - no timeout
        yield


class Fuzzer:
    """Toy language parser fuzzer."""

    # Token pools for mutation
    KEYWORDS = list(KEYWORDS)
    OPERATORS = list(PUNCTUATION)
    COMMENTS = ["// note\n", "/* block */", "/* unterminated", "//"]

    IDENTIFIERS = ["x", "y", "z", "foo", "bar", "_tmp", "count", "n1", "iffy", "variable"]

    # Seed corpus - known valid inputs
    SEED_CORPUS = [
        '',
        'x;',
        'var x = 1;',
        'var x = 1 + 2 * 3; return x;',
        'x = x - 1;',
        'return f();',
        'return f(a, b, c);',
        'return !x;',
        'return a == b != c;',
        'return (1 + 2) * 3;',
        '{ }',
        '{ x; { y; } }',
        'if (x) { y; }',
        'if (x) { y; } else { z; }',
        'if (a) { } else if (b) { } else { c; }',
        'while (n != 0) { n = n - 1; }',
        'function f() { }',
        'function add(a, b) { return a + b; }',
        'function fact(n) { if (n == 0) { return 1; } return n * fact(n - 1); }',
        '// comment\nx;',
        '/* block\ncomment */ x; // trailing',
    ]

    def __init__(self, seed=None, findings_dir=FINDINGS_DIR):
        self.rng = random.Random(seed)
        self.findings_dir = Path(findings_dir)
        self.stats = {
            "iterations": 0,
            "parse_ok": 0,
            "parse_error": 0,
            "crashes": 0,
            "timeouts": 0,
            "mismatches": 0,
            "unique_crashes": set(),
        }
        self.start_time = None

        # Create findings directory
        self.findings_dir.mkdir(parents=True, exist_ok=True)

    # =========================================================================
    # Generation of well-formed programs
    # =========================================================================

    def random_identifier(self) -> str:
        """Generate a random identifier that is not a keyword."""
        if self.rng.random() < 0.7:
            return self.rng.choice(self.IDENTIFIERS)
        length = self.rng.randint(1, 12)
        first = self.rng.choice(string.ascii_letters + "_")
        rest = "".join(self.rng.choices(string.ascii_letters + string.digits + "_", k=length - 1))
        name = first + rest
        return name if name not in KEYWORDS else name + "_"

    def random_number(self) -> str:
        """Generate a random non-negative integer literal."""
        if self.rng.random() < 0.2:
            return self.rng.choice(["0", "1", "007", "9223372036854775807"])
        return str(self.rng.randint(0, 100000))

    def random_expr(self, depth=0) -> str:
        """Generate a random well-formed expression."""
        if depth > 4 or self.rng.random() < 0.3:
            if self.rng.random() < 0.5:
                return self.random_identifier()
            return self.random_number()

        choice = self.rng.randint(0, 4)
        if choice == 0:
            # Binary op
            op = self.rng.choice(list(BINARY_OPERATORS))
            return f"{self.random_expr(depth + 1)} {op} {self.random_expr(depth + 1)}"
        elif choice == 1:
            # Function call
            args = ", ".join(self.random_expr(depth + 1) for _ in range(self.rng.randint(0, 3)))
            return f"{self.random_identifier()}({args})"
        elif choice == 2:
            # Grouped
            return f"({self.random_expr(depth + 1)})"
        elif choice == 3:
            # Unary applies to a primary only
            return f"!({self.random_expr(depth + 1)})"
        else:
            return self.random_identifier()

    def random_block(self, depth) -> str:
        body = " ".join(self.random_statement(depth + 1) for _ in range(self.rng.randint(0, 3)))
        return f"{{ {body} }}"

    def random_statement(self, depth=0) -> str:
        """Generate a random well-formed statement."""
        if depth > 3:
            kind = self.rng.randint(0, 2)
        else:
            kind = self.rng.randint(0, 7)

        if kind == 0:
            return f"var {self.random_identifier()} = {self.random_expr()};"
        elif kind == 1:
            return f"{self.random_identifier()} = {self.random_expr()};"
        elif kind == 2:
            return f"{self.random_expr()};"
        elif kind == 3:
            return f"return {self.random_expr()};"
        elif kind == 4:
            text = f"if ({self.random_expr()}) {self.random_block(depth)}"
            roll = self.rng.random()
            if roll < 0.3:
                text += f" else {self.random_block(depth)}"
            elif roll < 0.5:
                text += f" else {self.random_statement_if(depth)}"
            return text
        elif kind == 5:
            return f"while ({self.random_expr()}) {self.random_block(depth)}"
        elif kind == 6:
            params = ", ".join(self.random_identifier() for _ in range(self.rng.randint(0, 3)))
            return f"function {self.random_identifier()}({params}) {self.random_block(depth)}"
        else:
            return self.random_block(depth)

    def random_statement_if(self, depth) -> str:
        return f"if ({self.random_expr()}) {self.random_block(depth)}"

    def random_separator(self) -> str:
        """Whitespace or comments between statements."""
        roll = self.rng.random()
        if roll < 0.7:
            return self.rng.choice([" ", "\n", "\t", "\n\n"])
        elif roll < 0.85:
            return " // note\n"
        return " /* note */ "

    def generate_program(self) -> str:
        """Generate a well-formed program."""
        statements = [self.random_statement() for _ in range(self.rng.randint(0, 5))]
        return self.random_separator().join(statements)

    # =========================================================================
    # Mutation
    # =========================================================================

    def mutate(self, input_str: str) -> str:
        """Mutate an input string."""
        mutations = [
            self._mutate_insert_random,
            self._mutate_delete_chunk,
            self._mutate_swap_chunks,
            self._mutate_repeat_chunk,
            self._mutate_flip_char,
            self._mutate_insert_special,
            self._mutate_boundary_numbers,
        ]

        mutation = self.rng.choice(mutations)
        return mutation(input_str)

    def _mutate_insert_random(self, s: str) -> str:
        """Insert random tokens."""
        pos = self.rng.randint(0, len(s))
        chars = self.rng.choice([
            self.rng.choice(self.KEYWORDS),
            self.rng.choice(self.OPERATORS),
            self.rng.choice(self.COMMENTS),
            self.random_identifier(),
            self.random_number(),
            " " * self.rng.randint(1, 5),
            "\n",
            "\t",
        ])
        return s[:pos] + chars + s[pos:]

    def _mutate_delete_chunk(self, s: str) -> str:
        """Delete a random chunk."""
        if len(s) < 2:
            return s
        start = self.rng.randint(0, len(s) - 1)
        end = self.rng.randint(start + 1, min(start + 20, len(s)))
        return s[:start] + s[end:]

    def _mutate_swap_chunks(self, s: str) -> str:
        """Swap two halves."""
        if len(s) < 4:
            return s
        mid = len(s) // 2
        return s[mid:] + s[:mid]

    def _mutate_repeat_chunk(self, s: str) -> str:
        """Repeat a chunk."""
        if len(s) < 2:
            return s * 2
        start = self.rng.randint(0, len(s) - 1)
        end = self.rng.randint(start + 1, min(start + 10, len(s)))
        chunk = s[start:end]
        return s[:end] + chunk * self.rng.randint(1, 5) + s[end:]

    def _mutate_flip_char(self, s: str) -> str:
        """Flip a random character."""
        if not s:
            return s
        pos = self.rng.randint(0, len(s) - 1)
        new_char = chr(ord(s[pos]) ^ self.rng.randint(1, 127))
        return s[:pos] + new_char + s[pos + 1:]

    def _mutate_insert_special(self, s: str) -> str:
        """Insert special/edge case characters."""
        pos = self.rng.randint(0, len(s))
        special = self.rng.choice([
            "\x00",  # Null
            "\xa0",  # No-break space (whitespace, not ASCII)
            "\r\n",  # CRLF
            "\t\t\t",
            "🎉",
            "α",  # Alphabetic, valid in identifiers
            "٣",  # Arabic-indic digit: alphanumeric, not an ASCII digit
            "/*",
            "*/",
            "$$",
        ])
        return s[:pos] + special + s[pos:]

    def _mutate_boundary_numbers(self, s: str) -> str:
        """Replace numbers with boundary values."""
        import re
        def replace(m):
            if self.rng.random() < 0.5:
                return self.rng.choice([
                    "0", "1",
                    "9223372036854775807",  # INT64 max
                    "9223372036854775808",  # INT64 max + 1
                    "99999999999999999999999",
                    "00000000000000000001",
                ])
            return m.group(0)
        return re.sub(r'\d+', replace, s)

    # =========================================================================
    # Running inputs
    # =========================================================================

    def save_finding(self, input_str: str, error: Exception, category: str):
        """Save an interesting finding to disk."""
        # Create hash for deduplication
        hash_val = hashlib.md5(input_str.encode('utf-8', errors='replace')).hexdigest()[:8]

        if hash_val in self.stats["unique_crashes"]:
            return

        self.stats["unique_crashes"].add(hash_val)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filename = self.findings_dir / f"{category}_{timestamp}_{hash_val}.txt"

        with open(filename, 'w', encoding='utf-8', errors='replace') as f:
            f.write(f"Category: {category}\n")
            f.write(f"Error: {type(error).__name__}: {error}\n")
            f.write(f"Timestamp: {timestamp}\n")
            f.write(f"Input length: {len(input_str)}\n")
            f.write("\n--- Input ---\n")
            f.write(input_str)
            f.write("\n\n--- Traceback ---\n")
            f.write(traceback.format_exc())

        print(f"\n[!] Saved finding: {filename}")

    def check_program(self, input_str: str, program) -> bool:
        """Cross-check an accepted, generated program. Returns True on mismatch."""
        rendered = program_to_source(program)
        try:
            reparsed = parse(rendered)
        except ParseError as e:
            self.stats["mismatches"] += 1
            self.save_finding(input_str, e, "roundtrip")
            return True
        if reparsed != program:
            self.stats["mismatches"] += 1
            self.save_finding(input_str, AssertionError("round trip changed the AST"), "roundtrip")
            return True

        try:
            reference = toy_peg_parser.parse(input_str)
        except ParseError as e:
            self.stats["mismatches"] += 1
            self.save_finding(input_str, e, "reference_rejects")
            return True
        if reference != program:
            self.stats["mismatches"] += 1
            self.save_finding(input_str, AssertionError("reference parser AST differs"), "mismatch")
            return True
        return False

    def test_input(self, input_str: str, well_formed: bool = False) -> bool:
        """Test a single input. Returns True if interesting.

        Crashes and timeouts are always interesting. For well_formed inputs,
        rejection and any disagreement with the cross-checks are too.
        """
        try:
            with timeout(TIMEOUT_SECONDS):
                program = parse(input_str)
        except EXPECTED_ERRORS as e:
            # Normal parse rejection
            self.stats["parse_error"] += 1
            if well_formed:
                self.save_finding(input_str, e, "rejected")
                return True
            return False
        except TimeoutError as e:
            self.stats["timeouts"] += 1
            self.save_finding(input_str, e, "timeout")
            return True
        except Exception as e:
            # Unexpected crash!
            self.stats["crashes"] += 1
            self.save_finding(input_str, e, "crash")
            return True

        self.stats["parse_ok"] += 1
        if well_formed:
            return self.check_program(input_str, program)
        return False

    def run(self, duration_minutes: float = None, iterations: int = None):
        """Run the fuzzer."""
        self.start_time = time.time()
        end_time = self.start_time + (duration_minutes * 60) if duration_minutes else None

        print(f"Starting fuzzer (seed corpus: {len(self.SEED_CORPUS)} inputs)")
        print(f"Duration: {'unlimited' if not duration_minutes else f'{duration_minutes} minutes'}")
        print(f"Findings directory: {self.findings_dir}")
        print("-" * 60)

        corpus = list(self.SEED_CORPUS)

        try:
            while True:
                # Check limits
                if end_time and time.time() > end_time:
                    break
                if iterations is not None and self.stats["iterations"] >= iterations:
                    break

                self.stats["iterations"] += 1

                # Choose strategy
                strategy = self.rng.random()

                if strategy < 0.3:
                    # Generate a well-formed program
                    input_str = self.generate_program()
                    interesting = self.test_input(input_str, well_formed=True)
                elif strategy < 0.8:
                    # Mutate corpus input
                    input_str = self.mutate(self.rng.choice(corpus))
                    # Sometimes apply multiple mutations
                    for _ in range(self.rng.randint(0, 3)):
                        input_str = self.mutate(input_str)
                    interesting = self.test_input(input_str)
                else:
                    # Use corpus directly (for baseline)
                    input_str = self.rng.choice(self.SEED_CORPUS)
                    interesting = self.test_input(input_str, well_formed=True)

                # Add interesting inputs to corpus (even parse errors can be interesting for mutation)
                if interesting or (self.rng.random() < 0.01 and len(input_str) < 1000):
                    corpus.append(input_str)
                    if len(corpus) > 1000:
                        corpus.pop(self.rng.randint(len(self.SEED_CORPUS), len(corpus) - 1))

                # Progress report
                if self.stats["iterations"] % 1000 == 0:
                    self.print_stats()

        except KeyboardInterrupt:
            print("\n\nInterrupted by user")

        print("\n" + "=" * 60)
        print("Final Statistics:")
        self.print_stats()

    def print_stats(self):
        """Print current statistics."""
        elapsed = time.time() - self.start_time
        rate = self.stats["iterations"] / elapsed if elapsed > 0 else 0

        print(f"[{elapsed:.1f}s] "
              f"iterations={self.stats['iterations']} "
              f"({rate:.0f}/s) | "
              f"ok={self.stats['parse_ok']} "
              f"reject={self.stats['parse_error']} | "
              f"crashes={self.stats['crashes']} "
              f"timeouts={self.stats['timeouts']} "
              f"mismatches={self.stats['mismatches']} "
              f"unique={len(self.stats['unique_crashes'])}")


def main():
    parser = argparse.ArgumentParser(description="Fuzz the toy language parser")
    parser.add_argument("--duration", type=float, default=None,
                        help="Duration in minutes (default: run forever)")
    parser.add_argument("--iterations", type=int, default=None,
                        help="Stop after this many inputs")
    parser.add_argument("--seed", type=int, default=None,
                        help="Random seed for reproducibility")
    args = parser.parse_args()

    seed = args.seed if args.seed is not None else int(time.time())
    print(f"Random seed: {seed}")

    fuzzer = Fuzzer(seed=seed)
    fuzzer.run(duration_minutes=args.duration, iterations=args.iterations)


if __name__ == "__main__":
    main()
