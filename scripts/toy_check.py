#!/usr/bin/env python3
"""
Check toy source files for syntax errors.

Usage:
    python toy_check.py <file.toy> [file2.toy ...]
    python toy_check.py --dump FILE   # Print the AST as JSON
    python toy_check.py --peg FILE    # Use the Lark reference parser
"""

import argparse
import json
import sys
from pathlib import Path

# Add scripts directory to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from toy_combinators import ParseError
from toy_converter import ast_to_dict
import toy_parser
import toy_peg_parser


def check_file(path: Path, use_peg: bool = False, dump: bool = False) -> bool:
    """Parse a single file. Returns True if it is a well formed program."""
    try:
        with open(path) as f:
            source = f.read()
    except FileNotFoundError:
        print(f"{path}: file not found")
        return False

    parse = toy_peg_parser.parse if use_peg else toy_parser.parse
    try:
        program = parse(source)
    except ParseError as e:
        print(f"{path}: parse error: {e}")
        return False

    if dump:
        print(json.dumps(ast_to_dict(program), indent=2))
    print(f"{path}: ok ({len(program.statements)} statement(s))")
    return True


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Check toy source files for syntax errors."
    )
    parser.add_argument(
        "files",
        nargs="*",
        help="Files to check"
    )
    parser.add_argument(
        "--dump",
        action="store_true",
        help="Print the AST of each file as JSON"
    )
    parser.add_argument(
        "--peg",
        action="store_true",
        help="Use the Lark reference parser instead of the combinator parser"
    )

    args = parser.parse_args(argv)

    if not args.files:
        parser.print_help()
        sys.exit(1)

    failures = 0
    for name in args.files:
        if not check_file(Path(name), use_peg=args.peg, dump=args.dump):
            failures += 1

    if failures:
        print(f"\n{failures} of {len(args.files)} file(s) failed")

    sys.exit(1 if failures else 0)


if __name__ == "__main__":
    main()
