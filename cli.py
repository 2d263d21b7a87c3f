#!/usr/bin/env python3
"""
cli.py
Command-line entrypoint for the polynomial -> R1CS pipeline.
"""

import argparse
import logging
import sys
from pathlib import Path

from config import load_config, DEFAULT_CONFIG
from errors import CompileError
from runner import run_pipeline
from utils import setup_basic_logger


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="poly2r1cs",
        description="Compile a polynomial expression into a Rank-1 Constraint System.",
    )
    src = p.add_mutually_exclusive_group(required=True)
    src.add_argument(
        "--expr",
        "-e",
        help="Polynomial source text, e.g. '3x^2 + 2y - 5'.",
    )
    src.add_argument(
        "--input",
        "-i",
        help="Path to a file containing the polynomial.",
    )
    p.add_argument(
        "--expected",
        "-r",
        type=int,
        required=True,
        help="Value the polynomial must evaluate to.",
    )
    p.add_argument(
        "--out-dir",
        "-o",
        default="out",
        help="Directory to write outputs (json). Default: ./out",
    )
    p.add_argument(
        "--config",
        "-c",
        default=None,
        help="Optional JSON config file to override defaults.",
    )
    p.add_argument(
        "--quiet",
        action="store_true",
        help="Minimize console output.",
    )
    p.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log every emitted constraint.",
    )
    return p


def main(argv=None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    cfg = DEFAULT_CONFIG.copy()
    if args.config:
        try:
            cfg = load_config(args.config, base=cfg)
        except FileNotFoundError:
            print(f"ERROR: config file not found: {args.config}", file=sys.stderr)
            return 2
        except ValueError as exc:
            print(f"ERROR: invalid config file {args.config}: {exc}", file=sys.stderr)
            return 2

    level = logging.DEBUG if args.verbose else cfg.get("log_level", "INFO")
    if args.quiet and not args.verbose:
        level = logging.WARNING
    setup_basic_logger("poly2r1cs", level=level)

    if args.input:
        input_path = Path(args.input)
        if not input_path.exists():
            print(f"ERROR: input file not found: {input_path}", file=sys.stderr)
            return 2
        source = input_path.read_text(encoding="utf-8").strip()
    else:
        source = args.expr

    try:
        run_pipeline(source, args.expected, out_dir=args.out_dir, config=cfg, quiet=args.quiet)
    except (CompileError, ValueError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
