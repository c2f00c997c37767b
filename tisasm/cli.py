# tisasm/cli.py
"""
Command line tool for assembling TIS-11 programs.

    tisasm [-v] input [output]

The output defaults to the input path with '_bin.txt' in place of its extension.
"""
import argparse
import logging
import os
import sys

from tisasm.tis_assembler import TisAssembler
from tisasm.tis_listing import format_error, format_listing, write_listing

logger = logging.getLogger(__name__)


def default_output_path(input_path):
    return os.path.splitext(input_path)[0] + "_bin.txt"


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="tisasm",
        description="TIS-11 Assembler",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__)
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable verbose console output")
    parser.add_argument("--lenient-labels", action="store_true",
                        help="Ignore ':' inside comments and trim label names")
    parser.add_argument("--all-errors", action="store_true",
                        help="Report every error instead of stopping at the first")
    parser.add_argument("input", help="The file to take input from")
    parser.add_argument("output", nargs="?", help="The file to output to (default: <input>_bin.txt)")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s")

    out_path = args.output or default_output_path(args.input)
    if args.verbose:
        print(f"Input File: {args.input}\nOutput File: {out_path}\n")

    try:
        with open(args.input) as fh:
            source = fh.read()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not source.strip():
        print("Empty input file", file=sys.stderr)
        return 1

    assembler = TisAssembler(collect_all=args.all_errors, lenient_labels=args.lenient_labels)
    result = assembler.assemble(source)

    if args.verbose:
        for node in assembler.nodes:
            print(f"{node['x']},{node['y']},{node['type']}")
            for line in node["lines"]:
                print(line)

    if result["errors"]:
        for error in result["errors"]:
            print(format_error(error), file=sys.stderr)
        return 1

    if args.verbose:
        print("\n")
        print(format_listing(result["nodes"]))

    try:
        write_listing(out_path, result["nodes"])
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"\nAssembly complete. Output written to {out_path}\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
