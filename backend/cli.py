"""
Command line entry point.

Usage:
    python backend/cli.py --serve data/catalog.json
    python backend/cli.py --parse reports/fall_2025.txt data/catalog.json

--parse reads one report, builds its semester catalog and merges it into
the output file (replacing the same semester if present). A missing or
unreadable output file is recreated.
"""

import argparse
import os
import sys

# Ensure backend/ is on sys.path so sibling imports work
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from catalog_builder import build_catalog_from_report
from catalog_store import read_existing_store, write_store
from errors import NoDataError


def parse_file(input_path: str, output_path: str) -> int:
    """Ingest one report into the catalog file. Returns an exit code."""
    input_path = os.path.abspath(input_path)
    output_path = os.path.abspath(output_path)

    if not os.path.isfile(input_path):
        print(f"[FATAL] Input file not found: {input_path}", file=sys.stderr)
        return 1

    try:
        with open(input_path, "r", encoding="utf-8") as f:
            text = f.read()
        catalog = build_catalog_from_report(text)
    except (NoDataError, OSError, UnicodeDecodeError) as exc:
        print(f"[FATAL] Error parsing course data: {exc}", file=sys.stderr)
        return 1

    print(
        f"[OK] Parsed {len(catalog['courses'])} row(s) for semester "
        f"{catalog['semesterId']} from {input_path}"
    )

    store = read_existing_store(output_path)
    replaced = catalog["semesterId"] in store
    store = store.merge(catalog)
    write_store(store, output_path)

    action = "Replaced" if replaced else "Added"
    print(f"[OK] {action} semester {catalog['semesterId']}; saved {len(store)} semester(s) to {output_path}")
    return 0


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Course listing report parser and API server.")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument(
        "--serve",
        metavar="CATALOG_FILE",
        help="Serve the lookup API from a catalog JSON file",
    )
    group.add_argument(
        "--parse",
        nargs=2,
        metavar=("INPUT_REPORT", "OUTPUT_CATALOG"),
        help="Parse a report and merge it into the catalog JSON file",
    )
    parser.add_argument("--port", type=int, default=None, help="Port for --serve (default: $PORT or 3000)")
    return parser


def main(argv=None) -> int:
    args = build_arg_parser().parse_args(argv)
    if args.parse:
        return parse_file(*args.parse)

    # Imported lazily so --parse does not need Flask.
    from server import serve
    return serve(args.serve, port=args.port)


if __name__ == "__main__":
    raise SystemExit(main())
