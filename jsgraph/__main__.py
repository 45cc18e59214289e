"""Command-line front end: analyze a codebase and save the graph as JSON."""

import argparse
import logging
import os
import sys

from .config import ParseOptions
from .errors import JsGraphError
from .pipeline import parse


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jsgraph",
        description="Generate a code knowledge graph for a JavaScript/TypeScript codebase.",
    )
    parser.add_argument("root", nargs="?", help="Path to the codebase directory")
    parser.add_argument("-o", "--output", default="code_knowledge_graph.json", help="Output JSON file")
    parser.add_argument("--entry-point", help="Only analyze files reachable from this file")
    parser.add_argument("--exclude", nargs="*", default=[], metavar="GLOB", help="Glob patterns to skip")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr")
    return parser


def print_stats(stats) -> None:
    print("\nCodebase Statistics:")
    print("-------------------")
    labels = {key: key.replace("_", " ").title() for key in stats}
    # Calculate max length for padding
    max_len = max(len(label) for label in labels.values())
    for key, value in stats.items():
        print(f"{labels[key]:<{max_len + 2}}: {value:,}")


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    status = 0
    try:
        print("Code Knowledge Graph Generator")
        print("-----------------------------")
        codebase_dir = args.root or input("Enter the path to the codebase directory: ").strip()
        if not os.path.isdir(codebase_dir):
            raise JsGraphError(f"Directory does not exist: {codebase_dir}")

        print("\nAnalyzing codebase...")
        options = ParseOptions(entry_point=args.entry_point, exclude=tuple(args.exclude))
        graph = parse(codebase_dir, options)

        print("\nSaving graph...")
        graph.save(args.output)
        print(f"\nCode knowledge graph saved to {args.output}")

        print_stats(graph.stats())
        for warning in graph.warnings:
            print(f"Warning: {warning}", file=sys.stderr)

    except KeyboardInterrupt:
        print("\nOperation cancelled by user.")
        status = 130
    except (JsGraphError, OSError) as e:
        print(f"\nError: {str(e)}", file=sys.stderr)
        status = 1
    finally:
        print("\nDone.")
    return status


if __name__ == "__main__":
    sys.exit(main())
