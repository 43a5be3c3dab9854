"""
Command-line interface for guarded-yaml.
"""

import argparse
import json
import logging
import pprint
import sys
from typing import Any, List, Optional, Tuple

from .config import LoaderConfig, load_config
from .exceptions import GuardedYAMLError
from .loader import load


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Allowlist-based safe YAML loader")
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log allowlist and resolution details"
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # Load command
    load_parser = subparsers.add_parser("load", help="Resolve a document and print it")
    load_parser.add_argument("document", help="Path to the YAML document")
    load_parser.add_argument(
        "--config",
        "-c",
        help="Allowlist configuration file (default: core YAML types only)"
    )
    load_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON"
    )

    # Validate command
    validate_parser = subparsers.add_parser("validate", help="Check that a document is safe to load")
    validate_parser.add_argument("document", help="Path to the YAML document")
    validate_parser.add_argument(
        "--config",
        "-c",
        help="Allowlist configuration file (default: core YAML types only)"
    )

    return parser.parse_args(argv)


def _load_document(args: argparse.Namespace):
    config = load_config(args.config) if args.config else LoaderConfig()
    with open(args.document, "rb") as f:
        return load(f, config.allowlist, limits=config.limits, max_bytes=config.max_bytes)


def _json_ready(value: Any, path: Tuple[int, ...] = ()) -> Any:
    """Copy lists and dicts for JSON output, turning keys JSON cannot hold into strings."""
    if isinstance(value, (dict, list)):
        if id(value) in path:
            raise ValueError("Circular reference detected")
        path = path + (id(value),)
    if isinstance(value, dict):
        return {
            key if key is None or isinstance(key, (str, int, float, bool)) else str(key):
                _json_ready(item, path)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [_json_ready(item, path) for item in value]
    return value


def load_document(args: argparse.Namespace) -> None:
    """Resolve a document and print the result."""
    try:
        data = _load_document(args)
    except GuardedYAMLError as e:
        print(f"Rejected: {str(e)}")
        sys.exit(1)
    except OSError as e:
        print(f"Error: {str(e)}")
        sys.exit(1)

    if args.json:
        try:
            output = json.dumps(_json_ready(data), indent=2, default=str)
        except (TypeError, ValueError) as e:
            print(f"Error: Cannot write document as JSON: {str(e)}")
            sys.exit(1)
        print(output)
    else:
        pprint.pprint(data)


def validate_document(args: argparse.Namespace) -> None:
    """Check a document without printing its content."""
    try:
        _load_document(args)
        print(f"Document is safe: {args.document}")
    except GuardedYAMLError as e:
        print(f"Validation failed: {e}")
        sys.exit(1)
    except OSError as e:
        print(f"Error: {str(e)}")
        sys.exit(1)


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the CLI."""
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    if args.command == "load":
        load_document(args)
    elif args.command == "validate":
        validate_document(args)
    else:
        print("Error: No command specified")
        print("Use --help for usage information")
        sys.exit(1)


if __name__ == "__main__":
    main()
