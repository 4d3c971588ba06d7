# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
CLI entrypoint for bertprep.

Usage:
    bertprep tokenize --vocab vocab.txt --text "hello world"
    bertprep encode --config configs/bert.yaml --text "a" --text "b" --output out/body.json
    bertprep info --config configs/bert.yaml

Global options (--config, --vocab, --log-level, --dry-run, --chinese) are
shared by every subcommand through a parent parser.
"""

import argparse
import sys

from bertprep.cli.commands import handle_encode, handle_info, handle_tokenize
from bertprep.cli.exit_codes import USER_ERROR


def _build_global_parser() -> argparse.ArgumentParser:
    """Parent parser with the options every subcommand inherits (add_help=False)."""
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to YAML configuration file.",
    )
    parent.add_argument(
        "--vocab",
        type=str,
        default=None,
        help="Path to vocab.txt (overrides tokenizer.vocab_path).",
    )
    parent.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        dest="log_level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging verbosity level.",
    )
    parent.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        dest="dry_run",
        help="Build payloads without writing them.",
    )
    parent.add_argument(
        "--chinese",
        action="store_true",
        default=False,
        help="Use Chinese-mode tokenization.",
    )
    return parent


def _register_subcommands(
    subparsers: argparse._SubParsersAction,  # type: ignore[type-arg]
    parent: argparse.ArgumentParser,
) -> None:
    commands = [
        ("tokenize", "Show WordPiece tokens and offsets for text.", handle_tokenize),
        ("encode", "Build an inference request payload.", handle_encode),
        ("info", "Display vocabulary and service settings.", handle_info),
    ]

    for name, help_text, handler in commands:
        parser = subparsers.add_parser(name, parents=[parent], help=help_text)
        parser.set_defaults(func=handler)
        if name in ("tokenize", "encode"):
            parser.add_argument(
                "--text",
                action="append",
                default=[],
                help="Input text; repeat for a batch.",
            )

    encode_parser = subparsers.choices["encode"]
    encode_parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Output file (http) or file prefix for the three .bin buffers (grpc).",
    )
    encode_parser.add_argument(
        "--max-seq-length",
        type=int,
        default=None,
        dest="max_seq_length",
        help="Override service.max_seq_length.",
    )
    encode_parser.add_argument(
        "--transport",
        type=str,
        default=None,
        choices=["http", "grpc"],
        help="Override service.transport.",
    )


def main(argv: list[str] | None = None) -> None:
    """Parse the command line, run the chosen handler, exit with its code."""
    parent = _build_global_parser()

    root_parser = argparse.ArgumentParser(
        prog="bertprep",
        description="bertprep: BERT tokenization and inference request preparation.",
        parents=[parent],
    )
    subparsers = root_parser.add_subparsers(dest="command")
    _register_subcommands(subparsers, parent)

    args = root_parser.parse_args(argv)

    if not hasattr(args, "func") or args.func is None:
        root_parser.print_help()
        sys.exit(USER_ERROR)

    exit_code = args.func(args)
    sys.exit(exit_code)
