"""
sopsfile command line entry point.

Usage:
    sopsfile <command> [args]
"""

from __future__ import annotations

import argparse
import sys
from typing import Sequence

from sopsfile import __version__
from sopsfile.config.settings import get_settings
from sopsfile.logging import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sopsfile",
        description="Manage sops-encrypted secret files declaratively",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", default=None, help="Log level (default: SOPSFILE_LOG_LEVEL or INFO)")
    subparsers = parser.add_subparsers(dest="command")

    for name, help_text in (
        ("apply", "Create or recreate encrypted files declared in a manifest"),
        ("check", "Show what apply would change (exit 1 when changes are pending)"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("manifest", help="Path to the manifest YAML")
        sub.add_argument("--state", dest="state_file", default=None, help="State file path")
        sub.add_argument("--output", choices=["table", "json"], default="table")

    destroy_parser = subparsers.add_parser("destroy", help="Delete encrypted files declared in a manifest")
    destroy_parser.add_argument("manifest", help="Path to the manifest YAML")
    destroy_parser.add_argument("--state", dest="state_file", default=None, help="State file path")
    destroy_parser.add_argument("--yes", "-y", action="store_true", help="Skip confirmation")

    decrypt_parser = subparsers.add_parser("decrypt", help="Decrypt a sops file and print its values")
    decrypt_parser.add_argument("source_file", help="Encrypted file to read")
    decrypt_parser.add_argument(
        "--input-type",
        default=None,
        help="Document format (json, yaml, dotenv, ini); inferred from the extension if omitted",
    )
    decrypt_parser.add_argument("--key", default=None, help="Only show values under this top-level key")
    decrypt_parser.add_argument("--output", choices=["table", "json", "raw"], default="table")

    return parser


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging((args.log_level or get_settings().log_level).upper())

    if args.command == "apply":
        from sopsfile.cli.apply import apply_command

        sys.exit(apply_command(args.manifest, state_file=args.state_file, output_format=args.output))

    if args.command == "check":
        from sopsfile.cli.apply import check_command

        sys.exit(check_command(args.manifest, state_file=args.state_file, output_format=args.output))

    if args.command == "destroy":
        from sopsfile.cli.destroy import destroy_command

        sys.exit(destroy_command(args.manifest, state_file=args.state_file, auto_approve=args.yes))

    if args.command == "decrypt":
        from sopsfile.cli.decrypt import decrypt_command

        sys.exit(
            decrypt_command(
                args.source_file,
                input_type=args.input_type,
                key=args.key,
                output_format=args.output,
            )
        )

    parser.print_help()
    sys.exit(1)


if __name__ == "__main__":
    main()
