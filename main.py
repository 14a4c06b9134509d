#!/usr/bin/env python3
"""
pb - pastebin command-line client
Paste standard input and print the URL of the new paste.

Usage:
    echo "hello world" | python main.py
    python main.py --url https://paste.example.com < notes.txt
"""

import argparse
import os
import sys
from typing import Optional, TextIO

from client.paste_client import DEFAULT_URL, PasteClient, PasteError
from client.printer import OutputPrinter


def build_parser() -> argparse.ArgumentParser:
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="pb",
        description="Paste standard input to a pastebin service.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  echo "hello world" | pb
  pb --url https://paste.example.com < notes.txt
  git diff | pb --quiet | xclip
        """,
    )
    parser.add_argument(
        "--url",
        "-u",
        default=os.environ.get("PASTEBIN_URL", DEFAULT_URL),
        help=f"Pastebin service URL (default: $PASTEBIN_URL or {DEFAULT_URL}).",
    )
    parser.add_argument(
        "--insecure",
        "-k",
        action="store_true",
        help="Skip TLS certificate verification.",
    )
    parser.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Print only the paste URL and errors.",
    )
    parser.add_argument(
        "--no-color",
        "-n",
        action="store_true",
        help="Disable colored output (also auto-disabled when NO_COLOR env var is set).",
    )
    return parser


def main(argv: Optional[list] = None, stdin: Optional[TextIO] = None) -> int:
    args: argparse.Namespace = build_parser().parse_args(argv)
    printer: OutputPrinter = OutputPrinter(quiet=args.quiet, no_color=args.no_color)
    stdin = stdin or sys.stdin

    try:
        blob: str = stdin.read()
        if not blob:
            printer.error("Nothing to paste: input is empty.", hint="Pipe some text into pb.")
            return 1
        client: PasteClient = PasteClient(args.url, insecure=args.insecure)
        paste_url: str = client.paste(blob)
    except PasteError as exc:
        printer.error(str(exc), hint="Check --url and that the service is running.")
        return 1
    except KeyboardInterrupt:
        printer.warning("Paste cancelled.", hint="Nothing was uploaded.")
        return 130

    printer.url(paste_url, details={"Size": f"{len(blob.encode('utf-8'))} B"})
    return 0


if __name__ == "__main__":
    sys.exit(main())
