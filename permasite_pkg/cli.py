#!/usr/bin/env python3
"""
Command-line interface for Permasite - static site builder.
"""

import os
import sys
import argparse
from typing import List, Optional

from . import __version__
from .core import Site
from .errors import PermasiteError
from .settings import BuildFlags


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Permasite - Static Site Builder')
    parser.add_argument('--source', '-s', type=str, default='.',
                        help='Source directory (defaults to the current directory)')
    parser.add_argument('--destination', '-d', type=str,
                        help='Destination directory (overrides the configuration)')
    parser.add_argument('--unpublished', action='store_true', default=None,
                        help='Render documents marked as unpublished')
    parser.add_argument('--drafts', action='store_true', default=None,
                        help='Render documents marked as drafts')
    parser.add_argument('--future', action='store_true', default=None,
                        help='Render documents dated in the future')
    parser.add_argument('--routes', action='store_true',
                        help='Print the URL to source path table instead of building')
    parser.add_argument('--workers', type=int,
                        help='Number of worker processes used to read documents')
    parser.add_argument('--quiet', '-q', action='store_true',
                        help='Only show warnings and errors')
    parser.add_argument('--log-file', type=str,
                        help='Write a detailed build log to this file')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def print_routes(site: Site) -> None:
    routes = site.routes()
    width = max((len(url) for url in routes), default=0)
    for url, path in routes.items():
        print(f"{url.ljust(width)}  {path}")


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    # Flags left unset keep the configured values
    destination = os.path.abspath(os.path.expanduser(args.destination)) if args.destination else None
    flags = BuildFlags(
        destination=destination,
        unpublished=args.unpublished,
        drafts=args.drafts,
        future=args.future,
    )

    try:
        site = Site.from_directory(args.source, flags, workers=args.workers,
                                   log_file=args.log_file, quiet=args.quiet)
        if args.routes:
            site.read_files()
            print_routes(site)
            return
        site.build()
    except PermasiteError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
