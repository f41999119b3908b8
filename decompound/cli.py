"""Command-line driver: decompound FILE > converted.c"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .api import convert_source, dump_plan, dump_registry, dump_sites
from .config import ConvertConfig
from .errors import DecompoundError
from . import constants

logger = logging.getLogger(__name__)

PROG = "decompound"


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="Rewrite C99 compound literals into C89 hoisted temporaries.",
    )
    parser.add_argument("file", help="C source file to convert")
    parser.add_argument("--temp-prefix", default=constants.DEFAULT_TEMP_PREFIX,
                        help="Name prefix for hoisted temporaries (default: temp)")
    parser.add_argument("--no-member-check", action="store_true",
                        help="Do not check designated members against struct layouts")
    parser.add_argument("--dump-registry", action="store_true",
                        help="Only print the struct/enum/typedef tables")
    parser.add_argument("--dump-sites", action="store_true",
                        help="Only list located compound literals")
    parser.add_argument("--dump-plan", action="store_true",
                        help="Only print the rewrite plan as JSON")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Debug logging on stderr")
    return parser


def _write_stdout(text: str) -> None:
    data = text.encode(constants.SOURCE_ENCODING, constants.SOURCE_ERRORS)
    sys.stdout.flush()
    sys.stdout.buffer.write(data)
    sys.stdout.buffer.flush()


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(name)s: %(message)s",
        stream=sys.stderr,
    )
    config = ConvertConfig(
        temp_prefix=args.temp_prefix,
        validate_members=not args.no_member_check,
    )

    try:
        source = Path(args.file).read_bytes()
        if args.dump_registry:
            output = dump_registry(source) + "\n"
        elif args.dump_sites:
            output = dump_sites(source) + "\n"
        elif args.dump_plan:
            output = dump_plan(source, config) + "\n"
        else:
            output = convert_source(source, config)
    except OSError as exc:
        print(f"{PROG}: error: cannot read {args.file}: {exc.strerror}", file=sys.stderr)
        return 1
    except DecompoundError as exc:
        print(f"{PROG}: error: {args.file}: {exc}", file=sys.stderr)
        return 1

    _write_stdout(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
