"""
Command line interface

Usage:
    smokegen [options] header [header ...]

    -I DIR              add an include directory
    -d FILE             file with one define per line
    -dm MACROS          comma separated macros to define away
    -g NAME             generator backend (smoke, json)
    -qt                 enable Qt mode (signals, slots, properties)
    -t, --no-resolve-typedefs
                        resolve typedefs (on by default) or keep alias names
    -o DIR              output directory
    -config FILE        XML config file
    -m, --module NAME   module name used in generated identifiers
    -p, --parts N       number of class files (default 20)
    -c, --classes NAMES comma separated classes to generate
    --clang-options=OPT extra clang option, may be repeated
    -v                  verbose logging
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from .config import ParserOptions, load_config
from .errors import SmokegenError
from .generator import GENERATORS, Generator

LOG_FILE = 'generator.log'


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='smokegen',
        description='Generate SMOKE dispatch tables from C++ headers')
    parser.add_argument('headers', nargs='*', help='Header files to parse')
    parser.add_argument('-I', dest='include_dirs', action='append', default=[],
                        metavar='DIR', help='Add an include directory')
    parser.add_argument('-d', dest='defines', metavar='FILE',
                        help='File with one define per line')
    parser.add_argument('-dm', dest='drop_macros', action='append', default=[],
                        metavar='MACROS', help='Comma separated macros to drop')
    parser.add_argument('-g', dest='generator', metavar='NAME',
                        help=f'Generator backend ({", ".join(sorted(GENERATORS))})')
    parser.add_argument('-qt', dest='qt_mode', action='store_true', default=None,
                        help='Qt mode: signals, slots and properties')
    parser.add_argument('-t', '--resolve-typedefs', dest='resolve_typedefs', action=argparse.BooleanOptionalAction,
                        default=None, help='Resolve typedefs in member types')
    parser.add_argument('-o', dest='output_dir', metavar='DIR',
                        help='Output directory (default: current directory)')
    parser.add_argument('-config', dest='config', metavar='FILE', help='XML config file')
    parser.add_argument('-m', '--module', dest='module_name', metavar='NAME',
                        help='Module name used in generated identifiers')
    parser.add_argument('-p', '--parts', dest='parts', type=int, metavar='N',
                        help='Number of class files')
    parser.add_argument('-c', '--classes', dest='classes', action='append', default=[],
                        metavar='NAMES', help='Comma separated classes to generate')
    parser.add_argument('--clang-options', dest='clang_options', action='append', default=[],
                        metavar='OPT', help='Extra option passed to clang (use --clang-options=-OPT)')
    parser.add_argument('-v', '--verbose', action='store_true', help='Verbose logging')
    return parser


def _split(values: list[str]) -> list[str]:
    return [v for value in values for v in value.split(',') if v]


def options_from_args(args: argparse.Namespace) -> ParserOptions:
    """Config file first, then the command line on top of it"""
    options = ParserOptions()
    if args.config:
        load_config(Path(args.config), options, keep_generator=args.generator is not None)
    options.include_dirs += [Path(d) for d in args.include_dirs]
    options.drop_macros += _split(args.drop_macros)
    options.class_list += _split(args.classes)
    options.clang_options += args.clang_options
    options.headers = [Path(h) for h in args.headers]
    if args.defines:
        options.defines_file = Path(args.defines)
    if args.generator:
        options.generator = args.generator
    if args.qt_mode is not None:
        options.qt_mode = args.qt_mode
    if args.resolve_typedefs is not None:
        options.resolve_typedefs = args.resolve_typedefs
    if args.output_dir:
        options.output_dir = Path(args.output_dir)
    if args.module_name:
        options.module_name = args.module_name
    if args.parts is not None:
        options.parts = args.parts
    return options


def _console_handler(verbose: bool) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    handler.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))
    return handler


def _file_handler(output_dir: Path) -> logging.Handler:
    """Records the whole run in generator.log inside the output directory"""
    os.makedirs(output_dir, exist_ok=True)
    handler = logging.FileHandler(os.path.join(output_dir, LOG_FILE), mode='w')
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter('%(asctime)s %(name)s %(levelname)s: %(message)s'))
    return handler


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.headers:
        parser.print_usage()
        return 0

    root = logging.getLogger()
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    handlers = [_console_handler(args.verbose)]
    root.addHandler(handlers[0])
    try:
        options = options_from_args(args)
        handlers.append(_file_handler(options.output_dir))
        root.addHandler(handlers[-1])
        Generator(options).generate()
    except (SmokegenError, OSError) as e:
        print(f'error: {e}', file=sys.stderr)
        return 1
    finally:
        for handler in handlers:
            root.removeHandler(handler)
            handler.close()
        root.setLevel(previous_level)
    return 0


if __name__ == '__main__':
    sys.exit(main())
