#!/usr/bin/env python3
"""
CLI for the Forge 2 scripting language.

Usage:
    python -m forge2 check FILE.forge [FILE.forge ...] [--json]
    python -m forge2 ast FILE.forge
    python -m forge2 run FILE.forge [FILE.forge ...] [--emit EVENT] [--data YAML]
                         [--ticks N] [--dt DT] [--config PATH] [--show NAME ...]

Examples:
    # Check syntax of every script in a directory
    python -m forge2 check scripts/*.forge

    # Print the syntax tree of one file
    python -m forge2 ast scripts/doors.forge

    # Load two files, fire an event, advance 60 frames and show a global
    python -m forge2 run scripts/ship.forge scripts/doors.forge \
        --emit interact --data '{target: galley_exit}' \
        --ticks 60 --dt 0.016 --show galley_exit
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import yaml


def cmd_check(args) -> int:
    """Tokenize and parse each file, reporting diagnostics."""
    from . import tokenize, parse, DiagnosticCollector, ForgeError
    from .errors import warning_import_not_executed

    collector = DiagnosticCollector()
    summaries = []

    for file in args.files:
        source_path = Path(file)
        if not source_path.exists():
            print(f"Error: File not found: {source_path}", file=sys.stderr)
            return 1

        source = source_path.read_text(encoding="utf-8")
        try:
            tokens = tokenize(source, str(source_path))
            program = parse(tokens, filename=str(source_path), source=source)
        except ForgeError as e:
            collector.add_error(e)
            continue

        for imp in program.imports:
            collector.add(warning_import_not_executed(imp.source, imp.span))
        summaries.append(
            f"OK: {source_path.name} - {len(program.body)} statement(s), "
            f"{len(program.imports)} import(s)"
        )

    if args.json:
        print(json.dumps(collector.to_json(), indent=2))
    else:
        for summary in summaries:
            print(summary)
        if collector.diagnostics:
            print(collector.format_all(), file=sys.stderr)

    return 1 if collector.has_errors else 0


def cmd_ast(args) -> int:
    """Print the syntax tree of a file."""
    from . import compile_program, print_ast, ForgeError

    source_path = Path(args.file)
    if not source_path.exists():
        print(f"Error: File not found: {source_path}", file=sys.stderr)
        return 1

    try:
        program = compile_program(source_path.read_text(encoding="utf-8"), str(source_path))
    except ForgeError as e:
        print(e, file=sys.stderr)
        return 1

    print_ast(program)
    return 0


def cmd_run(args) -> int:
    """Load files into one VM, then drive it with events and ticks."""
    from . import ForgeVM, ForgeError, RuntimeConfig, ConfigError, load_config, stringify

    try:
        config = load_config(args.config) if args.config else RuntimeConfig()
    except (ConfigError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    data = {}
    if args.data:
        try:
            data = yaml.safe_load(args.data)
        except yaml.YAMLError as e:
            print(f"Error: invalid --data: {e}", file=sys.stderr)
            return 1
        if not isinstance(data, dict):
            print("Error: --data must be a mapping", file=sys.stderr)
            return 1

    vm = ForgeVM(config)
    try:
        for file in args.files:
            vm.load_file(file)

        if args.emit:
            vm.emit(args.emit, data)

        for _ in range(args.ticks):
            vm.tick(args.dt)

        for name in args.show or []:
            print(f"{name} = {_describe(vm.get(name), stringify)}")
    except ForgeError as e:
        print(e, file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


def _describe(value, stringify) -> str:
    """Display a global; instances show their fields."""
    from .runtime import InstanceValue, FunctionValue

    if isinstance(value, InstanceValue):
        fields = {
            key: field_value for key, field_value in value.data.items()
            if not isinstance(field_value, FunctionValue)
        }
        return f"{value.schema} {stringify(fields)}"
    return stringify(value)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog='python -m forge2',
        description='Forge 2 scripting language tools',
    )
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable debug logging')

    subparsers = parser.add_subparsers(dest='action', required=True)

    # check command
    check_parser = subparsers.add_parser('check', help='Check Forge files for syntax errors')
    check_parser.add_argument('files', nargs='+', metavar='FILE', help='Forge source file')
    check_parser.add_argument('--json', action='store_true',
                              help='Print diagnostics as JSON')

    # ast command
    ast_parser = subparsers.add_parser('ast', help='Print the syntax tree of a file')
    ast_parser.add_argument('file', help='Forge source file')

    # run command
    run_parser = subparsers.add_parser('run', help='Load files and drive the VM')
    run_parser.add_argument('files', nargs='+', metavar='FILE', help='Forge source file')
    run_parser.add_argument('-e', '--emit', metavar='EVENT',
                            help='Event to emit after loading')
    run_parser.add_argument('-d', '--data', metavar='YAML',
                            help='Event data as a YAML mapping')
    run_parser.add_argument('-t', '--ticks', type=int, default=0,
                            help='Number of tick events to emit')
    run_parser.add_argument('--dt', type=float, default=0.016,
                            help='Delta time for each tick')
    run_parser.add_argument('-c', '--config', metavar='PATH',
                            help='Runtime configuration (YAML)')
    run_parser.add_argument('-s', '--show', action='append', metavar='NAME',
                            help='Print a global after running (can be repeated)')

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG,
                            format='%(levelname)s %(name)s: %(message)s')

    if args.action == 'check':
        return cmd_check(args)
    elif args.action == 'ast':
        return cmd_ast(args)
    elif args.action == 'run':
        return cmd_run(args)
    else:
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
