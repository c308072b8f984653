#!/usr/bin/env python3
"""
CLI for the shape script compiler and runner.

Usage:
    python -m shapescript check FILE.shape [--json]
    python -m shapescript list FILE.shape
    python -m shapescript run FILE.shape [--input NAME=VALUE ...] [--output FILE.dxf]
    python -m shapescript minify FILE.shape [--output FILE]
    python -m shapescript builtins

Examples:
    # Check syntax
    python -m shapescript check button.shape

    # Run with inputs and export the result to DXF
    python -m shapescript run button.shape -i radius=4 -i offset=2,3 -o button.dxf

Logging follows SHAPESCRIPT_LOG_LEVEL; print[...] output from scripts
appears at INFO level.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, Tuple

from .config import ScriptConfig
from .log import setup_default_logging


def parse_input(input_str: str) -> Tuple[str, Any]:
    """Parse 'name=value' into (name, value): a number, true/false, or x,y."""
    if '=' not in input_str:
        raise ValueError(f"Invalid input format: {input_str} (expected name=value)")

    name, value_str = input_str.split('=', 1)
    name = name.strip()
    value_str = value_str.strip()

    if value_str.lower() == 'true':
        return (name, True)
    elif value_str.lower() == 'false':
        return (name, False)

    if ',' in value_str:
        parts = value_str.strip('[]').split(',')
        if len(parts) != 2:
            raise ValueError(f"Invalid Vec2 value for {name}: {value_str}")
        return (name, (float(parts[0]), float(parts[1])))

    try:
        return (name, float(value_str))
    except ValueError:
        raise ValueError(f"Invalid value for {name}: {value_str}") from None


def _read_source(path_str: str):
    source_path = Path(path_str)
    if not source_path.exists():
        print(f"Error: File not found: {source_path}", file=sys.stderr)
        return source_path, None
    return source_path, source_path.read_text(encoding='utf-8')


def _has_export(program) -> bool:
    from .ast import ExportShape, ExportAdaptive, ExportSlot
    from .transforms import TreeTransform

    class ExportFinder(TreeTransform):
        found = False

        @property
        def name(self) -> str:
            return "find-export"

        def visit_statement(self, node):
            if isinstance(node, (ExportShape, ExportAdaptive, ExportSlot)):
                self.found = True
            return super().visit_statement(node)

    finder = ExportFinder()
    finder.transform(program)
    return finder.found


def cmd_check(args):
    """Check a script for lexer and parser errors."""
    from . import tokenize, parse
    from .errors import DiagnosticCollector, ShapeScriptError, warning_no_export

    source_path, source = _read_source(args.file)
    if source is None:
        return 1

    collector = DiagnosticCollector()
    program = None
    try:
        program = parse(tokenize(source, str(source_path)), str(source_path))
    except ShapeScriptError as e:
        collector.add_error(e)
    else:
        if not _has_export(program):
            collector.add(warning_no_export())

    if args.json:
        print(json.dumps(collector.to_json(), indent=2))
    elif collector.has_errors:
        print(collector.format_all(), file=sys.stderr)
    else:
        print(f"OK: {source_path.name} - {len(program.inputs)} input(s), "
              f"{len(program.functions)} function(s)")
        if collector.warning_count:
            print(collector.format_all())

    return 1 if collector.has_errors else 0


def cmd_list(args):
    """List the inputs and functions a script declares."""
    from . import tokenize, parse
    from .errors import ShapeScriptError
    from .transforms.source import SourceWriter

    source_path, source = _read_source(args.file)
    if source is None:
        return 1

    try:
        program = parse(tokenize(source, str(source_path)), str(source_path))
    except ShapeScriptError as e:
        print(e.diagnostic.format(), file=sys.stderr)
        return 1

    writer = SourceWriter(program)
    print(f"Script: {source_path.name}")
    if program.export_kind:
        print(f"Exports: {program.export_kind}")

    print(f"Inputs ({len(program.inputs)}):")
    for name, stmt in program.inputs.items():
        default = f" = {writer.expression(stmt.default)}" if stmt.default is not None else ""
        print(f"  {name}: {stmt.type}{default}")

    print(f"Functions ({len(program.functions)}):")
    for function in program.functions.values():
        params = ", ".join(f"{p.name}: {p.type}" for p in function.parameters)
        print(f"  {function.name}[{params}]")

    return 0


def cmd_run(args):
    """Run a script and optionally export the result."""
    from . import compile_and_run
    from .geometry import Shape
    from .export import write_dxf

    source_path, source = _read_source(args.file)
    if source is None:
        return 1

    inputs: Dict[str, Any] = {}
    for input_str in args.input or []:
        try:
            name, value = parse_input(input_str)
            inputs[name] = value
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    result = compile_and_run(source, inputs, args.config, str(source_path))

    if not result.success:
        if result.diagnostic is not None:
            print(result.diagnostic.format(), file=sys.stderr)
        else:
            print(f"Error: {result.error_message}", file=sys.stderr)
        return 1

    shape = result.shape
    if isinstance(shape, Shape):
        print(f"Result: Shape with {shape.triangle_count} triangle(s), "
              f"{shape.width:g} x {shape.height:g}")
    else:
        print(f"Result: AdaptiveShape with slots {', '.join(shape.filled()) or '(none)'}")

    if args.output:
        path = write_dxf(shape, args.output)
        print(f"Exported to: {path}")

    return 0


def cmd_minify(args):
    """Rename identifiers to short names and write the script back out."""
    from . import tokenize, parse
    from .errors import ShapeScriptError
    from .transforms import minify, to_source

    source_path, source = _read_source(args.file)
    if source is None:
        return 1

    try:
        program = parse(tokenize(source, str(source_path)), str(source_path))
    except ShapeScriptError as e:
        print(e.diagnostic.format(), file=sys.stderr)
        return 1

    text = to_source(minify(program))
    if args.output:
        Path(args.output).write_text(text, encoding='utf-8')
    else:
        sys.stdout.write(text)
    return 0


def cmd_builtins(args):
    """List the builtin functions."""
    from .runtime.builtins import get_builtin_registry

    registry = get_builtin_registry()
    for name in registry.names():
        func = registry.get_function(name)
        if func.signature.is_variadic:
            params = "..."
        else:
            params = ", ".join(func.signature.param_names)
        line = f"{name}[{params}]"
        if func.doc:
            line += f"  - {func.doc}"
        print(line)
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog='python -m shapescript',
        description='Shape script compiler and runner',
    )

    subparsers = parser.add_subparsers(dest='action', required=True)

    check_parser = subparsers.add_parser('check', help='Check a script for errors')
    check_parser.add_argument('file', help='Script source file')
    check_parser.add_argument('--json', action='store_true',
                              help='Print diagnostics as JSON')

    list_parser = subparsers.add_parser('list', help='List inputs and functions')
    list_parser.add_argument('file', help='Script source file')

    run_parser = subparsers.add_parser('run', help='Run a script')
    run_parser.add_argument('file', help='Script source file')
    run_parser.add_argument('-i', '--input', action='append', metavar='NAME=VALUE',
                            help='Input value (can be repeated); x,y for a Vec2')
    run_parser.add_argument('-o', '--output', metavar='FILE',
                            help='DXF file to export the result to')

    minify_parser = subparsers.add_parser('minify', help='Minify a script')
    minify_parser.add_argument('file', help='Script source file')
    minify_parser.add_argument('-o', '--output', metavar='FILE',
                               help='Write the result here instead of stdout')

    subparsers.add_parser('builtins', help='List builtin functions')

    args = parser.parse_args(argv)

    try:
        args.config = ScriptConfig.from_env()
    except ValueError as e:
        print(f"Error: bad SHAPESCRIPT_* setting: {e}", file=sys.stderr)
        return 1
    setup_default_logging(args.config.log_level)

    if args.action == 'check':
        return cmd_check(args)
    elif args.action == 'list':
        return cmd_list(args)
    elif args.action == 'run':
        return cmd_run(args)
    elif args.action == 'minify':
        return cmd_minify(args)
    elif args.action == 'builtins':
        return cmd_builtins(args)
    else:
        parser.print_help()
        return 1


if __name__ == '__main__':
    sys.exit(main())
