#!/usr/bin/env python3
"""
ForceLayout CLI

Command-line interface for the force-directed diagram layout engine.

Usage:
    forcelayout layout <graph.json> [options]
    forcelayout presets
"""

import argparse
import json
import logging
import sys
from pathlib import Path


def setup_logging(verbosity: int):
    """Route library logging to stderr so stdout stays clean for JSON."""
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


def build_config(args, graph):
    """Combine --config, --preset/--auto and flag overrides into one config."""
    from .layout.config import SimulationConfig, load_config
    from .layout.presets import get_preset

    config = load_config(args.config) if args.config else SimulationConfig()

    if args.auto:
        config = config.optimize_for_graph(graph.statistics())
    elif args.preset:
        config = get_preset(args.preset).apply(config)

    if args.iterations is not None:
        config.iterations = args.iterations
    if args.timeout is not None:
        config.stabilization_timeout = args.timeout
    return config


def cmd_layout(args):
    """Lay out a graph file and write the positioned result."""
    from .errors import ConfigError, GraphValidationError, SimulationTimeout
    from .graph.loader import load_graph
    from .layout.session import LayoutSession

    # Summary goes to stderr when the JSON result is written to stdout
    out = sys.stdout if args.output else sys.stderr

    try:
        graph = load_graph(args.graph)
        config = build_config(args, graph)
    except (FileNotFoundError, ConfigError, GraphValidationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    stats = graph.statistics()
    print(f"Loaded graph: {stats.node_count} nodes, {stats.edge_count} edges", file=out)

    def progress_callback(tick):
        if tick.iteration % 50 == 0:
            print(f"  Tick {tick.iteration}: alpha={tick.alpha:.4f}", file=out)

    session = LayoutSession(config, progress_callback if args.verbose else None)
    exit_code = 0
    try:
        result = session.run(graph, strict=args.strict)
    except GraphValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except SimulationTimeout as e:
        print(f"Error: {e}", file=sys.stderr)
        result = e.result
        exit_code = 2

    if result.converged:
        print(f"  Converged after {result.iterations} iterations", file=out)
    else:
        print(f"  Stopped after {result.iterations} iterations ({result.state.value})", file=out)
    print(f"  Bounds: {result.bounds.width:.1f} x {result.bounds.height:.1f}", file=out)

    payload = json.dumps(result.to_dict(), indent=2)
    if args.output:
        output_path = Path(args.output)
        output_path.write_text(payload + "\n")
        print(f"\nSaved to: {output_path}", file=out)
    else:
        sys.stdout.write(payload + "\n")

    return exit_code


def cmd_presets(args):
    """List the available layout presets."""
    from .layout.presets import get_preset, list_presets

    for name in list_presets():
        preset = get_preset(name)
        print(f"{name:<14} {preset.description}")
    return 0


def main(argv=None):
    """Main entry point."""
    from .layout.presets import list_presets

    parser = argparse.ArgumentParser(
        description="ForceLayout - Force-Directed Diagram Layout",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  forcelayout layout graph.json -o layout.json
  forcelayout layout graph.yaml --preset hierarchical
  forcelayout layout graph.json --auto --timeout 5 --strict
  forcelayout presets
        """,
    )

    parser.add_argument('--version', action='version', version='forcelayout 0.1.0')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Layout command
    layout_parser = subparsers.add_parser('layout', help='Lay out a graph file')
    layout_parser.add_argument('graph', help='Path to graph file (.json, .yaml, .yml)')
    layout_parser.add_argument('-o', '--output', help='Output file path (default: stdout)')
    selection = layout_parser.add_mutually_exclusive_group()
    selection.add_argument('--preset', choices=list_presets(), help='Named layout preset')
    selection.add_argument('--auto', action='store_true',
                           help='Pick the preset from the graph statistics')
    layout_parser.add_argument('--config', help='YAML layout configuration file')
    layout_parser.add_argument('--iterations', type=int, help='Max iterations (default: 300)')
    layout_parser.add_argument('--timeout', type=float,
                               help='Stabilization timeout in seconds (default: 10)')
    layout_parser.add_argument('--strict', action='store_true',
                               help='Fail with exit code 2 if the layout times out')
    layout_parser.add_argument('-v', '--verbose', action='count', default=0,
                               help='Verbose output (-vv for debug logging)')

    # Presets command
    subparsers.add_parser('presets', help='List layout presets')

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(getattr(args, 'verbose', 0))

    # Dispatch command
    commands = {
        'layout': cmd_layout,
        'presets': cmd_presets,
    }

    return commands[args.command](args)


if __name__ == '__main__':
    sys.exit(main())
