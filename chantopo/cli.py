"""Command line interface for inspecting channel topologies."""

from __future__ import annotations

import argparse
import sys
import time
from contextlib import contextmanager
from pathlib import Path

from chantopo.config import TopologyConfig
from chantopo.errors import ConfigurationError, TopologyError
from chantopo.log_config import get_logger
from chantopo.topology import TopologyIndex

logger = get_logger(__name__)


@contextmanager
def Timer(step: str):
    """Report one CLI step on stdout and in the log, with its duration.

    Index builds and audits finish in milliseconds, so durations are
    reported in ms.

    Args:
        step: Short description such as "Build topology index 'hbhe'".
    """
    print(f"🔄 {step}...")
    logger.debug(f"{step}: started")
    start = time.perf_counter()
    try:
        yield
    except Exception as e:
        elapsed_ms = (time.perf_counter() - start) * 1000
        print(f"❌ {step} failed after {elapsed_ms:.0f} ms")
        logger.error(f"{step}: failed after {elapsed_ms:.0f} ms: {e}")
        raise
    elapsed_ms = (time.perf_counter() - start) * 1000
    print(f"✅ {step} ({elapsed_ms:.0f} ms)")
    logger.info(f"{step}: done in {elapsed_ms:.0f} ms")


def _load_config(config_path: Path) -> TopologyConfig:
    """Load configuration.

    Args:
        config_path: Path to YAML configuration file.

    Returns:
        Loaded configuration object.

    Raises:
        SystemExit: If configuration loading fails.
    """
    try:
        config = TopologyConfig.from_yaml(config_path)
        logger.info(f"Loaded configuration from {config_path}")
        return config
    except FileNotFoundError:
        print(f"❌ Configuration file not found: {config_path}")
        logger.error(f"Configuration file not found: {config_path}")
        sys.exit(2)  # Config problem
    except Exception as e:
        logger.error(f"Failed to load config: {e}")
        print(f"❌ Configuration error: {e}")
        print(f"💡 Check YAML syntax in: {config_path}")
        sys.exit(2)  # Config problem


def _build_index(config: TopologyConfig) -> TopologyIndex:
    """Build the index, mapping construction failures to exit code 2."""
    try:
        with Timer(f"Build topology index '{config.layout.name}'"):
            return config.build_index()
    except (ConfigurationError, ValueError) as e:
        print(f"❌ Invalid layout or assignment: {e}")
        sys.exit(2)  # Config problem


def info_command(args: argparse.Namespace) -> None:
    """Show configuration and index size information.

    Args:
        args: Parsed command line arguments containing config file path.
    """
    config = _load_config(Path(args.config))
    print(config.summary())
    index = _build_index(config)

    print("\nIndex")
    print("=" * 20)
    print(f"Channels: {index.channel_count:,}")
    print(f"Units: {index.n_units}")
    print(f"Boxes: {index.n_boxes}")
    print(f"Max channels per unit: {index.max_members_per_unit()}")
    print(f"Max channels per box: {index.max_members_per_box()}")


def neighbors_command(args: argparse.Namespace) -> None:
    """Print the neighbors of a channel or a unit.

    Args:
        args: Parsed command line arguments with the channel or unit to query.
    """
    config = _load_config(Path(args.config))
    index = _build_index(config)

    try:
        if args.unit is not None:
            members = index.members_of_unit(args.unit)
            neighbors = index.neighbors_of_unit(args.unit)
            print(f"Unit {args.unit}: {len(members)} channels")
        else:
            if args.index is not None:
                channel_index = args.index
            elif None not in (args.depth, args.eta, args.phi):
                channel_index = index.linear_index(args.depth, args.eta, args.phi)
            else:
                print("❌ Give --index, --unit, or all of --depth/--eta/--phi")
                sys.exit(1)
            channel = index.id_of(channel_index)
            neighbors = index.neighbors_of(channel_index)
            print(
                f"Channel {channel_index} {channel}: unit "
                f"{index.unit_of(channel_index)}, box {index.box_of(channel_index)}"
            )
    except TopologyError as e:
        logger.error(f"Lookup failed: {e}")
        print(f"❌ {e}")
        sys.exit(3)

    print(f"Neighbors ({len(neighbors)}):")
    for i in neighbors:
        print(f"   {i:6d} {index.id_of(i)} unit {index.unit_of(i)}")


def export_command(args: argparse.Namespace) -> None:
    """Export the channel topology as JSON and, optionally, a unit map image.

    Args:
        args: Parsed command line arguments with output paths.
    """
    from chantopo.graph_export import save_to_json

    config = _load_config(Path(args.config))
    index = _build_index(config)

    try:
        output_path = Path(args.output)
        with Timer(f"Write channel topology to {output_path}"):
            save_to_json(index, output_path, indent=config.output.json_indent)

        if args.map:
            from chantopo.visualization import export_unit_map

            map_path = Path(args.map)
            with Timer(f"Render unit map for depth {args.depth}"):
                export_unit_map(
                    index,
                    args.depth,
                    map_path,
                    highlight_unit=args.highlight_unit,
                    dpi=config.output.map_dpi,
                )
    except ValueError as e:
        logger.error(f"Export error: {e}")
        print(f"❌ {e}")
        sys.exit(3)
    except Exception as e:
        logger.error(f"Export failed: {e}")
        print("💡 Use -v for detailed error information")
        sys.exit(1)

    print(f"🎉 SUCCESS! Exported topology: {output_path}")


def validate_command(args: argparse.Namespace) -> None:
    """Audit all index invariants and report issues.

    Args:
        args: Parsed command line arguments containing config file path.
    """
    from chantopo.validation import validate_index

    config = _load_config(Path(args.config))
    index = _build_index(config)

    with Timer("Validate topology index"):
        issues = validate_index(index)

    if issues:
        print("❌ Topology validation found issues:")
        for s in issues:
            print(f"   - {s}")
        sys.exit(3)  # Validation failure
    print("✅ Topology validation passed")


def main() -> None:
    """Parse command line arguments and execute the appropriate subcommand.

    Configures logging, parses CLI arguments, and dispatches to the correct
    command function (info, neighbors, export, or validate).
    """
    parser = argparse.ArgumentParser(
        prog="chantopo",
        description="Inspect detector channel layouts, unit assignment and cross-unit neighbors.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    # Global options
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress console output (logs only)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    def _add_config_arg(sub: argparse.ArgumentParser) -> None:
        sub.add_argument(
            "config",
            nargs="?",
            default="config.yml",
            help="Configuration file path (default: config.yml)",
        )

    # Info command
    info_parser = subparsers.add_parser(
        "info", help="Show layout configuration and index sizes"
    )
    _add_config_arg(info_parser)
    info_parser.set_defaults(func=info_command)

    # Neighbors command
    neighbors_parser = subparsers.add_parser(
        "neighbors", help="List cross-unit neighbors of a channel or unit"
    )
    _add_config_arg(neighbors_parser)
    neighbors_parser.add_argument("--index", type=int, default=None)
    neighbors_parser.add_argument("--depth", type=int, default=None)
    neighbors_parser.add_argument("--eta", type=int, default=None)
    neighbors_parser.add_argument("--phi", type=int, default=None)
    neighbors_parser.add_argument("--unit", type=int, default=None)
    neighbors_parser.set_defaults(func=neighbors_command)

    # Export command
    export_parser = subparsers.add_parser(
        "export", help="Export channel topology JSON and an optional unit map"
    )
    _add_config_arg(export_parser)
    export_parser.add_argument(
        "-o",
        "--output",
        default="channel_topology.json",
        help="Output JSON file (default: channel_topology.json)",
    )
    export_parser.add_argument(
        "--map", default=None, help="Optional image path for an eta-phi unit map"
    )
    export_parser.add_argument(
        "--depth", type=int, default=1, help="Depth drawn on the unit map"
    )
    export_parser.add_argument(
        "--highlight-unit",
        type=int,
        default=None,
        help="Mark one unit and its neighbors on the unit map",
    )
    export_parser.set_defaults(func=export_command)

    # Validate command
    validate_parser = subparsers.add_parser(
        "validate", help="Check bijection, hierarchy and neighbor invariants"
    )
    _add_config_arg(validate_parser)
    validate_parser.set_defaults(func=validate_command)

    # Parse arguments and dispatch
    args = parser.parse_args()

    # Configure logging based on arguments
    import logging

    from chantopo.log_config import set_global_log_level

    if args.verbose:
        log_level = logging.DEBUG
    else:
        log_level = logging.INFO

    set_global_log_level(log_level)

    # Suppress print output if --quiet is set
    if args.quiet:
        import builtins

        builtins.print = lambda *args, **kwargs: None

    if not hasattr(args, "func") or args.func is None:
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == "__main__":
    main()
