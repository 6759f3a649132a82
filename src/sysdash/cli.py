"""Command line entry point for sysdash."""

import argparse
import sys
from pathlib import Path

from sysdash import __version__
from sysdash.config import Config, config_dir, data_dir, dump_default_config, load_config
from sysdash.errors import ConfigError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sysdash",
        description="Live terminal charts of CPU, memory, disk, network and processes.",
    )
    parser.add_argument(
        "-t", "--tick-rate", type=float, default=None,
        help="Tick rate, i.e. number of ticks per second (default: 4.0)",
    )
    parser.add_argument(
        "-f", "--frame-rate", type=float, default=None,
        help="Frame rate, i.e. number of frames per second (default: 60.0)",
    )
    parser.add_argument(
        "-c", "--config", type=Path, default=None,
        help="Path to a TOML config file",
    )
    parser.add_argument(
        "--mouse", action="store_true", default=None,
        help="Forward mouse events",
    )
    parser.add_argument(
        "--paste", action="store_true", default=None,
        help="Forward bracketed paste events",
    )
    parser.add_argument(
        "--print-config", action="store_true",
        help="Print the default configuration as TOML and exit",
    )
    parser.add_argument(
        "-V", "--version", action="store_true",
        help="Print version and directories and exit",
    )
    return parser


def version() -> str:
    """Version banner with the directories sysdash uses."""
    return (
        f"sysdash {__version__}\n"
        f"\n"
        f"Config directory: {config_dir()}\n"
        f"Data directory: {data_dir()}"
    )


def resolve_config(argv: list[str] | None = None) -> tuple[argparse.Namespace, Config]:
    """
    Parse arguments and build the Config they select.

    Raises:
        ConfigError: If the config file or a flag value is invalid.
    """
    args = build_parser().parse_args(argv)
    config = load_config(args.config).override(
        tick_rate=args.tick_rate,
        frame_rate=args.frame_rate,
        mouse=args.mouse,
        paste=args.paste,
    )
    return args, config


def main(argv: list[str] | None = None) -> int:
    """Entry point for the sysdash console script."""
    try:
        args, config = resolve_config(argv)
    except ConfigError as e:
        print(f"sysdash: {e}", file=sys.stderr)
        return 1

    if args.version:
        print(version())
        return 0
    if args.print_config:
        print(dump_default_config(), end="")
        return 0

    from sysdash.app import run

    return run(config)


if __name__ == "__main__":
    raise SystemExit(main())
