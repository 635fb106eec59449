"""CLI entrypoint for the scopelink tile board demo."""

from __future__ import annotations

import argparse
from importlib import metadata
from pathlib import Path
from typing import Sequence

from .config import ensure_config_dir, load_config
from .demo import run


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scopelink", description="Scoped event registries tile board demo"
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a config.toml (defaults to the user config directory)",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """Handle CLI flags, load configuration, and run the demo app."""

    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.version:
        try:
            version = metadata.version("scopelink")
        except metadata.PackageNotFoundError:
            version = "0.0.0"
        print(f"scopelink {version}")
        return

    if args.config is None:
        ensure_config_dir()
    run(load_config(config_path=args.config))


if __name__ == "__main__":
    main()
