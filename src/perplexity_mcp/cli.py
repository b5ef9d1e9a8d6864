"""CLI entry point for the Perplexity MCP stdio server."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from perplexity_mcp import __version__


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="perplexity-mcp",
        description="Perplexity MCP server — Perplexity search and research tools over stdio",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Path to YAML configuration file",
    )
    parser.add_argument(
        "--timeout-ms",
        type=int,
        default=None,
        help="Request timeout in milliseconds (overrides PERPLEXITY_TIMEOUT_MS)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["debug", "info", "warning", "error"],
        default=None,
        help="Log level (overrides config)",
    )
    parser.add_argument(
        "--log-format",
        type=str,
        choices=["json", "console"],
        default=None,
        help="Log format (overrides config)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"perplexity-mcp {__version__}",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point for the Perplexity MCP server."""
    args = build_parser().parse_args(argv)

    from pydantic import ValidationError

    from perplexity_mcp.config.settings import ConfigurationError, Settings

    try:
        if args.config:
            config_path = Path(args.config)
            if not config_path.exists():
                print(f"Error: Config file not found: {config_path}", file=sys.stderr)
                sys.exit(1)
            settings = Settings.from_yaml(config_path)
        else:
            settings = Settings()
    except ValidationError as e:
        print(f"Error: Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)

    # Apply CLI overrides
    if args.timeout_ms is not None:
        if args.timeout_ms <= 0:
            print("Error: --timeout-ms must be a positive number", file=sys.stderr)
            sys.exit(1)
        settings.timeout_ms = args.timeout_ms
    if args.log_level:
        settings.observability.log_level = args.log_level
    if args.log_format:
        settings.observability.log_format = args.log_format

    try:
        settings.require_api_key()
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    from perplexity_mcp.observability.logging import setup_logging
    from perplexity_mcp.server import run_stdio

    setup_logging(settings.observability)

    try:
        asyncio.run(run_stdio(settings))
    except KeyboardInterrupt:
        print("Perplexity MCP server stopped.", file=sys.stderr)


if __name__ == "__main__":
    main()
