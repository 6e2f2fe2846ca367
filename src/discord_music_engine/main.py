#!/usr/bin/env python3
"""Diagnostic entry point: search the catalogs and try alternative matching."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import logging.config
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from discord_music_engine.domain.shared.exceptions import DomainError

if TYPE_CHECKING:
    from discord_music_engine.config.container import Container

_LOGGING_CONFIG_PATH = Path(__file__).resolve().parents[2] / "logging_config.json"
_PACKAGE_LOGGER = "discord_music_engine"


def setup_logging(log_level: str = "INFO") -> None:
    resolved_level = getattr(logging, log_level.upper(), logging.INFO)

    try:
        with open(_LOGGING_CONFIG_PATH) as f:
            config = json.load(f)
        logging.config.dictConfig(config)
    except (FileNotFoundError, json.JSONDecodeError, ValueError):
        logging.basicConfig(
            level=resolved_level,
            format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.warning("Could not load %s, falling back to basic config", _LOGGING_CONFIG_PATH)

    logging.getLogger().setLevel(resolved_level)
    logging.getLogger(_PACKAGE_LOGGER).setLevel(resolved_level)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="discord-music-engine",
        description="Query the music catalogs the playback engine uses.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s search "daft punk one more time"
  %(prog)s search "around the world" --platform spotify --limit 3
  %(prog)s match https://youtu.be/FGBhQbmPwH8
        """,
    )
    parser.add_argument("--log-level", default=None, help="override LOG_LEVEL")

    sub = parser.add_subparsers(dest="command", required=True)

    search = sub.add_parser("search", help="search one catalog or all of them")
    search.add_argument("query")
    search.add_argument(
        "--platform",
        "-p",
        default="auto",
        choices=["auto", "soundcloud", "spotify"],
        help="catalog to search (default: auto)",
    )
    search.add_argument("--limit", "-n", type=int, default=5, help="maximum results (default: 5)")

    match = sub.add_parser("match", help="resolve a link or query to one playable track")
    match.add_argument("query")

    return parser


async def _run_search(container: Container, query: str, platform: str, limit: int) -> int:
    from discord_music_engine.domain.music.value_objects import SourcePlatform

    target = None if platform == "auto" else SourcePlatform(platform)
    tracks = await container.catalog_service.search(query, target, limit)
    if not tracks:
        print(f"No results for {query!r}")
        return 1
    for position, track in enumerate(tracks, start=1):
        print(f"{position:>2}. [{track.source.display_name}] {track.display_title}")
        print(f"    {track.url}")
    return 0


async def _run_match(container: Container, query: str) -> int:
    resolved = await container.catalog_service.resolve_query(query)
    track = resolved.track
    print(f"[{track.source.display_name}] {track.display_title}")
    print(f"    {track.url}")
    if resolved.match is not None:
        print(f"    matched '{resolved.match.query_title}' with score {resolved.match.score:.3f}")
    return 0


async def _run(args: argparse.Namespace, container: Container) -> int:
    try:
        if args.command == "search":
            return await _run_search(container, args.query, args.platform, args.limit)
        return await _run_match(container, args.query)
    except DomainError as exc:
        print(f"{exc.code}: {exc.message}", file=sys.stderr)
        return 1
    finally:
        await container.shutdown()


def main(argv: Sequence[str] | None = None) -> int:
    from discord_music_engine.config.container import create_container
    from discord_music_engine.config.settings import get_settings

    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(args.log_level or settings.log_level)

    container = create_container(settings)
    try:
        return asyncio.run(_run(args, container))
    except KeyboardInterrupt:
        return 130


def cli() -> None:
    """Console script entry point (used by pyproject.toml [project.scripts])."""
    sys.exit(main())


if __name__ == "__main__":
    cli()  # pragma: no cover
