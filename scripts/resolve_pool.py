#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json

from config.settings import load_settings
from engine.errors import ProviderRateLimitedError
from engine.log_events import setup_logging
from engine.pool_assembler import build_default_assembler
from input.source_router import parse_track_source


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Resolve a music source into a playable track pool.")
    parser.add_argument("source", help="Source string, e.g. 'spotify:popular' or free text.")
    parser.add_argument("--size", type=int, default=10, help="Requested pool size (1-100).")
    parser.add_argument("--parse-only", action="store_true", help="Print the parsed source and exit.")
    parser.add_argument("--json", action="store_true", help="Print the pool as JSON.")
    args = parser.parse_args(argv)

    settings = load_settings()
    setup_logging(level=settings.log_level)

    descriptor = parse_track_source(args.source)
    if args.parse_only:
        print(json.dumps(descriptor.to_dict(), ensure_ascii=False, indent=2))
        return 0

    assembler = build_default_assembler(settings)
    try:
        tracks = assembler.resolve_track_pool_from_source(args.source, args.size)
    except ProviderRateLimitedError as exc:
        print(f"rate limited by {exc.provider}; retry after {exc.retry_after_sec or 'unknown'}s")
        return 2

    if args.json:
        print(json.dumps([track.to_dict() for track in tracks], ensure_ascii=False, indent=2))
        return 0
    print(f"source={args.source!r} type={descriptor.type.value} tracks={len(tracks)}")
    for idx, track in enumerate(tracks, start=1):
        print(f"{idx}. {track.artist} - {track.title} | {track.provider} | {track.source_url}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
