#!/usr/bin/env python3
"""
Generate listing copy from a JSON brief, optionally rewriting one section.

Usage examples:
  python scripts/generate_listing.py --brief brief.json
  python scripts/generate_listing.py --brief brief.json --heuristic --json
  python scripts/generate_listing.py --brief brief.json --rewrite intro --instruction "gör texten kortare"
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict

from copywriter.config import load_config
from copywriter.errors import CopywriterError
from copywriter.generator import HeuristicGenerator, build_generator
from copywriter.pipeline import ListingPipeline
from copywriter.places import StaticGeodataProvider, build_provider


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Generate Swedish listing copy from a JSON brief.",
    )
    parser.add_argument(
        "--brief",
        required=True,
        help="Path to a JSON file describing the listing (use '-' for stdin).",
    )
    parser.add_argument(
        "--heuristic",
        action="store_true",
        help="Skip the language model and use template copy with static geodata.",
    )
    parser.add_argument(
        "--rewrite",
        metavar="SLUG",
        help="Rewrite this section after generation.",
    )
    parser.add_argument(
        "--instruction",
        default="",
        help="Editing instruction used with --rewrite.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the sections as JSON instead of plain text.",
    )
    return parser.parse_args()


def load_brief(path: str) -> Dict[str, Any]:
    raw = sys.stdin.read() if path == "-" else Path(path).read_text(encoding="utf-8")
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise SystemExit("The brief must be a JSON object.")
    return data


def main() -> None:
    args = parse_args()
    cfg = load_config()
    logging.basicConfig(level=cfg.log_level, format="%(levelname)s: %(message)s")

    if args.heuristic:
        pipeline = ListingPipeline(HeuristicGenerator(), geodata_provider=StaticGeodataProvider())
    else:
        pipeline = ListingPipeline(build_generator(cfg), geodata_provider=build_provider(cfg))

    try:
        listing, result = pipeline.generate(load_brief(args.brief))
        sections, full_copy = result.sections, result.full_copy
        if args.rewrite:
            sections, full_copy = pipeline.rewrite(listing, sections, args.rewrite, args.instruction)
    except CopywriterError as exc:
        raise SystemExit(f"Copy generation failed: {exc}") from exc

    if args.json:
        payload = {
            "sections": [section.to_payload() for section in sections],
            "full_copy": full_copy,
            "fallback_used": result.fallback_used,
        }
        print(json.dumps(payload, ensure_ascii=False, indent=2))
        return
    if result.fallback_used:
        logging.warning("Model generation failed; printing template copy.")
    print(full_copy)


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    main()
