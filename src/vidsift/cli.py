#!/usr/bin/env python3
"""CLI interface for vidsift."""

import argparse
import json
import logging
import sys
from pathlib import Path

from .config import DetectorConfig
from .detector import VideoDuplicateDetector


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the ``vidsift`` command."""
    defaults = DetectorConfig()
    parser = argparse.ArgumentParser(
        description="Find groups of near-duplicate videos in a directory",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument("directory", type=str, help="Directory to scan recursively")

    parser.add_argument("--cache", type=str, default=str(defaults.cache_path),
                       help="Path to the JSON feature cache")
    parser.add_argument("--threshold", type=float, default=defaults.similarity_threshold,
                       help="Similarity threshold, clamped to [0.5, 1.0]")
    parser.add_argument("--frames", type=int, default=defaults.frame_count,
                       help="Number of frames sampled per video")
    parser.add_argument("--workers", type=int, default=defaults.max_workers,
                       help="Maximum number of videos processed in parallel")
    parser.add_argument("--strategy", type=str, default=defaults.cluster_strategy,
                       choices=["star", "components"],
                       help="Grouping strategy. "
                            "star=members similar to one representative, "
                            "components=chains of similar pairs")
    parser.add_argument("--ffmpeg", type=str, default=defaults.ffmpeg_path,
                       help="ffmpeg executable")
    parser.add_argument("--ffprobe", type=str, default=defaults.ffprobe_path,
                       help="ffprobe executable")
    parser.add_argument("--json", action="store_true",
                       help="Print groups as JSON instead of plain text")
    parser.add_argument("-v", "--verbose", action="store_true",
                       help="Enable debug logging")
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for vidsift.

    Parses command-line arguments, scans the directory and prints the
    duplicate groups.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    # Configure logging
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S"
    )

    # Validate inputs
    if not Path(args.directory).is_dir():
        print(f"Error: Directory not found: {args.directory}")
        sys.exit(1)

    cfg = DetectorConfig(
        ffmpeg_path=args.ffmpeg,
        ffprobe_path=args.ffprobe,
        cache_path=Path(args.cache),
        frame_count=args.frames,
        max_workers=args.workers,
        cluster_strategy=args.strategy,
        show_progress=not args.json,
    ).with_threshold(args.threshold)

    try:
        detector = VideoDuplicateDetector(cfg)
        groups = detector.scan(args.directory)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)

    if args.json:
        print(json.dumps([group.paths for group in groups], indent=2))
        return

    if not groups:
        print("\nNo duplicates found.")
        return

    print(f"\nFound {len(groups)} duplicate group(s):")
    for i, group in enumerate(groups, 1):
        print(f"\nGroup {i}:")
        for path in group.paths:
            print(f"  {path}")


if __name__ == "__main__":
    main()
