#!/usr/bin/env python3
"""CLI for the Audio Timeline Compositor.

Runs a one-shot build without a host bundler: discovers clips under a source
directory, composes them, publishes the artifacts and prints the timeline.

Usage:
    audio-timeline build <source_dir> [--root DIR] [--base /] [--output-types primary,secondary] [--json]
    audio-timeline probe <file>       [--json]
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

import structlog

from src.assembly.encoder import ConcatError, TranscodeError
from src.config import PluginOptions
from src.plugin import AudioTimelinePlugin
from src.timeline.probe import ProbeError, probe_duration_ms


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------

def _print_err(msg: str) -> None:
    print(msg, file=sys.stderr)


def _format_ms(ms: int) -> str:
    mins, rem = divmod(ms, 60_000)
    return f"{mins}:{rem / 1000:06.3f}"


def _print_timeline_table(records: list[dict]) -> None:
    if not records:
        print("No clips found.")
        return
    print(f"{'#':<4} {'START':<12} {'DURATION':<12} {'FILE'}")
    print("-" * 60)
    for idx, r in enumerate(records):
        print(f"{idx:<4} {_format_ms(r['startTime']):<12} {_format_ms(r['duration']):<12} {r['filename']}")


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
    )


def discover_clips(source_dir: Path, plugin: AudioTimelinePlugin) -> list[str]:
    """Matching files under source_dir, recursively, in sorted order."""
    return [
        str(p.resolve())
        for p in sorted(source_dir.rglob("*"))
        if p.is_file() and plugin.config.matches(str(p.resolve()))
    ]


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------

def cmd_build(args: argparse.Namespace) -> int:
    source_dir = Path(args.source_dir)
    if not source_dir.is_dir():
        _print_err(f"Error: Source directory not found: {source_dir}")
        return 1

    overrides = {}
    if args.output_types:
        overrides["output_types"] = args.output_types
    if args.filename:
        overrides["filename"] = args.filename
    try:
        options = PluginOptions(**overrides)
    except ValueError as exc:
        _print_err(f"Error: {exc}")
        return 1

    plugin = AudioTimelinePlugin(options)
    plugin.config_resolved(root=args.root or source_dir, base=args.base, command="build")

    skipped = []
    for path in discover_clips(source_dir, plugin):
        plugin.transform(None, path)
        if path not in plugin.timeline:
            skipped.append(path)
    records = [m.to_payload() for m in plugin.timeline.metadata(plugin.config)]

    try:
        plugin.build_end()
    except (ConcatError, TranscodeError) as exc:
        _print_err(f"Error: Composition failed: {exc}")
        return 1
    published = plugin.write_bundle()

    if args.json:
        print(json.dumps({
            "clips": records,
            "skipped": skipped,
            "published": {ot.value: str(p) for ot, p in published.items()},
        }, indent=2))
    else:
        _print_timeline_table(records)
        for path in skipped:
            print(f"Skipped (no duration): {path}")
        for ot, p in published.items():
            print(f"{ot.value}: {p}")
    return 0


def cmd_probe(args: argparse.Namespace) -> int:
    options = PluginOptions()
    try:
        duration_ms = probe_duration_ms(
            args.file, ffmpeg_bin=options.ffmpeg_path, timeout=options.ffmpeg_timeout_sec
        )
    except ProbeError as exc:
        _print_err(f"Error: {str(exc).splitlines()[0]}")
        return 1
    if args.json:
        print(json.dumps({"file": args.file, "duration": duration_ms}))
    else:
        print(f"{args.file}: {duration_ms} ms ({_format_ms(duration_ms)})")
    return 0


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="audio-timeline",
        description="Audio Timeline Compositor CLI",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    p_build = sub.add_parser("build", help="Compose and publish all clips under a directory")
    p_build.add_argument("source_dir", help="Directory scanned recursively for clips")
    p_build.add_argument("--root", default=None, help="Project root (default: source_dir)")
    p_build.add_argument("--base", default="/", help="Public base path for metadata URLs")
    p_build.add_argument("--output-types", default=None, help="Comma-separated: primary,secondary")
    p_build.add_argument("--filename", default=None, help="Artifact filename stem")
    p_build.add_argument("--json", action="store_true", help="Output raw JSON")

    p_probe = sub.add_parser("probe", help="Print one clip's duration in milliseconds")
    p_probe.add_argument("file", help="Audio file")
    p_probe.add_argument("--json", action="store_true", help="Output raw JSON")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    dispatch = {
        "build": cmd_build,
        "probe": cmd_probe,
    }
    return dispatch[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
