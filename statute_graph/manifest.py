#!/usr/bin/env python3
"""
Build titles-manifest.json from the dataset files in a directory.

Titles stored as one file are named title-<N>.json; split titles have a
title-<N>.meta.json listing their parts. When both exist for the same N the
split entry wins.
"""

import argparse
import json
import logging
import re
from pathlib import Path

from .core.constants import MANIFEST_FILE, MANIFEST_VERSION
from .core.schema import Manifest, ManifestEntry

logger = logging.getLogger(__name__)

SINGLE_RE = re.compile(r"^title-(\d+)\.json$", re.IGNORECASE)
SPLIT_RE = re.compile(r"^title-(\d+)\.meta\.json$", re.IGNORECASE)


def scan_titles(directory: Path) -> Manifest:
    """Scan a directory for title files and build the manifest."""
    singles: dict[str, ManifestEntry] = {}
    splits: dict[str, ManifestEntry] = {}

    for path in sorted(Path(directory).iterdir()):
        if not path.is_file():
            continue

        m = SPLIT_RE.match(path.name)
        if m:
            splits[m.group(1)] = ManifestEntry(id=m.group(1), kind="split", meta=path.name)
            continue

        m = SINGLE_RE.match(path.name)
        if m:
            singles[m.group(1)] = ManifestEntry(id=m.group(1), kind="single", file=path.name)

    ids = sorted(set(singles) | set(splits), key=int)
    titles = [splits.get(i) or singles[i] for i in ids]
    return Manifest(version=MANIFEST_VERSION, titles=titles)


def write_manifest(directory: Path, output: Path | None = None) -> Manifest:
    """Scan `directory` and write the manifest to `output`."""
    manifest = scan_titles(directory)
    output = output or Path(directory) / MANIFEST_FILE

    with open(output, "w") as f:
        json.dump(manifest.model_dump(exclude_none=True), f, indent=2)

    logger.info(f"Wrote {output} with {len(manifest.titles)} titles")
    return manifest


def main(argv: list[str] | None = None):
    """Generate the manifest for a dataset directory."""
    parser = argparse.ArgumentParser(description="Generate titles-manifest.json")
    parser.add_argument("directory", nargs="?", default="public", help="Dataset directory (default: public)")
    parser.add_argument("--output", default=None, help="Output path (default: <directory>/titles-manifest.json)")
    args = parser.parse_args(argv)

    output = Path(args.output) if args.output else Path(args.directory) / MANIFEST_FILE
    manifest = write_manifest(Path(args.directory), output)
    print(f"Wrote {output} with {len(manifest.titles)} titles")


if __name__ == "__main__":
    main()
