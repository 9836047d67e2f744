#!/usr/bin/env python3
"""
validate_playlist.py — Validate and normalize PLS playlist files

Checks .pls files for problems that make players drop or misnumber tracks,
and optionally rewrites them in canonical form.

Usage:
    python scripts/validate_playlist.py <playlist_file_or_directory>
    python scripts/validate_playlist.py playlists/
    python scripts/validate_playlist.py --fix playlists/rock.pls

Flags:
    --fix       Rewrite each file in canonical form (renumbered from 1)
    --verbose   Show info-level messages too
    --json      Output results as JSON
"""

import argparse
import json
import re
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from mediashelf.services.pls_codec import PLS_HEADER, parse, serialize

_ENTRY_RE = re.compile(r"^(File|Title|Length)([0-9]+)=(.*)$", re.IGNORECASE)
_COUNT_RE = re.compile(r"^NumberOfEntries=(.*)$", re.IGNORECASE)
_VERSION_RE = re.compile(r"^Version=(.*)$", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


class Issue:
    """
    One finding about a playlist file.

    ``line`` is the 1-based line the finding points at, ``entry`` the PLS
    entry number (the N in ``FileN=``) when the finding concerns one track.
    """

    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"

    ICONS = {CRITICAL: "❌", WARNING: "⚠️", INFO: "ℹ️"}

    def __init__(
        self,
        severity: str,
        code: str,
        message: str,
        line: Optional[int] = None,
        entry: Optional[int] = None,
    ):
        self.severity = severity
        self.code = code
        self.message = message
        self.line = line
        self.entry = entry

    def __str__(self) -> str:
        where = []
        if self.line:
            where.append(f"line {self.line}")
        if self.entry is not None:
            where.append(f"entry {self.entry}")
        loc = f" ({', '.join(where)})" if where else ""
        return f"{self.ICONS.get(self.severity, '?')} [{self.code}]{loc} {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "severity": self.severity,
            "code": self.code,
            "message": self.message,
            "line": self.line,
            "entry": self.entry,
        }


class ValidationResult:
    """Aggregated validation results for one playlist file."""

    def __init__(self, playlist_path: str):
        self.playlist_path = playlist_path
        self.issues: List[Issue] = []
        self.track_count = 0
        self.fixed = False

    @property
    def has_critical(self) -> bool:
        return any(i.severity == Issue.CRITICAL for i in self.issues)

    @property
    def is_valid(self) -> bool:
        return not self.has_critical

    def add(
        self,
        severity: str,
        code: str,
        message: str,
        line: Optional[int] = None,
        entry: Optional[int] = None,
    ) -> None:
        self.issues.append(Issue(severity, code, message, line, entry))

    def summary(self) -> str:
        status = "✅ VALID" if self.is_valid else "❌ INVALID"
        parts = [f"{status}: {self.playlist_path} ({self.track_count} track(s))"]
        if self.fixed:
            parts.append("  rewritten in canonical form")
        return "\n".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.playlist_path,
            "valid": self.is_valid,
            "track_count": self.track_count,
            "fixed": self.fixed,
            "issues": [i.to_dict() for i in self.issues],
        }


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_text(text: str, result: ValidationResult) -> None:
    """Run all line-level checks on PLS *text*, recording issues in *result*."""
    lines = re.split(r"\r?\n", text)
    header_seen = False
    declared_count: Optional[int] = None
    indices: Dict[int, Dict[str, int]] = {}

    for lineno, raw in enumerate(lines, start=1):
        line = raw.strip()
        if not line:
            continue
        if line.startswith("["):
            if line.lower() == PLS_HEADER:
                header_seen = True
            else:
                result.add(Issue.WARNING, "UNKNOWN_SECTION", f"Unexpected section {line}", lineno)
            continue

        match = _ENTRY_RE.match(raw.lstrip())
        if match:
            key, index_str, _ = match.groups()
            fields = indices.setdefault(int(index_str), {})
            if key.lower() in fields:
                result.add(
                    Issue.WARNING,
                    "DUPLICATE_KEY",
                    f"{key}{index_str} repeats line {fields[key.lower()]}; last value wins",
                    lineno,
                    entry=int(index_str),
                )
            fields[key.lower()] = lineno
            continue

        count = _COUNT_RE.match(line)
        if count:
            try:
                declared_count = int(count.group(1).strip())
            except ValueError:
                result.add(Issue.WARNING, "BAD_COUNT", "NumberOfEntries is not a number", lineno)
            continue

        if _VERSION_RE.match(line):
            continue

        result.add(Issue.WARNING, "UNRECOGNIZED", f"Ignored line: {line[:60]}", lineno)

    if not header_seen:
        result.add(Issue.WARNING, "NO_HEADER", f"Missing {PLS_HEADER} header")

    for index in sorted(indices):
        if "file" not in indices[index]:
            result.add(
                Issue.CRITICAL,
                "MISSING_FILE",
                f"Entry {index} has no File{index}= line and will be dropped",
                entry=index,
            )

    tracks = parse(text)
    result.track_count = len(tracks)

    if declared_count is None:
        result.add(Issue.INFO, "NO_COUNT", "NumberOfEntries is missing")
    elif declared_count != len(tracks):
        result.add(
            Issue.WARNING,
            "COUNT_MISMATCH",
            f"NumberOfEntries={declared_count} but {len(tracks)} track(s) parsed",
        )

    with_file = sorted(i for i, f in indices.items() if "file" in f)
    if with_file and with_file != list(range(1, len(with_file) + 1)):
        result.add(
            Issue.INFO,
            "RENUMBER",
            "Entries are not numbered 1..N; they will be renumbered on save",
        )


def validate_playlist(path: Path, fix: bool = False) -> ValidationResult:
    result = ValidationResult(str(path))
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        result.add(Issue.CRITICAL, "ENCODING", "File is not valid UTF-8")
        return result
    except OSError as e:
        result.add(Issue.CRITICAL, "READ_ERROR", f"Cannot read file: {e}")
        return result

    validate_text(text, result)

    if fix:
        canonical = serialize(parse(text))
        if canonical != text:
            path.write_text(canonical, encoding="utf-8")
            result.fixed = True

    return result


def collect_targets(paths: List[str]) -> List[Path]:
    targets: List[Path] = []
    for target in paths:
        target_path = Path(target)
        if target_path.is_dir():
            targets.extend(
                sorted(p for p in target_path.iterdir() if p.suffix.lower() == ".pls")
            )
        elif target_path.is_file():
            targets.append(target_path)
        else:
            print(f"❌ Not a valid target: {target}")
    return targets


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Validate and normalize PLS playlist files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("path", nargs="+", help="Playlist file(s) or directories")
    parser.add_argument("--fix", action="store_true", help="Rewrite files in canonical form")
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show all diagnostic messages including info-level",
    )
    parser.add_argument("--json", action="store_true", help="Output results as JSON")

    args = parser.parse_args(argv)
    all_results = [validate_playlist(p, fix=args.fix) for p in collect_targets(args.path)]

    if args.json:
        print(json.dumps([r.to_dict() for r in all_results], indent=2))
    else:
        for result in all_results:
            print()
            print(result.summary())
            for issue in result.issues:
                if issue.severity == Issue.INFO and not args.verbose:
                    continue
                print(f"  {issue}")

    if any(r.has_critical for r in all_results):
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
