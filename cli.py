# Copyright: Ankitects Pty Ltd and contributors
# License: GNU AGPL, version 3 or later; http://www.gnu.org/licenses/agpl.html

"""
Command-line front end.

Usage:
    python -m ankimediafix --vault ~/Notes sync-all
    python -m ankimediafix --vault ~/Notes sync-missing
    python -m ankimediafix --vault ~/Notes list-missing [--sync]
    python -m ankimediafix --vault ~/Notes config --set-media-folder attachments

Anki must be running with the AnkiConnect add-on. ANKI_CONNECT_URL
overrides the default endpoint.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Optional, TextIO

from .client import DEFAULT_ENDPOINT, AnkiConnectClient, AnkiConnectError
from .config import (
    MediaFixSettings,
    SettingsError,
    default_settings_path,
    load_settings,
    save_settings,
)
from .logging_config import setup_logging
from .sync import MediaFixer, MediaSyncResult, MissingMediaReport, SyncProgress
from .vault import FileSystemVault

logger = logging.getLogger(__name__)

RESULT_LIST_LIMIT = 100
MISSING_LIST_LIMIT = 200


# --- Rendering ---


def _render_list(names: list[str], limit: int) -> list[str]:
    lines = [f"  {name}" for name in names[:limit]]
    if len(names) > limit:
        lines.append(f"  ... and {len(names) - limit} more")
    return lines


def render_sync_result(result: MediaSyncResult, label: str = "files") -> str:
    if not result.not_found_filenames:
        return f"Sync complete! Sent {result.sent_count} {label} to Anki."

    failed = len(result.failed_uploads)
    lines = [
        "Sync results",
        f"  Sent: {result.sent_count} files",
        f"  Not found in vault: {result.not_found_count - failed} files",
    ]
    if failed:
        lines.append(f"  Upload failed: {failed} files")
    lines.append("Files not sent")
    lines.extend(_render_list(result.not_found_filenames, RESULT_LIST_LIMIT))
    return "\n".join(lines)


def render_missing_report(report: MissingMediaReport) -> str:
    lines = ["Missing media in Anki", f"Found {len(report.missing)} missing files"]
    lines.extend(_render_list(report.missing, MISSING_LIST_LIMIT))
    return "\n".join(lines)


def render_settings(settings: MediaFixSettings, path: Path) -> str:
    folder = settings.media_folder or "(whole vault)"
    return "\n".join(
        [
            f"Settings file: {path}",
            f"  Media folder: {folder}",
            f"  Batch size: {settings.batch_size}",
        ]
    )


class ProgressPrinter:
    """Progress callback that rewrites a single status line."""

    def __init__(self, stream: TextIO):
        self.stream = stream
        self.interactive = stream.isatty()

    def __call__(self, progress: SyncProgress):
        if self.interactive:
            self.stream.write(f"\r\033[K{progress.message}")
        else:
            self.stream.write(f"{progress.message}\n")
        self.stream.flush()

    def finish(self):
        if self.interactive:
            self.stream.write("\r\033[K")
            self.stream.flush()


# --- Commands ---


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ankimediafix",
        description="Send media referenced by Anki notes from an Obsidian vault to Anki.",
    )
    parser.add_argument("--vault", required=True, type=Path, help="Vault root folder")
    parser.add_argument(
        "--settings", type=Path, help="Settings file (default: <vault>/.ankimediafix.json)"
    )
    parser.add_argument(
        "--endpoint",
        default=os.getenv("ANKI_CONNECT_URL", DEFAULT_ENDPOINT),
        help="AnkiConnect URL (default: %(default)s)",
    )
    parser.add_argument(
        "--media-folder", help="Override the preferred media folder for this run"
    )
    parser.add_argument(
        "--batch-size", help="Override the notesInfo batch size for this run"
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="Hide progress")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("sync-all", help="Resend all media referenced in Anki notes")
    sub.add_parser("sync-missing", help="Send only media missing in Anki")
    listing = sub.add_parser("list-missing", help="List media missing in Anki")
    listing.add_argument(
        "--sync", action="store_true", help="Send the missing files afterwards"
    )
    config = sub.add_parser("config", help="Show or change saved settings")
    config.add_argument("--set-media-folder", metavar="FOLDER")
    config.add_argument("--set-batch-size", metavar="N")
    return parser


def _run_config(args, settings: MediaFixSettings, path: Path, out: TextIO) -> int:
    changed = settings
    if args.set_media_folder is not None:
        changed = changed.with_media_folder(args.set_media_folder)
    if args.set_batch_size is not None:
        changed = changed.with_batch_size(args.set_batch_size)
    if changed != settings:
        save_settings(changed, path)
    print(render_settings(changed, path), file=out)
    return 0


def main(argv: Optional[list[str]] = None, out: TextIO = sys.stdout) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    settings_path = args.settings or default_settings_path(args.vault)
    try:
        settings = load_settings(settings_path)
        if args.command == "config":
            return _run_config(args, settings, settings_path, out)
        if args.media_folder is not None:
            settings = settings.with_media_folder(args.media_folder)
        if args.batch_size is not None:
            settings = settings.with_batch_size(args.batch_size)
        vault = FileSystemVault(args.vault)
    except (SettingsError, FileNotFoundError) as e:
        parser.error(str(e))
    logger.debug("Using %s with %s", settings, args.endpoint)

    printer = None if args.quiet else ProgressPrinter(sys.stderr)
    anki = AnkiConnectClient(args.endpoint)
    fixer = MediaFixer(anki, vault)
    try:
        if args.command == "sync-all":
            result = fixer.sync_all(settings, printer)
            _finish(printer)
            print(render_sync_result(result), file=out)
        elif args.command == "sync-missing":
            _sync_missing(fixer, settings, printer, out)
        elif args.command == "list-missing":
            report = fixer.list_missing(settings, printer)
            _finish(printer)
            print(render_missing_report(report), file=out)
            if args.sync and report.missing:
                _sync_missing(fixer, settings, printer, out)
    except AnkiConnectError as e:
        _finish(printer)
        print(f"Error: {e}", file=out)
        return 1
    finally:
        anki.close()
    return 0


def _sync_missing(fixer, settings, printer, out: TextIO):
    result = fixer.sync_missing(settings, printer)
    _finish(printer)
    if not result.attempted:
        print("No missing media found.", file=out)
    else:
        print(render_sync_result(result, "missing files"), file=out)


def _finish(printer: Optional[ProgressPrinter]):
    if printer:
        printer.finish()
