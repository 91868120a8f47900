# Copyright: Ankitects Pty Ltd and contributors
# License: GNU AGPL, version 3 or later; http://www.gnu.org/licenses/agpl.html

"""
Media reconciliation between Anki notes and an Obsidian vault.

Three operations share the same steps:
    sync_all      notes -> references -> resolve + upload every reference
    sync_missing  notes -> references -> diff remote -> resolve + upload missing
    list_missing  notes -> references -> diff remote

A MediaFixer runs one operation at a time; concurrent runs on the same
instance are not supported.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from .client import AnkiConnectClient, AnkiConnectError, Note
from .config import MediaFixSettings
from .references import extract_media_references
from .vault import VaultInterface, VaultResolver

logger = logging.getLogger(__name__)


# --- Results ---


class SyncStage(Enum):
    IDLE = "idle"
    FETCHING_NOTES = "fetching_notes"
    EXTRACTING_REFERENCES = "extracting_references"
    DIFFING_REMOTE = "diffing_remote"
    RESOLVING_AND_SENDING = "resolving_and_sending"
    DONE = "done"
    FAILED = "failed"


@dataclass
class SyncProgress:
    """Snapshot handed to the progress callback."""

    stage: SyncStage
    message: str = ""
    sent: int = 0
    not_found: int = 0
    total: int = 0
    filename: Optional[str] = None


ProgressCallback = Callable[[SyncProgress], None]


@dataclass
class MediaSyncResult:
    """Result of sync_all / sync_missing.

    not_found_filenames holds every attempted file that was not sent:
    vault misses and failed uploads alike. failed_uploads is the subset
    that was found in the vault but rejected by Anki.
    """

    sent_count: int = 0
    not_found_count: int = 0
    not_found_filenames: list[str] = field(default_factory=list)
    failed_uploads: list[str] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return self.sent_count + self.not_found_count


@dataclass
class MissingMediaReport:
    """Result of list_missing."""

    missing: list[str] = field(default_factory=list)
    reference_count: int = 0
    remote_count: int = 0


def missing_media(references: list[str], remote: set[str]) -> list[str]:
    """References absent from the remote store, in reference order."""
    return [name for name in references if name not in remote]


# --- Engine ---


class MediaFixer:
    """Reconcile media referenced by Anki notes with files in a vault."""

    def __init__(self, anki: AnkiConnectClient, vault: VaultInterface):
        self.anki = anki
        self.vault = vault
        self.stage = SyncStage.IDLE
        self._progress: Optional[ProgressCallback] = None

    def sync_all(
        self, settings: MediaFixSettings, progress: Optional[ProgressCallback] = None
    ) -> MediaSyncResult:
        """Resend every referenced file, overwriting what Anki has."""
        return self._run(self._sync_all, settings, progress)

    def sync_missing(
        self, settings: MediaFixSettings, progress: Optional[ProgressCallback] = None
    ) -> MediaSyncResult:
        """Send only referenced files Anki does not have yet."""
        return self._run(self._sync_missing, settings, progress)

    def list_missing(
        self, settings: MediaFixSettings, progress: Optional[ProgressCallback] = None
    ) -> MissingMediaReport:
        """Report referenced files Anki does not have, without sending anything."""
        return self._run(self._list_missing, settings, progress)

    def _run(self, operation, settings, progress):
        self._progress = progress
        self.stage = SyncStage.IDLE
        try:
            result = operation(settings)
        except AnkiConnectError as e:
            logger.error("Media sync failed: %s", e)
            self._report(SyncStage.FAILED, str(e))
            raise
        except Exception as e:
            logger.exception("Media sync failed unexpectedly")
            self._report(SyncStage.FAILED, f"{type(e).__name__}: {e}")
            raise
        finally:
            self._progress = None
        return result

    def _report(self, stage: SyncStage, message: str = "", **counts):
        self.stage = stage
        if self._progress:
            self._progress(SyncProgress(stage, message, **counts))

    # Operations
    def _sync_all(self, settings: MediaFixSettings) -> MediaSyncResult:
        references = self._collect_references(settings)
        result = self._send(references, settings, "files")
        self._report(SyncStage.DONE, "Sync complete.", **_counts(result))
        return result

    def _sync_missing(self, settings: MediaFixSettings) -> MediaSyncResult:
        references = self._collect_references(settings)
        missing = self._diff_remote(references)
        result = self._send(missing, settings, "missing files")
        self._report(SyncStage.DONE, "Sync complete.", **_counts(result))
        return result

    def _list_missing(self, settings: MediaFixSettings) -> MissingMediaReport:
        references = self._collect_references(settings)
        remote = self._fetch_remote()
        report = MissingMediaReport(
            missing=missing_media(references, remote),
            reference_count=len(references),
            remote_count=len(remote),
        )
        self._report(
            SyncStage.DONE,
            f"Found {len(report.missing)} missing files",
            total=len(report.missing),
        )
        return report

    # Steps
    def _collect_references(self, settings: MediaFixSettings) -> list[str]:
        self._report(SyncStage.FETCHING_NOTES, "Scanning Anki notes for media...")
        notes: list[Note] = self.anki.get_all_notes(settings.batch_size)

        self._report(
            SyncStage.EXTRACTING_REFERENCES,
            f"Found {len(notes)} notes. Extracting media references...",
        )
        references = extract_media_references(notes)
        logger.info(
            "Found %d media references in %d notes", len(references), len(notes)
        )
        return references

    def _fetch_remote(self) -> set[str]:
        self._report(SyncStage.DIFFING_REMOTE, "Checking existing files...")
        return self.anki.list_remote_media_filenames()

    def _diff_remote(self, references: list[str]) -> list[str]:
        missing = missing_media(references, self._fetch_remote())
        logger.info("%d of %d references missing in Anki", len(missing), len(references))
        return missing

    def _send(
        self, filenames: list[str], settings: MediaFixSettings, label: str
    ) -> MediaSyncResult:
        """Resolve and upload each file in turn, reporting after every file."""
        total = len(filenames)
        result = MediaSyncResult()
        resolver = VaultResolver(self.vault, settings.media_folder)
        self._report(
            SyncStage.RESOLVING_AND_SENDING,
            f"Found {total} {label}. Sending to Anki...",
            total=total,
        )

        for filename in filenames:
            file = resolver.resolve(filename)
            if file is None:
                logger.debug("Not found in vault: %s", filename)
                result.not_found_count += 1
                result.not_found_filenames.append(filename)
            elif self.anki.store_media_file(
                filename, self.vault.get_absolute_path(file)
            ):
                result.sent_count += 1
            else:
                result.not_found_count += 1
                result.not_found_filenames.append(filename)
                result.failed_uploads.append(filename)

            self._report(
                SyncStage.RESOLVING_AND_SENDING,
                f"Sent {result.sent_count}/{total} {label}...",
                filename=filename,
                **_counts(result, total),
            )

        logger.info(
            "Sent %d files, %d not found", result.sent_count, result.not_found_count
        )
        return result


def _counts(result: MediaSyncResult, total: Optional[int] = None) -> dict:
    return {
        "sent": result.sent_count,
        "not_found": result.not_found_count,
        "total": result.attempted if total is None else total,
    }
