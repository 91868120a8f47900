# Copyright: Ankitects Pty Ltd and contributors
# License: GNU AGPL, version 3 or later; http://www.gnu.org/licenses/agpl.html

"""
Anki Media Fix - send media referenced by Anki notes from an Obsidian vault.

Talks to Anki through the AnkiConnect add-on.

Usage:
    from ankimediafix import AnkiConnectClient, FileSystemVault, MediaFixer, MediaFixSettings

    anki = AnkiConnectClient()
    fixer = MediaFixer(anki, FileSystemVault("~/Notes"))
    settings = MediaFixSettings(media_folder="attachments")

    report = fixer.list_missing(settings)   # what Anki lacks
    result = fixer.sync_missing(settings)   # send only those
    result = fixer.sync_all(settings)       # resend everything
    anki.close()
"""

from .client import (
    # Client & Config
    AnkiConnectClient,
    DEFAULT_ENDPOINT,
    DEFAULT_BATCH_SIZE,
    # Data structures
    Note,
    # Exceptions
    AnkiConnectError,
    AnkiConnectUnavailableError,
    MalformedResponseError,
)
from .config import MediaFixSettings, SettingsError, load_settings, save_settings
from .references import extract_field_references, extract_media_references
from .sync import (
    MediaFixer,
    MediaSyncResult,
    MissingMediaReport,
    SyncProgress,
    SyncStage,
)
from .vault import (
    MEDIA_FOLDERS,
    FileSystemVault,
    VaultFile,
    VaultInterface,
    VaultResolver,
)

__all__ = [
    "AnkiConnectClient",
    "DEFAULT_ENDPOINT",
    "DEFAULT_BATCH_SIZE",
    "Note",
    "AnkiConnectError",
    "AnkiConnectUnavailableError",
    "MalformedResponseError",
    "MediaFixSettings",
    "SettingsError",
    "load_settings",
    "save_settings",
    "extract_field_references",
    "extract_media_references",
    "MediaFixer",
    "MediaSyncResult",
    "MissingMediaReport",
    "SyncProgress",
    "SyncStage",
    "MEDIA_FOLDERS",
    "FileSystemVault",
    "VaultFile",
    "VaultInterface",
    "VaultResolver",
]

__version__ = "1.0.0"
