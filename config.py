# Copyright: Ankitects Pty Ltd and contributors
# License: GNU AGPL, version 3 or later; http://www.gnu.org/licenses/agpl.html

"""Settings for media reconciliation and their JSON persistence."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

from .client import DEFAULT_BATCH_SIZE

logger = logging.getLogger(__name__)

SETTINGS_FILENAME = ".ankimediafix.json"


class SettingsError(ValueError):
    pass


def parse_batch_size(value: Union[str, int]) -> int:
    """Validate a batch size typed by the user; it must be a positive integer."""
    try:
        num = int(value)
    except (TypeError, ValueError):
        raise SettingsError(f"Batch size must be an integer, got {value!r}")
    if num <= 0:
        raise SettingsError(f"Batch size must be greater than 0, got {num}")
    return num


@dataclass(frozen=True)
class MediaFixSettings:
    """
    User settings, read-only for the duration of an operation.

    media_folder: folder searched first after the exact-name lookup;
        empty means search the whole vault
    batch_size: note ids per notesInfo request
    """

    media_folder: str = ""
    batch_size: int = DEFAULT_BATCH_SIZE

    def __post_init__(self):
        object.__setattr__(self, "batch_size", parse_batch_size(self.batch_size))

    def to_dict(self) -> dict:
        # Same keys as the Obsidian plugin's data.json
        return {"mediaFolder": self.media_folder, "batchSize": self.batch_size}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> MediaFixSettings:
        """Merge stored values over the defaults, ignoring unknown keys."""
        return cls(
            media_folder=str(d.get("mediaFolder", "") or ""),
            batch_size=parse_batch_size(d.get("batchSize", DEFAULT_BATCH_SIZE)),
        )

    def with_media_folder(self, folder: str) -> MediaFixSettings:
        return MediaFixSettings(media_folder=folder, batch_size=self.batch_size)

    def with_batch_size(self, value: Union[str, int]) -> MediaFixSettings:
        return MediaFixSettings(
            media_folder=self.media_folder, batch_size=parse_batch_size(value)
        )


def default_settings_path(vault_root: Path) -> Path:
    if env := os.getenv("ANKIMEDIAFIX_SETTINGS"):
        return Path(env)
    return Path(vault_root) / SETTINGS_FILENAME


def load_settings(path: Optional[Path]) -> MediaFixSettings:
    """Load settings from path, falling back to defaults if it does not exist."""
    if path is None or not Path(path).exists():
        return MediaFixSettings()

    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except ValueError as e:
        raise SettingsError(f"Invalid settings file {path}: {e}") from e
    if not isinstance(data, dict):
        raise SettingsError(f"Invalid settings file {path}: expected an object")
    return MediaFixSettings.from_dict(data)


def save_settings(settings: MediaFixSettings, path: Path):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(settings.to_dict(), indent=2), encoding="utf-8")
    logger.info("Saved settings to %s", path)
