# Copyright: Ankitects Pty Ltd and contributors
# License: GNU AGPL, version 3 or later; http://www.gnu.org/licenses/agpl.html

"""Media reference extraction from note fields."""

from __future__ import annotations

import re
from typing import Iterable
from urllib.parse import unquote

from .client import Note

IMG_TAG_PATTERN = re.compile(r"""<img[^>]+src=["']([^"']+)["'][^>]*>""", re.IGNORECASE)
SOUND_PATTERN = re.compile(r"\[sound:([^\]]+)\]", re.IGNORECASE)
MARKDOWN_IMAGE_PATTERN = re.compile(r"!\[[^\]]*\]\(([^)]+)\)")

REMOTE_PREFIXES = ("http://", "https://", "data:")

# (pattern, skip remote URLs)
_PATTERNS = (
    (IMG_TAG_PATTERN, True),
    (SOUND_PATTERN, False),
    (MARKDOWN_IMAGE_PATTERN, True),
)


def is_remote(target: str) -> bool:
    return target.strip().lower().startswith(REMOTE_PREFIXES)


def media_filename(target: str) -> str:
    """Reduce a src/link target to a bare, percent-decoded filename."""
    path = target.split("?", 1)[0]
    name = re.split(r"[/\\]", path)[-1]
    return unquote(name)


def extract_field_references(text: str) -> list[str]:
    """Media filenames referenced by one field, in order of appearance."""
    found: dict[str, None] = {}
    for pattern, skip_remote in _PATTERNS:
        for match in pattern.finditer(text):
            target = match.group(1)
            if skip_remote and is_remote(target):
                continue
            name = media_filename(target)
            if name.strip():
                found.setdefault(name)
    return list(found)


def extract_media_references(notes: Iterable[Note]) -> list[str]:
    """
    Collect the distinct media filenames referenced by a set of notes.

    The result keeps first-discovery order so batches built from it are
    reproducible.
    """
    found: dict[str, None] = {}
    for note in notes:
        for value in note.fields.values():
            for name in extract_field_references(value):
                found.setdefault(name)
    return list(found)
