# Copyright: Ankitects Pty Ltd and contributors
# License: GNU AGPL, version 3 or later; http://www.gnu.org/licenses/agpl.html

"""AnkiConnect client implementation."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

import requests

logger = logging.getLogger(__name__)

ANKI_CONNECT_VERSION = 6
ANKI_CONNECT_PORT = 8765
DEFAULT_ENDPOINT = f"http://127.0.0.1:{ANKI_CONNECT_PORT}"
DEFAULT_BATCH_SIZE = 50


# --- Data Classes ---


@dataclass
class Note:
    """A note as returned by notesInfo."""

    note_id: int = 0
    model_name: str = ""
    fields: dict[str, str] = field(default_factory=dict)
    tags: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d: dict) -> Note:
        """Parse a notesInfo entry; raises ValueError if it has the wrong shape."""
        if not isinstance(d, dict):
            raise ValueError(f"note entry is {type(d).__name__}, not an object")
        # notesInfo answers {} for ids removed since findNotes
        raw_fields = d.get("fields") or {}
        if not isinstance(raw_fields, dict) or not all(
            isinstance(f, dict) for f in raw_fields.values()
        ):
            raise ValueError(f"bad fields in note {d.get('noteId')}")
        ordered = sorted(
            raw_fields.items(), key=lambda item: item[1].get("order", 0)
        )
        return cls(
            note_id=d.get("noteId", 0),
            model_name=d.get("modelName", ""),
            fields={name: f.get("value", "") for name, f in ordered},
            tags=list(d.get("tags") or []),
        )

    def to_dict(self) -> dict:
        return {
            "noteId": self.note_id,
            "modelName": self.model_name,
            "fields": {
                name: {"value": value, "order": i}
                for i, (name, value) in enumerate(self.fields.items())
            },
            "tags": self.tags,
        }


# --- Exceptions ---


class AnkiConnectError(Exception):
    pass


class AnkiConnectUnavailableError(AnkiConnectError):
    def __init__(self, endpoint: str, reason: Any = None):
        self.endpoint, self.reason = endpoint, reason
        super().__init__(
            "Failed to connect to Anki. Is Anki running with AnkiConnect?"
        )


class MalformedResponseError(AnkiConnectError):
    def __init__(self, action: str, detail: str):
        self.action = action
        super().__init__(f"Malformed response to {action}: {detail}")


# --- HTTP Client ---


def _batches(items: list, size: int) -> Iterable[list]:
    for i in range(0, len(items), size):
        yield items[i : i + size]


class AnkiConnectClient:
    """JSON-RPC client for the AnkiConnect add-on.

    Every call is a blocking POST; batches are issued one after another so
    the add-on never sees more than one request from us at a time.
    """

    def __init__(
        self,
        endpoint: Optional[str] = None,
        session: Optional[requests.Session] = None,
        io_timeout_secs: int = 30,
    ):
        self.endpoint = endpoint or DEFAULT_ENDPOINT
        self.io_timeout = io_timeout_secs
        self._session = session
        self._owns_session = session is None

    def close(self):
        if self._owns_session and self._session:
            self._session.close()
            self._session = None

    def invoke(self, action: str, **params: Any) -> Any:
        """Run one AnkiConnect action and return its result.

        Raises:
            AnkiConnectUnavailableError: the add-on could not be reached
            MalformedResponseError: the body is not an AnkiConnect envelope
            AnkiConnectError: the add-on reported an error
        """
        if self._session is None:
            self._session = requests.Session()

        body = json.dumps(
            {"action": action, "version": ANKI_CONNECT_VERSION, "params": params}
        )
        logger.debug("AnkiConnect %s", action)

        try:
            resp = self._session.post(
                self.endpoint,
                data=body.encode(),
                headers={"Content-Type": "application/json"},
                timeout=self.io_timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as e:
            raise AnkiConnectUnavailableError(self.endpoint, e) from e

        try:
            data = json.loads(resp.content)
        except ValueError as e:
            raise MalformedResponseError(action, str(e)) from e

        if not isinstance(data, dict) or "error" not in data or "result" not in data:
            raise MalformedResponseError(action, "missing result/error fields")
        if err := data["error"]:
            raise AnkiConnectError(str(err))
        return data["result"]

    def _invoke_list(self, action: str, **params: Any) -> list:
        result = self.invoke(action, **params)
        if not isinstance(result, list):
            raise MalformedResponseError(
                action, f"expected a list, got {type(result).__name__}"
            )
        return result

    # Notes
    def list_all_note_ids(self) -> list[int]:
        return self._invoke_list("findNotes", query="*")

    def notes_info(self, note_ids: list[int]) -> list[Note]:
        try:
            return [
                Note.from_dict(d)
                for d in self._invoke_list("notesInfo", notes=note_ids)
            ]
        except ValueError as e:
            raise MalformedResponseError("notesInfo", str(e)) from e

    def fetch_notes(
        self, note_ids: list[int], batch_size: int = DEFAULT_BATCH_SIZE
    ) -> list[Note]:
        """
        Fetch notes in sequential batches of at most batch_size ids.

        Results are concatenated in request order.
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")

        notes: list[Note] = []
        for batch in _batches(list(note_ids), batch_size):
            notes.extend(self.notes_info(batch))
        return notes

    def get_all_notes(self, batch_size: int = DEFAULT_BATCH_SIZE) -> list[Note]:
        note_ids = self.list_all_note_ids()
        if not note_ids:
            return []
        return self.fetch_notes(note_ids, batch_size)

    # Media
    def list_remote_media_filenames(self) -> set[str]:
        return set(self._invoke_list("getMediaFilesNames", pattern="*"))

    def store_media_file(self, filename: str, path: str) -> bool:
        """
        Upload a file by absolute path, replacing any remote file of that name.

        Returns False instead of raising so one bad file never stops a batch.
        """
        try:
            self.invoke(
                "storeMediaFile", filename=filename, path=path, deleteExisting=True
            )
            return True
        except AnkiConnectError as e:
            logger.error("Failed to send %s: %s", filename, e)
            return False
