# Copyright: Ankitects Pty Ltd and contributors
# License: GNU AGPL, version 3 or later; http://www.gnu.org/licenses/agpl.html

"""Tests for settings validation and persistence."""

import json

import pytest

from .. import MediaFixSettings, SettingsError, load_settings, save_settings
from ..config import SETTINGS_FILENAME, default_settings_path, parse_batch_size


class TestSettings:
    def test_defaults(self):
        settings = MediaFixSettings()

        assert settings.media_folder == ""
        assert settings.batch_size == 50

    @pytest.mark.parametrize("value", [0, -3, "0", "abc", "", None, "1.5"])
    def test_invalid_batch_size(self, value):
        with pytest.raises(SettingsError):
            parse_batch_size(value)

    def test_batch_size_from_text(self):
        assert parse_batch_size("25") == 25
        assert MediaFixSettings(batch_size="7").batch_size == 7

    def test_constructor_validates(self):
        with pytest.raises(SettingsError):
            MediaFixSettings(batch_size=0)

    def test_edits_return_new_settings(self):
        settings = MediaFixSettings()

        edited = settings.with_media_folder("assets").with_batch_size("10")

        assert edited == MediaFixSettings(media_folder="assets", batch_size=10)
        assert settings == MediaFixSettings()

    def test_rejected_edit_keeps_value(self):
        settings = MediaFixSettings(batch_size=20)

        with pytest.raises(SettingsError):
            settings.with_batch_size("-1")
        assert settings.batch_size == 20

    def test_from_dict_merges_defaults(self):
        settings = MediaFixSettings.from_dict({"mediaFolder": "img", "other": 1})

        assert settings == MediaFixSettings(media_folder="img", batch_size=50)


class TestPersistence:
    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_settings(tmp_path / "none.json") == MediaFixSettings()
        assert load_settings(None) == MediaFixSettings()

    def test_round_trip_uses_plugin_keys(self, tmp_path):
        path = tmp_path / "conf" / "data.json"
        settings = MediaFixSettings(media_folder="attachments", batch_size=10)

        save_settings(settings, path)

        assert json.loads(path.read_text()) == {
            "mediaFolder": "attachments",
            "batchSize": 10,
        }
        assert load_settings(path) == settings

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "data.json"
        path.write_text("{nope")

        with pytest.raises(SettingsError):
            load_settings(path)

    def test_invalid_stored_batch_size(self, tmp_path):
        path = tmp_path / "data.json"
        path.write_text('{"batchSize": 0}')

        with pytest.raises(SettingsError):
            load_settings(path)

    def test_default_path(self, tmp_path, monkeypatch):
        monkeypatch.delenv("ANKIMEDIAFIX_SETTINGS", raising=False)
        assert default_settings_path(tmp_path) == tmp_path / SETTINGS_FILENAME

        monkeypatch.setenv("ANKIMEDIAFIX_SETTINGS", str(tmp_path / "x.json"))
        assert default_settings_path(tmp_path) == tmp_path / "x.json"
