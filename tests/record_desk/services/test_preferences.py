from __future__ import annotations

import pytest

from record_desk.services.preferences import DarkModeSetting, PreferenceStore, SettingsStore, merge_settings
from record_desk.services.storage import InMemoryStorage, LocalFileSystemStorage


def test_dark_mode_persists_and_reloads(tmp_path):
    setting = DarkModeSetting("spt-darkMode")
    PreferenceStore(LocalFileSystemStorage(tmp_path), setting).set_dark_mode(True)

    reloaded = PreferenceStore(LocalFileSystemStorage(tmp_path), setting)
    assert reloaded.get_dark_mode() is True

    reloaded.set_dark_mode(False)
    assert PreferenceStore(LocalFileSystemStorage(tmp_path), setting).get_dark_mode() is False


def test_dark_mode_custom_encoding():
    storage = InMemoryStorage()
    prefs = PreferenceStore(storage, DarkModeSetting("theme", on_value="dark", off_value="light"))

    prefs.set_dark_mode(True)
    assert storage.get_item("theme") == "dark"
    assert prefs.get_dark_mode() is True


def test_dark_mode_default_when_absent_or_garbage():
    storage = InMemoryStorage({"darkMode": "maybe"})
    prefs = PreferenceStore(storage, DarkModeSetting("darkMode"))
    assert prefs.get_dark_mode(default=True) is True
    assert PreferenceStore(InMemoryStorage(), DarkModeSetting("darkMode")).get_dark_mode() is False


def test_json_encoded_boolean_is_read():
    storage = InMemoryStorage({"studentProgressTracker_darkMode": "true"})
    prefs = PreferenceStore(storage, DarkModeSetting("studentProgressTracker_darkMode"))
    assert prefs.get_dark_mode() is True


DEFAULTS = {"language": "en", "notifications": {"email": True, "sms": True}}


def test_settings_default_when_absent():
    settings = SettingsStore(InMemoryStorage(), "app_settings", DEFAULTS)
    assert settings.get() == DEFAULTS
    assert settings.get() is not DEFAULTS


def test_settings_update_merges_nested_and_reloads(tmp_path):
    SettingsStore(LocalFileSystemStorage(tmp_path), "app_settings", DEFAULTS).update(
        {"notifications": {"sms": False}}
    )

    reloaded = SettingsStore(LocalFileSystemStorage(tmp_path), "app_settings", DEFAULTS).get()
    assert reloaded == {"language": "en", "notifications": {"email": True, "sms": False}}
    assert DEFAULTS["notifications"]["sms"] is True


def test_settings_stored_by_older_version_gain_new_keys():
    storage = InMemoryStorage({"app_settings": '{"language": "de"}'})
    assert SettingsStore(storage, "app_settings", DEFAULTS).get() == {
        "language": "de",
        "notifications": {"email": True, "sms": True},
    }


@pytest.mark.parametrize("raw", ["{not json", "[1, 2]"])
def test_unreadable_settings_fall_back_to_defaults(raw):
    storage = InMemoryStorage({"app_settings": raw})
    assert SettingsStore(storage, "app_settings", DEFAULTS).get() == DEFAULTS


def test_merge_settings_replaces_non_dict_values():
    assert merge_settings({"a": {"b": 1}}, {"a": 2}) == {"a": 2}
