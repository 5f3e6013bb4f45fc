from __future__ import annotations

import pytest

from record_desk.apps import AppDefinition, GradebookApp, create_default_registry
from record_desk.apps.registry import AppRegistry
from record_desk.core.exceptions import UnknownAppError, UnknownCollectionError


def test_default_registry_lists_every_app():
    registry = create_default_registry()
    assert registry.ids() == ["gradebook", "roster", "inventory", "transport", "telehealth", "agile"]


def test_create_returns_fresh_instances():
    registry = create_default_registry()
    first = registry.create("gradebook")
    assert isinstance(first, GradebookApp)
    assert first is not registry.create("gradebook")


def test_unknown_app_raises():
    with pytest.raises(UnknownAppError):
        create_default_registry().create("nope")
    with pytest.raises(KeyError):
        create_default_registry().create("nope")


def test_register_rejects_duplicates_and_non_apps():
    registry = AppRegistry()
    registry.register(GradebookApp)
    with pytest.raises(ValueError):
        registry.register(GradebookApp)
    with pytest.raises(TypeError):
        registry.register(dict)


def test_unknown_collection_raises():
    with pytest.raises(UnknownCollectionError):
        GradebookApp().spec("nope")


def test_every_app_has_unique_storage_keys_and_seed_for_each_collection():
    keys = []
    for app_cls in create_default_registry().all_classes():
        app = app_cls()
        assert isinstance(app, AppDefinition)
        for spec in app.collections:
            keys.append(spec.storage_key)
            seed = app.seed_for(spec.name)
            assert all("id" in r for r in seed)
    assert len(keys) == len(set(keys))


def test_seed_for_returns_copies():
    app = GradebookApp()
    app.seed_for("students")[0]["firstName"] = "Changed"
    assert app.seed_for("students")[0]["firstName"] == "Alice"
