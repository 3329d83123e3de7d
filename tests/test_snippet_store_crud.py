from pathlib import Path
import tempfile

from snippy.config_manager import ConfigManager
from snippy.snippet_model import Snippet
from snippy.snippet_store import SnippetStore


def _snippet(name, category="ops", commands=None):
    return Snippet(name=name, description=f"{name} description", category=category, commands=commands or ["echo hi"])


def test_add_then_delete_restores_collection():
    with tempfile.TemporaryDirectory() as td:
        store = SnippetStore(ConfigManager(base_dir=Path(td)))
        first = _snippet("first")
        store.add(first)
        before = store.list_snippets()
        before_categories = store.categories()

        second = _snippet("second", category="build")
        res = store.add(second)
        assert res["status"] == "success"
        assert res["persisted"] is True

        dl = store.delete(second.id)
        assert dl["status"] == "success"
        assert store.list_snippets() == before
        assert store.categories() == before_categories


def test_categories_are_deduplicated_and_recomputed_on_delete():
    with tempfile.TemporaryDirectory() as td:
        store = SnippetStore(ConfigManager(base_dir=Path(td)))
        a = _snippet("a", "ops")
        b = _snippet("b", "ops")
        c = _snippet("c", "build")
        for s in (a, b, c):
            store.add(s)
        assert set(store.categories()) == {"ops", "build"}
        assert store.category_counts() == {"ops": 2, "build": 1}

        store.delete(c.id)
        assert "build" not in store.categories()
        assert store.categories() == ["ops"]


def test_delete_unknown_id_is_noop():
    with tempfile.TemporaryDirectory() as td:
        store = SnippetStore(ConfigManager(base_dir=Path(td)))
        store.add(_snippet("keep"))
        events = []
        store.register_callback(lambda event, s: events.append(event))

        before = store.list_snippets()
        res = store.delete("does-not-exist")
        assert res["status"] == "noop"
        assert store.list_snippets() == before
        assert store.categories() == ["ops"]
        assert events == []


def test_update_replaces_entity_and_refreshes_last_modified():
    with tempfile.TemporaryDirectory() as td:
        store = SnippetStore(ConfigManager(base_dir=Path(td)))
        first = _snippet("first")
        other = _snippet("other", category="misc")
        store.add(first)
        store.add(other)

        res = store.update(first.id, {"name": "renamed", "category": "build", "commands": ["make", "make test"]})
        assert res["status"] == "success"

        updated = store.list_snippets()[0]
        assert updated.id == first.id
        assert updated.name == "renamed"
        assert updated.commands == ("make", "make test")
        assert updated.date_created == first.date_created
        assert updated.last_modified >= first.last_modified
        assert set(store.categories()) == {"build", "misc"}
        # the original object is untouched
        assert first.name == "first"


def test_update_unknown_id_or_field_is_error():
    with tempfile.TemporaryDirectory() as td:
        store = SnippetStore(ConfigManager(base_dir=Path(td)))
        s = _snippet("s")
        store.add(s)
        assert store.update("missing", {"name": "x"})["status"] == "error"
        assert store.update(s.id, {"id": "forged"})["status"] == "error"
        assert store.get_snippet(s.id) == s


def test_each_mutation_notifies_each_listener_once():
    with tempfile.TemporaryDirectory() as td:
        store = SnippetStore(ConfigManager(base_dir=Path(td)))
        first_events = []
        second_events = []

        def broken(event, s):
            raise RuntimeError("listener failure")

        store.register_callback(lambda event, s: first_events.append(event))
        store.register_callback(broken)
        store.register_callback(lambda event, s: second_events.append(event))

        s = _snippet("s")
        store.add(s)
        store.update(s.id, {"description": "changed"})
        store.delete(s.id)

        assert first_events == ["add", "update", "delete"]
        assert second_events == ["add", "update", "delete"]

        store.unregister_callback(broken)
        store.add(_snippet("t"))
        assert first_events[-1] == "add"
        assert len(first_events) == 4


def test_stored_commands_cannot_be_changed_in_place():
    with tempfile.TemporaryDirectory() as td:
        store = SnippetStore(ConfigManager(base_dir=Path(td)))
        source = ["make"]
        s = Snippet(name="build", commands=source, tags=["ci"])
        store.add(s)
        source.append("rm -rf build")
        assert store.list_snippets()[0].commands == ("make",)

        try:
            store.list_snippets()[0].commands.append("make install")
        except AttributeError:
            pass
        else:
            raise AssertionError("commands should be read-only")
        assert SnippetStore(ConfigManager(base_dir=Path(td))).list_snippets()[0].commands == ("make",)
