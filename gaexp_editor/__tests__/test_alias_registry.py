"""
Tests for the alias registry and its persistent stores.
"""
import unittest
import sys
import os
import json
import tempfile
import threading
from pathlib import Path

# Add parent directory to path to import app modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from gaexp_editor.models.alias_registry import (
    GLOBAL_KEY,
    AliasRegistry,
    AliasRegistryNotLoaded,
    AliasStore,
    MemoryAliasStore,
    scope_key,
)


class GatedStore(MemoryAliasStore):
    """Memory store whose reads block until the test opens the gate."""

    def __init__(self, data=None):
        super().__init__(data)
        self.gate = threading.Event()
        self.writes = []

    def read(self, key):
        self.gate.wait(5)
        return super().read(key)

    def write(self, key, mapping):
        self.writes.append(dict(mapping))
        super().write(key, mapping)


class FailingStore(MemoryAliasStore):

    def write(self, key, mapping):
        raise OSError("disk full")


def loaded_registry(aliases=None):
    store = MemoryAliasStore({GLOBAL_KEY: aliases or {}})
    registry = AliasRegistry(store)
    registry.load()
    return registry, store


class TestAliasRegistry(unittest.TestCase):
    """Registry operations against an in-memory store."""

    def test_load_and_get(self):
        registry, _ = loaded_registry({"foo": "Homepage test"})
        self.assertTrue(registry.loaded)
        self.assertEqual(registry.get("foo"), "Homepage test")
        self.assertEqual(registry.get("missing"), "")

    def test_set_persists_full_mapping(self):
        registry, store = loaded_registry({"a": "A"})
        registry.set("b", "B")
        self.assertEqual(store.read(GLOBAL_KEY), {"a": "A", "b": "B"})

    def test_rename_moves_label(self):
        registry, store = loaded_registry({"foo": "Homepage test"})
        registry.rename("foo", "bar")
        self.assertEqual(registry.get("bar"), "Homepage test")
        self.assertNotIn("foo", registry.as_dict())
        self.assertEqual(store.read(GLOBAL_KEY), {"bar": "Homepage test"})

    def test_rename_without_label_creates_nothing(self):
        registry, store = loaded_registry({"other": "O"})
        registry.rename("foo", "bar")
        self.assertEqual(registry.as_dict(), {"other": "O"})
        self.assertEqual(store.read(GLOBAL_KEY), {"other": "O"})

    def test_remove(self):
        registry, store = loaded_registry({"foo": "F", "bar": "B"})
        registry.remove("foo")
        registry.remove("never-there")
        self.assertEqual(store.read(GLOBAL_KEY), {"bar": "B"})

    def test_reconcile_removes_ids_that_are_not_live(self):
        registry, store = loaded_registry({"a": "A", "b": "B", "c": "C"})
        removed = registry.reconcile({"a", "c"})
        self.assertEqual(removed, {"b"})
        self.assertEqual(registry.as_dict(), {"a": "A", "c": "C"})
        self.assertEqual(store.read(GLOBAL_KEY), {"a": "A", "c": "C"})

    def test_reconcile_waits_for_load(self):
        store = GatedStore({GLOBAL_KEY: {"a": "A", "b": "B", "c": "C"}})
        registry = AliasRegistry(store)
        results = []

        reconcile_thread = threading.Thread(target=lambda: results.append(registry.reconcile({"a", "c"})))
        reconcile_thread.start()
        registry.start_load()

        # Load is still blocked: reconcile must neither run nor give up
        reconcile_thread.join(0.2)
        self.assertTrue(reconcile_thread.is_alive())
        self.assertEqual(results, [])
        self.assertEqual(store.writes, [])

        store.gate.set()
        reconcile_thread.join(5)
        self.assertFalse(reconcile_thread.is_alive())
        self.assertEqual(results, [{"b"}])
        self.assertEqual(store.read(GLOBAL_KEY), {"a": "A", "c": "C"})

    def test_reconcile_times_out_when_never_loaded(self):
        registry = AliasRegistry(MemoryAliasStore({GLOBAL_KEY: {"a": "A"}}))
        with self.assertRaises(AliasRegistryNotLoaded):
            registry.reconcile(set(), timeout=0.05)

    def test_start_load_calls_back_with_mapping(self):
        registry = AliasRegistry(MemoryAliasStore({GLOBAL_KEY: {"a": "A"}}))
        received = []
        registry.start_load(on_loaded=received.append).join(5)
        self.assertEqual(received, [{"a": "A"}])

    def test_labels_set_before_load_are_merged_and_persisted(self):
        store = MemoryAliasStore({GLOBAL_KEY: {"a": "A"}})
        registry = AliasRegistry(store)
        registry.set("b", "B")
        # Nothing written before the stored mapping is known
        self.assertEqual(store.read(GLOBAL_KEY), {"a": "A"})

        registry.load()
        self.assertEqual(store.read(GLOBAL_KEY), {"a": "A", "b": "B"})

    def test_write_failures_are_logged_not_raised(self):
        registry = AliasRegistry(FailingStore())
        registry.load()
        with self.assertLogs('gaexp_editor.models.alias_registry', level='ERROR') as logs:
            registry.set("a", "A")
        self.assertEqual(registry.get("a"), "A")
        self.assertIn("disk full", logs.output[0])

    def test_scoped_registries_do_not_share_aliases(self):
        store = MemoryAliasStore()
        shop = AliasRegistry(store, key=scope_key("_gaexp", ".shop.example"))
        blog = AliasRegistry(store, key=scope_key("_gaexp", "blog.example"))
        shop.load()
        blog.load()

        shop.set("exp", "Checkout")
        blog.reconcile(set())

        self.assertEqual(store.read(scope_key("_gaexp", "shop.example")), {"exp": "Checkout"})


class TestScopeKey(unittest.TestCase):

    def test_global_key_without_scope(self):
        self.assertEqual(scope_key(), GLOBAL_KEY)

    def test_domain_is_normalized(self):
        self.assertEqual(scope_key("_gaexp", ".Example.COM"), "aliases:_gaexp@example.com")


class TestAliasStore(unittest.TestCase):
    """JSON file backed store."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.data_file = Path(self.temp_dir.name) / 'data' / 'aliases.json'

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_missing_file_reads_empty(self):
        self.assertEqual(AliasStore(self.data_file).read(GLOBAL_KEY), {})

    def test_write_then_read_from_new_instance(self):
        AliasStore(self.data_file).write(GLOBAL_KEY, {"foo": "Homepage test"})
        self.assertEqual(AliasStore(self.data_file).read(GLOBAL_KEY), {"foo": "Homepage test"})

        with open(self.data_file, 'r') as f:
            self.assertEqual(json.load(f), {GLOBAL_KEY: {"foo": "Homepage test"}})

    def test_write_replaces_only_its_key(self):
        store = AliasStore(self.data_file)
        store.write("aliases:_gaexp@a.example", {"x": "X"})
        store.write(GLOBAL_KEY, {"foo": "F"})
        store.write(GLOBAL_KEY, {"bar": "B"})

        self.assertEqual(store.read(GLOBAL_KEY), {"bar": "B"})
        self.assertEqual(store.read("aliases:_gaexp@a.example"), {"x": "X"})

    def test_corrupt_file_reads_empty(self):
        self.data_file.parent.mkdir(parents=True, exist_ok=True)
        self.data_file.write_text("{not json")
        with self.assertLogs('gaexp_editor.models.alias_registry', level='ERROR'):
            self.assertEqual(AliasStore(self.data_file).read(GLOBAL_KEY), {})


if __name__ == '__main__':
    unittest.main()
