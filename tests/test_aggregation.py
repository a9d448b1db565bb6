"""
Aggregation Index Tests
=======================
Key collection order, bibliography node discovery, record resolution,
expiry and persistence.
"""

import threading

import pytest

from citekit.config import BibliographyConfig
from citekit.errors import ErrorCode
from citekit.index.aggregation import INDEX_KIND, AggregationIndex, IndexRegistry
from citekit.index.local import LocalDeclaration
from citekit.render.scope import Scope


def declare(store, node_id, keys, is_bibliography=False):
    local = LocalDeclaration.load(store, node_id)
    local.set_keys(keys)
    local.set_bibliography(is_bibliography)
    local.save(store)


@pytest.fixture
def index(tree, store, repository, bib_config):
    return AggregationIndex("root", tree, store, repository, config=bib_config)


@pytest.fixture
def populated(store, repository, make_record):
    for key in ("k1", "k2", "k3"):
        repository.add("root", make_record(key), target="bib")
    declare(store, "a", ["k2", "k1"])
    declare(store, "b", ["k1", "k3"])
    declare(store, "bib", [], is_bibliography=True)


class TestRecompute:
    @pytest.mark.unit
    def test_new_index_is_expired(self, index, store):
        assert index.is_expired
        assert store.persisted("root")[INDEX_KIND]["values"]["expired"] == 1

    @pytest.mark.unit
    @pytest.mark.usefixtures("populated")
    def test_keys_in_walk_order_without_duplicates(self, index):
        assert index.get_ordered_keys() == ["k2", "k1", "k3"]
        assert [r.record.id for r in index.get_resolved_records()] == ["k2", "k1", "k3"]
        assert index.get_bibliography_node() == "bib"
        assert not index.is_expired

    @pytest.mark.unit
    @pytest.mark.usefixtures("populated")
    def test_recompute_is_idempotent(self, index, store):
        first = index.get_ordered_keys()
        saves = store.save_count
        assert index.get_ordered_keys() == first
        assert not index.recompute()
        assert store.save_count == saves

    @pytest.mark.unit
    @pytest.mark.usefixtures("populated")
    def test_multiple_bibliography_nodes_keep_first(self, index, store):
        declare(store, "a1", [], is_bibliography=True)
        errors = index.recompute()
        assert index.get_bibliography_node() == "a1"
        assert errors.by_code(ErrorCode.MULTIPLE_BIBLIOGRAPHY_NODES)[0].params == ("a1", "bib")

    @pytest.mark.unit
    @pytest.mark.usefixtures("populated")
    def test_unresolved_key_kept_but_not_resolved(self, index, store):
        declare(store, "a1", ["missing"])
        errors = index.recompute()
        assert index.get_ordered_keys() == ["k2", "k1", "missing", "k3"]
        assert [r.record.id for r in index.get_resolved_records()] == ["k2", "k1", "k3"]
        assert errors.by_code(ErrorCode.RECORD_NOT_FOUND)[0].params == ("missing",)
        assert index.last_errors.codes() == [ErrorCode.RECORD_NOT_FOUND]

    @pytest.mark.unit
    @pytest.mark.usefixtures("populated")
    def test_invalidate_then_recompute_sees_new_keys(self, index, store):
        index.get_ordered_keys()
        declare(store, "a1", ["k3"])
        assert index.get_ordered_keys() == ["k2", "k1", "k3"]
        declare(store, "root", ["k3"])
        index.invalidate()
        assert index.get_ordered_keys() == ["k3", "k2", "k1"]

    @pytest.mark.unit
    def test_no_bibliography_node(self, index, store):
        declare(store, "a", ["k1"])
        assert index.get_bibliography_node() is None


class TestExtraScopes:
    @pytest.mark.unit
    def test_own_scope_wins_then_extra_scopes_in_order(self, tree, store, repository, make_record):
        repository.add("shared", make_record("k1", title="Shared"))
        repository.add("root", make_record("k1", title="Own"))
        repository.add("other", make_record("k2", title="Other"))
        repository.add("shared", make_record("k2", title="Shared2"))
        declare(store, "a", ["k1", "k2"])

        config = BibliographyConfig(extra_scopes=("other",))
        index = AggregationIndex("root", tree, store, repository, config=config)
        index.configure(extra_scopes=["shared"])

        assert index.extra_scopes == ["shared", "other"]
        assert [r.record.title for r in index.get_resolved_records()] == ["Own", "Shared2"]

    @pytest.mark.unit
    def test_configure_extra_scopes_expires(self, index):
        index.recompute()
        index.configure(extra_scopes=["root", "x", " x "])
        assert index.is_expired
        assert index.extra_scopes == ["x"]

    @pytest.mark.unit
    def test_style_and_scope_overrides(self, index):
        assert index.style == "ieee"
        assert index.scope == Scope.CITED
        index.configure(style="author-date", scope="PAGE")
        assert index.style == "author-date"
        assert index.scope == Scope.PAGE
        index.configure(style="  ", scope="")
        assert index.style == "ieee"
        assert index.scope == Scope.CITED


class TestConcurrency:
    @pytest.mark.unit
    @pytest.mark.usefixtures("populated")
    def test_invalidation_during_recompute_is_not_lost(self, tree, store, repository):
        class InvalidatingResolver:
            def __init__(self):
                self.index = None
                self.fired = False

            def resolve(self, scope, key):
                if not self.fired:
                    self.fired = True
                    self.index.invalidate()
                return repository.resolve(scope, key)

        resolver = InvalidatingResolver()
        index = AggregationIndex("root", tree, store, resolver)
        resolver.index = index

        index.recompute()
        assert index.is_expired
        assert store.persisted("root")[INDEX_KIND]["values"]["expired"] == 1

        index.recompute()
        assert not index.is_expired

    @pytest.mark.unit
    @pytest.mark.usefixtures("populated")
    def test_reader_waits_for_running_recompute(self, tree, store, repository):
        walk_started = threading.Event()
        release = threading.Event()

        class BlockingResolver:
            def resolve(self, scope, key):
                walk_started.set()
                assert release.wait(timeout=5)
                return repository.resolve(scope, key)

        index = AggregationIndex("root", tree, store, BlockingResolver())
        writer = threading.Thread(target=index.recompute)
        writer.start()
        assert walk_started.wait(timeout=5)
        assert index.is_expired

        results = []
        reader = threading.Thread(target=lambda: results.append(index.get_ordered_keys()))
        reader.start()
        reader.join(timeout=0.2)
        assert reader.is_alive()
        assert results == []

        release.set()
        writer.join(timeout=5)
        reader.join(timeout=5)

        assert results == [["k2", "k1", "k3"]]
        assert not index.is_expired

    @pytest.mark.unit
    def test_failed_recompute_stays_expired(self, tree, store):
        class BrokenResolver:
            def resolve(self, scope, key):
                raise RuntimeError("backend down")

        declare(store, "a", ["k1"])
        index = AggregationIndex("root", tree, store, BrokenResolver())
        with pytest.raises(RuntimeError):
            index.recompute()
        assert index.is_expired


class TestPersistence:
    @pytest.mark.unit
    @pytest.mark.usefixtures("populated")
    def test_reload_fresh_state_without_recompute(self, index, tree, store):
        index.get_ordered_keys()

        class NoResolver:
            def resolve(self, scope, key):
                raise AssertionError("should not resolve")

        reloaded = AggregationIndex("root", tree, store, NoResolver())
        assert not reloaded.is_expired
        assert reloaded.get_ordered_keys() == ["k2", "k1", "k3"]
        assert reloaded.get_resolved_records()[0].target == "bib"
        assert reloaded.get_bibliography_node() == "bib"

    @pytest.mark.unit
    def test_corrupt_records_reported(self, tree, store, repository):
        store.new_object("root", INDEX_KIND).set_string("records", "{broken")
        store.save("root")
        index = AggregationIndex("root", tree, store, repository)
        assert index.is_expired
        assert index.last_errors.codes() == [ErrorCode.JSON_DECODING]

    @pytest.mark.unit
    def test_requires_collaborators(self, tree, store):
        with pytest.raises(TypeError):
            AggregationIndex("root", tree, store, None)


class TestIndexRegistry:
    @pytest.fixture
    def registry(self, tree, store, repository, bib_config):
        return IndexRegistry(tree, store, repository, bib_config)

    @pytest.mark.unit
    def test_same_instance_per_root(self, registry):
        assert registry.get_index("a1") is registry.get_index("b")
        assert registry.get_index("a1").root_id == "root"

    @pytest.mark.unit
    def test_nearest_index_root(self, registry):
        registry.create_index("root")
        registry.create_index("a")
        assert registry.index_root("a1") == "a"
        assert registry.index_root("b") == "root"

    @pytest.mark.unit
    def test_create_index_expires_enclosing_index(self, registry):
        outer = registry.create_index("root")
        outer.recompute()
        registry.create_index("a")
        assert outer.is_expired

    @pytest.mark.unit
    def test_create_index_without_enclosing_index(self, registry, store):
        registry.create_index("a")
        assert not registry.has_index("root")
        assert store.get_object("root", INDEX_KIND) is None

    @pytest.mark.unit
    def test_stored_index_is_found(self, tree, store, repository, registry):
        AggregationIndex("a", tree, store, repository)
        assert registry.index_root("a1") == "a"

    @pytest.mark.unit
    def test_invalidate_all(self, registry):
        first = registry.create_index("root")
        second = registry.create_index("a")
        first.recompute()
        second.recompute()
        registry.invalidate_all()
        assert first.is_expired and second.is_expired

    @pytest.mark.unit
    def test_drop(self, registry):
        index = registry.get_index("a")
        registry.drop(index.root_id)
        assert registry.get_index("a") is not index
