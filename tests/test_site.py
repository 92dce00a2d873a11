"""Tests for HierarchyFilter and site helpers."""

import pytest

from hierarchy_publisher.core.config import HierarchyConfig, SiteConfig
from hierarchy_publisher.core.graph import InMemoryNoteStore, NoteGraph
from hierarchy_publisher.core.models import AmbiguousDomainError, Note, SiteConfigError, Vault
from hierarchy_publisher.core.site import (
    HierarchyFilter,
    add_site_only_notes,
    build_output,
    copy_assets,
    filter_by_config,
    get_domains,
    is_visible,
)


VAULT = Vault(fs_path="vault", name="main")
OTHER = Vault(fs_path="other", name="other")


def _note(fname, vault=VAULT, body="", **custom):
    return Note(id=fname, fname=fname, vault=vault, title=fname.split(".")[-1], body=body, custom=custom)


def _graph(*notes, vaults=None):
    return NoteGraph.from_hierarchy(notes, vaults=vaults)


def _config(**data):
    return SiteConfig.from_dict(data)


@pytest.fixture
def graph():
    return _graph(
        _note("root", body="root body"),
        _note("foo", body="foo body"),
        _note("foo.ch1", body="ch1 body"),
        _note("foo.ch1.gch1"),
        _note("foo.ch1.gch2"),
        _note("foo.ch2", published=False),
        _note("foo.ch2.gch1"),
        _note("bar", body="bar body"),
        _note("bar.ch1"),
    )


class TestVisibility:
    """Tests for the per-note visibility rule."""

    def test_published_by_default(self):
        assert is_visible(_note("a"), HierarchyConfig(publish_by_default=True))

    def test_blacklisted(self):
        assert not is_visible(_note("a", published=False), HierarchyConfig(publish_by_default=True))

    def test_whitelist_required(self):
        config = HierarchyConfig(publish_by_default=False)

        assert not is_visible(_note("a"), config)
        assert is_visible(_note("a", published=True), config)


class TestFilterByConfig:
    """Tests for a full publish filter pass."""

    def test_single_domain(self, graph):
        result = filter_by_config(graph, _config(siteHierarchies=["foo"]))

        assert sorted(result.notes) == ["foo", "foo.ch1", "foo.ch1.gch1", "foo.ch1.gch2"]
        assert result.notes["foo"].children == ["foo.ch1"]
        assert result.warnings == []

    def test_unpublished_subtree_pruned(self, graph):
        result = filter_by_config(graph, _config(siteHierarchies=["foo"]))

        assert "foo.ch2" not in result.notes
        assert "foo.ch2.gch1" not in result.notes

    def test_domain_normalized(self, graph):
        result = filter_by_config(graph, _config(siteHierarchies=["bar", "foo"], siteIndex="foo"))

        foo = result.notes["foo"]
        assert foo.parent is None
        assert foo.title == "Foo"
        assert foo.custom["nav_order"] == 1
        assert foo.custom["permalink"] == "/"
        assert result.notes["bar"].custom["nav_order"] == 0
        assert "permalink" not in result.notes["bar"].custom

    def test_site_index_defaults_to_first_domain(self, graph):
        result = filter_by_config(graph, _config(siteHierarchies=["bar", "foo"]))

        assert result.notes["bar"].custom["permalink"] == "/"

    def test_input_graph_not_mutated(self, graph):
        before = {n.id: n.copy() for n in graph}
        filter_by_config(graph, _config(
            siteHierarchies=["foo"],
            config={"foo": {"skipLevels": 1, "noindexByDefault": True}},
        ))

        assert {n.id: n for n in graph} == before

    def test_multiple_domains_merged(self, graph):
        result = filter_by_config(graph, _config(siteHierarchies=["foo", "bar"]))

        assert "bar.ch1" in result.notes
        assert "foo.ch1" in result.notes
        assert [d.id for d in result.domains] == ["foo", "bar"]

    def test_single_domain_includes_children_in_domains(self, graph):
        result = filter_by_config(graph, _config(siteHierarchies=["foo"]))

        assert [d.id for d in result.domains] == ["foo", "foo.ch1"]

    def test_missing_domain_skipped_with_warning(self, graph):
        result = filter_by_config(graph, _config(siteHierarchies=["foo", "nope"]))

        assert "foo" in result.notes
        assert len(result.warnings) == 1
        assert "nope" in result.warnings[0]

    def test_local_only_lines_stripped(self):
        graph = _graph(_note("foo", body="public\nsecret <!--LOCAL_ONLY_LINE-->\nend"))
        result = filter_by_config(graph, _config(siteHierarchies=["foo"]))

        assert result.notes["foo"].body == "public\nend"
        assert "secret" in graph["foo"].body


class TestHierarchyConfigApplied:
    """Tests for per-hierarchy publish rules."""

    def test_custom_frontmatter_injected(self, graph):
        config = _config(
            siteHierarchies=["foo"],
            config={"root": {"customFrontmatter": [{"key": "layout", "value": "note"}]}},
        )
        result = filter_by_config(graph, config)

        assert all(n.custom["layout"] == "note" for n in result.notes.values())

    def test_custom_frontmatter_overwrites(self):
        graph = _graph(_note("foo", layout="mine"))
        config = _config(
            siteHierarchies=["foo"],
            config={"foo": {"customFrontmatter": [{"key": "layout", "value": "site"}]}},
        )

        assert filter_by_config(graph, config).notes["foo"].custom["layout"] == "site"

    def test_noindex_stamped_unless_set(self):
        graph = _graph(_note("foo"), _note("foo.a"), _note("foo.b", noindex=False))
        config = _config(siteHierarchies=["foo"], config={"foo": {"noindexByDefault": True}})
        result = filter_by_config(graph, config)

        assert result.notes["foo.a"].custom["noindex"] is True
        assert result.notes["foo.b"].custom["noindex"] is False

    def test_publish_by_default_false_requires_opt_in(self):
        graph = _graph(_note("foo", published=True), _note("foo.a"), _note("foo.b", published=True))
        config = _config(siteHierarchies=["foo"], config={"foo": {"publishByDefault": False}})
        result = filter_by_config(graph, config)

        assert sorted(result.notes) == ["foo", "foo.b"]

    def test_domain_without_opt_in_skipped(self):
        graph = _graph(_note("foo"))
        config = _config(siteHierarchies=["foo"], config={"foo": {"publishByDefault": False}})
        result = filter_by_config(graph, config)

        assert result.notes == {}
        assert result.domains == []
        assert len(result.warnings) == 1


class TestSkipLevels:
    """Tests for promoting descendants past intermediate levels."""

    @pytest.fixture
    def deep_graph(self):
        return _graph(
            _note("foo"),
            _note("foo.a"),
            _note("foo.a.x"),
            _note("foo.a.y"),
            _note("foo.b"),
            _note("foo.b.z"),
            _note("foo.c"),
        )

    def test_skip_one_level(self, deep_graph):
        config = _config(siteHierarchies=["foo"], config={"foo": {"skipLevels": 1}})
        result = filter_by_config(deep_graph, config)

        assert result.notes["foo"].children == ["foo.a.x", "foo.a.y", "foo.b.z"]
        for fname in ("foo.a.x", "foo.a.y", "foo.b.z"):
            assert result.notes[fname].parent == "foo"
        for fname in ("foo.a", "foo.b", "foo.c"):
            assert fname not in result.notes

    def test_skip_two_levels(self):
        graph = _graph(
            _note("foo"),
            _note("foo.a"),
            _note("foo.a.b"),
            _note("foo.a.b.c"),
            _note("foo.a.b.d"),
            _note("foo.e"),
            _note("foo.e.f"),
        )
        config = _config(siteHierarchies=["foo"], config={"foo": {"skipLevels": 2}})
        result = filter_by_config(graph, config)

        assert result.notes["foo"].children == ["foo.a.b.c", "foo.a.b.d"]
        assert result.notes["foo.a.b.c"].parent == "foo"
        assert result.notes["foo.a.b.d"].parent == "foo"
        for fname in ("foo.a", "foo.a.b", "foo.e", "foo.e.f"):
            assert fname not in result.notes

    def test_per_note_skip_levels(self):
        graph = _graph(
            _note("foo", skipLevels=1),
            _note("foo.a"),
            _note("foo.a.x"),
            _note("foo.a.x.deep"),
        )
        result = filter_by_config(graph, _config(siteHierarchies=["foo"]))

        assert result.notes["foo"].children == ["foo.a.x"]
        assert result.notes["foo.a.x"].children == ["foo.a.x.deep"]

    def test_promoted_child_visibility_reapplied(self):
        graph = _graph(_note("foo"), _note("foo.a"), _note("foo.a.x", published=False), _note("foo.a.y"))
        config = _config(siteHierarchies=["foo"], config={"foo": {"skipLevels": 1}})
        result = filter_by_config(graph, config)

        assert result.notes["foo"].children == ["foo.a.y"]

    def test_original_parent_untouched(self, deep_graph):
        config = _config(siteHierarchies=["foo"], config={"foo": {"skipLevels": 1}})
        filter_by_config(deep_graph, config)

        assert deep_graph["foo.a.x"].parent == "foo.a"


class TestDuplicateDomains:
    """Tests for domains present in several vaults."""

    @pytest.fixture
    def dup_graph(self):
        return NoteGraph(
            [
                Note(id="foo-main", fname="foo", vault=VAULT, title="foo"),
                Note(id="foo-other", fname="foo", vault=OTHER, title="foo"),
            ],
            vaults=[VAULT, OTHER],
        )

    def test_ambiguous_without_pin_fails(self, dup_graph):
        with pytest.raises(AmbiguousDomainError):
            filter_by_config(dup_graph, _config(siteHierarchies=["foo"]))

    def test_ambiguous_aborts_before_stub_writes(self, dup_graph):
        notes = list(dup_graph) + [Note(id="bar", fname="bar", vault=VAULT, title="bar", stub=True)]
        graph = NoteGraph(notes, vaults=[VAULT, OTHER])
        store = InMemoryNoteStore.from_graph(graph)

        with pytest.raises(AmbiguousDomainError):
            filter_by_config(graph, _config(siteHierarchies=["bar", "foo"], writeStubs=True), store)
        assert store.writes == []

    def test_pin_selects_vault(self, dup_graph):
        config = _config(siteHierarchies=["foo"], duplicateNoteBehavior={"vault": "other"})
        result = filter_by_config(dup_graph, config)

        assert list(result.notes) == ["foo-other"]

    def test_pin_by_payload(self, dup_graph):
        config = _config(
            siteHierarchies=["foo"],
            duplicateNoteBehavior={"action": "useVault", "payload": {"vault": {"fsPath": "vault"}}},
        )

        assert list(filter_by_config(dup_graph, config).notes) == ["foo-main"]

    def test_pin_matching_nothing_skips(self, dup_graph):
        config = _config(siteHierarchies=["foo"], duplicateNoteBehavior={"vault": "elsewhere"})
        result = filter_by_config(dup_graph, config)

        assert result.notes == {}
        assert "elsewhere" in result.warnings[0]


class TestWriteStubs:
    """Tests for stub materialization."""

    def test_stub_cleared_once(self):
        stub = Note(id="stubby", fname="root.stubby", vault=VAULT, title="stubby", stub=True)
        graph = _graph(_note("root"), stub)
        store = InMemoryNoteStore.from_graph(graph)

        result = filter_by_config(graph, _config(siteHierarchies=["root"], writeStubs=True), store)

        assert [n.id for n in store.writes] == ["stubby"]
        assert store.writes[0].stub is False
        assert result.notes["stubby"].stub is False
        assert graph["stubby"].stub is True

    def test_generated_intermediate_stub_cleared(self):
        graph = _graph(_note("foo"), _note("foo.a.b"))
        store = InMemoryNoteStore.from_graph(graph)

        result = filter_by_config(graph, _config(siteHierarchies=["foo"], writeStubs=True), store)

        assert [n.fname for n in store.writes] == ["foo.a"]
        assert result.notes["main/foo.a"].stub is False

    def test_stubs_kept_when_disabled(self):
        graph = _graph(_note("foo"), _note("foo.a.b"))
        result = filter_by_config(graph, _config(siteHierarchies=["foo"]))

        assert result.notes["main/foo.a"].stub is True

    def test_write_stubs_requires_store(self, graph):
        with pytest.raises(SiteConfigError):
            HierarchyFilter(graph, _config(siteHierarchies=["foo"], writeStubs=True))


class TestCanPublish:
    """Tests for unfiltered publishability."""

    def test_configured_domain(self, graph):
        hfilter = HierarchyFilter(graph, _config(siteHierarchies=["foo"]))

        assert hfilter.can_publish(graph["foo.ch1.gch1"])
        assert not hfilter.can_publish(graph["foo.ch2"])
        assert not hfilter.can_publish(graph["bar.ch1"])


class TestGetDomains:
    """Tests for navigation domain ordering."""

    def test_single_hierarchy(self, graph):
        config = _config(siteHierarchies=["foo"])
        result = filter_by_config(graph, config)

        assert [n.id for n in get_domains(result.notes, config)] == ["foo", "foo.ch1"]

    def test_multiple_hierarchies_ordered(self, graph):
        config = _config(siteHierarchies=["foo", "bar"])
        result = filter_by_config(graph, config)

        assert [n.id for n in get_domains(result.notes, config)] == ["foo", "bar"]

    def test_single_hierarchy_missing(self):
        assert get_domains({}, _config(siteHierarchies=["foo"])) == []


class TestSiteHelpers:
    """Tests for site-only notes, assets and output."""

    def test_site_only_notes(self, graph):
        (note,) = add_site_only_notes(graph)

        assert note.id == "403"
        assert note.title == "Access Denied"
        assert note.vault == graph.vaults[0]

    def test_copy_assets(self, tmp_path):
        assets = tmp_path / "vault" / "assets" / "images"
        assets.mkdir(parents=True)
        (assets / "pic.png").write_bytes(b"png")
        site_assets = tmp_path / "site" / "assets"

        out = copy_assets(tmp_path, VAULT, site_assets)

        assert out == site_assets
        assert (site_assets / "images" / "pic.png").read_bytes() == b"png"

    def test_copy_assets_missing_dir(self, tmp_path):
        assert copy_assets(tmp_path, VAULT, tmp_path / "site") is None
        assert not (tmp_path / "site").exists()

    def test_build_output(self):
        note = Note(id="foo", fname="foo", vault=VAULT, title="Foo", body="# Foo\n\nBody.\n", custom={"nav_order": 0})
        output = build_output(note)

        assert output.startswith("---\n")
        assert "nav_order: 0\n" in output
        assert "title: Foo\n" in output
        assert output.endswith("---\n# Foo\n\nBody.\n")
