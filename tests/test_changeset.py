"""Tests for changeset construction and validation."""
import pytest

from tracedoc import ChangeSetError, build_changeset


def noop(doc, *args):
    pass


def other(doc, *args):
    pass


class TestBuildChangeSet:
    """Test the indexes built from entries."""

    def test_watchers_indexed_by_path(self):
        """Single-path entries become watchers."""
        changeset = build_changeset([(noop, "x"), (other, "y")])
        assert changeset.watching == {"x": [noop], "y": [other]}
        assert changeset.watching_count == 2
        assert changeset.mappings == []

    def test_watchers_chained_in_order(self):
        """Several watchers on one path keep registration order."""
        changeset = build_changeset([(noop, "x"), (other, "x"), (noop, "x")])
        assert changeset.watching["x"] == [noop, other, noop]
        assert changeset.watching_count == 1

    def test_mappings(self):
        """Multi-path entries become mappings."""
        changeset = build_changeset([(noop, "x", "y")])
        assert len(changeset.mappings) == 1
        entry = changeset.mappings[0]
        assert entry.callback is noop
        assert entry.paths == ("x", "y")
        assert not entry.is_watcher
        assert changeset.watching == {}

    def test_tags(self):
        """Tagged and untagged entries are grouped by tag."""
        changeset = build_changeset([
            ("hud", noop, "x", "y"),
            ("hud", other, "z"),
            (noop, "x"),
        ])
        assert [entry.callback for entry in changeset.tags["hud"]] == [noop, other]
        assert [entry.callback for entry in changeset.tags[""]] == [noop]
        assert len(changeset.entries) == 3
        assert changeset.watching == {"z": [other], "x": [noop]}

    def test_paths_compiled_once(self):
        """Each distinct path is compiled once."""
        changeset = build_changeset([(noop, "x"), (noop, "x", "pos.y"), (other, "pos.y")])
        assert changeset.paths == ["x", "pos.y"]
        assert changeset.compiler.compile("x") is changeset.compiler.compile("x")

    def test_paths_stored_in_dotted_form(self):
        """Bracketed paths are indexed under the dotted form used in diffs."""
        changeset = build_changeset([
            (noop, "items[2]"),
            (other, "items.02"),
            (noop, "items[2]", "pos.x"),
        ])
        assert changeset.watching == {"items.2": [noop, other]}
        assert changeset.mappings[0].paths == ("items.2", "pos.x")
        assert changeset.paths == ["items.2", "pos.x"]

    def test_accepts_lists(self):
        """Entries may be lists as well as tuples."""
        changeset = build_changeset([[noop, "x"]])
        assert changeset.watching == {"x": [noop]}

    def test_empty(self):
        """An empty entry list builds an empty changeset."""
        changeset = build_changeset([])
        assert changeset.entries == []
        assert "watching=0" in repr(changeset)


class TestMalformedEntries:
    """Test construction-time validation."""

    @pytest.mark.parametrize("entry", [
        (),
        ("x",),
        (noop,),
        ("tag", noop),
        ("x", "y"),
        ("tag", "x", noop),
        (noop, 3),
        (noop, ""),
        (noop, "x", None),
        "x",
        noop,
    ])
    def test_rejected(self, entry):
        """Entries without a callback or a valid path fail at build time."""
        with pytest.raises(ChangeSetError):
            build_changeset([entry])

    def test_non_ascii_digit_index_rejected(self):
        """A non-ASCII digit index fails as a ChangeSetError."""
        with pytest.raises(ChangeSetError):
            build_changeset([(noop, "a[²]")])

    def test_malformed_path_rejected(self):
        """Unparseable paths fail at build time."""
        with pytest.raises(ChangeSetError, match="Invalid path"):
            build_changeset([(noop, "a..b")])

    def test_error_is_value_error(self):
        """ChangeSetError is a ValueError."""
        with pytest.raises(ValueError):
            build_changeset([(noop,)])
