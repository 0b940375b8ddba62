"""Tests for source tree traversal."""

import os
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from linksnap.walker import EntryKind, walk_source


@pytest.fixture
def tree():
    with tempfile.TemporaryDirectory() as root:
        root_path = Path(root)
        (root_path / "b.txt").write_text("bb")
        (root_path / ".hidden").write_text("secret")
        (root_path / "a").mkdir()
        (root_path / "a" / "inner.txt").write_text("inner")
        (root_path / "a" / "deep").mkdir()
        (root_path / "a" / "deep" / "x.bin").write_bytes(b"\x00\x01")
        (root_path / "c").mkdir()
        yield root_path


class TestWalkSource:
    """Tests for walk_source."""

    def test_yields_every_entry(self, tree):
        """Test that every file and directory is yielded."""
        rels = {str(e.relative_path) for e in walk_source(tree)}
        assert rels == {
            "b.txt",
            ".hidden",
            "a",
            os.path.join("a", "inner.txt"),
            os.path.join("a", "deep"),
            os.path.join("a", "deep", "x.bin"),
            "c",
        }

    def test_includes_hidden_files(self, tree):
        """Test that dot files are included."""
        names = [e.relative_path.name for e in walk_source(tree)]
        assert ".hidden" in names

    def test_parent_before_child(self, tree):
        """Test that parents always come before their children."""
        order = [e.relative_path for e in walk_source(tree)]
        for index, rel in enumerate(order):
            for parent in rel.parents:
                if parent != Path("."):
                    assert order.index(parent) < index

    def test_depth_first_name_order(self, tree):
        """Test depth-first order with siblings sorted by name."""
        order = [str(e.relative_path) for e in walk_source(tree)]
        assert order == [
            ".hidden",
            "a",
            os.path.join("a", "deep"),
            os.path.join("a", "deep", "x.bin"),
            os.path.join("a", "inner.txt"),
            "b.txt",
            "c",
        ]

    def test_file_metadata(self, tree):
        """Test the size and mtime recorded for files."""
        entries = {str(e.relative_path): e for e in walk_source(tree)}
        st = (tree / "b.txt").stat()

        entry = entries["b.txt"]
        assert entry.kind is EntryKind.FILE
        assert entry.size == 2
        assert entry.mtime_ns == st.st_mtime_ns
        assert entry.path == tree / "b.txt"

        assert entries["a"].kind is EntryKind.DIRECTORY
        assert entries["a"].size is None

    def test_is_lazy(self, tree):
        """Test that entries are produced on demand."""
        walker = walk_source(tree)
        first = next(walker)
        assert first.relative_path == Path(".hidden")

    def test_excluded_file(self, tree):
        """Test that an excluded file is skipped."""
        rels = {str(e.relative_path) for e in walk_source(tree, [tree / "b.txt"])}
        assert "b.txt" not in rels
        assert ".hidden" in rels

    def test_excluded_directory_is_pruned(self, tree):
        """Test that an excluded directory is skipped with its contents."""
        rels = {str(e.relative_path) for e in walk_source(tree, [tree / "a"])}
        assert rels == {".hidden", "b.txt", "c"}

    def test_exclusion_given_through_symlink(self, tree):
        """Test that an excluded path spelled through a symlinked parent still matches."""
        with tempfile.TemporaryDirectory() as other:
            alias = Path(other) / "alias"
            os.symlink(tree, alias)

            rels = {str(e.relative_path) for e in walk_source(tree, [alias / "a"])}

        assert rels == {".hidden", "b.txt", "c"}

    def test_excluding_symlink_keeps_its_target(self, tree):
        """Test that excluding a symlink leaves the directory it points to alone."""
        os.symlink(tree / "a", tree / "link_to_a")

        rels = {str(e.relative_path) for e in walk_source(tree, [tree / "link_to_a"])}

        assert "link_to_a" not in rels
        assert os.path.join("a", "inner.txt") in rels

    def test_root_given_through_symlink(self, tree):
        """Test that entries are reported under the resolved root."""
        with tempfile.TemporaryDirectory() as other:
            alias = Path(other) / "alias"
            os.symlink(tree, alias)

            entries = list(walk_source(alias))

        assert {str(e.relative_path) for e in entries} == {
            str(e.relative_path) for e in walk_source(tree)
        }
        assert all(e.path.is_relative_to(Path(os.path.realpath(tree))) for e in entries)

    def test_symlinks_are_not_followed(self, tree):
        """Test that symlinks are reported but not descended into."""
        os.symlink(tree / "a", tree / "link_to_a")
        entries = {str(e.relative_path): e for e in walk_source(tree)}

        assert entries["link_to_a"].kind is EntryKind.SYMLINK
        assert os.path.join("link_to_a", "inner.txt") not in entries

    def test_unlistable_directory_is_reported(self, tree):
        """Test that an unlistable directory is reported and the walk goes on."""
        real_scandir = os.scandir
        blocked = str(tree / "a")

        def fake_scandir(path):
            if str(path) == blocked:
                raise PermissionError(13, "Permission denied", str(path))
            return real_scandir(path)

        errors = []
        with patch("linksnap.walker.os.scandir", side_effect=fake_scandir):
            rels = {
                str(e.relative_path)
                for e in walk_source(tree, on_error=lambda p, e: errors.append((p, e)))
            }

        # The directory itself is still reported, its contents are not
        assert "a" in rels
        assert os.path.join("a", "inner.txt") not in rels
        assert "c" in rels
        assert len(errors) == 1
        assert errors[0][0] == tree / "a"
        assert isinstance(errors[0][1], PermissionError)

    def test_empty_root(self):
        """Test walking an empty directory."""
        with tempfile.TemporaryDirectory() as root:
            assert list(walk_source(Path(root))) == []
