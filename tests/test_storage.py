"""Tests for the in-memory VFS: tree building, path resolution and operations."""

import os

import pytest

from vfs_storage import (
    HISTORY_LIMIT,
    ROOT_ID,
    VFS,
    DirNode,
    FileNode,
    VFSInvalidArgument,
    VFSIOError,
    VFSNotADirectory,
    VFSNotFound,
    build_tree,
)


class TestBuildTree:
    """Verify the tree mirrors the storage directory."""

    def test_root_is_named_slash(self, vfs):
        assert vfs.root.name == "/"
        assert vfs.root.is_dir

    def test_root_children_follow_disk_order(self, vfs, storage):
        names = [n.name for n in vfs.list_dir(["/"])]
        assert names == os.listdir(storage)

    def test_nested_entries_are_mirrored(self, vfs):
        node = vfs.node(vfs.resolve("/docs/sub/deep.txt"))
        assert isinstance(node, FileNode)
        assert isinstance(vfs.node(vfs.resolve("/docs/sub")), DirNode)

    def test_owner_is_propagated(self, vfs):
        for path in ("/", "/docs", "/docs/sub", "/docs/sub/deep.txt", "/readme.md"):
            assert vfs.node(vfs.resolve(path)).owner == "ilya"

    def test_directories_come_before_their_children(self, storage):
        nodes = []
        root_id = build_tree(str(storage), "root", nodes)
        assert root_id == 0
        for index, node in enumerate(nodes):
            if node.is_dir:
                assert all(child > index for child in node.children)

    def test_missing_storage_raises_io_error(self, tmp_path):
        with pytest.raises(VFSIOError):
            VFS(str(tmp_path / "nope"))

    def test_nested_read_failure_aborts_build(self, storage, monkeypatch):
        """A directory that cannot be listed anywhere in the tree fails the whole build."""
        blocked = os.path.join(str(storage), "docs", "sub")
        real_listdir = os.listdir

        def listdir(path):
            if path == blocked:
                raise PermissionError(13, "Permission denied", path)
            return real_listdir(path)

        monkeypatch.setattr(os, "listdir", listdir)
        with pytest.raises(VFSIOError, match="Permission denied"):
            VFS(str(storage))

    def test_symlink_is_recorded_as_file(self, storage):
        """A link back to an ancestor must not be descended into."""
        os.symlink(str(storage), str(storage / "docs" / "loop"))
        vfs = VFS(str(storage))
        node = vfs.node(vfs.resolve("/docs/loop"))
        assert isinstance(node, FileNode)

    def test_storage_is_not_modified(self, vfs, storage):
        before = sorted(os.listdir(storage))
        vfs.set_owner("/docs", "admin")
        vfs.change_dir(["docs"])
        assert sorted(os.listdir(storage)) == before


class TestResolve:
    """Verify path resolution."""

    def test_slash_resolves_to_root(self, vfs):
        assert vfs.resolve("/") == ROOT_ID
        assert vfs.resolve("") == ROOT_ID

    def test_relative_path_uses_current_path(self, vfs):
        vfs.change_dir(["docs"])
        assert vfs.resolve("sub") == vfs.resolve("/docs/sub")

    def test_repeated_slashes_collapse(self, vfs):
        assert vfs.resolve("//docs///sub/") == vfs.resolve("/docs/sub")

    def test_missing_segment_is_named(self, vfs):
        with pytest.raises(VFSNotFound, match="dir not found: nope"):
            vfs.resolve("/docs/nope/x")

    def test_descent_through_file_fails(self, vfs):
        with pytest.raises(VFSNotADirectory):
            vfs.resolve("/readme.md/x")

    def test_names_are_case_sensitive(self, vfs):
        with pytest.raises(VFSNotFound):
            vfs.resolve("/DOCS")

    def test_dot_dot_is_a_literal_name(self, vfs):
        vfs.change_dir(["docs"])
        with pytest.raises(VFSNotFound, match=r"dir not found: \.\."):
            vfs.change_dir([".."])
        assert vfs.current_path == "/docs"

    @pytest.mark.parametrize("path", [
        "/", "/docs", "/docs/a.txt", "/docs/sub", "/docs/sub/deep.txt", "/other/a.txt",
    ])
    def test_path_of_round_trip(self, vfs, path):
        assert vfs.path_of(vfs.resolve(path)) == path

    def test_same_name_in_different_dirs(self, vfs):
        assert vfs.path_of(vfs.resolve("/other/a.txt")) == "/other/a.txt"
        assert vfs.path_of(vfs.resolve("/docs/a.txt")) == "/docs/a.txt"

    def test_path_of_unknown_node(self, vfs):
        with pytest.raises(VFSNotFound):
            vfs.path_of(10_000)


class TestChangeDir:
    """Verify cd semantics."""

    def test_no_args_goes_to_root(self, vfs):
        vfs.change_dir(["docs"])
        vfs.change_dir([])
        assert vfs.current_path == "/"

    def test_current_path_is_canonical(self, vfs):
        vfs.change_dir(["//docs//sub/"])
        assert vfs.current_path == "/docs/sub"

    def test_too_many_args(self, vfs):
        with pytest.raises(VFSInvalidArgument, match="too many args"):
            vfs.change_dir(["docs", "other"])
        assert vfs.current_path == "/"

    def test_missing_dir_leaves_path_unchanged(self, vfs):
        vfs.change_dir(["docs"])
        with pytest.raises(VFSNotFound, match="dir not found: missing"):
            vfs.change_dir(["missing"])
        assert vfs.current_path == "/docs"

    def test_file_target_is_rejected(self, vfs):
        with pytest.raises(VFSNotADirectory):
            vfs.change_dir(["readme.md"])
        assert vfs.current_path == "/"


class TestListDir:
    """Verify directory listing."""

    def test_defaults_to_current_path(self, vfs, storage):
        vfs.change_dir(["docs"])
        names = [n.name for n in vfs.list_dir([])]
        assert names == os.listdir(storage / "docs")

    def test_file_target_is_invalid(self, vfs):
        with pytest.raises(VFSInvalidArgument, match="readme.md: not a dir"):
            vfs.list_dir(["readme.md"])

    def test_too_many_args(self, vfs):
        with pytest.raises(VFSInvalidArgument):
            vfs.list_dir(["docs", "other"])


class TestSetOwner:
    """Verify ownership changes."""

    def test_changes_only_the_target(self, vfs):
        vfs.set_owner("/docs/a.txt", "admin")
        assert vfs.node(vfs.resolve("/docs/a.txt")).owner == "admin"
        assert vfs.node(vfs.resolve("/other/a.txt")).owner == "ilya"
        assert vfs.node(vfs.resolve("/docs")).owner == "ilya"

    def test_directory_owner(self, vfs):
        vfs.set_owner("docs", "admin")
        assert vfs.node(vfs.resolve("/docs")).owner == "admin"

    def test_missing_target(self, vfs):
        with pytest.raises(VFSNotFound):
            vfs.set_owner("/nope", "admin")


class TestHistory:
    """Verify the bounded history."""

    def test_keeps_most_recent_entries(self, vfs):
        for i in range(35):
            vfs.record(f"cmd {i}")
        assert len(vfs.history) == HISTORY_LIMIT
        assert list(vfs.history) == [f"cmd {i}" for i in range(5, 35)]
