import pytest

from vfs_storage import VFS


@pytest.fixture
def storage(tmp_path):
    """A small storage directory:

    /docs/a.txt
    /docs/sub/deep.txt
    /other/a.txt
    /readme.md
    """
    docs = tmp_path / "docs"
    (docs / "sub").mkdir(parents=True)
    (docs / "a.txt").write_text("a")
    (docs / "sub" / "deep.txt").write_text("deep")
    (tmp_path / "other").mkdir()
    (tmp_path / "other" / "a.txt").write_text("other a")
    (tmp_path / "readme.md").write_text("readme")
    return tmp_path


@pytest.fixture
def vfs(storage):
    return VFS(str(storage), user="ilya")
