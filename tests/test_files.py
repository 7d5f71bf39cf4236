import pytest

from repohub.files import (
    FileOperationError,
    create_file,
    delete_file,
    is_binary,
    is_sub_path,
    language_from_extension,
    numbered_lines,
    save_file,
    split_lines,
)


@pytest.mark.parametrize(
    "parent,path,expected",
    [
        ("/repo", "/repo/a.txt", True),
        ("/repo", "/repo", True),
        ("/repo", "/repo/sub/b.txt", True),
        ("/repo", "/other/a.txt", False),
        ("/repo", "/repo/../etc/passwd", False),
        ("/repo", "relative/a.txt", False),
    ],
)
def test_is_sub_path(parent, path, expected):
    assert is_sub_path(parent, path) is expected


def test_is_binary():
    assert is_binary(b"") is False
    assert is_binary(b"plain text\n") is False
    assert is_binary(b"ab\x00cd") is True


def test_is_binary_only_checks_first_8k():
    assert is_binary(b"a" * 8192 + b"\x00") is False
    assert is_binary(b"a" * 8191 + b"\x00") is True


@pytest.mark.parametrize(
    "ext,lang",
    [(".go", "go"), (".PY", "python"), (".yml", "yaml"), (".ipynb", "jupyter"), (".xyz", "text"), ("", "text")],
)
def test_language_from_extension(ext, lang):
    assert language_from_extension(ext) == lang


def test_split_lines():
    assert split_lines("") == []
    assert split_lines("a\nb\n") == ["a", "b", ""]


def test_numbered_lines():
    assert numbered_lines("x\ny") == [(1, "x"), (2, "y")]
    assert numbered_lines("") == []


def test_save_file_overwrites(tmp_path):
    (tmp_path / "a.txt").write_text("old")
    written = save_file(tmp_path, "a.txt", "new")
    assert written == tmp_path / "a.txt"
    assert (tmp_path / "a.txt").read_text() == "new"


@pytest.mark.parametrize(
    "path,message",
    [("", "file path required"), ("../x", "invalid file path"), ("a/../../b", "invalid file path")],
)
def test_save_file_rejects(tmp_path, path, message):
    with pytest.raises(FileOperationError, match=message):
        save_file(tmp_path, path, "data")


def test_save_file_absolute_path_stays_inside(tmp_path):
    written = save_file(tmp_path, "/inner.txt", "data")
    assert written == tmp_path / "inner.txt"
    assert written.read_text() == "data"


def test_create_file_in_root(tmp_path):
    rel = create_file(tmp_path, ".", "new.txt", "hi")
    assert rel == "new.txt"
    assert (tmp_path / "new.txt").read_text() == "hi"


def test_create_file_in_subdirectory(tmp_path):
    rel = create_file(tmp_path, "docs/guide", "intro.md", "# Intro")
    assert rel == "docs/guide/intro.md"
    assert (tmp_path / "docs" / "guide" / "intro.md").read_text() == "# Intro"


def test_create_file_errors(tmp_path):
    with pytest.raises(FileOperationError, match="file name required"):
        create_file(tmp_path, "", "", "x")
    create_file(tmp_path, "", "dup.txt", "x")
    with pytest.raises(FileOperationError, match="file already exists"):
        create_file(tmp_path, "", "dup.txt", "y")
    with pytest.raises(FileOperationError, match="invalid file path"):
        create_file(tmp_path, "..", "escape.txt", "x")


def test_delete_file_returns_parent(tmp_path):
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "f.txt").write_text("x")
    (tmp_path / "top.txt").write_text("x")
    assert delete_file(tmp_path, "sub/f.txt") == "sub"
    assert delete_file(tmp_path, "top.txt") == "."
    assert not (tmp_path / "sub" / "f.txt").exists()
    assert not (tmp_path / "top.txt").exists()


def test_delete_file_errors(tmp_path):
    (tmp_path / "dir").mkdir()
    with pytest.raises(FileOperationError, match="cannot delete directories"):
        delete_file(tmp_path, "dir")
    with pytest.raises(FileNotFoundError):
        delete_file(tmp_path, "missing.txt")
    with pytest.raises(FileOperationError, match="invalid file path"):
        delete_file(tmp_path, "../x")
    with pytest.raises(FileOperationError, match="file path required"):
        delete_file(tmp_path, "")