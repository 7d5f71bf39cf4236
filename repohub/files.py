"""File handling inside a repository working copy."""

from __future__ import annotations

import os
from pathlib import Path

BINARY_SNIFF_SIZE = 8192

# Language name -> the file extensions (without the dot) that belong to it.
_EXTENSIONS_BY_LANGUAGE = {
    "go": "go",
    "javascript": "js jsx",
    "typescript": "ts tsx",
    "python": "py",
    "ruby": "rb",
    "java": "java",
    "c": "c h",
    "cpp": "cpp hpp",
    "csharp": "cs",
    "php": "php",
    "html": "html",
    "css": "css",
    "scss": "scss",
    "json": "json",
    "xml": "xml",
    "yaml": "yaml yml",
    "markdown": "md",
    "bash": "sh",
    "sql": "sql",
    "rust": "rs",
    "swift": "swift",
    "kotlin": "kt",
    "r": "r",
    "objc": "m",
    "vue": "vue",
    "jupyter": "ipynb",
}

_LANGUAGE_BY_EXTENSION = {
    f".{suffix}": language
    for language, suffixes in _EXTENSIONS_BY_LANGUAGE.items()
    for suffix in suffixes.split()
}


class FileOperationError(Exception):
    """Raised when a file operation on a repository is refused."""


def _join(*parts: str) -> str:
    """Join non-empty path elements and normalise the result."""
    present = [str(part) for part in parts if str(part)]
    return os.path.normpath(os.path.join(*present)) if present else ""


def is_sub_path(parent: str | os.PathLike, path: str | os.PathLike) -> bool:
    """Tell whether ``path`` lies within ``parent``."""
    parent, path = os.fspath(parent), os.fspath(path)
    if os.path.isabs(parent) != os.path.isabs(path):
        return False
    try:
        relative = os.path.relpath(path, parent)
    except ValueError:
        return False
    return not relative.startswith(("..", os.sep))


def is_binary(content: bytes) -> bool:
    """Tell whether content looks binary: a NUL byte in its first 8 KiB."""
    return b"\x00" in content[:BINARY_SNIFF_SIZE]


def language_from_extension(ext: str) -> str:
    """Map a file extension to a language name, or ``"text"``."""
    return _LANGUAGE_BY_EXTENSION.get(ext.lower(), "text")


def split_lines(content: str) -> list[str]:
    """Split file content into lines; empty content has no lines."""
    return content.split("\n") if content else []


def numbered_lines(content: str) -> list[tuple[int, str]]:
    """Pair each line of content with its 1-based line number."""
    return list(enumerate(split_lines(content), start=1))


def _resolve_existing(repo: str, file_path: str) -> Path:
    """Validate a repository-relative path and return its full location."""
    if not file_path:
        raise FileOperationError("file path required")
    if ".." in file_path:
        raise FileOperationError("invalid file path")
    full = _join(repo, file_path)
    if not is_sub_path(repo, full):
        raise FileOperationError("file outside repository")
    return Path(full)


def _write(target: Path, content: str) -> None:
    target.write_bytes(content.encode("utf-8"))
    target.chmod(0o644)


def save_file(repo_path: str | os.PathLike, file_path: str, content: str) -> Path:
    """Overwrite a file in the repository and return its full path."""
    target = _resolve_existing(os.fspath(repo_path), file_path)
    _write(target, content)
    return target


def create_file(
    repo_path: str | os.PathLike, directory: str, name: str, content: str
) -> str:
    """Create a new file and return its path relative to the repository."""
    repo = os.fspath(repo_path)
    if not name:
        raise FileOperationError("file name required")
    in_subdir = bool(directory) and directory != "."
    full = _join(repo, directory, name) if in_subdir else _join(repo, name)
    if not is_sub_path(repo, full):
        raise FileOperationError("invalid file path")
    target = Path(full)
    if target.exists():
        raise FileOperationError("file already exists")
    target.parent.mkdir(parents=True, exist_ok=True)
    _write(target, content)
    return full.removeprefix(repo + os.sep)


def delete_file(repo_path: str | os.PathLike, file_path: str) -> str:
    """Delete a file and return the directory it was in, relative to the repository.

    Raises FileNotFoundError when the file does not exist.
    """
    target = _resolve_existing(os.fspath(repo_path), file_path)
    if target.is_dir():
        raise FileOperationError("cannot delete directories")
    target.unlink()
    return os.path.dirname(os.path.normpath(file_path)) or "."