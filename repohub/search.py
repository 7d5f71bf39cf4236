"""Code search inside a repository working copy and repository list queries."""

from __future__ import annotations

import os
import re
import stat
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

from repohub.files import is_binary, language_from_extension

MAX_RESULTS = 100
MAX_FILE_SIZE = 1024 * 1024
CONTEXT_SIZE = 2
REPOSITORY_SEARCH_LIMIT = 50


@dataclass
class SearchResult:
    """One line of a file that matched a code search."""

    file: str
    path: str
    line_num: int
    line: str
    context: list[str] = field(default_factory=list)
    language: str = "text"


def context_lines(lines: list[str], index: int, size: int) -> list[str]:
    """Return up to ``size`` lines on each side of ``lines[index]``, the line included."""
    start = max(index - size, 0)
    end = min(index + size + 1, len(lines))
    return lines[start:end]


def _walk_files(directory: str) -> Iterator[tuple[os.DirEntry, os.stat_result]]:
    """Yield non-directory entries below ``directory`` in lexical order.

    Directories named ``.git`` are not entered; symbolic links are not followed.
    """
    try:
        with os.scandir(directory) as iterator:
            entries = sorted(iterator, key=lambda entry: entry.name)
    except OSError:
        return
    for entry in entries:
        try:
            info = entry.stat(follow_symlinks=False)
        except OSError:
            continue
        if stat.S_ISDIR(info.st_mode):
            if entry.name != ".git":
                yield from _walk_files(entry.path)
        else:
            yield entry, info


def search_code(
    repo_path: str | os.PathLike, query: str, limit: int = MAX_RESULTS
) -> list[SearchResult]:
    """Search the files of a repository for ``query``, ignoring case.

    Hidden files, files over 1 MiB and binary files are skipped. At most
    ``limit`` results are returned, each with two lines of context around it.
    """
    if not query:
        return []
    root = os.fspath(repo_path)
    pattern = re.compile(re.escape(query), re.IGNORECASE)
    results: list[SearchResult] = []
    for entry, info in _walk_files(root):
        if entry.name.startswith("."):
            continue
        if info.st_size > MAX_FILE_SIZE:
            continue
        try:
            content = Path(entry.path).read_bytes()
        except OSError:
            continue
        if is_binary(content):
            continue
        relative = os.path.relpath(entry.path, root)
        language = language_from_extension(os.path.splitext(entry.name)[1])
        lines = content.decode("utf-8", errors="replace").split("\n")
        for index, line in enumerate(lines):
            if not pattern.search(line):
                continue
            results.append(
                SearchResult(
                    file=entry.name,
                    path=relative,
                    line_num=index + 1,
                    line=line,
                    context=context_lines(lines, index, CONTEXT_SIZE),
                    language=language,
                )
            )
            if len(results) >= limit:
                return results
    return results


def build_repository_search(
    user_id: str, is_admin: bool, query: str, visibility_filter: str
) -> tuple[str, list[str]]:
    """Build the WHERE clause and arguments for listing repositories a user may see.

    Admins see every repository, others their own and public ones. ``query``
    matches names and descriptions; ``visibility_filter`` may be ``"public"``
    or ``"private"``, anything else leaves visibility unrestricted.
    """
    conditions: list[str] = []
    args: list[str] = []
    if is_admin:
        conditions.append("1=1")
    else:
        conditions.append("(UserID = ? OR Visibility = 'public')")
        args.append(user_id)
    if query:
        conditions.append(
            "(LOWER(Name) LIKE LOWER(?) OR LOWER(Description) LIKE LOWER(?))"
        )
        pattern = f"%{query}%"
        args.extend([pattern, pattern])
    if visibility_filter == "public":
        conditions.append("Visibility = 'public'")
    elif visibility_filter == "private":
        conditions.append("Visibility = 'private'")
    clause = (
        "WHERE "
        + " AND ".join(conditions)
        + f" ORDER BY UpdatedAt DESC LIMIT {REPOSITORY_SEARCH_LIMIT}"
    )
    return clause, args