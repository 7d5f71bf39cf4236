from pathlib import Path

from repohub.search import (
    SearchResult,
    build_repository_search,
    context_lines,
    search_code,
)


def _write(root: Path, relative: str, content) -> None:
    target = root / relative
    target.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        target.write_bytes(content)
    else:
        target.write_text(content, encoding="utf-8")


def test_context_lines_in_middle():
    lines = ["a", "b", "c", "d", "e", "f", "g"]
    assert context_lines(lines, 3, 2) == ["b", "c", "d", "e", "f"]


def test_context_lines_clamped_at_edges():
    lines = ["a", "b", "c"]
    assert context_lines(lines, 0, 2) == ["a", "b", "c"]
    assert context_lines(lines, 2, 1) == ["b", "c"]


def test_empty_query_returns_nothing(tmp_path):
    _write(tmp_path, "main.go", "package main\n")
    assert search_code(tmp_path, "", 100) == []


def test_finds_match_case_insensitively(tmp_path):
    _write(tmp_path, "main.go", "package main\nfunc Hello() {}\n")
    results = search_code(tmp_path, "hello", 100)
    assert len(results) == 1
    result = results[0]
    assert isinstance(result, SearchResult)
    assert result.file == "main.go"
    assert result.path == "main.go"
    assert result.line == "func Hello() {}"
    assert result.line_num == 2
    assert result.language == "go"
    assert "package main" in result.context


def test_query_is_literal_not_pattern(tmp_path):
    _write(tmp_path, "notes.txt", "a.b\naxb\n")
    results = search_code(tmp_path, "a.b", 100)
    assert [r.line for r in results] == ["a.b"]


def test_skips_hidden_git_and_binary(tmp_path):
    _write(tmp_path, ".hidden", "needle\n")
    _write(tmp_path, ".git/config", "needle\n")
    _write(tmp_path, "blob.bin", b"needle\x00\x01")
    _write(tmp_path, "src/app.py", "needle = 1\n")
    results = search_code(tmp_path, "needle", 100)
    assert [r.path for r in results] == [str(Path("src") / "app.py")]
    assert results[0].language == "python"


def test_hidden_directories_other_than_git_are_searched(tmp_path):
    _write(tmp_path, ".github/workflow.yml", "needle: true\n")
    results = search_code(tmp_path, "needle", 100)
    assert [r.file for r in results] == ["workflow.yml"]


def test_skips_large_files(tmp_path):
    _write(tmp_path, "big.txt", "needle\n" + "x" * (1024 * 1024 + 1))
    _write(tmp_path, "small.txt", "needle\n")
    results = search_code(tmp_path, "needle", 100)
    assert [r.file for r in results] == ["small.txt"]


def test_results_follow_lexical_order(tmp_path):
    _write(tmp_path, "b.txt", "needle\n")
    _write(tmp_path, "a/z.txt", "needle\n")
    _write(tmp_path, "c.txt", "needle\n")
    results = search_code(tmp_path, "needle", 100)
    assert [r.path for r in results] == [
        str(Path("a") / "z.txt"),
        "b.txt",
        "c.txt",
    ]


def test_limit_caps_results(tmp_path):
    _write(tmp_path, "many.txt", "\n".join(["needle"] * 20))
    results = search_code(tmp_path, "needle", 5)
    assert len(results) == 5
    assert [r.line_num for r in results] == sorted(r.line_num for r in results)


def test_missing_directory_yields_no_results(tmp_path):
    assert search_code(tmp_path / "absent", "needle", 100) == []


def test_repository_search_for_admin_without_filters():
    clause, args = build_repository_search("u1", True, "", "all")
    assert clause == "WHERE 1=1 ORDER BY UpdatedAt DESC LIMIT 50"
    assert args == []


def test_repository_search_for_user_with_query_and_filter():
    clause, args = build_repository_search("u1", False, "api", "private")
    assert clause.startswith("WHERE (UserID = ? OR Visibility = 'public') AND ")
    assert "(LOWER(Name) LIKE LOWER(?) OR LOWER(Description) LIKE LOWER(?))" in clause
    assert "Visibility = 'private'" in clause
    assert args == ["u1", "%api%", "%api%"]


def test_repository_search_public_filter():
    clause, args = build_repository_search("u2", True, "", "public")
    assert "AND Visibility = 'public' ORDER BY" in clause
    assert clause.count("?") == len(args)