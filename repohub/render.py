"""HTML rendering of Markdown documents and Jupyter notebooks."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from markdown_it import MarkdownIt
from markdown_it.token import Token

_PRE_CLASS = '<pre class="bg-base-200 p-4 rounded overflow-x-auto">'

_TAG_CLASSES = (
    ("<pre>", _PRE_CLASS),
    ("<code>", '<code class="bg-base-200 px-1 rounded text-sm">'),
    ("<table>", '<table class="table table-zebra">'),
    ("<thead>", '<thead class="bg-base-200">'),
    ("<h1", '<h1 class="text-3xl font-bold mt-6 mb-4"'),
    ("<h2", '<h2 class="text-2xl font-semibold mt-5 mb-3"'),
    ("<h3", '<h3 class="text-xl font-semibold mt-4 mb-2"'),
    ("<h4", '<h4 class="text-lg font-medium mt-3 mb-2"'),
    ("<ul>", '<ul class="list-disc pl-6 space-y-1">'),
    ("<ol>", '<ol class="list-decimal pl-6 space-y-1">'),
    ("<blockquote>", '<blockquote class="border-l-4 border-primary pl-4 italic my-4">'),
)

_LINK_RE = re.compile(r'<a href="([^"]+)">')
_CODE_BLOCK_RE = re.compile(r'<pre class="[^"]+"><code class="language-(\w+)">')
_URL_RE = re.compile(r"(?:https?://|ftp://|www\.)[^\s<>]*[^\s<>?!.,:*_~'\")\]]")

_CHECKED_BOX = '<input type="checkbox" checked disabled class="checkbox checkbox-sm mr-2"> '
_UNCHECKED_BOX = '<input type="checkbox" disabled class="checkbox checkbox-sm mr-2"> '

_ESCAPES = str.maketrans(
    {"\0": "\ufffd", '"': "&#34;", "'": "&#39;", "&": "&amp;", "<": "&lt;", ">": "&gt;"}
)

_EXT_LANGUAGES = {
    ".go": "go",
    ".js": "javascript",
    ".javascript": "javascript",
    ".ts": "typescript",
    ".typescript": "typescript",
    ".py": "python",
    ".python": "python",
    ".rb": "ruby",
    ".ruby": "ruby",
    ".java": "java",
    ".c": "c",
    ".cpp": "cpp",
    ".cc": "cpp",
    ".cxx": "cpp",
    ".cs": "csharp",
    ".php": "php",
    ".rs": "rust",
    ".rust": "rust",
    ".sh": "bash",
    ".bash": "bash",
    ".sql": "sql",
    ".html": "html",
    ".htm": "html",
    ".css": "css",
    ".json": "json",
    ".xml": "xml",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".md": "markdown",
    ".markdown": "markdown",
    ".dockerfile": "dockerfile",
}


def _escape(text: str) -> str:
    return text.translate(_ESCAPES)


def language_from_ext(ext: str) -> str:
    """Map a file extension to a highlighting language, or ``""`` if unknown."""
    return _EXT_LANGUAGES.get(ext.lower(), "")


# --- Markdown -----------------------------------------------------------------


def _linkify_rule(state: Any) -> None:
    """Turn bare URLs in text into links."""
    md = state.md
    for block in state.tokens:
        if block.type != "inline" or not block.children:
            continue
        children: list[Token] = []
        depth = 0
        for child in block.children:
            if child.type == "link_open":
                depth += 1
            elif child.type == "link_close":
                depth -= 1
            if child.type != "text" or depth > 0 or not _URL_RE.search(child.content):
                children.append(child)
                continue
            position = 0
            for match in _URL_RE.finditer(child.content):
                url = match.group(0)
                href = "http://" + url if url.startswith("www.") else url
                href = md.normalizeLink(href)
                if not md.validateLink(href):
                    continue
                if match.start() > position:
                    children.append(
                        Token("text", "", 0, content=child.content[position:match.start()],
                              level=child.level)
                    )
                children.append(
                    Token("link_open", "a", 1, attrs={"href": href}, markup="linkify",
                          info="auto", level=child.level)
                )
                children.append(
                    Token("text", "", 0, content=md.normalizeLinkText(url),
                          level=child.level + 1)
                )
                children.append(
                    Token("link_close", "a", -1, markup="linkify", info="auto",
                          level=child.level)
                )
                position = match.end()
            if position < len(child.content):
                children.append(
                    Token("text", "", 0, content=child.content[position:], level=child.level)
                )
        block.children = children


def _task_list_rule(state: Any) -> None:
    """Render ``[ ]`` and ``[x]`` at the start of list items as checkboxes."""
    tokens = state.tokens
    for index, tok in enumerate(tokens):
        if tok.type != "inline" or index < 2 or not tok.children:
            continue
        if tokens[index - 1].type != "paragraph_open":
            continue
        if tokens[index - 2].type != "list_item_open":
            continue
        first = tok.children[0]
        if first.type != "text" or len(first.content) < 4:
            continue
        marker, rest = first.content[:3], first.content[3:]
        if marker not in ("[ ]", "[x]", "[X]") or rest[0] not in " \t":
            continue
        box = _UNCHECKED_BOX if marker == "[ ]" else _CHECKED_BOX
        first.content = rest.lstrip(" \t")
        tok.children.insert(0, Token("html_inline", "", 0, content=box, level=first.level))


def _slug(text: str) -> str:
    text = re.sub(r"\s+", "-", text.strip().lower())
    slug = "".join(ch for ch in text if ch.isalnum() or ch in "-_")
    return slug or "heading"


def _heading_id_rule(state: Any) -> None:
    """Give every heading a unique id derived from its text."""
    seen: set[str] = set()
    tokens = state.tokens
    for index, tok in enumerate(tokens):
        if tok.type != "heading_open" or index + 1 >= len(tokens):
            continue
        inline = tokens[index + 1]
        text = "".join(
            child.content for child in inline.children or []
            if child.type in ("text", "code_inline")
        )
        base = _slug(text)
        slug, counter = base, 0
        while slug in seen:
            counter += 1
            slug = f"{base}-{counter}"
        seen.add(slug)
        tok.attrSet("id", slug)


def _build_markdown() -> MarkdownIt:
    md = MarkdownIt(
        "commonmark",
        {"breaks": True, "html": False, "xhtmlOut": True, "typographer": True},
    )
    md.enable(["table", "strikethrough", "replacements", "smartquotes"])
    md.core.ruler.after("inline", "repohub_linkify", _linkify_rule)
    md.core.ruler.push("repohub_tasklist", _task_list_rule)
    md.core.ruler.push("repohub_heading_ids", _heading_id_rule)
    return md


_MARKDOWN = _build_markdown()


def _go_ext(name: str) -> str:
    dot = name.rfind(".")
    return name[dot:] if dot > name.rfind("/") else ""


def render_markdown(content: str) -> str:
    """Convert Markdown to HTML styled with the site's utility classes.

    Raw HTML in the input is escaped rather than passed through.
    """
    try:
        html = _MARKDOWN.render(content)
    except Exception:  # noqa: BLE001 - any parser failure falls back to plain text
        return _escape(content)

    for plain, styled in _TAG_CLASSES:
        html = html.replace(plain, styled)
    html = _LINK_RE.sub(r'<a href="\1" class="link link-primary">', html)
    html = html.replace("<p>", '<p class="mb-4">')
    html = _CODE_BLOCK_RE.sub(_PRE_CLASS + r'<code class="language-\1">', html)

    ext = _go_ext(content)
    if ext and "language-" not in html:
        lang = language_from_ext(ext)
        if lang:
            html = html.replace(
                _PRE_CLASS + "<code>", _PRE_CLASS + f'<code class="language-{lang}">'
            )
    return html


# --- Notebooks ------------------------------------------------------------------


@dataclass
class Output:
    """One output of a notebook code cell."""

    output_type: str = ""
    text: Any = None
    data: dict[str, Any] | None = None
    execution_count: int | None = None
    name: str = ""
    ename: str = ""
    evalue: str = ""
    traceback: list[str] = field(default_factory=list)


@dataclass
class Cell:
    """One notebook cell."""

    cell_type: str = ""
    source: Any = None
    metadata: dict[str, Any] = field(default_factory=dict)
    execution_count: int | None = None
    outputs: list[Output] = field(default_factory=list)


@dataclass
class NotebookData:
    """A parsed notebook document."""

    cells: list[Cell] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    nbformat: int = 0


class _NotebookError(ValueError):
    pass


def _kind(value: Any) -> str:
    return type(value).__name__


def _obj(value: Any, name: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise _NotebookError(f"cannot read {_kind(value)} as object for {name}")
    return value


def _opt_map(value: Any, name: str) -> dict[str, Any] | None:
    return None if value is None else _obj(value, name)


def _arr(value: Any, name: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise _NotebookError(f"cannot read {_kind(value)} as array for {name}")
    return value


def _str(value: Any, name: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise _NotebookError(f"cannot read {_kind(value)} as string for {name}")
    return value


def _int(value: Any, name: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise _NotebookError(f"cannot read {_kind(value)} as integer for {name}")
    return value


def _parse_output(raw: Any) -> Output:
    obj = _obj(raw, "output")
    return Output(
        output_type=_str(obj.get("output_type"), "output_type"),
        text=obj.get("text"),
        data=_opt_map(obj.get("data"), "data"),
        execution_count=_int(obj.get("execution_count"), "execution_count"),
        name=_str(obj.get("name"), "name"),
        ename=_str(obj.get("ename"), "ename"),
        evalue=_str(obj.get("evalue"), "evalue"),
        traceback=[_str(line, "traceback") for line in _arr(obj.get("traceback"), "traceback")],
    )


def _parse_cell(raw: Any) -> Cell:
    obj = _obj(raw, "cell")
    return Cell(
        cell_type=_str(obj.get("cell_type"), "cell_type"),
        source=obj.get("source"),
        metadata=_obj(obj.get("metadata"), "metadata"),
        execution_count=_int(obj.get("execution_count"), "execution_count"),
        outputs=[_parse_output(item) for item in _arr(obj.get("outputs"), "outputs")],
    )


def _parse_notebook(content: str) -> NotebookData:
    obj = _obj(json.loads(content), "notebook")
    return NotebookData(
        cells=[_parse_cell(item) for item in _arr(obj.get("cells"), "cells")],
        metadata=_obj(obj.get("metadata"), "metadata"),
        nbformat=_int(obj.get("nbformat"), "nbformat") or 0,
    )


def _format_float(value: float) -> str:
    if value == 0:
        return "0"
    sign, digits, exponent = Decimal(repr(value)).normalize().as_tuple()
    ds = "".join(map(str, digits))
    nd = len(ds)
    dp = nd + exponent
    x = dp - 1
    if x < -4 or x >= 6:
        mantissa = ds[0] + ("." + ds[1:] if nd > 1 else "")
        text = f"{mantissa}e{'-' if x < 0 else '+'}{abs(x):02d}"
    elif dp <= 0:
        text = "0." + "0" * (-dp) + ds
    elif dp >= nd:
        text = ds + "0" * (dp - nd)
    else:
        text = ds[:dp] + "." + ds[dp:]
    return ("-" if sign else "") + text


def _format_value(value: Any) -> str:
    if value is None:
        return "<nil>"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return _format_float(float(value))
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return "[" + " ".join(_format_value(item) for item in value) + "]"
    if isinstance(value, dict):
        pairs = (f"{key}:{_format_value(value[key])}" for key in sorted(value))
        return "map[" + " ".join(pairs) + "]"
    return str(value)


def extract_source(source: Any) -> str:
    """Return notebook text held as a string, a list of strings, or another value."""
    if source is None:
        return ""
    if isinstance(source, str):
        return source
    if isinstance(source, list):
        return "".join(line for line in source if isinstance(line, str))
    return _format_value(source)


def _render_markdown_cell(cell: Cell) -> str:
    rendered = render_markdown(extract_source(cell.source))
    return (
        '\n\t\t<div class="prose prose-lg max-w-none">\n'
        f"\t\t\t{rendered}\n"
        "\t\t</div>\n\t"
    )


def _render_output(output: Output) -> str:
    parts: list[str] = []
    if output.output_type == "stream":
        text = extract_source(output.text)
        stream_class = "bg-error/10 text-error" if output.name == "stderr" else "bg-base-200"
        parts.append(
            f'\n\t\t\t<div class="{stream_class} p-3 rounded mb-2">\n'
            f'\t\t\t\t<div class="text-xs text-base-content/60 mb-1">{output.name}</div>\n'
            f'\t\t\t\t<pre class="whitespace-pre-wrap font-mono text-sm">{_escape(text)}</pre>\n'
            "\t\t\t</div>\n\t\t"
        )
    elif output.output_type in ("execute_result", "display_data"):
        if output.data is not None:
            if "text/html" in output.data:
                html = extract_source(output.data["text/html"])
                parts.append(
                    '\n\t\t\t\t\t<div class="output-html border border-base-300 rounded p-3 mb-2">\n'
                    f"\t\t\t\t\t\t{html}\n"
                    "\t\t\t\t\t</div>\n\t\t\t\t"
                )
            elif "text/plain" in output.data:
                text = extract_source(output.data["text/plain"])
                prefix = ""
                if output.execution_count is not None:
                    prefix = (
                        '<span class="badge badge-sm badge-ghost">'
                        f"Out [{output.execution_count}]</span> "
                    )
                parts.append(
                    '\n\t\t\t\t\t<div class="bg-base-200 p-3 rounded mb-2">\n'
                    f"\t\t\t\t\t\t{prefix}\n"
                    '\t\t\t\t\t\t<pre class="whitespace-pre-wrap font-mono text-sm">'
                    f"{_escape(text)}</pre>\n"
                    "\t\t\t\t\t</div>\n\t\t\t\t"
                )
            if "image/png" in output.data:
                image = extract_source(output.data["image/png"])
                parts.append(
                    '\n\t\t\t\t\t<div class="mb-2">\n'
                    f'\t\t\t\t\t\t<img src="data:image/png;base64,{image}" class="max-w-full" />\n'
                    "\t\t\t\t\t</div>\n\t\t\t\t"
                )
    elif output.output_type == "error":
        parts.append(
            '\n\t\t\t<div class="alert alert-error mb-2">\n'
            "\t\t\t\t<div>\n"
            f'\t\t\t\t\t<div class="font-bold">{_escape(output.ename)}: '
            f"{_escape(output.evalue)}</div>\n"
            f'\t\t\t\t\t<pre class="text-xs mt-2">{_escape(chr(10).join(output.traceback))}</pre>\n'
            "\t\t\t\t</div>\n"
            "\t\t\t</div>\n\t\t"
        )
    return "".join(parts)


def _render_code_cell(cell: Cell) -> str:
    parts: list[str] = []
    source = extract_source(cell.source)
    if cell.execution_count is not None:
        parts.append(
            '\n\t\t\t<div class="flex items-center gap-2 mb-2">\n'
            f'\t\t\t\t<span class="badge badge-sm badge-ghost">In [{cell.execution_count}]</span>\n'
            '\t\t\t\t<span class="text-xs text-base-content/60">Code</span>\n'
            "\t\t\t</div>\n\t\t"
        )
    if source:
        lang = "python"
        kernel_spec = cell.metadata.get("kernel_spec")
        if isinstance(kernel_spec, dict) and isinstance(kernel_spec.get("language"), str):
            lang = kernel_spec["language"]
        parts.append(
            '\n\t\t\t<div class="border border-base-300 rounded-lg overflow-hidden mb-3">\n'
            f'\t\t\t\t<pre class="line-numbers"><code class="language-{lang}">'
            f"{_escape(source)}</code></pre>\n"
            "\t\t\t</div>\n\t\t"
        )
    if cell.outputs:
        parts.append('<div class="mt-3">')
        parts.extend(_render_output(output) for output in cell.outputs)
        parts.append("</div>")
    return "".join(parts)


def _render_raw_cell(cell: Cell) -> str:
    source = extract_source(cell.source)
    return (
        '\n\t\t<div class="text-xs text-base-content/60 mb-2">Raw</div>\n'
        f"\t\t{_PRE_CLASS}{_escape(source)}</pre>\n\t"
    )


def _render_cell(cell: Cell) -> str:
    if cell.cell_type == "markdown":
        body = _render_markdown_cell(cell)
    elif cell.cell_type == "code":
        body = _render_code_cell(cell)
    elif cell.cell_type == "raw":
        body = _render_raw_cell(cell)
    else:
        body = f'<div class="text-base-content/60">Unknown cell type: {cell.cell_type}</div>'
    return (
        '<div class="card bg-base-100 mb-4 border border-base-300">'
        '<div class="card-body p-4">'
        f"{body}</div></div>"
    )


def render_notebook(content: str) -> str:
    """Render notebook JSON as HTML; a parse failure yields an error alert."""
    try:
        notebook = _parse_notebook(content)
    except (ValueError, RecursionError) as exc:
        return (
            '<div class="alert alert-error">\n'
            '\t\t\t\t<svg xmlns="http://www.w3.org/2000/svg" class="stroke-current shrink-0 h-6 w-6" '
            'fill="none" viewBox="0 0 24 24">\n'
            '\t\t\t\t\t<path stroke-linecap="round" stroke-linejoin="round" stroke-width="2" '
            'd="M10 14l2-2m0 0l2-2m-2 2l-2-2m2 2l2 2m7-2a9 9 0 11-18 0 9 9 0 0118 0z" />\n'
            "\t\t\t\t</svg>\n"
            f"\t\t\t\t<span>Failed to parse notebook: {_escape(str(exc))}</span>\n"
            "\t\t\t</div>"
        )
    cells = "".join(_render_cell(cell) for cell in notebook.cells)
    return f'<div class="notebook-container">{cells}</div>'