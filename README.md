# repohub

`repohub` is a library of building blocks for a self-hosted Git hosting workspace. It has no command-line entry point. Its modules cover these jobs:

- **Repository files.** Check paths, detect binary content, map extensions to languages, and save, create or delete files inside a repository checkout.
- **Code search.** Search a working tree case-insensitively and return matches with surrounding lines. Build the `WHERE` clause used to list the repositories a user may see.
- **Rendering.** Turn Markdown and Jupyter notebooks into HTML styled with Tailwind/DaisyUI classes.
- **Git helpers.** List branches, find the current branch, show a commit's diff and clone a repository with the `git` executable. Decide whether a smart-HTTP push or pull is allowed.
- **Rate limiting.** Count attempts per client address. Failed attempts count double, and clients over the limit are blocked for a while.
- **Logging.** Write structured application and request logs, as coloured text or JSON lines, and keep a buffer of recent entries.
- **Field encryption.** Encrypt values with AES-GCM under a key derived from the `AUTH_SECRET` environment variable.

It needs Python 3.10 or newer. Its dependencies are `cryptography` and `markdown-it-py`. The Git helpers also need `git` on `PATH`.

## Modules

| Module | What it offers |
| --- | --- |
| `repohub.crypto` | `encrypt`, `decrypt`, `encrypt_field`, `decrypt_field`, `get_encryption_key`, `CryptoError` |
| `repohub.files` | `is_sub_path`, `is_binary`, `language_from_extension`, `split_lines`, `numbered_lines`, `save_file`, `create_file`, `delete_file`, `FileOperationError` |
| `repohub.search` | `search_code`, `context_lines`, `build_repository_search`, `SearchResult` |
| `repohub.render` | `render_markdown`, `render_notebook`, `extract_source`, `language_from_ext`, `NotebookData`, `Cell`, `Output` |
| `repohub.git` | `list_branches`, `current_branch`, `commit_diff`, `clone_repository`, `classify_operation`, `check_access`, `is_git_request`, `normalize_visibility`, `GitOperation`, `GitError` |
| `repohub.ratelimit` | `RateLimiter`, `client_ip`, `AUTH_RATE_LIMITER`, `SIGNUP_RATE_LIMITER` |
| `repohub.applog` | `Logger`, `LogEntry`, `LogLevel`, `client_ip`, `level_from_env`, `APP_LOGGER` |

## Examples

### Encrypting stored values

```python
import os
from repohub.crypto import encrypt, decrypt, decrypt_field

os.environ["AUTH_SECRET"] = "secret"

sealed = encrypt("token")
assert decrypt(sealed) == "token"

# Values that do not decrypt come back unchanged.
assert decrypt_field("plain value") == "plain value"
```

- The key is the SHA-256 digest of `AUTH_SECRET`. If the variable is not set, `get_encryption_key` raises `RuntimeError`.
- An empty string encrypts and decrypts to an empty string.
- `decrypt` raises `CryptoError` for input that is not valid base64, is too short, or fails authentication.

### Working with repository files

```python
from repohub.files import create_file, save_file, delete_file, numbered_lines

relative = create_file("/srv/repos/demo", "docs", "notes.md", "# Notes\n")  # "docs/notes.md"
save_file("/srv/repos/demo", "docs/notes.md", "# Notes\n\nUpdated.\n")

for number, text in numbered_lines("first\nsecond"):
    print(number, text)

parent = delete_file("/srv/repos/demo", "docs/notes.md")  # "docs"
```

`FileOperationError` is raised in these cases:

- a path is empty, contains `..`, or lies outside the repository;
- a file name is empty;
- the file to create already exists;
- the path to delete is a directory.

Deleting a file that does not exist raises `FileNotFoundError`. Written files get mode `0644`.

### Searching code

```python
from repohub.search import search_code, build_repository_search

for result in search_code("/srv/repos/demo", "todo", 100):
    print(result.path, result.line_num, result.line, result.language)

clause, args = build_repository_search("user-1", False, "demo", "public")
```

`search_code` leaves part of the tree out:

- hidden files and the `.git` directory;
- files larger than 1 MiB;
- files with a NUL byte in their first 8 KiB.

It returns at most `limit` results, 100 by default. Each result carries up to two lines of context on each side.

`build_repository_search` returns a SQL `WHERE ... ORDER BY UpdatedAt DESC LIMIT 50` clause and its arguments. Admins see every repository. Other users see their own repositories and the public ones.

### Rendering Markdown and notebooks

```python
from repohub.render import render_markdown, render_notebook

html = render_markdown("# Title\n\nSome *text*.")
with open("analysis.ipynb", encoding="utf-8") as handle:
    notebook_html = render_notebook(handle.read())
```

Markdown rendering supports these features:

- tables and strikethrough;
- bare URLs turned into links;
- task-list checkboxes;
- heading ids;
- smart punctuation and hard line breaks.

Raw HTML in the input is escaped. If a notebook cannot be parsed, `render_notebook` returns an error alert instead of raising.

### Git access decisions

```python
from repohub.git import GitError, classify_operation, check_access, is_git_request

operation = classify_operation("/repo/demo/git-receive-pack", "")
try:
    check_access(operation, False, "public")
except GitError as exc:
    print(exc)  # only admins can push to repositories
```

`check_access` applies these rules:

- only admins may push;
- anyone may pull a public repository;
- only admins may pull any other repository.

`is_git_request` recognises smart-HTTP Git paths under `/repo/`. `current_branch` falls back to the first branch, then to `"main"`.

### Rate limiting

A `RateLimiter(max_attempts, window, block_duration)` takes its durations in seconds:

- `allow(ip)` counts one attempt and tells whether it may proceed;
- `record_failure(ip)` adds two to the count;
- `reset(ip)` forgets a client;
- `purge_stale(max_age)` drops old entries;
- `stats()` reports the number of tracked and blocked clients and the limiter's settings.

`middleware(app)` wraps a WSGI application and answers `429 Too Many Requests` to blocked clients.

Importing `repohub.ratelimit` creates `AUTH_RATE_LIMITER` (5 attempts in 15 minutes, 30-minute block) and `SIGNUP_RATE_LIMITER` (3 in an hour, 1-hour block). Each starts a daemon thread that purges entries older than an hour every five minutes.

### Logging

`Logger` writes to stdout, or to the `stream` you pass. It keeps the last `max_buffer` entries (1000 by default), which you read back with `recent_logs(limit)` and `log_stats()`.

Messages are written with `debug`, `info`, `warn`, `error` and `fatal`. `fatal` logs the message, then raises `SystemExit(1)`.

`log_request` records one HTTP request. It takes the duration in seconds and logs it in milliseconds. `middleware(app)` wraps a WSGI application and logs every request except those under `/public/`, `/health` and `/favicon.ico`.

Environment variables change the output:

- `LOG_FORMAT=json` writes JSON lines;
- `NO_COLOR` turns colours off;
- `DEBUG=true` or `LOG_LEVEL` set the minimum level of the shared `APP_LOGGER` (see `level_from_env`).

Importing `repohub.applog` creates `APP_LOGGER`, which logs "Logger initialized".

## What it does not do

`repohub` is not a complete Git hosting service. In particular:

- It has no web server, routes, pages or templates.
- It has no database or models for repositories, users or access tokens. `build_repository_search` only builds a query string.
- It does not authenticate users.
- It does not serve the Git smart-HTTP protocol. `classify_operation` and `check_access` only make the access decision.

## Running the tests

Install the package with its `test` extra, then run `pytest` from the project root.