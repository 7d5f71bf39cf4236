[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "repohub"
version = "0.1.0"
description = "Building blocks for a self-hosted Git hosting workspace: repository files, code search, Markdown and notebook rendering, Git helpers, rate limiting, logging and field encryption"
requires-python = ">=3.10"
keywords = [
    "git",
    "repository",
    "code-search",
    "markdown",
    "jupyter",
    "rate-limiting",
    "logging",
    "encryption",
    "wsgi",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Version Control :: Git",
    "Topic :: Internet :: WWW/HTTP :: WSGI :: Middleware",
    "Topic :: Text Processing :: Markup :: Markdown",
]
dependencies = [
    "cryptography",
    "markdown-it-py",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["repohub"]

[tool.hatch.build.targets.sdist]
include = [
    "repohub",
    "tests",
    "pyproject.toml",
]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
