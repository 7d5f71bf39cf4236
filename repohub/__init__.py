"""Building blocks for a self-hosted Git hosting workspace: repository files,
code search, Markdown and notebook rendering, Git helpers, rate limiting,
logging and field encryption."""

__version__ = "0.1.0"