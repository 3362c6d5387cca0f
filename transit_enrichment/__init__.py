"""Transit model enrichment: walking transfers and object codes from rule files."""

__version__ = "0.1.0"
