"""Recipe Box - personal recipe collection with full-text search and merging."""

__version__ = "0.1.0"
