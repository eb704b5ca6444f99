"""blogsync — content synchronization engine for a git-backed blog."""

__version__ = "0.1.0"
