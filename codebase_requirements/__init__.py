"""Generate a software requirements document from a zipped codebase."""

__version__ = "0.1.0"
