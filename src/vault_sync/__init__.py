"""Two-way reconciliation of a local note vault with a remote file store."""

__version__ = "0.4.0"
