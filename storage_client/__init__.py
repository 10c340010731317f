"""Storage client: live view of a remote file-storage service."""

__version__ = "0.1.0"
