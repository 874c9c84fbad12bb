"""Remote storage backends used during build publication."""

from .blob import BlobStore

__all__ = ["BlobStore"]
