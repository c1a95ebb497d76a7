"""Local file hashing, matched to the hash each backend reports."""

from __future__ import annotations

import hashlib
import os

from cloudsync.models import CloudFile, HashType

_READ_SIZE = 1024 * 1024
# Dropbox hashes content in 4 MiB blocks.
_DROPBOX_BLOCK_SIZE = 4 * 1024 * 1024


def file_digest(path: str, hash_type: HashType) -> str:
    """
    Hex digest of a local file for the given hash type.

    Raises:
        ValueError: for HashType.NONE.
        OSError: if the file cannot be read.
    """
    if hash_type is HashType.DROPBOX:
        return dropbox_content_hash(path)
    if hash_type is HashType.NONE:
        raise ValueError("HashType.NONE has no digest")

    h = hashlib.new(hash_type.value)
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_READ_SIZE), b""):
            h.update(chunk)
    return h.hexdigest()


def dropbox_content_hash(path: str) -> str:
    """SHA-256 over the concatenated SHA-256 digests of 4 MiB blocks."""
    overall = hashlib.sha256()
    with open(path, "rb") as f:
        for block in iter(lambda: f.read(_DROPBOX_BLOCK_SIZE), b""):
            overall.update(hashlib.sha256(block).digest())
    return overall.hexdigest()


def local_matches_remote(local_path: str, remote: CloudFile) -> bool:
    """True when the local file has the remote file's content hash."""
    if remote.hash_type is HashType.NONE or not remote.hash_value:
        return False
    if not os.path.isfile(local_path):
        return False
    return file_digest(local_path, remote.hash_type).lower() == remote.hash_value.lower()
