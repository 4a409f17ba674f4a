"""Git blob identities for local content.

Git blob OID = SHA-1(``blob <size>\\0`` + content), rendered as lowercase
hex.  Matching OIDs let a sync skip files the remote already holds.
"""

from __future__ import annotations

import hashlib
import os

_HASH_CHUNK_SIZE = 65536


def _blob_hasher(size: int) -> hashlib._Hash:
    """Return a SHA-1 hasher pre-loaded with the git blob header."""
    return hashlib.sha1(f"blob {size}\0".encode())


def blob_sha(data: bytes) -> str:
    """Git blob OID of *data*."""
    h = _blob_hasher(len(data))
    h.update(data)
    return h.hexdigest()


def file_blob_sha(path: str | os.PathLike[str]) -> str:
    """Git blob OID of the file at *path*, streamed in chunks.

    Raises ``OSError`` when the file cannot be read.
    """
    size = os.stat(path).st_size
    h = _blob_hasher(size)
    read = 0
    with open(path, "rb") as f:
        while True:
            chunk = f.read(_HASH_CHUNK_SIZE)
            if not chunk:
                break
            read += len(chunk)
            h.update(chunk)
    if read != size:
        # file changed underneath us; the header no longer matches
        raise OSError(f"File size changed while hashing: {os.fspath(path)}")
    return h.hexdigest()
