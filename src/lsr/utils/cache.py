"""Cache keys and document fingerprints for Lockstep Reader.

Translations are cached under <workspace_dir>/.cache/translations/, one
file per key. Keys join on a content fingerprint of the document rather
than its filename, so renaming a file keeps its cache and two different
files never collide.
"""

from __future__ import annotations

import hashlib


def document_fingerprint(data: bytes) -> str:
    """Compute a stable content fingerprint for a document.

    Returns:
        First 16 hex chars of the SHA-256 of the document bytes.
    """
    return hashlib.sha256(data).hexdigest()[:16]


def block_id(fingerprint: str, page_number: int, block_index: int) -> str:
    """Unique ID for a text block: <fingerprint>_p<page>_b<index>."""
    return f"{fingerprint}_p{page_number}_b{block_index}"


def page_cache_key(fingerprint: str, page_number: int) -> str:
    """Cache key for a whole translated page."""
    return f"trans_{fingerprint}_p{page_number}"


def block_cache_key(fingerprint: str, page_number: int, block_index: int) -> str:
    """Cache key for a single translated block within a page."""
    return f"block_{block_id(fingerprint, page_number, block_index)}"


def cache_filename(key: str) -> str:
    """Filesystem-safe file name for a cache key (MD5 of the key)."""
    return hashlib.md5(key.encode("utf-8")).hexdigest() + ".txt"
