"""SHA-256 fingerprints for the incremental cache.

All helpers return the 64-character hex digest.
"""

from __future__ import annotations

import hashlib
import unicodedata
from pathlib import Path
from typing import Any

from sitegen.lib.json import dumps

_CHUNK = 1024 * 1024


def _feed_file(hasher: Any, path: Path) -> None:
    with path.open("rb") as handle:
        while chunk := handle.read(_CHUNK):
            hasher.update(chunk)


def hash_text(text: str) -> str:
    """Digest of NFC-normalized UTF-8 text, so composed and decomposed accents agree."""
    return hashlib.sha256(unicodedata.normalize("NFC", text).encode("utf-8")).hexdigest()


def hash_lines(*parts: str) -> str:
    """Hash newline-joined parts; ``None`` parts hash as empty lines."""
    return hash_text("\n".join(part or "" for part in parts))


def hash_payload(payload: object) -> str:
    return hashlib.sha256(dumps(payload, sort_keys=True).encode("utf-8")).hexdigest()


def hash_file(path: Path) -> str:
    hasher = hashlib.sha256()
    _feed_file(hasher, path)
    return hasher.hexdigest()


def hash_directory(root: Path) -> str:
    """Hash a whole directory tree.

    Files are visited in ordinal order of their root-relative POSIX path; for
    each one the relative path, a NUL byte, the file bytes and another NUL are
    fed to the digest. A missing directory hashes like the empty string.
    """
    hasher = hashlib.sha256()
    if not root.is_dir():
        return hasher.hexdigest()

    files = sorted((path.relative_to(root).as_posix(), path) for path in root.rglob("*") if path.is_file())
    for relative, path in files:
        hasher.update(relative.encode("utf-8") + b"\0")
        _feed_file(hasher, path)
        hasher.update(b"\0")
    return hasher.hexdigest()


__all__ = ["hash_text", "hash_lines", "hash_payload", "hash_file", "hash_directory"]
