# promptpacks/core/hashing.py
from __future__ import annotations

import hashlib
from pathlib import Path

__all__ = ["sha256Hex", "sha256File", "normalizeSha256", "sha256Matches"]



def sha256Hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()



def sha256File(path: str | Path) -> str:
    """Returns a SHA-256 hex digest of the file content."""
    sha = hashlib.sha256()
    with Path(path).open("rb") as file:
        for chunk in iter(lambda: file.read(8192), b""):
            sha.update(chunk)
    return sha.hexdigest()



def normalizeSha256(value: str) -> str:
    """
    Normalizes a manifest-declared digest: strips whitespace and an optional
    '0x' prefix, lowercases.
    """
    text = str(value or "").strip().lower()
    if text.startswith("0x"):
        text = text[2:]
    return text



def sha256Matches(data: bytes, expected: str) -> bool:
    expectedHex = normalizeSha256(expected)
    if not expectedHex:
        return False
    return sha256Hex(data) == expectedHex
