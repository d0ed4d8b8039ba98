# tests/promptpacks/core/test_hashing.py
from __future__ import annotations
import hashlib

from promptpacks.core.hashing import normalizeSha256, sha256File, sha256Hex, sha256Matches


def test_sha256File_matchesBytesDigest(tmp_path) -> None:
    data = b"x" * 20_000 # spans several read chunks
    path = tmp_path / "blob.gpack"
    path.write_bytes(data)
    assert sha256File(path) == hashlib.sha256(data).hexdigest() == sha256Hex(data)


def test_normalizeSha256_stripsPrefixAndCase() -> None:
    assert normalizeSha256("  0xABCDEF ") == "abcdef"
    assert normalizeSha256("") == ""


def test_sha256Matches_acceptsUppercaseAndPrefix() -> None:
    data = b"pack"
    digest = sha256Hex(data)
    assert sha256Matches(data, digest.upper())
    assert sha256Matches(data, "0x" + digest)
    assert not sha256Matches(data, sha256Hex(b"other"))
    assert not sha256Matches(data, "")
