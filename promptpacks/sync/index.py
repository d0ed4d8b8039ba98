# promptpacks/sync/index.py
from __future__ import annotations
import json
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urljoin, urlparse

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from promptpacks.core.errors import MalformedIndexEntryError, MalformedIndexError
from promptpacks.core.hashing import normalizeSha256

__all__ = [
    "NAME_PATTERN",
    "COLLECTIONS",
    "PackIndexEntry",
    "PackIndex",
    "parseIndex",
    "parseEntry",
]

# No separators, no leading dot: a name is always a single file stem.
NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")
_SHA256_HEX = re.compile(r"^[0-9a-f]{64}$")

# Index collection → kind of artifact it carries
COLLECTIONS: tuple[str, ...] = ("packs", "localization")

_FIELD_BY_LOWER = {
    "name": "name",
    "version": "version",
    "sha256": "sha256",
    "url": "url",
    "sigurl": "sigUrl",
}



class PackIndexEntry(BaseModel):
    """One remote artifact: `<name>.gpack` + `<name>.sig`, with the manifest hash."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str
    version: str = ""
    sha256: str
    url: str
    sigUrl: str

    # --------------
    #   Validators
    # --------------
    @model_validator(mode="before")
    @classmethod
    def foldKeys(cls, data: Any) -> Any:
        # Keys are matched case-insensitively (SigUrl, SIGURL, sigurl ...)
        if not isinstance(data, Mapping):
            return data
        folded: dict[str, Any] = {}
        for key, value in data.items():
            target = _FIELD_BY_LOWER.get(str(key).lower())
            if target is not None and target not in folded:
                folded[target] = value
        return folded

    @field_validator("version", mode="before")
    @classmethod
    def versionToText(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("name")
    @classmethod
    def checkName(cls, value: str) -> str:
        value = value.strip()
        if not NAME_PATTERN.match(value):
            raise ValueError(f"invalid artifact name '{value}'")
        return value

    @field_validator("sha256")
    @classmethod
    def checkHash(cls, value: str) -> str:
        normalized = normalizeSha256(value)
        if not _SHA256_HEX.match(normalized):
            raise ValueError("sha256 must be 64 hex characters")
        return normalized

    @field_validator("url", "sigUrl")
    @classmethod
    def checkUrl(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("empty URL")
        return value



@dataclass(frozen=True)
class PackIndex:
    """Raw entries per collection; each entry is validated on its own by parseEntry()."""
    indexUrl: str
    collections: dict[str, list[Any]] = field(default_factory=dict)

    def entries(self, collection: str) -> list[Any]:
        return self.collections.get(collection, [])



def _resolveUrl(value: str, indexUrl: str) -> str:
    resolved = urljoin(indexUrl, value)
    if urlparse(resolved).scheme.lower() not in ("http", "https"):
        raise MalformedIndexEntryError(f"unsupported URL '{value}'", source=indexUrl)
    return resolved



def parseEntry(raw: Any, *, indexUrl: str) -> PackIndexEntry:
    """Validates one index entry; relative URLs resolve against the index URL."""
    if not isinstance(raw, Mapping):
        raise MalformedIndexEntryError(f"index entry is {type(raw).__name__}, not an object", source=indexUrl)
    try:
        entry = PackIndexEntry.model_validate(raw)
    except ValidationError as err:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in item['loc']) or 'entry'}: {item['msg']}" for item in err.errors()
        )
        raise MalformedIndexEntryError(f"malformed index entry: {problems}", source=indexUrl) from err

    return entry.model_copy(update={
        "url": _resolveUrl(entry.url, indexUrl),
        "sigUrl": _resolveUrl(entry.sigUrl, indexUrl),
    })



def parseIndex(body: bytes, *, indexUrl: str) -> PackIndex:
    """
    Parses the index document. Only whole-document problems raise here
    (invalid JSON, non-object root, non-list collection); entries are left raw.
    """
    try:
        doc = json.loads(body.decode("utf-8-sig"))
    except (UnicodeDecodeError, ValueError) as err:
        raise MalformedIndexError(f"index is not valid JSON: {err}", source=indexUrl) from err

    if not isinstance(doc, dict):
        raise MalformedIndexError(f"index root is {type(doc).__name__}, not an object", source=indexUrl)

    lowered = {str(key).lower(): value for key, value in doc.items()}
    collections: dict[str, list[Any]] = {}
    for name in COLLECTIONS:
        value = lowered.get(name)
        if value is None:
            collections[name] = []
        elif isinstance(value, list):
            collections[name] = value
        else:
            raise MalformedIndexError(f"index '{name}' is {type(value).__name__}, not a list", source=indexUrl)

    return PackIndex(indexUrl=indexUrl, collections=collections)
