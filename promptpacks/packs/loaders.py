# promptpacks/packs/loaders.py
from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from promptpacks.core.errors import ArtifactTooLargeError, IntegrityError, MalformedPackError
from promptpacks.security.verifier import IntegrityVerifier
from promptpacks.sync.install import ARTIFACT_EXT, SIGNATURE_EXT
from .models import Pack

logger = logging.getLogger(__name__)

__all__ = ["scanArtifacts", "readVerified", "parseJsonObject", "loadPackFile"]

DEFAULT_MAX_SIGNATURE_BYTES = 8 * 1024



def scanArtifacts(directory: Path, pattern: str = f"*{ARTIFACT_EXT}") -> list[Path]:
    """Top-level artifacts in `directory`, sorted by file name. Missing dir → []."""
    if not directory.is_dir():
        return []
    return sorted((path for path in directory.glob(pattern) if path.is_file()), key=lambda path: path.name)



def readVerified(
    artifact: Path,
    verifier: IntegrityVerifier,
    *,
    maxSignatureBytes: int = DEFAULT_MAX_SIGNATURE_BYTES,
) -> bytes:
    """
    Returns the artifact bytes only if the sibling .sig verifies them.

    Raises:
        IntegrityError: missing/oversized/undecodable signature, failed verification
        ArtifactTooLargeError: artifact above the verifier's ceiling
        MalformedPackError: artifact unreadable
    """
    sigPath = artifact.with_suffix(SIGNATURE_EXT)
    if not sigPath.is_file():
        raise IntegrityError(f"'{artifact.name}' has no signature file")

    try:
        size = artifact.stat().st_size
        if size > verifier.maxBytes:
            raise ArtifactTooLargeError(
                f"'{artifact.name}' is {size} bytes (limit {verifier.maxBytes})", limit=verifier.maxBytes
            )
        if sigPath.stat().st_size > maxSignatureBytes:
            raise IntegrityError(f"'{sigPath.name}' exceeds {maxSignatureBytes} bytes")
        data = artifact.read_bytes()
        signature = sigPath.read_bytes()
    except OSError as err:
        raise MalformedPackError(f"cannot read '{artifact.name}': {err}", source=str(artifact)) from err

    if not verifier.verifyDetached(data, signature):
        raise IntegrityError(f"signature check failed for '{artifact.name}'")
    return data



def parseJsonObject(data: bytes, *, source: str) -> dict[str, Any]:
    try:
        doc = json.loads(data.decode("utf-8-sig"))
    except (UnicodeDecodeError, ValueError) as err:
        raise MalformedPackError(f"'{source}' is not valid JSON: {err}", source=source) from err
    if not isinstance(doc, dict):
        raise MalformedPackError(f"'{source}' must be a JSON object, not {type(doc).__name__}", source=source)
    return doc



def loadPackFile(
    artifact: Path,
    verifier: IntegrityVerifier,
    *,
    maxCategories: int,
    maxSignatureBytes: int = DEFAULT_MAX_SIGNATURE_BYTES,
) -> Pack:
    """Verify, parse, validate and cap one pack. Verification always happens before parsing."""
    data = readVerified(artifact, verifier, maxSignatureBytes=maxSignatureBytes)
    doc = parseJsonObject(data, source=artifact.name)
    try:
        pack = Pack.model_validate(doc)
    except ValidationError as err:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in item['loc']) or 'pack'}: {item['msg']}" for item in err.errors()
        )
        raise MalformedPackError(f"'{artifact.name}' failed schema: {problems}", source=artifact.name) from err

    capped = pack.truncated(maxCategories)
    if capped is not pack:
        logger.warning(
            "Pack '%s' declares %d categories; keeping the first %d",
            pack.gameId, len(pack.categories), maxCategories,
        )
    return capped
