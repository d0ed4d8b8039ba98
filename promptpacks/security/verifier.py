# promptpacks/security/verifier.py
from __future__ import annotations
import base64
import binascii
import logging
from pathlib import Path

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import encode_dss_signature

from promptpacks.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

__all__ = [
    "EMBEDDED_PUBLIC_PEM",
    "DEFAULT_MAX_ARTIFACT_BYTES",
    "IntegrityVerifier",
    "verifyArtifact",
    "decodeSignature",
    "loadTrustedPublicKey",
    "loadEmbeddedPublicKey",
]

DEFAULT_MAX_ARTIFACT_BYTES = 512 * 1024

# Trust root for published packs (P-256).
EMBEDDED_PUBLIC_PEM = b"""-----BEGIN PUBLIC KEY-----
MFkwEwYHKoZIzj0CAQYIKoZIzj0DAQcDQgAEBbefaGLcV0z4kRsUrMZSDq/137WP
Y38WB/SecuXzvMZEBHaZN39g16nB/P67KHuRbAaqZ3HyE2eiWSNRdV+S0g==
-----END PUBLIC KEY-----
"""



# ----------------------------------------------
#               Signature helpers
# ----------------------------------------------

def decodeSignature(raw: str | bytes | None) -> bytes | None:
    """Base64 text of a .sig file → signature bytes. Whitespace is ignored; invalid input → None."""
    if raw is None:
        return None
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("ascii")
        except UnicodeDecodeError:
            return None
    text = "".join(raw.split())
    if not text:
        return None
    try:
        decoded = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError):
        return None
    return decoded or None



def _p1363ToDer(signature: bytes, publicKey: ec.EllipticCurvePublicKey) -> bytes | None:
    """Fixed-width r||s → DER. Returns None when the width does not fit the curve."""
    coordBytes = (publicKey.curve.key_size + 7) // 8
    if len(signature) != 2 * coordBytes:
        return None
    r = int.from_bytes(signature[:coordBytes], "big")
    s = int.from_bytes(signature[coordBytes:], "big")
    if r == 0 or s == 0:
        return None
    return encode_dss_signature(r, s)



def _verifyDer(publicKey: ec.EllipticCurvePublicKey, data: bytes, signature: bytes) -> bool:
    try:
        publicKey.verify(signature, data, ec.ECDSA(hashes.SHA256()))
        return True
    except (InvalidSignature, ValueError):
        return False



def verifyArtifact(
    data: bytes | None,
    signature: bytes | None,
    publicKey: ec.EllipticCurvePublicKey,
    *,
    maxBytes: int = DEFAULT_MAX_ARTIFACT_BYTES,
) -> bool:
    """
    ECDSA/SHA-256 check over the exact bytes. Never raises.

    Empty or oversized data is rejected before any crypto runs. Signatures are
    accepted as DER or as IEEE-P1363 r||s.
    """
    if not data or not signature:
        return False
    if len(data) > maxBytes:
        logger.debug("Artifact of %d bytes exceeds ceiling %d; rejected unverified", len(data), maxBytes)
        return False

    try:
        if _verifyDer(publicKey, data, signature):
            return True
        converted = _p1363ToDer(signature, publicKey)
        return converted is not None and _verifyDer(publicKey, data, converted)
    except Exception:
        # Unexpected backend failure is still a rejection
        logger.exception("Signature verification crashed")
        return False



class IntegrityVerifier:
    """Bound trust root + size ceiling. Stateless apart from that, safe to share across threads."""

    def __init__(self, publicKey: ec.EllipticCurvePublicKey, maxBytes: int = DEFAULT_MAX_ARTIFACT_BYTES) -> None:
        self.publicKey = publicKey
        self.maxBytes = maxBytes

    def verify(self, data: bytes | None, signature: bytes | None) -> bool:
        return verifyArtifact(data, signature, self.publicKey, maxBytes=self.maxBytes)

    def verifyDetached(self, data: bytes | None, signatureText: str | bytes | None) -> bool:
        return self.verify(data, decodeSignature(signatureText))



# ----------------------------------------------
#                 Trust root
# ----------------------------------------------

def _parseEcPublicKey(pem: bytes) -> ec.EllipticCurvePublicKey:
    key = serialization.load_pem_public_key(pem)
    if not isinstance(key, ec.EllipticCurvePublicKey):
        raise ValueError(f"expected an EC public key, got {type(key).__name__}")
    return key



def loadEmbeddedPublicKey() -> ec.EllipticCurvePublicKey:
    return _parseEcPublicKey(EMBEDDED_PUBLIC_PEM)



def loadTrustedPublicKey(overridePath: str | Path | None, *, strict: bool = False) -> ec.EllipticCurvePublicKey:
    """
    Returns the override key when `overridePath` exists and parses, else the embedded key.

    A missing override is the normal case (DEBUG). A present but unreadable or
    malformed override logs a WARNING and falls back, or raises ConfigurationError
    when strict=True.
    """
    if overridePath is None:
        return loadEmbeddedPublicKey()

    path = Path(overridePath)
    if not path.exists():
        logger.debug("No public key override at '%s'; using embedded key", path)
        return loadEmbeddedPublicKey()

    try:
        key = _parseEcPublicKey(path.read_bytes())
    except (OSError, ValueError, TypeError) as err:
        if strict:
            raise ConfigurationError(f"Public key override '{path}' is unusable: {err}") from err
        logger.warning("Public key override '%s' is unusable (%s); falling back to embedded key", path, err)
        return loadEmbeddedPublicKey()

    logger.info("Using public key override from '%s'", path)
    return key
