# promptpacks/sync/install.py
from __future__ import annotations
import logging
import os
import tempfile
from pathlib import Path

from promptpacks.core.errors import InstallError

logger = logging.getLogger(__name__)

__all__ = ["ARTIFACT_EXT", "SIGNATURE_EXT", "artifactPath", "signaturePath", "installPair"]

ARTIFACT_EXT = ".gpack"
SIGNATURE_EXT = ".sig"



def artifactPath(directory: Path, name: str) -> Path:
    return directory / f"{name}{ARTIFACT_EXT}"



def signaturePath(directory: Path, name: str) -> Path:
    return directory / f"{name}{SIGNATURE_EXT}"



def _writeTemp(directory: Path, name: str, data: bytes) -> Path:
    # Same directory as the target so os.replace stays on one filesystem
    fd, tmpName = tempfile.mkstemp(prefix=f".{name}.", suffix=".tmp", dir=directory)
    try:
        with os.fdopen(fd, "wb") as fl:
            fl.write(data)
            fl.flush()
            os.fsync(fl.fileno())
    except BaseException:
        Path(tmpName).unlink(missing_ok=True)
        raise
    return Path(tmpName)



def installPair(directory: Path, name: str, data: bytes, signature: bytes) -> Path:
    """
    Moves an already verified artifact + signature into `directory`.

    Both are staged as temp files first. The signature is replaced before the
    artifact: an interruption between the two renames leaves the old artifact
    beside the new signature, which fails verification and gets re-downloaded,
    instead of a hash-matching artifact beside a stale signature that the
    skip check would never repair.

    Raises InstallError on any filesystem failure; temp files are removed.
    """
    staged: list[Path] = []
    try:
        directory.mkdir(parents=True, exist_ok=True)
        tmpSig = _writeTemp(directory, name, signature)
        staged.append(tmpSig)
        tmpArtifact = _writeTemp(directory, name, data)
        staged.append(tmpArtifact)

        os.replace(tmpSig, signaturePath(directory, name))
        staged.remove(tmpSig)
        os.replace(tmpArtifact, artifactPath(directory, name))
        staged.remove(tmpArtifact)
    except OSError as err:
        raise InstallError(f"Failed to install '{name}' into '{directory}': {err}") from err
    finally:
        for leftover in staged:
            try:
                leftover.unlink(missing_ok=True)
            except OSError:
                logger.warning("Could not remove temp file '%s'", leftover)

    target = artifactPath(directory, name)
    logger.debug("Installed '%s' (%d bytes)", target, len(data))
    return target
