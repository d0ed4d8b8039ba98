# tests/conftest.py
from __future__ import annotations
import base64
import json
import sys
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import decode_dss_signature

from promptpacks.app.runtime import PackRuntime
from promptpacks.config.service import ConfigService
from promptpacks.content.roots import ContentRoots
from promptpacks.core.hashing import sha256Hex
from promptpacks.security.verifier import IntegrityVerifier



def pytest_configure(config: pytest.Config) -> None:
    if sys.flags.optimize:
        raise RuntimeError("Assertions are disabled (optimize > 0)")



# ----------------------------
# Signing helpers
# ----------------------------

def signBytes(key: ec.EllipticCurvePrivateKey, data: bytes, *, p1363: bool = False) -> bytes:
    der = key.sign(data, ec.ECDSA(hashes.SHA256()))
    if not p1363:
        return der
    r, s = decode_dss_signature(der)
    width = (key.curve.key_size + 7) // 8
    return r.to_bytes(width, "big") + s.to_bytes(width, "big")



def packBody(gameId: str, *, matchers: list[str] | None = None, categories: dict[str, Any] | None = None, **extra) -> bytes:
    doc: dict[str, Any] = {"gameId": gameId, "version": "1.0.0", "matchers": matchers or [], "categories": categories or {}}
    doc.update(extra)
    return json.dumps(doc).encode("utf-8")



@pytest.fixture()
def signing_key() -> ec.EllipticCurvePrivateKey:
    return ec.generate_private_key(ec.SECP256R1())



@pytest.fixture()
def other_key() -> ec.EllipticCurvePrivateKey:
    return ec.generate_private_key(ec.SECP256R1())



@pytest.fixture()
def verifier(signing_key) -> IntegrityVerifier:
    return IntegrityVerifier(signing_key.public_key())



@pytest.fixture()
def sign(signing_key) -> Callable[..., str]:
    """data → base64 signature text, as stored in a .sig file."""
    def _sign(data: bytes, *, key: ec.EllipticCurvePrivateKey | None = None, p1363: bool = False) -> str:
        return base64.b64encode(signBytes(key or signing_key, data, p1363=p1363)).decode("ascii")
    return _sign



@pytest.fixture()
def write_signed(sign) -> Callable[..., Path]:
    """Writes <dir>/<name>.gpack + <name>.sig; returns the artifact path."""
    def _write(directory: Path, name: str, data: bytes, *, key: ec.EllipticCurvePrivateKey | None = None, signature: str | None = None) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        artifact = directory / f"{name}.gpack"
        artifact.write_bytes(data)
        (directory / f"{name}.sig").write_text(signature if signature is not None else sign(data, key=key), encoding="ascii")
        return artifact
    return _write



@pytest.fixture()
def write_pack(write_signed) -> Callable[..., Path]:
    def _write(directory: Path, fileName: str, gameId: str, **kwargs) -> Path:
        key = kwargs.pop("key", None)
        return write_signed(directory, fileName, packBody(gameId, **kwargs), key=key)
    return _write



# ----------------------------
# Remote index helpers
# ----------------------------

class FakeRemote:
    """
    In-memory pack server for httpx.MockTransport.

    publish() puts an artifact + signature under /files and lists it in the index;
    `requests` records every path served, in order.
    """
    BASE = "https://packs.test"

    def __init__(self, sign: Callable[..., str]) -> None:
        self._sign = sign
        self.files: dict[str, bytes] = {}
        self.index: dict[str, list[dict[str, Any]]] = {"packs": [], "localization": []}
        self.requests: list[str] = []
        self.failPaths: dict[str, int] = {}
        self.indexStatus = 200
        self.onRequest: Callable[[str], None] | None = None

    @property
    def indexUrl(self) -> str:
        return f"{self.BASE}/index.json"

    def publish(
        self,
        name: str,
        data: bytes,
        *,
        collection: str = "packs",
        signature: str | None = None,
        sha256: str | None = None,
        version: str = "1.0.0",
    ) -> dict[str, Any]:
        self.files[f"/files/{name}.gpack"] = data
        self.files[f"/files/{name}.sig"] = (signature if signature is not None else self._sign(data)).encode("ascii")
        entry = {
            "name": name,
            "version": version,
            "sha256": sha256 or sha256Hex(data),
            "url": f"files/{name}.gpack",
            "sigUrl": f"{self.BASE}/files/{name}.sig",
        }
        self.index[collection] = [item for item in self.index[collection] if item.get("name") != name] + [entry]
        return entry

    def downloads(self) -> list[str]:
        return [path for path in self.requests if path != "/index.json"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requests.append(path)
        if self.onRequest is not None:
            self.onRequest(path)
        if path in self.failPaths:
            return httpx.Response(self.failPaths[path], text="nope")
        if path == "/index.json":
            if self.indexStatus != 200:
                return httpx.Response(self.indexStatus, text="index down")
            return httpx.Response(200, json=self.index)
        body = self.files.get(path)
        if body is None:
            return httpx.Response(404, text="missing")
        return httpx.Response(200, content=body)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)



@pytest.fixture()
def remote(sign) -> FakeRemote:
    return FakeRemote(sign)



@pytest.fixture()
def pack_body() -> Callable[..., bytes]:
    return packBody



# ----------------------------
# Runtime helpers
# ----------------------------

@pytest.fixture()
def roots(tmp_path) -> ContentRoots:
    return ContentRoots.build(machineDir=tmp_path / "machine", userDir=tmp_path / "user")



@pytest.fixture()
def build_runtime(roots, signing_key, remote) -> Callable[..., PackRuntime]:
    """PackRuntime against the fake remote and the test signing key; kwargs are dotted setting overrides."""
    def _build(config: ConfigService | None = None, **settings) -> PackRuntime:
        values: dict[str, Any] = {"sync.baseUrl": remote.BASE, "sync.initialDelaySeconds": 0}
        values.update(settings)
        config = config or ConfigService.fromDict(values)
        return PackRuntime.build(
            config=config,
            settings=config.settings(),
            roots=roots,
            publicKey=signing_key.public_key(),
            transport=remote.transport(),
        )
    return _build



@pytest.fixture()
def runtime(build_runtime) -> PackRuntime:
    return build_runtime()
