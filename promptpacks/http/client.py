# promptpacks/http/client.py
from __future__ import annotations
import logging
from urllib.parse import urlparse

import httpx

from promptpacks.core.errors import ArtifactTooLargeError, TransientNetworkError

logger = logging.getLogger(__name__)

__all__ = ["HTTPError", "fetchBytes", "makeClient"]



class HTTPError(TransientNetworkError):
    def __init__(self, status: int, url: str, body: str = ""):
        super().__init__(f"HTTP {status} for {url}: {body[:200]}", url=url, status=status)
        self.body = body



def makeClient(
    *,
    timeoutMs: int = 20_000,
    transport: httpx.AsyncBaseTransport | None = None,
    followRedirects: bool = True,
) -> httpx.AsyncClient:
    """One shared client per SyncEngine. `transport` is the seam tests use (httpx.MockTransport)."""
    if timeoutMs <= 0:
        timeoutMs = 1
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeoutMs / 1_000),
        transport=transport,
        follow_redirects=followRedirects,
        headers={"Accept": "application/json, application/octet-stream;q=0.9, */*;q=0.5"},
    )



async def fetchBytes(client: httpx.AsyncClient, url: str, *, maxBytes: int) -> bytes:
    """
    GET `url` and return the body, reading at most `maxBytes`.

    Single attempt: retries happen on the next sync cycle, never here.

    Raises:
        TransientNetworkError: bad scheme, transport error, timeout
        HTTPError: non-2xx status (subclass of TransientNetworkError)
        ArtifactTooLargeError: declared or streamed size above maxBytes
    """
    scheme = urlparse(url).scheme.lower()
    if scheme not in ("http", "https"):
        raise TransientNetworkError(f"Unsupported URL scheme '{scheme}'", url=url)

    try:
        async with client.stream("GET", url) as resp:
            status = resp.status_code
            if status < 200 or status >= 300:
                body = (await resp.aread()).decode("utf-8", "replace")
                raise HTTPError(status, url, body)

            declared = resp.headers.get("Content-Length")
            if declared is not None and declared.isdigit() and int(declared) > maxBytes:
                raise ArtifactTooLargeError(
                    f"{url} declares {declared} bytes (limit {maxBytes})", limit=maxBytes
                )

            chunks: list[bytes] = []
            total = 0
            async for chunk in resp.aiter_bytes():
                total += len(chunk)
                if total > maxBytes:
                    raise ArtifactTooLargeError(f"{url} exceeded {maxBytes} bytes", limit=maxBytes)
                chunks.append(chunk)
    except httpx.TimeoutException as err:
        raise TransientNetworkError(f"Timed out fetching {url}", url=url) from err
    except httpx.HTTPError as err:
        raise TransientNetworkError(f"Transport error fetching {url}: {err}", url=url) from err

    logger.debug("Fetched %d bytes from %s", total, url)
    return b"".join(chunks)
