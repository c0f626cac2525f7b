from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
import httpx

from app.core.errors import DownloadError

@dataclass
class FetchedMedia:
    data: bytes
    content_type: Optional[str]

class Fetcher:
    def __init__(self, user_agent: str, timeout_s: float, transport: httpx.AsyncBaseTransport | None = None):
        self._headers = {"User-Agent": user_agent}
        self._timeout = httpx.Timeout(timeout_s)
        self._transport = transport

    async def fetch_bytes(self, url: str) -> FetchedMedia:
        async with httpx.AsyncClient(
            headers=self._headers,
            timeout=self._timeout,
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            try:
                request = client.build_request("GET", url)
            except (httpx.InvalidURL, ValueError) as e:
                raise DownloadError(f"unusable download URL {url!r}: {e}") from e
            try:
                resp = await client.send(request)
            except httpx.HTTPError as e:
                raise DownloadError(f"download failed: {type(e).__name__}: {e}", retryable=True) from e
            status = resp.status_code
            if status >= 400:
                # Provider URLs that 4xx have expired or never existed; retrying won't help
                raise DownloadError(f"download returned HTTP {status}", status=status, retryable=status >= 500)
            if not resp.content:
                raise DownloadError("download returned an empty body", status=status)
            return FetchedMedia(data=resp.content, content_type=resp.headers.get("Content-Type"))
