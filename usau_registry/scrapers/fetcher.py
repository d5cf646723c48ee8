# usau_registry/scrapers/fetcher.py

import asyncio
from typing import Mapping, Optional
from urllib.parse import urlencode, urlsplit

import httpx
from loguru import logger

from usau_registry.config.settings import settings
from .base_scraper import FetchError, Transport, TransportError

ACCEPT_HEADER = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


def reencode_query(url: str) -> str:
    """Percent-encode ``+`` and ``=`` inside query parameter values.

    The registry reads ``+`` as a space and splits on a bare ``=`` when the
    URL is handed to it verbatim, so both are escaped before dispatch.
    Parameters without ``=`` pass through unchanged.
    """
    parts = urlsplit(url)
    base = f"{parts.scheme}://{parts.netloc}{parts.path}"
    if not parts.query:
        return base

    params = []
    for param in parts.query.split("&"):
        key, sep, value = param.partition("=")
        if not sep:
            params.append(param)
            continue
        value = value.replace("+", "%2B").replace("=", "%3D")
        params.append(f"{key}={value}")
    return f"{base}?{'&'.join(params)}"


class CurlTransport(Transport):
    """Fetches pages by running the curl binary in a subprocess."""

    name = "curl"
    # Seconds past --max-time before the process is killed
    kill_grace = 5.0

    def __init__(
        self,
        binary: Optional[str] = None,
        user_agent: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.binary = binary or settings.curl_binary
        self.user_agent = user_agent or settings.user_agent
        self.timeout = timeout or settings.request_timeout

    def _base_args(self) -> list[str]:
        return [
            self.binary,
            "-sSL",
            "--fail",
            "-A",
            self.user_agent,
            "--max-time",
            str(int(self.timeout)),
        ]

    async def get(self, url: str) -> str:
        return await self._run(self._base_args() + [url])

    async def post(self, url: str, fields: Mapping[str, str]) -> str:
        args = self._base_args() + ["-X", "POST", "--data", urlencode(fields), url]
        return await self._run(args)

    async def _run(self, args: list[str]) -> str:
        logger.debug(f"Running {self.binary} for {args[-1]}")
        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            # Missing binary, permission denied, etc.
            raise TransportError(f"Could not start {self.binary}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(), timeout=self.timeout + self.kill_grace
            )
        except asyncio.TimeoutError as e:
            proc.kill()
            await proc.wait()
            raise TransportError(
                f"{self.binary} timed out after {self.timeout}s"
            ) from e

        if proc.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip()
            raise TransportError(
                f"{self.binary} exited with status {proc.returncode}: {message}"
            )
        return stdout.decode("utf-8", errors="replace")


class HttpxTransport(Transport):
    """In-process transport built on a shared ``httpx.AsyncClient``."""

    name = "httpx"

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(settings.request_timeout),
            follow_redirects=True,
            headers={"User-Agent": settings.user_agent, "Accept": ACCEPT_HEADER},
        )

    async def get(self, url: str) -> str:
        return await self._request("GET", url)

    async def post(self, url: str, fields: Mapping[str, str]) -> str:
        return await self._request("POST", url, data=dict(fields))

    async def _request(self, method: str, url: str, **kwargs) -> str:
        try:
            response = await self.client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"USAU fetch failed: {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise TransportError(f"Request error for {url}: {e}") from e
        logger.debug(f"Request successful: {response.status_code} for {url}")
        return response.text

    async def close(self) -> None:
        await self.client.aclose()


class PageFetcher:
    """Retrieves registry pages through a primary transport with one fallback.

    The primary transport (curl by default) gets a re-encoded URL; if it
    fails for any reason the request is repeated once on the fallback.
    No caching and no further retries.
    """

    def __init__(
        self, primary: Optional[Transport] = None, fallback: Optional[Transport] = None
    ):
        self.primary = primary
        self.fallback = fallback or HttpxTransport()

    @classmethod
    def from_settings(cls) -> "PageFetcher":
        primary = CurlTransport() if settings.use_curl else None
        return cls(primary=primary, fallback=HttpxTransport())

    async def fetch(self, url: str) -> str:
        """GET ``url`` and return its HTML."""
        if self.primary is not None:
            try:
                return await self.primary.get(reencode_query(url))
            except TransportError as e:
                logger.bind(url=url, transport=self.primary.name).warning(
                    f"{self.primary.name} fetch failed for {url}, falling back to {self.fallback.name}: {e}"
                )
        try:
            return await self.fallback.get(url)
        except TransportError as e:
            logger.bind(url=url).error(f"All transports failed for {url}: {e}")
            raise FetchError(str(e), url) from e

    async def post_form(self, url: str, fields: Mapping[str, str]) -> str:
        """POST ``fields`` as a form to ``url`` and return the resulting HTML."""
        if self.primary is not None:
            try:
                return await self.primary.post(reencode_query(url), fields)
            except TransportError as e:
                logger.bind(url=url, transport=self.primary.name, fields=dict(fields)).warning(
                    f"{self.primary.name} POST failed for {url}, falling back to {self.fallback.name}: {e}"
                )
        try:
            return await self.fallback.post(url, fields)
        except TransportError as e:
            logger.bind(url=url, fields=dict(fields)).error(
                f"All transports failed posting to {url}: {e}"
            )
            raise FetchError(str(e), url) from e

    async def close(self) -> None:
        """Closes every transport."""
        for transport in (self.primary, self.fallback):
            if transport is not None:
                await transport.close()
        logger.debug("Closed page fetcher transports")

    async def __aenter__(self) -> "PageFetcher":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
