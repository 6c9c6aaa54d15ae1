"""Async HTTP fetcher with user-facing failure classification.

The fetcher never retries; a failed URL surfaces as :class:`FetchError` and
the caller decides whether the batch can continue without it.
"""

from __future__ import annotations

import asyncio
from typing import List, Optional, Sequence, Union
from urllib.parse import urlparse

import httpx

from shopaudit.config import settings


def _default_headers() -> dict[str, str]:
    return {
        "User-Agent": settings.user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
    }


class FetchError(Exception):
    """A page could not be retrieved.

    ``reason`` is safe to show to end users.  ``status_code`` is ``None`` for
    transport-level failures (DNS, refused connection, timeout).
    """

    def __init__(
        self,
        url: str,
        reason: str,
        status_code: Optional[int] = None,
        timed_out: bool = False,
    ) -> None:
        super().__init__(reason)
        self.url = url
        self.reason = reason
        self.status_code = status_code
        self.timed_out = timed_out

    @property
    def blocked(self) -> bool:
        """``True`` when the site refused us (bot protection or auth wall)."""
        return self.status_code in (401, 403)


def _hostname(url: str) -> str:
    return urlparse(url).hostname or url


def describe_status(url: str, status_code: int) -> str:
    """Map an HTTP error status to a human-readable explanation."""
    host = _hostname(url)
    if status_code == 403:
        return (
            f"This website ({host}) is blocking automated requests. This is common "
            "with sites that have bot protection enabled. Please try a different "
            "e-commerce website."
        )
    if status_code == 401:
        return (
            "This website requires authentication that we cannot provide. "
            "Please try a publicly accessible e-commerce site."
        )
    if status_code == 404:
        return f"The page at {url} was not found. The website may have changed its structure."
    if status_code == 429:
        return "This website is rate-limiting our requests. Please wait a few minutes and try again."
    if 500 <= status_code < 600:
        return (
            f"The website {host} appears to be experiencing technical difficulties. "
            "Please try again later."
        )
    return (
        f"Unable to access {host} (Error {status_code}). The website may be blocking "
        "automated requests or experiencing issues."
    )


def build_client(timeout: Optional[float] = None) -> httpx.AsyncClient:
    """Return an ``AsyncClient`` preconfigured with browser-like headers."""
    return httpx.AsyncClient(
        headers=_default_headers(),
        timeout=timeout if timeout is not None else settings.request_timeout,
        follow_redirects=True,
    )


async def fetch_html(
    url: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
    timeout: Optional[float] = None,
) -> str:
    """Fetch *url* and return the response body.

    Args:
        url: Absolute page URL.
        client: Shared client; a short-lived one is created when omitted.
        timeout: Per-request timeout override in seconds.

    Raises:
        FetchError: On any non-2xx status or transport failure.
    """
    if client is None:
        async with build_client(timeout) as own_client:
            return await fetch_html(url, client=own_client, timeout=timeout)

    request_kwargs = {} if timeout is None else {"timeout": timeout}
    try:
        response = await client.get(url, **request_kwargs)
    except httpx.TimeoutException as exc:
        raise FetchError(
            url,
            f"{_hostname(url)} did not respond in time. The site may be slow or "
            "unreachable; please try again later.",
            timed_out=True,
        ) from exc
    except httpx.HTTPError as exc:
        raise FetchError(url, f"Unable to reach {_hostname(url)}: {exc}") from exc

    if not response.is_success:
        raise FetchError(url, describe_status(url, response.status_code), response.status_code)
    return response.text


async def fetch_many(
    urls: Sequence[str],
    *,
    client: Optional[httpx.AsyncClient] = None,
    concurrency: Optional[int] = None,
) -> List[Union[str, FetchError]]:
    """Fetch every URL concurrently; failures are returned, not raised.

    Results line up with *urls* regardless of completion order.  One failing
    fetch never cancels the others.
    """
    limit = asyncio.Semaphore(max(1, concurrency or settings.fetch_concurrency))

    async def _one(target: str, shared: httpx.AsyncClient) -> Union[str, FetchError]:
        async with limit:
            try:
                return await fetch_html(target, client=shared)
            except FetchError as exc:
                print(f"[FETCH] ✗ {target}: {exc.reason}")
                return exc

    if client is None:
        async with build_client() as own_client:
            return list(await asyncio.gather(*(_one(u, own_client) for u in urls)))
    return list(await asyncio.gather(*(_one(u, client) for u in urls)))
