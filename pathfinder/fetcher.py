import asyncio, hashlib, time
from typing import Dict, List, Optional
from urllib.parse import urljoin

import aiohttp

from .errors import FetchError, MaxRedirectsExceeded
from .models import MAX_REDIRECTS, USER_AGENT, RedirectHop, ScanConfig, ScanResult


def create_session(config: ScanConfig) -> aiohttp.ClientSession:
    """Shared transport for a whole scan.

    TLS verification is off so self-signed lab targets work, and the idle
    pool per host is sized to the concurrency limit.
    """
    connector = aiohttp.TCPConnector(
        ssl=False,
        limit=config.concurrency * 2,
        limit_per_host=config.concurrency,
        keepalive_timeout=90,
    )
    return aiohttp.ClientSession(
        connector=connector,
        timeout=aiohttp.ClientTimeout(total=config.timeout),
    )


def request_headers(config: ScanConfig) -> Dict[str, str]:
    headers = {"User-Agent": USER_AGENT}
    headers.update(dict(config.headers))
    if config.cookie:
        headers["Cookie"] = config.cookie
    return headers


def content_hash(body: bytes) -> str:
    return hashlib.md5(body or b"").hexdigest()


async def fetch(
    session: aiohttp.ClientSession,
    url: str,
    config: ScanConfig,
    path: Optional[str] = None,
) -> ScanResult:
    """Fetch ``url`` once, following redirects by hand.

    Every 3xx response is recorded as a hop against the URL that produced it.
    Raises FetchError on transport failures and MaxRedirectsExceeded when the
    hop limit runs out.
    """
    headers = request_headers(config)
    chain: List[RedirectHop] = []
    current = url
    started = time.monotonic()

    for _ in range(MAX_REDIRECTS):
        try:
            async with session.request(
                config.method, current, headers=headers, allow_redirects=False
            ) as r:
                body = await r.read()
                status = r.status
                location = r.headers.get("Location")
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise FetchError(current, str(e) or type(e).__name__) from e

        if 300 <= status < 400:
            chain.append(RedirectHop(url=current, status=status))
            if location:
                try:
                    current = urljoin(current, location)
                except ValueError as e:
                    raise FetchError(current, f"bad Location header {location!r}") from e
                continue
            # 3xx without Location: nothing to follow, keep this response

        return ScanResult(
            path=path if path is not None else url,
            url=url,
            status=status,
            final_url=current,
            redirect_chain=tuple(chain),
            content_length=len(body or b""),
            content_hash=content_hash(body),
            response_time=time.monotonic() - started,
        )

    raise MaxRedirectsExceeded(url, MAX_REDIRECTS)
