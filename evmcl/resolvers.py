# evmcl Completion Engine — (c) 2025 rtj.dev LLC — MIT Licensed
"""resolvers.py
Content resolvers used to fetch remote module manifests.

Features:
- `IPFSResolver` fetches content through an HTTP gateway with aiohttp
- Optional reuse of a caller-owned `aiohttp.ClientSession`
- Memoization of fetched content (content addresses are immutable)
"""
from __future__ import annotations

import aiohttp

from evmcl.exceptions import ExternalCallError
from evmcl.logger import logger

DEFAULT_IPFS_GATEWAY = "https://ipfs.io/ipfs/"


class IPFSResolver:
    """
    Resolves IPFS content identifiers through an HTTP gateway.

    Args:
        gateway (str): Gateway base URL; the CID is appended to it.
        session (aiohttp.ClientSession | None): Session to reuse. When omitted a
            short-lived session is opened per fetch.
        timeout (float | None): Total timeout of one gateway request in seconds.
    """

    def __init__(
        self,
        gateway: str = DEFAULT_IPFS_GATEWAY,
        *,
        session: aiohttp.ClientSession | None = None,
        timeout: float | None = 10.0,
    ):
        self.gateway = gateway if gateway.endswith("/") else f"{gateway}/"
        self.session = session
        self.timeout = timeout
        self._cache: dict[str, str] = {}

    def url_for(self, cid: str) -> str:
        return f"{self.gateway}{cid}"

    async def fetch(self, cid: str) -> str:
        """
        Return the content stored under `cid`.

        Raises:
            ExternalCallError: If the gateway answers with an error status.
        """
        if cid in self._cache:
            return self._cache[cid]

        url = self.url_for(cid)
        session = self.session or aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout)
        )
        try:
            async with session.get(url) as response:
                body = await response.text()
                if response.status >= 400:
                    raise ExternalCallError(
                        f"Gateway returned {response.status} for {cid}"
                    )
        finally:
            if self.session is None:
                await session.close()

        logger.debug("[IPFSResolver] Fetched %s (%d bytes)", cid, len(body))
        self._cache[cid] = body
        return body

    def clear(self) -> None:
        self._cache.clear()

    def __str__(self) -> str:
        return f"IPFSResolver(gateway={self.gateway!r}, cached={len(self._cache)})"
