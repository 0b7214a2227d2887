# ==================================================
# 🔄 RPC ENDPOINT POOL
# Rotating list of RPC URLs, advanced on failure
# ==================================================

import threading
from typing import List, Sequence

from loguru import logger


class EndpointPool:
    """
    Ordered endpoint list with a current index.

    No health tracking: callers rotate between attempts and the
    rotated-to endpoint is tried blindly.
    """

    def __init__(self, endpoints: Sequence[str], name: str = "rpc"):
        if not endpoints:
            raise ValueError("endpoint pool needs at least one endpoint")
        self._endpoints: List[str] = list(endpoints)
        self._index = 0
        self._lock = threading.Lock()
        self.name = name

    def __len__(self) -> int:
        return len(self._endpoints)

    @property
    def endpoints(self) -> List[str]:
        return list(self._endpoints)

    def current(self) -> str:
        with self._lock:
            return self._endpoints[self._index]

    def rotate(self) -> str:
        with self._lock:
            self._index = (self._index + 1) % len(self._endpoints)
            endpoint = self._endpoints[self._index]
        logger.info(f"[RPC POOL] {self.name} rotating to endpoint → {redact(endpoint)}")
        return endpoint

    def ws_url(self) -> str:
        url = self.current()
        if url.startswith("https://"):
            return "wss://" + url[len("https://"):]
        if url.startswith("http://"):
            return "ws://" + url[len("http://"):]
        return url


def redact(url: str) -> str:
    # api keys ride in the query string
    base, sep, _ = url.partition("?")
    return base + ("?…" if sep else "")
