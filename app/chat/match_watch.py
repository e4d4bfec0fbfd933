"""
One-shot "match observed" guard.

A waiting participant learns about its match from two paths: the pushed
match_found event and the polling fallback. Whichever reports first wins;
later reports are ignored.
"""
import asyncio
import logging
import threading
from typing import Any, Optional

logger = logging.getLogger(__name__)


class MatchWatch:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._result: Optional[Any] = None
        self._source: Optional[str] = None
        self._event = asyncio.Event()

    @property
    def observed(self) -> bool:
        return self._source is not None

    @property
    def result(self) -> Optional[Any]:
        return self._result

    @property
    def source(self) -> Optional[str]:
        return self._source

    def observe(self, result: Any, source: str) -> bool:
        """Record the match. Returns True only for the first observation."""
        with self._lock:
            if self._source is not None:
                logger.debug("Match already observed via %s; ignoring %s", self._source, source)
                return False
            self._result = result
            self._source = source
        self._event.set()
        return True

    async def wait(self, timeout: float) -> bool:
        try:
            await asyncio.wait_for(self._event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True
