from collections import OrderedDict
import copy
from typing import Any, Callable, Dict, Optional, Tuple
import logging
import time

logger = logging.getLogger(__name__)


class DocumentationCache:
    """TTL cache of generated documentation keyed by (repo_url, mode).

    When full, the oldest inserted entry is evicted first. Entries are
    deep-copied on the way in and out, so no caller shares nested objects.
    """

    def __init__(self, ttl: float = 3600.0, max_size: int = 100, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.max_size = max_size
        self._clock = clock
        self._entries: "OrderedDict[Tuple[str, str], Tuple[float, Dict[str, Any]]]" = OrderedDict()

    def get(self, repo_url: str, mode: str) -> Optional[Dict[str, Any]]:
        key = (repo_url, mode)
        entry = self._entries.get(key)
        if entry is None:
            logger.debug(f"Cache miss for repository: {repo_url} ({mode})")
            return None
        stored_at, documentation = entry
        if self._clock() - stored_at >= self.ttl:
            del self._entries[key]
            logger.debug(f"Cache entry expired for repository: {repo_url} ({mode})")
            return None
        logger.info(f"📦 Cache hit for repository: {repo_url} ({mode})")
        return copy.deepcopy(documentation)

    def set(self, repo_url: str, mode: str, documentation: Dict[str, Any]) -> None:
        if self.max_size <= 0:
            return
        key = (repo_url, mode)
        self._entries.pop(key, None)
        while len(self._entries) >= self.max_size:
            evicted, _ = self._entries.popitem(last=False)
            logger.info(f"Evicted oldest cache entry: {evicted[0]} ({evicted[1]})")
        self._entries[key] = (self._clock(), copy.deepcopy(documentation))

    def clear_expired(self) -> int:
        now = self._clock()
        expired = [key for key, (stored_at, _) in self._entries.items() if now - stored_at >= self.ttl]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.info(f"Cleared {len(expired)} expired cache entries")
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)
