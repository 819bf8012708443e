import logging
import threading
from typing import Dict, Optional

from savvy.structs import CompletionResponse

logger = logging.getLogger("ResponseCache")


class ResponseCache:
    """
    Bounded FIFO cache of completion responses.

    Eviction follows insertion order only: reading an entry does not
    protect it. Safe to share between threads.
    """

    def __init__(self, max_size: int = 50):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self._entries: Dict[str, CompletionResponse] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[CompletionResponse]:
        with self._lock:
            response = self._entries.get(key)
            if response is None:
                self.misses += 1
            else:
                self.hits += 1
            return response

    def put(self, key: str, response: CompletionResponse) -> None:
        with self._lock:
            if key in self._entries:
                # Overwrite keeps the original insertion slot.
                self._entries[key] = response
                return
            while len(self._entries) >= self.max_size:
                oldest = next(iter(self._entries))
                del self._entries[oldest]
                logger.debug("Evicted cache entry %s", oldest[:12])
            self._entries[key] = response

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def keys(self):
        with self._lock:
            return list(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
