import time


class FirstSeenCache:
    """
    Cache of keys, where a key's expiry is set only when first added.

    Used to deduplicate signal lines by content: a line observed once is not
    reported again until its entry expires. With ``ttl=None`` entries never
    expire. Expired entries are swept lazily on insertion.
    """

    cache: dict[bytes, float | None]

    def __init__(self, ttl: float | None = None) -> None:
        """
        :param ttl: no of seconds as time-to-live for each cache entry, or None
        """
        self.ttl = ttl
        self.cache = {}

    def _expiry(self, now: float) -> float | None:
        if self.ttl is None:
            return None
        return now + self.ttl

    @staticmethod
    def _is_expired(expiry: float | None, now: float) -> bool:
        return expiry is not None and expiry <= now

    def _sweep(self, now: float) -> None:
        """Removes expired entries from the cache."""
        expired = [
            key for key, expiry in self.cache.items() if self._is_expired(expiry, now)
        ]
        for key in expired:
            del self.cache[key]

    def add(self, key: bytes) -> bool:
        """
        Add ``key`` to the cache.

        :return: True if the key is new (or its previous entry expired)
        """
        now = time.monotonic()
        self._sweep(now)
        if key in self.cache:
            return False
        self.cache[key] = self._expiry(now)
        return True

    def has(self, key: bytes) -> bool:
        if key not in self.cache:
            return False
        return not self._is_expired(self.cache[key], time.monotonic())

    def length(self) -> int:
        return len(self.cache)

    def clear(self) -> None:
        self.cache.clear()
