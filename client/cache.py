from typing import Any, Callable, Dict, Hashable, Tuple

QueryKey = Tuple[Hashable, ...]


class QueryCache:
    """Results of read calls, keyed by tuples such as ``("trip", trip_id)``.

    Invalidating a key drops every entry whose key starts with it, so
    ``invalidate(("trips",))`` clears the trip lists of all users.
    """

    def __init__(self):
        self._entries: Dict[QueryKey, Any] = {}

    def __contains__(self, key: QueryKey) -> bool:
        return key in self._entries

    def get(self, key: QueryKey, default: Any = None) -> Any:
        return self._entries.get(key, default)

    def fetch(self, key: QueryKey, loader: Callable[[], Any]) -> Any:
        if key not in self._entries:
            self._entries[key] = loader()
        return self._entries[key]

    def set_data(self, key: QueryKey, updater: Any) -> None:
        """Replace a cached value, or transform it when ``updater`` is callable."""
        if callable(updater):
            self._entries[key] = updater(self._entries.get(key))
        else:
            self._entries[key] = updater

    def invalidate(self, *prefixes: QueryKey) -> int:
        stale = [
            key
            for key in self._entries
            if any(key[: len(prefix)] == prefix for prefix in prefixes)
        ]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()
