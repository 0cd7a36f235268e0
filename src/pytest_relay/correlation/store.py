"""Thread-safe storage of correlated objects."""

from threading import Lock


class ObjectStore[T]:
    """Concurrent map from correlation keys to stored objects.

    Objects are taken out of the store when found, so every stored
    object is handed out at most once even under concurrent lookups.
    """

    def __init__(self) -> None:
        self._objects: dict[str, T] = {}
        self._lock = Lock()

    def add(self, key: str, obj: T) -> None:
        """Store an object, replacing any object stored under the same key."""
        with self._lock:
            self._objects[key] = obj

    def remove(self, key: str) -> T | None:
        """Take and delete the object stored under a key.

        Args:
            key: Correlation key.

        Returns:
            The stored object, or `None` if nothing is stored.
        """
        with self._lock:
            return self._objects.pop(key, None)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._objects

    def __len__(self) -> int:
        with self._lock:
            return len(self._objects)
