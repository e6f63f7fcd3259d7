import threading
from typing import Dict, Hashable, Optional, Tuple


class PairwiseDistanceCache:
    """Values computed for unordered pairs of key pose identities.

    Only writes are serialised; a racing read may miss and recompute a value,
    which is then stored again with the same result.
    """

    def __init__(self):
        self._values: Dict[Tuple, float] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def key(a: int, b: int, context: Optional[Hashable] = None) -> Tuple:
        low, high = (a, b) if a <= b else (b, a)
        if context is None:
            return low, high
        return low, high, context

    def get(self, a: int, b: int, context: Optional[Hashable] = None) -> Optional[float]:
        value = self._values.get(self.key(a, b, context))
        if value is None:
            self.misses += 1
        else:
            self.hits += 1
        return value

    def set(self, a: int, b: int, value: float, context: Optional[Hashable] = None) -> None:
        with self._lock:
            self._values[self.key(a, b, context)] = value

    def clear(self) -> None:
        with self._lock:
            self._values.clear()
            self.hits = 0
            self.misses = 0

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, pair) -> bool:
        return self.key(*pair) in self._values
