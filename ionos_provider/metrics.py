from collections import Counter
from threading import Lock


class OperationMetrics:
    def __init__(self) -> None:
        self._lock = Lock()
        self._counters: Counter[str] = Counter()

    def record(self, operation: str, outcome: str, amount: int = 1) -> None:
        key = f"machine_{operation}_{outcome}_total"
        with self._lock:
            self._counters[key] += amount

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return dict(self._counters)

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()


metrics = OperationMetrics()
