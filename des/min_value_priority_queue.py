import heapq
from typing import Any, List


class MinValuePriorityQueue:
    """Binary min-heap over orderable items (smallest item dequeues first)."""

    def __init__(self):
        self._heap: List[Any] = []

    def enqueue(self, item: Any) -> None:
        heapq.heappush(self._heap, item)

    def dequeue(self) -> Any:
        return heapq.heappop(self._heap)

    def peek(self) -> Any:
        return self._heap[0]

    def __len__(self) -> int:
        return len(self._heap)

    def __bool__(self) -> bool:
        return bool(self._heap)
