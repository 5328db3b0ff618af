import itertools
from dataclasses import field, dataclass
from typing import Callable

from des.min_value_priority_queue import MinValuePriorityQueue


@dataclass(order=True)
class DESEvent:
    time: float
    seq: int
    action: Callable[[], None] = field(compare=False)


class DiscreteEventSimulator:
    """Event loop ordered by (time, seq).

    Events sharing a timestamp run in the order they were scheduled, so anything
    scheduled up front runs before events scheduled later for the same instant.
    """

    def __init__(self, start_time: float = 0):
        self.current_time = start_time
        self.event_queue: MinValuePriorityQueue = MinValuePriorityQueue()
        self.scheduling_counter = itertools.count()
        self.end_time: float | None = None

    def schedule_event(self, delay: float, action: Callable[[], None]) -> None:
        """Schedule an event to occur after a certain delay."""
        assert delay >= 0
        self.schedule_at(self.current_time + delay, action)

    def schedule_at(self, event_time: float, action: Callable[[], None]) -> None:
        """Schedule an event at an absolute time that is not in the past."""
        assert event_time >= self.current_time
        event = DESEvent(event_time, next(self.scheduling_counter), action)
        self.event_queue.enqueue(event)

    def run(self) -> None:
        """Run the simulation until there are no more events."""
        while self.event_queue:
            event = self.event_queue.dequeue()
            self.current_time = event.time
            event.action()
        self.end_time = self.current_time

    def get_current_time(self) -> float:
        return self.current_time
