from dataclasses import dataclass, field
from typing import Any, Hashable, Optional


@dataclass(slots=True)
class Packet:
    """One ingested trace record with its WFQ scheduling attributes.

    `finish_tag`, `owner_priority` and `weight` are fixed at ingestion time; a later weight
    change on the flow does not touch packets already ingested.
    """
    index: int
    arrival: int
    length: int
    finish_tag: float
    owner_priority: int
    flow_key: Hashable
    weight: int
    payload: Any = field(default=None, repr=False)
    sent: bool = False
    start_time: Optional[int] = None

    def dispatch_key(self) -> tuple:
        """Total order used to pick the next packet among eligible ones."""
        return self.finish_tag, self.owner_priority, self.index

    @property
    def end_time(self) -> Optional[int]:
        if self.start_time is None:
            return None
        return self.start_time + self.length

    @property
    def queuing_delay(self) -> Optional[int]:
        if self.start_time is None:
            return None
        return self.start_time - self.arrival
