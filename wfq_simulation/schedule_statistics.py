"""Streaming schedule statistics - accumulated while packets are dispatched."""

from dataclasses import dataclass, field
from typing import Dict, Hashable

from wfq_simulation.packet import Packet


@dataclass
class FlowStatistics:
    """Service received by one flow."""

    priority: int
    packets: int = 0
    total_length: int = 0
    total_delay: int = 0
    max_delay: int = 0
    first_start: int | None = None
    last_finish: int | None = None

    def record(self, start: int, packet: Packet) -> None:
        delay = start - packet.arrival
        self.packets += 1
        self.total_length += packet.length
        self.total_delay += delay
        if delay > self.max_delay:
            self.max_delay = delay
        if self.first_start is None:
            self.first_start = start
        self.last_finish = start + packet.length

    @property
    def avg_delay(self) -> float:
        return self.total_delay / self.packets if self.packets > 0 else 0.0


@dataclass
class ScheduleStatistics:
    """Accumulates schedule statistics incrementally, one dispatched packet at a time."""

    packet_count: int = 0
    total_length: int = 0
    total_delay: int = 0
    makespan: int = 0
    flows: Dict[Hashable, FlowStatistics] = field(default_factory=dict)

    def record_dispatch(self, start: int, packet: Packet) -> None:
        """Called once per packet, in schedule order."""
        self.packet_count += 1
        self.total_length += packet.length
        self.total_delay += start - packet.arrival
        finish = start + packet.length
        if finish > self.makespan:
            self.makespan = finish

        stats = self.flows.get(packet.flow_key)
        if stats is None:
            stats = FlowStatistics(priority=packet.owner_priority)
            self.flows[packet.flow_key] = stats
        stats.record(start, packet)

    @property
    def avg_delay(self) -> float:
        return self.total_delay / self.packet_count if self.packet_count > 0 else 0.0

    @property
    def utilization(self) -> float:
        """Fraction of [0, makespan) during which the link was transmitting."""
        return self.total_length / self.makespan if self.makespan > 0 else 0.0

    def as_dict(self) -> Dict[str, object]:
        return {
            "packets": self.packet_count,
            "flows": len(self.flows),
            "total length": self.total_length,
            "makespan": self.makespan,
            "avg delay": round(self.avg_delay, 3),
            "utilization": round(self.utilization, 3),
        }
