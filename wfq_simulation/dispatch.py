from __future__ import annotations

import logging
from functools import partial
from typing import Callable, Tuple

from des.des import DiscreteEventSimulator
from des.min_value_priority_queue import MinValuePriorityQueue
from wfq_simulation.errors import SchedulerPhaseError
from wfq_simulation.ledger import PacketLedger
from wfq_simulation.packet import Packet

EmitCallback = Callable[[int, Packet], None]


def _sim_time_prefix(sim: DiscreteEventSimulator) -> str:
    return f"[sim_t={sim.get_current_time()}]"


class DispatchEngine:
    """Single-server WFQ dispatch over a fully ingested ledger, emulating an online scheduler.

    Every packet becomes an arrival event on the simulator. Arrived packets wait in a min-heap
    keyed by (finish_tag, owner_priority, index). The output link is one server:
    - when it is idle, an arrival schedules a dispatch attempt at the current instant;
    - when a transmission completes, the next eligible packet is dispatched immediately.

    Arrival events are all scheduled before the simulation starts, so for any instant they
    run before dispatch or completion events of that same instant. A choice therefore sees
    exactly the packets with arrival <= now, and an idle link fast-forwards to the next
    arrival because that is the next event on the queue.
    """

    def __init__(self, ledger: PacketLedger, sim: DiscreteEventSimulator | None = None):
        self.ledger = ledger
        self.sim = sim if sim is not None else DiscreteEventSimulator(start_time=0)
        self._eligible: MinValuePriorityQueue = MinValuePriorityQueue()
        self._emit: EmitCallback | None = None
        self._link_busy: bool = False
        self._dispatch_scheduled: bool = False
        self._started: bool = False

    def run(self, emit: EmitCallback) -> int:
        """Send every pending packet, calling `emit(start, packet)` in schedule order.

        Returns the simulated time at which the link finishes its last transmission.
        """
        if self._started:
            raise SchedulerPhaseError("dispatch engine already ran")
        self._started = True
        self._emit = emit

        clock_start = self.sim.get_current_time()
        for packet in self.ledger.pending():
            # Packets stamped before the clock start are already eligible at the start.
            self.sim.schedule_at(max(packet.arrival, clock_start), partial(self._on_arrival, packet))

        logging.debug(f"{_sim_time_prefix(self.sim)} Dispatch starting packets={self.ledger.pending_count}")
        self.sim.run()

        assert self.ledger.pending_count == 0, "dispatch ended with unsent packets"
        return self.sim.get_current_time()

    def _on_arrival(self, packet: Packet) -> None:
        self._eligible.enqueue(packet.dispatch_key())
        self._ensure_dispatch_scheduled()

    def _ensure_dispatch_scheduled(self) -> None:
        if self._link_busy or self._dispatch_scheduled:
            return
        self._dispatch_scheduled = True
        self.sim.schedule_event(0, self._dispatch_next)

    def _dispatch_next(self) -> None:
        self._dispatch_scheduled = False
        if not self._eligible:
            return

        _, _, index = self._eligible.dequeue()
        packet = self.ledger[index]
        now = self.sim.get_current_time()
        start = max(now, packet.arrival)

        self.ledger.mark_sent(packet, start)
        self._link_busy = True
        logging.debug(
            f"{_sim_time_prefix(self.sim)} Dispatch packet={packet.index} flow={packet.flow_key} "
            f"F={packet.finish_tag:.3f} prio={packet.owner_priority} start={start}"
        )
        self._emit(start, packet)
        self.sim.schedule_at(start + packet.length, self._on_transmission_complete)

    def _on_transmission_complete(self) -> None:
        self._link_busy = False
        if self._eligible:
            self._dispatch_next()


def reference_schedule(ledger: PacketLedger) -> list[Tuple[int, int]]:
    """Plain rescan formulation of the same schedule, returning (start, index) pairs.

    Quadratic in the number of packets; it does not modify the ledger. Kept for
    cross-checking the event-driven engine on small traces.
    """
    sent = [False] * len(ledger)
    remaining = len(ledger)
    now = 0
    schedule: list[Tuple[int, int]] = []
    while remaining:
        best: Packet | None = None
        next_arrival: int | None = None
        for packet in ledger:
            if sent[packet.index]:
                continue
            if packet.arrival <= now:
                if best is None or packet.dispatch_key() < best.dispatch_key():
                    best = packet
            elif next_arrival is None or packet.arrival < next_arrival:
                next_arrival = packet.arrival
        if best is None:
            now = next_arrival
            continue
        start = max(now, best.arrival)
        schedule.append((start, best.index))
        now = start + best.length
        sent[best.index] = True
        remaining -= 1
    return schedule
