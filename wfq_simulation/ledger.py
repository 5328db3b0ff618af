from __future__ import annotations

from typing import Any, Hashable, Iterator, List

from wfq_simulation.packet import Packet


class PacketLedger:
    """Append-only store of ingested packets.

    A packet's position in the ledger is its ingestion index and never changes; sending a
    packet only flips its `sent` flag.
    """

    def __init__(self):
        self._packets: List[Packet] = []
        self._sent_count: int = 0

    def append(self, *, arrival: int, length: int, finish_tag: float, owner_priority: int,
               flow_key: Hashable, weight: int, payload: Any = None) -> Packet:
        packet = Packet(
            index=len(self._packets),
            arrival=arrival,
            length=length,
            finish_tag=finish_tag,
            owner_priority=owner_priority,
            flow_key=flow_key,
            weight=weight,
            payload=payload,
        )
        self._packets.append(packet)
        return packet

    def mark_sent(self, packet: Packet, start_time: int) -> None:
        if packet.sent:
            raise ValueError(f"packet {packet.index} already sent")
        packet.sent = True
        packet.start_time = start_time
        self._sent_count += 1

    def pending(self) -> Iterator[Packet]:
        return (p for p in self._packets if not p.sent)

    @property
    def pending_count(self) -> int:
        return len(self._packets) - self._sent_count

    @property
    def sent_count(self) -> int:
        return self._sent_count

    def __len__(self) -> int:
        return len(self._packets)

    def __getitem__(self, index: int) -> Packet:
        return self._packets[index]

    def __iter__(self) -> Iterator[Packet]:
        return iter(self._packets)
