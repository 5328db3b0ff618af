from __future__ import annotations

import logging
from typing import Any, Callable, Hashable, Optional

from wfq_simulation.dispatch import DispatchEngine
from wfq_simulation.errors import SchedulerPhaseError
from wfq_simulation.finish_tag import FinishTagCalculator
from wfq_simulation.flow import FlowRegistry
from wfq_simulation.ledger import PacketLedger
from wfq_simulation.packet import Packet
from wfq_simulation.schedule_statistics import ScheduleStatistics
from wfq_simulation.trace import TraceRecord


class WFQScheduler:
    """Two-phase WFQ replay: ingest the whole trace, then dispatch it once.

    Finish tags are computed during ingestion, in trace order. Dispatch needs the complete
    ledger, so ingesting after dispatch has started is an error.
    """

    def __init__(self):
        self.flows = FlowRegistry()
        self.ledger = PacketLedger()
        self.statistics: ScheduleStatistics | None = None
        self._dispatched = False

    def ingest(self, arrival: int, length: int, flow_key: Hashable, payload: Any = None,
               weight: Optional[int] = None) -> Packet:
        if self._dispatched:
            raise SchedulerPhaseError("cannot ingest packets after dispatch")

        flow = self.flows.find_or_create(flow_key)
        if weight is not None:
            self.flows.set_weight(flow, weight)
        finish_tag = FinishTagCalculator.apply(flow, arrival, length)

        return self.ledger.append(
            arrival=arrival,
            length=length,
            finish_tag=finish_tag,
            owner_priority=flow.priority,
            flow_key=flow.key,
            weight=flow.weight,
            payload=payload,
        )

    def ingest_record(self, record: TraceRecord) -> Packet:
        return self.ingest(record.arrival, record.length, record.flow_key,
                           payload=record.text, weight=record.weight)

    def dispatch(self, emit: Callable[[int, Packet], None]) -> ScheduleStatistics:
        """Run the schedule to completion, calling `emit(start, packet)` in schedule order."""
        if self._dispatched:
            raise SchedulerPhaseError("dispatch already ran")
        self._dispatched = True

        logging.info(f"Ingested packets={len(self.ledger)} flows={len(self.flows)}")
        statistics = ScheduleStatistics()
        self.statistics = statistics

        def _emit(start: int, packet: Packet) -> None:
            statistics.record_dispatch(start, packet)
            emit(start, packet)

        engine = DispatchEngine(self.ledger)
        end_time = engine.run(_emit)
        logging.info(f"Dispatch complete packets={statistics.packet_count} end_time={end_time}")
        return statistics
