from wfq_simulation.dispatch import DispatchEngine
from wfq_simulation.errors import MalformedRecordError, SchedulerPhaseError, WFQError
from wfq_simulation.finish_tag import FinishTagCalculator
from wfq_simulation.flow import Flow, FlowKey, FlowRegistry
from wfq_simulation.ledger import PacketLedger
from wfq_simulation.packet import Packet
from wfq_simulation.schedule_statistics import ScheduleStatistics
from wfq_simulation.scheduler import WFQScheduler

__all__ = [
    "DispatchEngine",
    "FinishTagCalculator",
    "Flow",
    "FlowKey",
    "FlowRegistry",
    "MalformedRecordError",
    "Packet",
    "PacketLedger",
    "ScheduleStatistics",
    "SchedulerPhaseError",
    "WFQError",
    "WFQScheduler",
]
