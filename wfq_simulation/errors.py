"""Exceptions raised by the WFQ trace replay."""


class WFQError(Exception):
    """Base class for WFQ replay errors."""


class MalformedRecordError(WFQError, ValueError):
    """A trace line cannot be accepted as a packet.

    Callers reading a trace skip such lines; they never reach the flow registry or the ledger.
    """

    def __init__(self, line: str, reason: str):
        super().__init__(f"malformed trace record ({reason}): {line!r}")
        self.line = line
        self.reason = reason


class SchedulerPhaseError(WFQError, RuntimeError):
    """Ingest and dispatch were interleaved, or dispatch was requested twice."""
