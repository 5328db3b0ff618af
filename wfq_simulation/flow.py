from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Hashable, Iterator, Optional

import xxhash


@dataclass(frozen=True, slots=True)
class FlowKey:
    """Endpoint pair identifying a flow: source address:port to destination address:port."""

    src_addr: str
    src_port: str
    dst_addr: str
    dst_port: str

    _hash: int = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        # Cache hash once; keys are looked up for every ingested record.
        object.__setattr__(self, '_hash', xxhash.xxh64(str(self).encode('utf-8', 'surrogateescape')).intdigest())

    def __str__(self) -> str:
        return f"{self.src_addr}:{self.src_port}-{self.dst_addr}:{self.dst_port}"

    def __hash__(self) -> int:
        return self._hash


@dataclass(slots=True)
class Flow:
    """Per-flow WFQ state.

    `priority` is the discovery order of the flow and breaks ties between equal finish tags.
    `last_finish` is the finish tag of the most recently ingested packet of this flow.
    """
    key: Hashable
    priority: int
    weight: int = 1
    last_finish: float = 0.0


class FlowRegistry:
    """Find-or-create store of flows, kept in discovery order."""

    def __init__(self):
        self._flows: Dict[Hashable, Flow] = {}

    def find_or_create(self, key: Hashable) -> Flow:
        flow = self._flows.get(key)
        if flow is None:
            flow = Flow(key=key, priority=len(self._flows))
            self._flows[key] = flow
            logging.debug(f"New flow {key} priority={flow.priority}")
        return flow

    def get(self, key: Hashable) -> Optional[Flow]:
        return self._flows.get(key)

    @staticmethod
    def set_weight(flow: Flow, weight: int) -> None:
        """Overwrite the flow weight. Weights below 1 are normalized to 1."""
        if weight < 1:
            logging.debug(f"Flow {flow.key}: weight {weight} normalized to 1")
            weight = 1
        flow.weight = weight

    def __len__(self) -> int:
        return len(self._flows)

    def __iter__(self) -> Iterator[Flow]:
        return iter(self._flows.values())

    def __contains__(self, key: Hashable) -> bool:
        return key in self._flows
